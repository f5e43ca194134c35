"""Tests for QC stages, options and the stage pipeline."""

import pytest

from read_qc.exceptions import ConfigError
from read_qc.qc import (
    QCParams,
    QCPipeline,
    length_filter,
    low_complexity_filter,
    low_qual_filter,
    mean_qual_filter,
    n_filter,
    qual_end_trim,
    trim3,
    trim_roche_mid,
    trim_terminal_ns,
)
from read_qc.sequencing_read import ReadRecord


def make_read(sequence, quality=None, header="@r1"):
    if quality is None:
        quality = "?" * len(sequence)
    return ReadRecord(header, sequence, quality)


class TestTrimming:

    def test_trim3_removes_trailing_q2_run(self):
        read = make_read("ACGTACGT", "????5###")
        trim3(read)
        assert read.sequence == "ACGTA"
        assert read.quality == "????5"
        assert not read.filtered

    def test_trim3_keeps_internal_q2(self):
        read = make_read("ACGT", "?#??")
        trim3(read)
        assert read.sequence == "ACGT"

    def test_trim3_all_q2_is_poor_quality(self):
        read = make_read("ACGT", "####")
        trim3(read)
        assert read.filter_reason == "poor_quality"

    def test_trim_terminal_ns(self):
        read = make_read("NNACGNTn", "#5????5#")
        trim_terminal_ns(read)
        assert read.sequence == "ACGNT"
        assert read.quality == "????5"

    def test_trim_terminal_ns_all_n(self):
        read = make_read("NNNN")
        trim_terminal_ns(read)
        assert read.filter_reason == "poor_quality"

    def test_roche_mid_moves_into_barcode(self):
        read = make_read("acgtTTGGCC")
        trim_roche_mid(read, 4)
        assert read.barcode == "ACGT"
        assert read.sequence == "TTGGCC"
        assert read.id == "r1#ACGT"

    def test_roche_mid_short_read(self):
        read = make_read("ACGT")
        trim_roche_mid(read, 4)
        assert read.sequence == ""
        assert read.filter_reason == "too_short"


class TestQualEndTrim:

    def test_trims_both_ends(self):
        read = make_read("A" * 20, "#####" + "?" * 10 + "#####")
        qual_end_trim(read, winsize=5, meanq=20)
        assert read.quality == "#" + "?" * 10 + "#"
        assert len(read.sequence) == 12
        assert not read.filtered

    def test_high_quality_read_unchanged(self):
        read = make_read("ACGTACGTAC")
        qual_end_trim(read, winsize=5, meanq=20)
        assert read.sequence == "ACGTACGTAC"
        assert not read.filtered

    def test_all_low_quality_is_too_short(self):
        read = make_read("A" * 20, "#" * 20)
        qual_end_trim(read, winsize=5, meanq=20)
        assert read.filter_reason == "too_short"

    def test_shorter_than_window_is_too_short(self):
        read = make_read("ACG")
        qual_end_trim(read, winsize=5, meanq=20)
        assert read.filter_reason == "too_short"

    def test_empty_read_untouched(self):
        read = make_read("")
        qual_end_trim(read, winsize=5, meanq=20)
        assert not read.filtered


class TestFilters:

    def test_length_filter(self):
        read = make_read("ACGT")
        length_filter(read, minlen=5)
        assert read.filter_reason == "too_short"
        read = make_read("ACGTA")
        length_filter(read, minlen=5)
        assert not read.filtered

    def test_n_filter(self):
        read = make_read("ANNnA")
        n_filter(read, maxn=2)
        assert read.filter_reason == "too_many_N"
        read = make_read("ANNA")
        n_filter(read, maxn=2)
        assert not read.filtered

    @pytest.mark.parametrize("sequence", ["A" * 20, "ACACACACACACACACACAC"])
    def test_low_complexity_filtered(self, sequence):
        read = make_read(sequence)
        low_complexity_filter(read, 0.8)
        assert read.filter_reason == "low_complexity"

    def test_low_complexity_passes_mixed_sequence(self):
        read = make_read("ACGTTGCAAGCTTCGATCGA")
        low_complexity_filter(read, 0.8)
        assert not read.filtered

    def test_low_qual_filter(self):
        read = make_read("ACGTA", "?+#??")
        low_qual_filter(read, min_q=20, max_count=1)
        assert read.filter_reason == "too_many_low_qual"
        read = make_read("ACGTA", "?+???")
        low_qual_filter(read, min_q=20, max_count=1)
        assert not read.filtered

    def test_mean_qual_filter(self):
        read = make_read("ACGT", "++++")
        mean_qual_filter(read, min_mean_q=20)
        assert read.filter_reason == "low_mean_qual"
        read = make_read("ACGT", "5555")
        mean_qual_filter(read, min_mean_q=20)
        assert not read.filtered


class TestQCParams:

    def test_defaults_enable_nothing(self):
        assert QCPipeline(QCParams()).stage_names == []

    def test_from_options_rejects_unknown_name(self):
        with pytest.raises(ConfigError, match="Invalid parameter, low => 0.5"):
            QCParams.from_options({"low": 0.5})

    def test_from_options_drops_none(self):
        params = QCParams.from_options({"minlen": None, "maxn": 2})
        assert params.minlen is None
        assert params.maxn == 2

    @pytest.mark.parametrize("options", [
        {"winsize": 0},
        {"meanq": 0},
        {"minlen": -1},
        {"maxn": -1},
        {"low_complexity": 1.5},
        {"low_q": 42},
        {"max_num_low_q": -1},
        {"min_mean_q": 50},
        {"roche_mid_len": 0},
        {"barcodes_seq_col": 0},
        {"barcodes_label_col": 0},
        {"trim3": 2},
    ])
    def test_out_of_range_values(self, options):
        with pytest.raises(ConfigError):
            QCParams.from_options(options)

    @pytest.mark.parametrize("options", [
        {"winsize": 2.5},
        {"winsize": "5"},
        {"minlen": True},
        {"maxn": 1.0},
        {"low_q": "20"},
        {"roche_mid_len": 4.5},
        {"barcodes_seq_col": "2"},
        {"meanq": "20"},
        {"low_complexity": "0.5"},
        {"min_mean_q": [20]},
    ])
    def test_wrongly_typed_values(self, options):
        with pytest.raises(ConfigError):
            QCParams.from_options(options)

    def test_numeric_options_accept_ints_and_floats(self):
        params = QCParams(winsize=5, meanq=20, low_complexity=1, min_mean_q=25.5)
        assert params.meanq == 20
        assert params.min_mean_q == 25.5

    def test_auto_barcodes_case_insensitive(self):
        assert QCParams(barcodes_file="auto").learn_barcodes
        assert not QCParams(barcodes_file="bc.txt").learn_barcodes


class TestPipeline:

    def test_stage_order_is_fixed(self):
        params = QCParams(
            min_mean_q=20, low_q=10, max_num_low_q=2, low_complexity=0.8,
            maxn=1, minlen=10, winsize=5, meanq=20, trimN=True, trim3=True,
        )
        assert QCPipeline(params).stage_names == [
            "trim3",
            "trim_terminal_ns",
            "qual_end_trim",
            "length_filter",
            "n_filter",
            "low_complexity_filter",
            "low_qual_filter",
            "mean_qual_filter",
        ]

    def test_window_trim_needs_both_options(self):
        assert QCPipeline(QCParams(winsize=5)).stage_names == []
        assert QCPipeline(QCParams(low_q=5)).stage_names == []

    def test_last_filter_wins(self):
        read = make_read("AAAAA")
        QCPipeline(QCParams(minlen=10, low_complexity=0.5)).apply(read)
        assert read.filter_reason == "low_complexity"

    def test_passing_read(self):
        read = make_read("NACGTTGCAAGCTTCGATCGA", "#" + "?" * 20)
        QCPipeline(QCParams(trim3=True, trimN=True, minlen=20, maxn=0)).apply(read)
        assert read.sequence == "ACGTTGCAAGCTTCGATCGA"
        assert not read.filtered
