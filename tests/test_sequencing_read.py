"""Tests for ReadRecord."""

import pytest

from read_qc.exceptions import HeaderParseError, RecordError
from read_qc.sequencing_read import ReadRecord


def test_identity_fields():
    read = ReadRecord("@INST:1:2:3:4#acgt/2", "ACGTA", "?????")
    assert read.base == "INST:1:2:3:4"
    assert read.pair == 2
    assert read.barcode == "ACGT"
    assert read.id == "INST:1:2:3:4#ACGT/2"
    assert read.header_rule == "illumina_barcode_pair"


def test_length_mismatch_raises():
    with pytest.raises(RecordError):
        ReadRecord("@r1", "ACGT", "???")


def test_bad_header_raises():
    with pytest.raises(HeaderParseError):
        ReadRecord("@", "ACGT", "????")


def test_set_header_reparses():
    read = ReadRecord("@r1", "ACGT", "????")
    read.set_header("r1#TTTT/1")
    assert read.header == "@r1#TTTT/1"
    assert read.barcode == "TTTT"
    assert read.pair == 1


def test_unpair():
    read = ReadRecord("@INST:1:2:3:4#ACGT/1", "ACGT", "????")
    assert read.pair == 1
    read.unpair()
    assert read.pair is None
    assert read.id == "INST:1:2:3:4#ACGT"


def test_fastq_output():
    read = ReadRecord("@r1 desc", "ACGT", "?5#?")
    assert read.to_fastq() == "@r1\nACGT\n+\n?5#?\n"
    assert str(read) == read.to_fastq()


def test_fasta_wraps_at_80():
    read = ReadRecord("@r1", "A" * 170, "?" * 170)
    lines = read.to_fasta().splitlines()
    assert lines[0] == ">r1"
    assert [len(line) for line in lines[1:]] == [80, 80, 10]


def test_qual_output_wraps_at_80_scores():
    read = ReadRecord("@r1", "A" * 81, "5" * 80 + "#")
    lines = read.to_qual().splitlines()
    assert lines[0] == ">r1"
    assert lines[1] == " ".join(["20"] * 80)
    assert lines[2] == "2"


def test_filtered_unpaired_read_is_silent():
    read = ReadRecord("@r1", "ACGT", "????")
    read.mark_filtered("too_short")
    assert read.filtered
    assert read.seq == ""
    assert read.qual == ""
    assert len(read) == 0
    assert read.scores().size == 0
    assert read.to_fastq() == ""
    assert read.to_fasta() == ""
    assert read.to_qual() == ""
    # raw payload stays available to later stages
    assert read.sequence == "ACGT"
    assert read.raw_scores().tolist() == [30, 30, 30, 30]


def test_filtered_paired_read_keeps_placeholder():
    read = ReadRecord("@INST:1:2:3:4/1", "ACGT", "????")
    read.mark_filtered("too_short")
    assert read.to_fastq() == "@INST:1:2:3:4/1\n\n+\n\n"
    assert read.to_fasta() == ">INST:1:2:3:4/1\n\n"


def test_last_filter_reason_wins():
    read = ReadRecord("@r1", "ACGT", "????")
    read.mark_filtered("too_short")
    read.mark_filtered("low_complexity")
    assert read.filter_reason == "low_complexity"


def test_empty_filter_reason_rejected():
    read = ReadRecord("@r1", "ACGT", "????")
    with pytest.raises(ValueError):
        read.mark_filtered("")


def test_trim():
    read = ReadRecord("@r1", "ACGTAC", "#5?5?#")
    read.trim(1, 5)
    assert read.sequence == "CGTA"
    assert read.quality == "5?5?"


def test_revcomp():
    read = ReadRecord("@r1", "AACGN", "#5?I+")
    read.revcomp()
    assert read.sequence == "NCGTT"
    assert read.quality == "+I?5#"


def test_legacy_conversion_only_once():
    read = ReadRecord("@r1", "AC", "hB")
    read.convert_legacy_quality()
    assert read.quality == "I#"
    assert read.legacy_converted
    with pytest.raises(RecordError):
        read.convert_legacy_quality()
