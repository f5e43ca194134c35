"""Tests for quality encoding conversion and detection."""

import bz2
import gzip

import numpy as np
import pytest

from read_qc.exceptions import EncodingAmbiguousError
from read_qc.quality import (
    detect_phred_offset,
    detect_phred_offset_file,
    legacy_to_canonical,
    quality_scores,
    tally_encoding_votes,
    to_canonical_score,
)

from conftest import fastq_text


def test_single_character_scores():
    assert to_canonical_score("#") == 2
    assert to_canonical_score("5") == 20
    assert to_canonical_score("I") == 40


def test_quality_scores_array():
    scores = quality_scores("#5?I")
    assert scores.dtype == np.int64
    assert scores.tolist() == [2, 20, 30, 40]
    assert quality_scores("").tolist() == []


def test_legacy_conversion():
    # 'h' is Q40 and 'B' is Q2 in phred+64
    assert legacy_to_canonical("hB") == "I#"
    assert legacy_to_canonical("") == ""


def test_votes_ignore_ambiguous_band():
    # 'B' (66) through 'J' (74) count for neither encoding
    assert tally_encoding_votes(["BCDEFGHIJ"]) == (0, 0)
    assert tally_encoding_votes(["#5", "hh", ""]) == (2, 2)


def test_detect_canonical():
    assert detect_phred_offset(["??##", "?5I"]) == 33


def test_detect_legacy():
    assert detect_phred_offset(["hhhhBB", "hhh"]) == 64


def test_detect_tie_raises():
    with pytest.raises(EncodingAmbiguousError) as exc_info:
        detect_phred_offset(["#h"])
    assert exc_info.value.n_canonical == 1
    assert exc_info.value.n_legacy == 1


def test_detect_no_informative_characters_raises():
    with pytest.raises(EncodingAmbiguousError):
        detect_phred_offset(["IIII", "HHHH"])


@pytest.mark.parametrize("suffix, opener", [
    (".fastq", open),
    (".fastq.gz", gzip.open),
    (".fastq.bz2", bz2.open),
])
def test_detect_from_file(tmp_path, suffix, opener):
    text = fastq_text([(f"@r{i}", "ACGT", "hhhh") for i in range(10)])
    path = tmp_path / f"reads{suffix}"
    with opener(path, "wt") as handle:
        handle.write(text)
    assert detect_phred_offset_file(path) == 64


def test_detect_from_file_only_reads_sample(tmp_path):
    # First two records vote phred+33, the rest phred+64
    records = [(f"@r{i}", "ACGT", "????") for i in range(2)]
    records += [(f"@s{i}", "ACGT", "hhhh") for i in range(10)]
    path = tmp_path / "reads.fastq"
    path.write_text(fastq_text(records))
    assert detect_phred_offset_file(path, sample_size=2) == 33
    assert detect_phred_offset_file(path) == 64


def test_detect_from_file_skips_undecodable_quality(tmp_path):
    path = tmp_path / "reads.fastq"
    path.write_bytes(b"@r1\nACGT\n+\n??\xff?\n" + fastq_text([("@r2", "ACGT", "hhhh")]).encode("ascii"))
    assert detect_phred_offset_file(path) == 64
