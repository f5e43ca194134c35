"""Shared fixtures for read_qc tests."""

import io

import pytest


def fastq_text(records):
    """Join (header, sequence, quality) triples into Fastq text."""
    return "".join(f"{hdr}\n{seq}\n+\n{qual}\n" for hdr, seq, qual in records)


def fastq_stream(records):
    return io.StringIO(fastq_text(records))


@pytest.fixture
def simple_records():
    """Five unpaired reads with phred+33 qualities."""
    return [
        (f"@read{i}", "ACGTTGCAAGCTTCGATCGA", "?" * 20)
        for i in range(1, 6)
    ]


@pytest.fixture
def write_fastq(tmp_path):
    """Write records to a Fastq file and return its path."""
    def _write(records, name="reads.fastq"):
        path = tmp_path / name
        path.write_text(fastq_text(records))
        return path
    return _write
