"""
Read QC - FASTQ read parsing and quality control.

This module provides a streaming FASTQ reader that normalizes quality
encoding, parses read identities from many header dialects, corrects
molecular barcodes and trims/filters reads before downstream use.

Main Classes
------------
ReadStream
    Self-calibrating iterator over the QC'd reads of a FASTQ file.

ReadRecord
    A single read: identity, sequence, quality and filter status.

QCPipeline, QCParams
    Ordered trimming/filtering stages and the options that enable them.

BarcodeCatalog, BarcodeLearner
    Canonical barcodes with single-substitution correction, loaded from a
    reference file or learned from read abundances.

HeaderParser
    Ordered header dialect rules.

Examples
--------
>>> from read_qc import ReadStream
>>> with ReadStream('reads.fastq.gz', trim3=1, winsize=5, meanq=20, minlen=50) as stream:
...     for read in stream:
...         print(read.to_fastq(), end='')
>>> stream.summary()
{'pass': 9120, 'too_short': 880}
"""

from .barcode_learner import BarcodeLearner, learn_barcodes
from .barcodes import BarcodeCatalog, generate_barcode_variants
from .constants import (
    AUTO_BARCODES,
    CHARACTERS_PER_LINE,
    PASS,
    SAMPLE_SIZE,
)
from .exceptions import (
    BarcodeFileError,
    ConfigError,
    EncodingAmbiguousError,
    FASTQParseError,
    HeaderParseError,
    NoValidRecordsError,
    RecordError,
)
from .fastq_db import ReadStream
from .headers import HEADER_RULES, HeaderParser, ParsedHeader, format_identity, parse_header
from .qc import QCParams, QCPipeline
from .quality import (
    detect_phred_offset,
    detect_phred_offset_file,
    legacy_to_canonical,
    to_canonical_score,
)
from .read_db import ReadDB
from .sequencing_read import ReadRecord
from .training import StreamState, TrainingBuffer

__all__ = [
    # Main classes
    "ReadStream",
    "ReadRecord",
    "QCPipeline",
    "QCParams",
    "BarcodeCatalog",
    "BarcodeLearner",
    "HeaderParser",
    # Utility classes
    "ParsedHeader",
    "ReadDB",
    "StreamState",
    "TrainingBuffer",
    # Convenience functions
    "parse_header",
    "format_identity",
    "learn_barcodes",
    "generate_barcode_variants",
    "detect_phred_offset",
    "detect_phred_offset_file",
    "legacy_to_canonical",
    "to_canonical_score",
    # Exceptions
    "FASTQParseError",
    "HeaderParseError",
    "NoValidRecordsError",
    "EncodingAmbiguousError",
    "RecordError",
    "ConfigError",
    "BarcodeFileError",
    # Constants
    "HEADER_RULES",
    "AUTO_BARCODES",
    "CHARACTERS_PER_LINE",
    "PASS",
    "SAMPLE_SIZE",
]

__version__ = "0.1.0"
