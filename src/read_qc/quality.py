"""
Quality score encodings.

Converts legacy phred+64 quality strings to phred+33, turns quality strings
into numeric scores, and detects which encoding a file uses by voting on
characters that can only occur in one of the two scales.
"""

import bz2
import gzip
import logging
import re
from os import PathLike
from typing import Iterable, Tuple, Union

import numpy as np

from .constants import (
    CANONICAL_MAX_ASCII,
    CANONICAL_OFFSET,
    INPUT_ENCODING,
    INPUT_ERRORS,
    LEGACY_MIN_ASCII,
    LEGACY_OFFSET,
    LEGACY_SHIFT,
    PRECHECK_SAMPLE_SIZE,
    QUALITY_LINE_PATTERN,
)
from .exceptions import EncodingAmbiguousError

logger = logging.getLogger(__name__)

_QUALITY_LINE = re.compile(QUALITY_LINE_PATTERN)


def to_canonical_score(char: str) -> int:
    """Phred score of a single phred+33 quality character."""
    return ord(char) - CANONICAL_OFFSET


def quality_scores(quality: str) -> np.ndarray:
    """
    Convert a phred+33 quality string to an array of integer scores.

    Parameters
    ----------
    quality : str
        Quality string (ASCII).

    Returns
    -------
    np.ndarray
        int64 array with one score per base.
    """
    return np.frombuffer(quality.encode("ascii"), dtype=np.uint8).astype(np.int64) - CANONICAL_OFFSET


def legacy_to_canonical(quality: str) -> str:
    """Shift a phred+64 quality string to phred+33."""
    return "".join(chr(ord(c) - LEGACY_SHIFT) for c in quality)


def tally_encoding_votes(qualities: Iterable[str]) -> Tuple[int, int]:
    """
    Count quality characters that only occur in one encoding.

    Returns
    -------
    n_canonical : int
        Characters with ascii < 66.
    n_legacy : int
        Characters with ascii > 74.
    """
    n_canonical = 0
    n_legacy = 0
    for quality in qualities:
        if not quality:
            continue
        codes = np.frombuffer(quality.encode("ascii"), dtype=np.uint8)
        n_canonical += int(np.count_nonzero(codes < CANONICAL_MAX_ASCII))
        n_legacy += int(np.count_nonzero(codes > LEGACY_MIN_ASCII))
    return n_canonical, n_legacy


def detect_phred_offset(qualities: Iterable[str]) -> int:
    """
    Decide between phred+33 and phred+64 by majority vote.

    Parameters
    ----------
    qualities : iterable of str
        Raw quality strings from a sample of reads.

    Returns
    -------
    int
        33 or 64.

    Raises
    ------
    EncodingAmbiguousError
        If the votes are tied (including no informative characters at all).
    """
    n_canonical, n_legacy = tally_encoding_votes(qualities)
    logger.debug(f"Quality votes: phred+33={n_canonical:,} phred+64={n_legacy:,}")
    if n_canonical == n_legacy:
        raise EncodingAmbiguousError(n_canonical, n_legacy)
    return CANONICAL_OFFSET if n_canonical > n_legacy else LEGACY_OFFSET


def detect_phred_offset_file(
    fastq_fn: Union[PathLike, str],
    sample_size: int = PRECHECK_SAMPLE_SIZE,
) -> int:
    """
    Detect the quality encoding of a FASTQ file without a full parse.

    Reads blocks of four lines and votes on the fourth line of each block,
    for at most ``sample_size`` records. Quality lines with characters outside
    printable ASCII are skipped.
    """
    fastq_fn = str(fastq_fn)
    if fastq_fn.endswith(".gz"):
        handle = gzip.open(fastq_fn, "rt", encoding=INPUT_ENCODING, errors=INPUT_ERRORS)
    elif fastq_fn.endswith(".bz2"):
        handle = bz2.open(fastq_fn, "rt", encoding=INPUT_ENCODING, errors=INPUT_ERRORS)
    else:
        handle = open(fastq_fn, "r", encoding=INPUT_ENCODING, errors=INPUT_ERRORS)

    qualities = []
    with handle:
        for line_num, line in enumerate(handle):
            if line_num // 4 >= sample_size:
                break
            if line_num % 4 == 3:
                quality = line.rstrip("\r\n")
                if _QUALITY_LINE.match(quality):
                    qualities.append(quality)

    offset = detect_phred_offset(qualities)
    logger.info(f"{fastq_fn}: phred+{offset} ({len(qualities):,} records sampled)")
    return offset
