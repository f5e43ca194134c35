"""
Read-level quality control.

Trimming and filtering stages that operate on a single ``ReadRecord``,
the ``QCParams`` option set that enables them, and ``QCPipeline`` which
runs the enabled stages in their fixed order.

Every enabled stage runs even after an earlier stage has filtered the
read, so the reason left on a read is the last one set in pipeline order.
"""

import logging
import numbers
import re
from dataclasses import dataclass, fields
from functools import partial
from os import PathLike
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

import numpy as np

from .constants import (
    AUTO_BARCODES,
    DEFAULT_LOW_COMPLEXITY,
    DEFAULT_MAXN,
    DEFAULT_MEANQ,
    DEFAULT_MINLEN,
    DEFAULT_WINSIZE,
    ERROR,
    LOW_COMPLEXITY,
    LOW_COMPLEXITY_PATTERNS,
    LOW_MEAN_QUAL,
    MAX_PHRED,
    POOR_QUALITY,
    TOO_MANY_LOW_QUAL,
    TOO_MANY_N,
    TOO_SHORT,
    TRIM3_SENTINEL,
)
from .exceptions import ConfigError
from .sequencing_read import ReadRecord

logger = logging.getLogger(__name__)

_TRAILING_SENTINEL = re.compile(re.escape(TRIM3_SENTINEL) + r"+$")
_LEADING_N = re.compile(r"^[Nn]+")
_TRAILING_N = re.compile(r"[Nn]+$")
_LOW_COMPLEXITY_RES = [
    (nn, re.compile(f"(?={nn})", re.IGNORECASE)) for nn in LOW_COMPLEXITY_PATTERNS
]


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def trim_roche_mid(read: ReadRecord, mid_len: int) -> None:
    """
    Move the leading Roche/454 MID into the barcode.

    The first ``mid_len`` bases become the upper-cased barcode and are
    removed. A read not longer than the MID is emptied and filtered.
    """
    if mid_len <= 0:
        raise ConfigError(f"Invalid MID length, {mid_len}")
    if len(read.sequence) <= mid_len:
        read.trim(0, 0)
        read.mark_filtered(TOO_SHORT)
        return
    read.barcode = read.sequence[:mid_len].upper()
    read.trim(mid_len, len(read.sequence))


def trim3(read: ReadRecord) -> None:
    """Trim the trailing run of Q2 ('#') bases left by Illumina's quality indicator."""
    m = _TRAILING_SENTINEL.search(read.quality)
    if m is None:
        return
    read.trim(0, m.start())
    if not read.sequence:
        read.mark_filtered(POOR_QUALITY)


def trim_terminal_ns(read: ReadRecord) -> None:
    """Remove uninformative Ns at both ends of the sequence."""
    if not read.sequence:
        return
    m = _LEADING_N.match(read.sequence)
    if m is not None:
        read.trim(m.end(), len(read.sequence))
    m = _TRAILING_N.search(read.sequence)
    if m is not None:
        read.trim(0, m.start())
    if not read.sequence:
        read.mark_filtered(POOR_QUALITY)


def qual_end_trim(
    read: ReadRecord,
    winsize: int = DEFAULT_WINSIZE,
    meanq: float = DEFAULT_MEANQ,
) -> None:
    """
    Trim both ends with a sliding window until the window mean reaches ``meanq``.

    The left end is trimmed first, keeping a running window sum that drops the
    departing score and adds the one entering at the window's right edge. The
    right end of the left-trimmed read is then trimmed the same way. A read
    that never reaches the threshold, or is shorter than the window, is
    filtered as too short.

    Parameters
    ----------
    read : ReadRecord
        Read to trim in place.
    winsize : int, default 5
        Window length in bases.
    meanq : float, default 20
        Minimum mean phred score of the window.
    """
    winsize = winsize or DEFAULT_WINSIZE
    meanq = meanq or DEFAULT_MEANQ
    if not read.sequence:
        return

    scores = read.raw_scores().tolist()
    if len(scores) < winsize:
        read.mark_filtered(TOO_SHORT)
        return

    # Left
    start, end = 0, len(scores)
    winsum = sum(scores[:winsize])
    while end - start > winsize and winsum / winsize < meanq:
        winsum -= scores[start]
        start += 1
        winsum += scores[start + winsize - 1]
    read.trim(start, end)
    scores = scores[start:end]
    if winsum / winsize < meanq:
        read.mark_filtered(TOO_SHORT)
        return

    # Right
    end = len(scores)
    winsum = sum(scores[end - winsize:end])
    while end > winsize and winsum / winsize < meanq:
        end -= 1
        winsum -= scores[end]
        winsum += scores[end - winsize]
    read.trim(0, end)
    if winsum / winsize < meanq:
        read.mark_filtered(TOO_SHORT)
        return

    if len(read.sequence) != len(read.quality):
        logger.warning(f"End-trim error for {read.id}")
        read.mark_filtered(ERROR)


def length_filter(read: ReadRecord, minlen: int = DEFAULT_MINLEN) -> None:
    """Filter reads shorter than ``minlen``."""
    if len(read.sequence) < minlen:
        read.mark_filtered(TOO_SHORT)


def n_filter(read: ReadRecord, maxn: int = DEFAULT_MAXN) -> None:
    """Filter reads with more than ``maxn`` ambiguous bases."""
    n = read.sequence.upper().count("N")
    if n > maxn:
        read.mark_filtered(TOO_MANY_N)


def low_complexity_filter(read: ReadRecord, pct_len: float = DEFAULT_LOW_COMPLEXITY) -> None:
    """
    Filter mono- and di-nucleotide repeats.

    For each dinucleotide, overlapping occurrences ``n`` are counted; the read
    is filtered when ``n * 2 / len`` reaches ``pct_len`` for any of them.
    """
    seq = read.sequence
    length = len(seq)
    if not length:
        return
    for _, pattern in _LOW_COMPLEXITY_RES:
        n = sum(1 for _ in pattern.finditer(seq))
        if n * 2 / length >= pct_len:
            read.mark_filtered(LOW_COMPLEXITY)
            return


def low_qual_filter(read: ReadRecord, min_q: int, max_count: int) -> None:
    """Filter reads with more than ``max_count`` bases scoring below ``min_q``."""
    scores = read.raw_scores()
    n = int(np.count_nonzero(scores < min_q))
    if n > max_count:
        read.mark_filtered(TOO_MANY_LOW_QUAL)


def mean_qual_filter(read: ReadRecord, min_mean_q: float) -> None:
    """Filter reads whose mean phred score is below ``min_mean_q``."""
    scores = read.raw_scores()
    if scores.size == 0:
        return
    if scores.mean() < min_mean_q:
        read.mark_filtered(LOW_MEAN_QUAL)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

def _check(condition: bool, name: str, value: Any) -> None:
    if not condition:
        raise ConfigError(f"Invalid {name}, {value}")


_INTEGER_OPTIONS = (
    "winsize", "minlen", "maxn", "low_q", "max_num_low_q",
    "roche_mid_len", "barcodes_seq_col", "barcodes_label_col",
)
_NUMBER_OPTIONS = ("meanq", "low_complexity", "min_mean_q")


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class QCParams:
    """
    Validated QC and barcode options.

    A stage is enabled only when its options are set. Column numbers are
    1-based, as given on the command line.

    Parameters
    ----------
    trim3 : bool
        Trim trailing Q2 bases.
    trimN : bool
        Trim leading and trailing Ns.
    winsize, meanq : int, optional
        Sliding-window end trim; both must be set.
    minlen : int, optional
        Minimum read length.
    maxn : int, optional
        Maximum number of Ns.
    low_complexity : float, optional
        Dinucleotide repeat fraction that filters a read (0-1).
    low_q, max_num_low_q : int, optional
        Filter reads with more than ``max_num_low_q`` bases below ``low_q``.
    min_mean_q : float, optional
        Minimum mean quality.
    roche_mid_len : int, optional
        Length of a leading Roche/454 MID to move into the barcode.
    barcodes_file : str, optional
        Barcode reference file, or ``'AUTO'`` to learn barcodes.
    barcodes_seq_col : int, default 1
        Barcode column of a tabular reference file.
    barcodes_label_col : int, optional
        Label column of a tabular reference file.
    """

    trim3: bool = False
    trimN: bool = False
    winsize: Optional[int] = None
    meanq: Optional[float] = None
    minlen: Optional[int] = None
    maxn: Optional[int] = None
    low_complexity: Optional[float] = None
    low_q: Optional[int] = None
    max_num_low_q: Optional[int] = None
    min_mean_q: Optional[float] = None
    roche_mid_len: Optional[int] = None
    barcodes_file: Optional[Union[PathLike, str]] = None
    barcodes_seq_col: int = 1
    barcodes_label_col: Optional[int] = None

    def __post_init__(self):
        for name in ("trim3", "trimN"):
            value = getattr(self, name)
            _check(value in (0, 1, True, False), name, value)
            object.__setattr__(self, name, bool(value))
        for name in _INTEGER_OPTIONS:
            value = getattr(self, name)
            if value is not None:
                _check(_is_int(value), name, value)
        for name in _NUMBER_OPTIONS:
            value = getattr(self, name)
            if value is not None:
                _check(_is_number(value), name, value)
        if self.winsize is not None:
            _check(self.winsize >= 1, "winsize", self.winsize)
        if self.meanq is not None:
            _check(self.meanq >= 1, "meanq", self.meanq)
        if self.minlen is not None:
            _check(self.minlen >= 0, "minlen", self.minlen)
        if self.maxn is not None:
            _check(self.maxn >= 0, "maxn", self.maxn)
        if self.low_complexity is not None:
            _check(0 <= self.low_complexity <= 1, "low_complexity", self.low_complexity)
        if self.low_q is not None:
            _check(0 <= self.low_q <= MAX_PHRED, "low_q", self.low_q)
        if self.max_num_low_q is not None:
            _check(self.max_num_low_q >= 0, "max_num_low_q", self.max_num_low_q)
        if self.min_mean_q is not None:
            _check(0 <= self.min_mean_q <= MAX_PHRED, "min_mean_q", self.min_mean_q)
        if self.roche_mid_len is not None:
            _check(self.roche_mid_len > 0, "roche_mid_len", self.roche_mid_len)
        _check(self.barcodes_seq_col >= 1, "barcodes_seq_col", self.barcodes_seq_col)
        if self.barcodes_label_col is not None:
            _check(self.barcodes_label_col >= 1, "barcodes_label_col", self.barcodes_label_col)
        if isinstance(self.barcodes_file, str) and self.barcodes_file.upper() == AUTO_BARCODES:
            object.__setattr__(self, "barcodes_file", AUTO_BARCODES)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "QCParams":
        """
        Build params from a mapping, rejecting unknown option names.

        Options whose value is None are treated as unset.
        """
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            name = unknown[0]
            raise ConfigError(f"Invalid parameter, {name} => {options[name]}")
        return cls(**{k: v for k, v in options.items() if v is not None})

    @property
    def learn_barcodes(self) -> bool:
        return self.barcodes_file == AUTO_BARCODES


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class QCPipeline:
    """
    Ordered QC stages enabled by a ``QCParams``.

    Stage order is fixed: trim3, trim_terminal_ns, qual_end_trim,
    length_filter, n_filter, low_complexity_filter, low_qual_filter,
    mean_qual_filter.

    Examples
    --------
    >>> pipeline = QCPipeline(QCParams(minlen=30, maxn=0))
    >>> pipeline.stage_names
    ['length_filter', 'n_filter']
    """

    def __init__(self, params: Optional[QCParams] = None):
        self.params = params or QCParams()
        self.stages: List[Tuple[str, Callable[[ReadRecord], None]]] = self._build_stages(self.params)

    @staticmethod
    def _build_stages(p: QCParams) -> List[Tuple[str, Callable[[ReadRecord], None]]]:
        stages = []
        if p.trim3:
            stages.append(("trim3", trim3))
        if p.trimN:
            stages.append(("trim_terminal_ns", trim_terminal_ns))
        if p.winsize is not None and p.meanq is not None:
            stages.append(("qual_end_trim", partial(qual_end_trim, winsize=p.winsize, meanq=p.meanq)))
        if p.minlen is not None:
            stages.append(("length_filter", partial(length_filter, minlen=p.minlen)))
        if p.maxn is not None:
            stages.append(("n_filter", partial(n_filter, maxn=p.maxn)))
        if p.low_complexity is not None:
            stages.append(("low_complexity_filter", partial(low_complexity_filter, pct_len=p.low_complexity)))
        if p.low_q is not None and p.max_num_low_q is not None:
            stages.append(("low_qual_filter", partial(low_qual_filter, min_q=p.low_q, max_count=p.max_num_low_q)))
        if p.min_mean_q is not None:
            stages.append(("mean_qual_filter", partial(mean_qual_filter, min_mean_q=p.min_mean_q)))
        return stages

    @property
    def stage_names(self) -> List[str]:
        return [name for name, _ in self.stages]

    def apply(self, read: ReadRecord) -> ReadRecord:
        """Run every enabled stage on ``read`` in place and return it."""
        for _, stage in self.stages:
            stage(read)
        return read
