"""
Streaming FASTQ reader with self-calibrating quality control.

``ReadStream`` buffers the start of the input, learns the quality encoding
and (optionally) the molecular barcodes from the raw buffered reads, then
processes the buffer and every following read with the same trimming,
barcode correction and filtering.
"""

import bz2
import gzip
import logging
import re
import sys
from os import PathLike
from pathlib import Path
from typing import IO, Dict, Iterator, List, Literal, Optional, Union

import pandas as pd

from .barcode_learner import BarcodeLearner
from .barcodes import BarcodeCatalog
from .constants import (
    BAD_BARCODE,
    INVALID_BARCODE,
    INPUT_ENCODING,
    INPUT_ERRORS,
    LEGACY_OFFSET,
    QUALITY_LINE_PATTERN,
    SAMPLE_SIZE,
    SEQUENCE_LINE_PATTERN,
)
from .exceptions import NoValidRecordsError
from .qc import QCParams, QCPipeline, trim_roche_mid
from .quality import detect_phred_offset
from .read_db import ReadDB
from .sequencing_read import ReadRecord
from .training import StreamState, TrainingBuffer

logger = logging.getLogger(__name__)

_SEQUENCE_LINE = re.compile(SEQUENCE_LINE_PATTERN, re.IGNORECASE)
_QUALITY_LINE = re.compile(QUALITY_LINE_PATTERN)
_STDIN_NAMES = {'', '-', 'STDIN'}


class ReadStream:
    """
    Iterator over the QC'd reads of a FASTQ file.

    Construction reads up to ``sample_size`` raw reads, detects the quality
    encoding, sets up the barcode catalog and processes the buffered reads.
    Iteration then returns the buffered reads followed by the rest of the
    input, one fully processed read per call.

    Parameters
    ----------
    source : PathLike, str, file object or None
        FASTQ path (``.gz`` and ``.bz2`` are decompressed), an open text
        stream, or None / ``'-'`` / ``'STDIN'`` for standard input.
    sample_size : int, default 10000
        Number of reads buffered for training.
    **options
        QC and barcode options; see ``QCParams``. Unknown options raise
        ``ConfigError`` before any input is read.

    Attributes
    ----------
    file : str
        Absolute input path, ``'STDIN'`` or the stream's name.
    state : StreamState
        Current phase.
    phred_offset : int
        Detected quality encoding of the input (33 or 64).
    paired : bool
        True if any buffered read carries a pair number.
    mixed_pairing : bool
        True if the buffer holds both paired and unpaired reads.
    barcode_catalog : BarcodeCatalog or None
        Loaded or learned barcodes.
    n_malformed : int
        Malformed records skipped so far.

    Raises
    ------
    ConfigError
        For unknown or out-of-range options.
    HeaderParseError
        If a header matches no known dialect.
    NoValidRecordsError
        If the input holds no valid record.
    EncodingAmbiguousError
        If the quality encoding cannot be decided.

    Examples
    --------
    >>> with ReadStream('reads.fastq.gz', trim3=1, minlen=50, maxn=2) as stream:
    ...     for read in stream:
    ...         out.write(read.to_fastq())
    >>> stream.summary()
    {'pass': 9120, 'too_short': 845, 'too_many_N': 35}
    """

    def __init__(
        self,
        source: Optional[Union[PathLike, str, IO[str]]] = None,
        sample_size: int = SAMPLE_SIZE,
        **options,
    ):
        self.params = QCParams.from_options(options)
        self.pipeline = QCPipeline(self.params)

        self.state = StreamState.BUFFERING
        self.line = 0
        self.n_malformed = 0
        self.paired: Optional[bool] = None
        self.mixed_pairing = False
        self.phred_offset: Optional[int] = None
        self.sample_size = 0
        self.barcode_catalog: Optional[BarcodeCatalog] = None
        self._db = ReadDB()
        self._buffer = TrainingBuffer(sample_size)

        self._handle: Optional[IO[str]] = None
        self._owns_handle = False
        self._open(source)

        try:
            self._fill_buffer()
            self._calibrate()
            self._replay()
        except Exception:
            self.close()
            raise

    # -- input ------------------------------------------------------------

    def _open(self, source) -> None:
        if source is None or (isinstance(source, str) and source.upper() in _STDIN_NAMES):
            self.file = 'STDIN'
            self._handle = sys.stdin
            return

        if hasattr(source, 'readline'):
            self.file = str(getattr(source, 'name', '<stream>'))
            self._handle = source
            return

        path = Path(source).resolve()
        if not path.exists():
            raise FileNotFoundError(f"FASTQ file does not exist: {path}")
        self.file = str(path)
        if path.suffix == '.gz':
            self._handle = gzip.open(path, 'rt', encoding=INPUT_ENCODING, errors=INPUT_ERRORS)
        elif path.suffix == '.bz2':
            self._handle = bz2.open(path, 'rt', encoding=INPUT_ENCODING, errors=INPUT_ERRORS)
        else:
            self._handle = open(path, 'r', encoding=INPUT_ENCODING, errors=INPUT_ERRORS)
        self._owns_handle = True
        logger.info(f"Opened {self.file}")

    def _release_handle(self) -> None:
        if self._handle is None:
            return
        if self._owns_handle:
            self._handle.close()
        self._handle = None

    def _malformed(self, message: str) -> None:
        self.n_malformed += 1
        logger.warning(f"[Line {self.line}] {message}")

    @staticmethod
    def _resync(line: str):
        # A header can never be a sequence or separator line, so restart there.
        if line.startswith('@'):
            return line, False
        return None, True

    def _next_raw_read(self) -> Optional[ReadRecord]:
        """
        Parse the next well-formed 4-line record from the input.

        Malformed records are reported and skipped; parsing resumes at the
        next header line. Returns None at end of input.
        """
        if self._handle is None:
            return None

        hdr = seq = sep = qual = None
        error = False
        while True:
            line = self._handle.readline()
            if not line:
                break
            line = line.rstrip('\r\n')
            self.line += 1
            if hdr is None:
                if line.startswith('@'):
                    hdr = line
                    error = False
                elif not error:
                    self._malformed(f"Expected header, got:\n{line}")
                    error = True
            elif seq is None:
                if _SEQUENCE_LINE.match(line):
                    seq = line
                else:
                    self._malformed(f"Expected seq, got:\n{hdr}\n{line}")
                    hdr, error = self._resync(line)
            elif sep is None:
                if line.startswith('+'):
                    sep = line
                else:
                    self._malformed(f"Expected '+', got:\n{hdr}\n{seq}\n{line}")
                    seq = None
                    hdr, error = self._resync(line)
            elif len(line) == len(seq) and _QUALITY_LINE.match(line):
                qual = line
                break
            else:
                problem = "Qual doesn't match seq" if len(line) != len(seq) else "Invalid quality characters"
                self._malformed(f"{problem}, got:\n{hdr}\n{seq}\n{sep}\n{line}")
                hdr = seq = sep = None
                error = True

        if qual is None:
            if hdr is not None:
                self._malformed(f"Truncated record at end of input:\n{hdr}")
            self._release_handle()
            return None
        return ReadRecord(hdr, seq, qual)

    # -- training ---------------------------------------------------------

    def _fill_buffer(self) -> None:
        """Buffer raw reads (no conversion, no QC) for training."""
        has_paired = has_unpaired = False
        while not self._buffer.full:
            read = self._next_raw_read()
            if read is None:
                break
            self._buffer.append(read)
            if read.pair is not None:
                has_paired = True
            else:
                has_unpaired = True

        self.sample_size = self._buffer.size
        if self.sample_size == 0:
            raise NoValidRecordsError(f"No valid records in {self.file}")

        self.paired = has_paired
        self.mixed_pairing = has_paired and has_unpaired
        if self.mixed_pairing:
            logger.warning(f"{self.file}: mix of paired and unpaired reads")
        logger.info(f"Buffered {self.sample_size:,} reads for training (paired={self.paired})")

    def _calibrate(self) -> None:
        self.state = self.state.advance(StreamState.CALIBRATING)

        self.phred_offset = detect_phred_offset(read.quality for read in self._buffer)
        logger.info(f"Quality encoding: phred+{self.phred_offset}")

        barcodes_file = self.params.barcodes_file
        if barcodes_file is None:
            return
        if self.params.learn_barcodes:
            self.barcode_catalog = BarcodeLearner().learn(self._observed_barcodes())
        else:
            self.barcode_catalog = BarcodeCatalog.from_file(
                barcodes_file,
                seq_col=self.params.barcodes_seq_col,
                label_col=self.params.barcodes_label_col,
            )
        for entry in self.barcode_catalog.ambiguous_variants:
            logger.warning(
                f"Variant {entry['variant']} is shared by {entry['barcode_kept']} "
                f"and {entry['barcode_new']}; corrected to {entry['barcode_kept']}"
            )
        self._db = ReadDB(barcodes=self.barcode_catalog.counts.keys())

    def _observed_barcodes(self) -> List[Optional[str]]:
        mid_len = self.params.roche_mid_len
        if mid_len is None:
            return [read.barcode for read in self._buffer]
        return [
            read.sequence[:mid_len].upper()
            for read in self._buffer
            if len(read.sequence) > mid_len
        ]

    def _replay(self) -> None:
        self.state = self.state.advance(StreamState.REPLAYING)
        for read in self._buffer:
            self._process(read)
        self.state = self.state.advance(StreamState.STREAMING)

    def _process(self, read: ReadRecord) -> ReadRecord:
        """Convert, trim, correct and filter one raw read in place."""
        if self.phred_offset == LEGACY_OFFSET:
            read.convert_legacy_quality()
        if self.params.roche_mid_len is not None:
            trim_roche_mid(read, self.params.roche_mid_len)
        if self.barcode_catalog is not None:
            reason = BAD_BARCODE if self.barcode_catalog.learned else INVALID_BARCODE
            self.barcode_catalog.correct(read, reason)
        return self.pipeline.apply(read)

    # -- iteration --------------------------------------------------------

    def __iter__(self) -> Iterator[ReadRecord]:
        return self

    def __next__(self) -> ReadRecord:
        read = self.next_record()
        if read is None:
            raise StopIteration
        return read

    def next_record(self) -> Optional[ReadRecord]:
        """Next processed read, or None when the input is exhausted."""
        if self.state is StreamState.CLOSED:
            return None

        read = self._buffer.pop()
        if read is None:
            read = self._next_raw_read()
            if read is None:
                logger.info(
                    f"{self.file}: {self._db.total_counts:,} reads, "
                    f"{self._db.n_passed:,} passed"
                )
                self.close()
                return None
            self._process(read)

        self._db.record(read.filter_reason, read.barcode)
        return read

    def close(self) -> None:
        """Release the input and stop iteration. Safe to call repeatedly."""
        self._release_handle()
        self._buffer.discard()
        if self.state is not StreamState.CLOSED:
            self.state = self.state.advance(StreamState.CLOSED)

    def __enter__(self) -> "ReadStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- training sample --------------------------------------------------

    def sample(self) -> List[ReadRecord]:
        """Processed training reads that have not been returned yet."""
        return list(self._buffer)

    def write_sample(self, path: Optional[Union[PathLike, str]] = None, fasta: bool = False) -> int:
        """
        Write the processed training reads not yet returned by iteration.

        Parameters
        ----------
        path : PathLike or str, optional
            Output file; None, ``''`` or ``'STDOUT'`` write to standard output.
        fasta : bool, default False
            Write Fasta instead of Fastq.

        Returns
        -------
        int
            Number of records written.
        """
        reads = self.sample()
        if path is None or str(path) == '' or str(path).upper() == 'STDOUT':
            out = sys.stdout
            for read in reads:
                out.write(read.to_fasta() if fasta else read.to_fastq())
        else:
            with open(path, 'w') as out:
                for read in reads:
                    out.write(read.to_fasta() if fasta else read.to_fastq())
        return len(reads)

    # -- summaries --------------------------------------------------------

    def summary(self) -> Dict[str, int]:
        """Reason -> count of reads returned so far, including "pass"."""
        return self._db.reason_counts()

    def barcode_counts(self) -> Optional[Dict[str, int]]:
        """Canonical barcode -> passing reads, or None if not barcoded."""
        return self._db.barcode_counts()

    def barcode_labels(self) -> Optional[Dict[str, str]]:
        """Canonical barcode -> label, or None if not barcoded."""
        if self.barcode_catalog is None:
            return None
        return dict(self.barcode_catalog.labels)

    def summary_df(self) -> pd.DataFrame:
        return self._db.counts()

    def serialize(
        self,
        results_path: Union[PathLike, str],
        format: Literal['excel', 'csv'] = 'csv',
    ) -> None:
        """
        Save outcome and barcode summaries to disk.

        Parameters
        ----------
        results_path : PathLike or str
            Directory to save results.
        format : {'excel', 'csv'}, default 'csv'
            Output format.
        """
        results_path = Path(results_path)
        results_path.mkdir(parents=True, exist_ok=True)

        tables = {'qc_summary': self.summary_df()}
        if self.barcode_catalog is not None:
            tables['barcode_counts'] = self._db.barcode_counts_df(labels=self.barcode_catalog.labels)
            collisions = self.barcode_catalog.collisions()
            if len(collisions) > 0:
                tables['barcode_collisions'] = collisions

        for name, df in tables.items():
            if format == 'excel':
                df.to_excel(results_path / f'{name}.xlsx', index=False, engine='openpyxl')
            else:
                df.to_csv(results_path / f'{name}.csv', index=False)

        logger.info(f"Results saved to {results_path}")

    def print_summary(self) -> None:
        """Print a summary of the reads returned so far."""
        print(f"FASTQ: {self.file}")
        print(f"Quality encoding: phred+{self.phred_offset}")
        print(f"Paired: {self.paired}")
        print(f"Malformed records skipped: {self.n_malformed:,}")
        for reason, count in self.summary().items():
            print(f"  {reason}: {count:,}")
        if self.barcode_catalog is not None:
            print(f"Barcodes: {len(self.barcode_catalog)}")
