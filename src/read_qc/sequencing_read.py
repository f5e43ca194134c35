"""
Single FASTQ read with identity, payload and filter status.

A read is created from one header/sequence/quality triple and is then
trimmed and filtered in place by the QC stages. Once a filter reason is
set the read is excluded from output, although QC stages may keep
reading and trimming its raw fields.
"""

from typing import Optional

import numpy as np

from .constants import CHARACTERS_PER_LINE
from .exceptions import RecordError
from .headers import format_identity, parse_header
from .quality import legacy_to_canonical, quality_scores

_COMPLEMENT = str.maketrans("ATCGatcg", "TAGCtagc")


class ReadRecord:
    """
    A single sequencing read.

    Parameters
    ----------
    header : str
        Raw header line; parsed into ``base``, ``pair`` and ``barcode``.
    sequence : str
        Nucleotide sequence without newlines.
    quality : str
        Quality string of the same length as ``sequence``.

    Attributes
    ----------
    base : str
        Identifier shared by both mates of a pair.
    pair : int or None
        1 or 2 for paired reads.
    barcode : str or None
        Upper-cased molecular barcode.
    sequence, quality : str
        Raw payload, still readable after the read was filtered.
    filter_reason : str or None
        Why the read was excluded from output.

    Raises
    ------
    RecordError
        If sequence and quality lengths differ.
    HeaderParseError
        If the header matches no known dialect.

    Examples
    --------
    >>> read = ReadRecord("@INST:1:2:3:4#ACGT/1", "ACGTA", "IIIII")
    >>> read.id
    'INST:1:2:3:4#ACGT/1'
    >>> read.to_fastq()
    '@INST:1:2:3:4#ACGT/1\\nACGTA\\n+\\nIIIII\\n'
    """

    def __init__(self, header: str, sequence: str, quality: str):
        if len(sequence) != len(quality):
            raise RecordError(f"Seq and qual don't match for: {header}")
        self.sequence = sequence
        self.quality = quality
        self.filter_reason: Optional[str] = None
        self.legacy_converted = False
        self.set_header(header)

    def __repr__(self) -> str:
        return f"ReadRecord({self.id!r}, len={len(self.sequence)}, filtered={self.filter_reason!r})"

    def __len__(self) -> int:
        return 0 if self.filter_reason else len(self.sequence)

    # -- identity ---------------------------------------------------------

    def set_header(self, header: str) -> None:
        """Replace the header and re-parse base, pair and barcode."""
        if not header.startswith("@"):
            header = "@" + header
        parsed = parse_header(header)
        self.header = header
        self.base = parsed.base
        self.pair = parsed.pair
        self.barcode = parsed.barcode
        self.header_rule = parsed.rule

    @property
    def id(self) -> str:
        """Canonical identity, ``base[#barcode][/pair]``."""
        return format_identity(self.base, self.barcode, self.pair)

    def unpair(self) -> None:
        """Clear pairing (e.g. for a singleton)."""
        self.pair = None

    # -- filtering --------------------------------------------------------

    def mark_filtered(self, reason: str) -> None:
        """
        Mark this read as filtered.

        A later call overwrites an earlier reason; the reason is never
        cleared.
        """
        if not reason:
            raise ValueError("Missing filter reason")
        self.filter_reason = reason

    @property
    def filtered(self) -> bool:
        return self.filter_reason is not None

    # -- payload ----------------------------------------------------------

    @property
    def seq(self) -> str:
        """Sequence for output; empty if filtered."""
        return "" if self.filter_reason else self.sequence

    @property
    def qual(self) -> str:
        """Quality string for output; empty if filtered."""
        return "" if self.filter_reason else self.quality

    def scores(self) -> np.ndarray:
        """Phred+33 scores for output; empty if filtered."""
        if self.filter_reason or not self.quality:
            return np.zeros(0, dtype=np.int64)
        return quality_scores(self.quality)

    def raw_scores(self) -> np.ndarray:
        """Phred+33 scores of the raw quality string, ignoring filter status."""
        return quality_scores(self.quality)

    def trim(self, start: int, end: int) -> None:
        """Keep ``[start:end)`` of both sequence and quality."""
        self.sequence = self.sequence[start:end]
        self.quality = self.quality[start:end]

    def convert_legacy_quality(self) -> None:
        """
        Convert the quality string from phred+64 to phred+33.

        Raises
        ------
        RecordError
            If the read was already converted.
        """
        if self.legacy_converted:
            raise RecordError(f"Quality already converted for: {self.id}")
        self.quality = legacy_to_canonical(self.quality)
        self.legacy_converted = True

    def revcomp(self) -> None:
        """Reverse-complement the sequence and reverse the quality string."""
        if not self.sequence:
            return
        self.sequence = self.sequence.translate(_COMPLEMENT)[::-1]
        self.quality = self.quality[::-1]

    # -- output -----------------------------------------------------------

    def to_fastq(self) -> str:
        """
        Fastq record.

        Filtered unpaired reads return an empty string; filtered paired reads
        return an empty record so that pairing is not broken.
        """
        if self.filter_reason:
            return f"@{self.id}\n\n+\n\n" if self.pair is not None else ""
        return f"@{self.id}\n{self.sequence}\n+\n{self.quality}\n"

    def to_fasta(self) -> str:
        """Fasta record, wrapped at 80 characters per line."""
        if self.filter_reason:
            return f">{self.id}\n\n" if self.pair is not None else ""
        lines = [
            self.sequence[i:i + CHARACTERS_PER_LINE]
            for i in range(0, len(self.sequence), CHARACTERS_PER_LINE)
        ] or [""]
        return f">{self.id}\n" + "\n".join(lines) + "\n"

    def to_qual(self) -> str:
        """Space-separated phred scores, 80 per line."""
        if self.filter_reason:
            return f">{self.id}\n\n" if self.pair is not None else ""
        scores = [str(q) for q in self.raw_scores().tolist()]
        lines = [
            " ".join(scores[i:i + CHARACTERS_PER_LINE])
            for i in range(0, len(scores), CHARACTERS_PER_LINE)
        ] or [""]
        return f">{self.id}\n" + "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_fastq()
