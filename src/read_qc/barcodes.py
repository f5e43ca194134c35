"""
Molecular barcode catalog.

Holds the canonical barcodes, their display labels and an index of every
single-substitution variant so that reads with one sequencing error in the
barcode can be corrected by lookup. Catalogs are either loaded from a
reference file or learned from the reads (see ``barcode_learner``).
"""

import logging
import re
from os import PathLike
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from rapidfuzz.distance import Hamming
from rapidfuzz.process import cdist

from .constants import BARCODE_VARIANT_ALPHABET
from .exceptions import BarcodeFileError
from .sequencing_read import ReadRecord

logger = logging.getLogger(__name__)

_TABULAR_BARCODE = re.compile(r"^[ATCGN]+$")
_FASTA_BARCODE = re.compile(r"^[ATCG]+$", re.IGNORECASE)
_FASTA_LABEL = re.compile(r"^>(.+)$")


def generate_barcode_variants(barcode: str) -> List[str]:
    """
    All sequences one substitution away from ``barcode``.

    Each position is replaced by every base of A, T, C, G, N other than the
    original one.

    Examples
    --------
    >>> len(generate_barcode_variants("ACGT"))
    16
    """
    variants = []
    for i, original in enumerate(barcode):
        for nt in BARCODE_VARIANT_ALPHABET:
            if nt == original:
                continue
            variants.append(barcode[:i] + nt + barcode[i + 1:])
    return variants


class BarcodeCatalog:
    """
    Canonical barcodes with a single-substitution correction index.

    Parameters
    ----------
    learned : bool, default False
        True for catalogs inferred from the reads. Only affects the filter
        reason given to unrecognized barcodes.

    Attributes
    ----------
    counts : dict
        Canonical barcode -> number of reads assigned during correction.
    variants : dict
        Variant sequence -> canonical barcode.
    labels : dict
        Canonical barcode -> display label.
    ambiguous_variants : list of dict
        Variants shared by two canonical barcodes; the first registered
        barcode keeps the variant.

    Examples
    --------
    >>> catalog = BarcodeCatalog()
    >>> catalog.add("ACGT")
    >>> catalog.resolve("ACGA")
    'ACGT'
    """

    def __init__(self, learned: bool = False):
        self.learned = learned
        self.counts: Dict[str, int] = {}
        self.variants: Dict[str, str] = {}
        self.labels: Dict[str, str] = {}
        self.ambiguous_variants: List[Dict[str, str]] = []

    def __len__(self) -> int:
        return len(self.counts)

    def __contains__(self, barcode: str) -> bool:
        return barcode in self.counts

    def add(self, barcode: str, label: Optional[str] = None) -> None:
        """
        Register a canonical barcode and all of its variants.

        A barcode that was previously indexed as a variant of another
        barcode is removed from the variant index.
        """
        barcode = barcode.upper()
        self.counts[barcode] = 0
        self.labels[barcode] = label if label else barcode
        self.variants.pop(barcode, None)
        for variant in generate_barcode_variants(barcode):
            if variant in self.counts:
                continue
            owner = self.variants.get(variant)
            if owner is None:
                self.variants[variant] = barcode
            elif owner != barcode:
                logger.debug(f"Variant {variant} of {barcode} already assigned to {owner}")
                self.ambiguous_variants.append({
                    'variant': variant,
                    'barcode_kept': owner,
                    'barcode_new': barcode,
                })

    def resolve(self, barcode: Optional[str]) -> Optional[str]:
        """Canonical barcode for ``barcode`` or one of its variants, else None."""
        if not barcode:
            return None
        if barcode in self.counts:
            return barcode
        return self.variants.get(barcode)

    def correct(self, read: ReadRecord, reason: str) -> None:
        """
        Correct the barcode of ``read`` in place and tally it.

        Reads without a barcode are left alone. Unrecognized barcodes filter
        the read with ``reason``.
        """
        if not read.barcode:
            return
        canonical = self.resolve(read.barcode)
        if canonical is None:
            read.mark_filtered(reason)
            return
        if canonical != read.barcode:
            read.barcode = canonical
        self.counts[canonical] += 1

    def collisions(self, max_distance: int = 2) -> pd.DataFrame:
        """
        Pairs of canonical barcodes within ``max_distance`` substitutions.

        Pairs at distance 1 are variants of each other; pairs at distance 2
        share variants, which are then corrected to whichever barcode was
        registered first.

        Returns
        -------
        pd.DataFrame
            Columns ``barcode_a``, ``barcode_b``, ``distance``.
        """
        barcodes = sorted(self.counts)
        columns = ['barcode_a', 'barcode_b', 'distance']
        if len(barcodes) < 2:
            return pd.DataFrame(columns=columns)

        distances = cdist(barcodes, barcodes, scorer=Hamming.distance, dtype=np.int32)
        rows, cols = np.nonzero(np.triu(distances <= max_distance, k=1))
        return pd.DataFrame({
            'barcode_a': [barcodes[i] for i in rows],
            'barcode_b': [barcodes[j] for j in cols],
            'distance': distances[rows, cols].astype(int),
        }, columns=columns)

    @classmethod
    def from_file(
        cls,
        barcodes_fn: Union[PathLike, str],
        seq_col: int = 1,
        label_col: Optional[int] = None,
    ) -> "BarcodeCatalog":
        """
        Load barcodes from a tabular or Fasta file.

        Files whose first line looks like a Fasta header (``>label``) are read
        as Fasta, with sequences spanning one or more lines. Anything else is
        read as tab-delimited.

        Parameters
        ----------
        barcodes_fn : PathLike or str
            Reference file.
        seq_col : int, default 1
            1-based column holding the barcode sequence (tabular only).
        label_col : int, optional
            1-based column holding the label (tabular only).

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        BarcodeFileError
            If a line cannot be parsed or a barcode is invalid.
        """
        barcodes_fn = Path(barcodes_fn)
        if not barcodes_fn.exists():
            raise FileNotFoundError(f"Barcodes file not found: {barcodes_fn}")

        with open(barcodes_fn) as f:
            first_line = f.readline()

        if re.match(r"^>\w+", first_line):
            entries = _read_fasta_barcodes(barcodes_fn)
        else:
            entries = _read_tabular_barcodes(barcodes_fn, seq_col, label_col)

        catalog = cls(learned=False)
        for barcode, label in entries:
            catalog.add(barcode, label)
        logger.info(f"Loaded {len(catalog)} barcodes from {barcodes_fn}")

        close_pairs = catalog.collisions()
        for row in close_pairs.itertuples(index=False):
            logger.warning(
                f"Barcodes '{row.barcode_a}' and '{row.barcode_b}' are only "
                f"{row.distance} substitution(s) apart"
            )
        return catalog


def _read_fasta_barcodes(barcodes_fn: Path) -> List[tuple]:
    entries = []
    label = None
    seq_parts: List[str] = []
    with open(barcodes_fn) as f:
        for line in f:
            line = line.rstrip("\r\n")
            m = _FASTA_LABEL.match(line)
            if m:
                if label is not None and seq_parts:
                    entries.append(("".join(seq_parts), label))
                label = m.group(1)
                seq_parts = []
            elif _FASTA_BARCODE.match(line):
                seq_parts.append(line.upper())
            elif line:
                raise BarcodeFileError(f"Error reading molecular barcodes file {barcodes_fn}: {line}")
    if label is not None and seq_parts:
        entries.append(("".join(seq_parts), label))
    return entries


def _read_tabular_barcodes(barcodes_fn: Path, seq_col: int, label_col: Optional[int]) -> List[tuple]:
    try:
        df = pd.read_csv(
            barcodes_fn,
            sep='\t',
            header=None,
            dtype=str,
            skip_blank_lines=True,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError as e:
        raise BarcodeFileError(f"Molecular barcodes file is empty: {barcodes_fn}") from e
    except pd.errors.ParserError as e:
        raise BarcodeFileError(f"Error reading molecular barcodes file {barcodes_fn}: {e}") from e
    df = df.fillna('')

    seq_idx = seq_col - 1
    label_idx = label_col - 1 if label_col is not None else None
    for idx in (seq_idx, label_idx):
        if idx is not None and idx >= df.shape[1]:
            raise BarcodeFileError(f"{barcodes_fn} has {df.shape[1]} column(s); column {idx + 1} requested")

    entries = []
    for _, row in df.iterrows():
        barcode = row[seq_idx].strip().upper()
        if not _TABULAR_BARCODE.match(barcode):
            raise BarcodeFileError(f"Invalid barcode, {barcode}")
        label = row[label_idx] if label_idx is not None else None
        entries.append((barcode, label))
    return entries
