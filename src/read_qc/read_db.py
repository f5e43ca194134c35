"""
Outcome counters for a read stream.

Tallies how many reads passed or were filtered for each reason, and how
many passing reads carried each canonical barcode.
"""

from typing import Dict, Iterable, Optional

import pandas as pd

from .constants import PASS


class ReadDB:
    """
    In-memory tally of read outcomes and barcodes.

    Parameters
    ----------
    barcodes : iterable of str, optional
        Canonical barcodes to pre-populate with zero counts. If None, the
        barcode tally is disabled and ``barcode_counts()`` returns None.

    Examples
    --------
    >>> db = ReadDB(barcodes=['ACGT'])
    >>> db.record(None, 'ACGT')
    >>> db.record('too_short', 'ACGT')
    >>> db.reason_counts()
    {'pass': 1, 'too_short': 1}
    >>> db.barcode_counts()
    {'ACGT': 1}
    """

    def __init__(self, barcodes: Optional[Iterable[str]] = None):
        # "pass" or filter reason -> count
        self._reasons: Dict[str, int] = {PASS: 0}
        self._barcodes: Optional[Dict[str, int]] = None
        if barcodes is not None:
            self._barcodes = {b: 0 for b in barcodes}

    def increment_count(self, reason: str, count: int = 1) -> None:
        """Add ``count`` to the tally of ``reason``."""
        self._reasons[reason] = self._reasons.get(reason, 0) + count

    def increment_barcode(self, barcode: str, count: int = 1) -> None:
        if self._barcodes is None:
            return
        self._barcodes[barcode] = self._barcodes.get(barcode, 0) + count

    def record(self, filter_reason: Optional[str], barcode: Optional[str] = None) -> None:
        """
        Tally one read.

        Filtered reads count toward their reason; passing reads count as
        "pass" and, if barcoded, toward their barcode.
        """
        if filter_reason:
            self.increment_count(filter_reason)
            return
        self.increment_count(PASS)
        if barcode:
            self.increment_barcode(barcode)

    def get_count(self, reason: str) -> int:
        return self._reasons.get(reason, 0)

    def reason_counts(self) -> Dict[str, int]:
        """Copy of the reason -> count tally."""
        return dict(self._reasons)

    def barcode_counts(self) -> Optional[Dict[str, int]]:
        """Copy of the barcode -> passing read count tally, or None if unbarcoded."""
        if self._barcodes is None:
            return None
        return dict(self._barcodes)

    def counts(self) -> pd.DataFrame:
        """
        Export outcome counts as a DataFrame.

        Returns
        -------
        pd.DataFrame
            One row per outcome with columns ``reason`` and ``count``,
            "pass" first and the rest sorted by name.
        """
        reasons = [PASS] + sorted(r for r in self._reasons if r != PASS)
        return pd.DataFrame({
            'reason': reasons,
            'count': [self._reasons[r] for r in reasons],
        })

    def barcode_counts_df(self, labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
        """Barcode tally as a DataFrame, with labels if given."""
        counts = self._barcodes or {}
        df = pd.DataFrame({
            'barcode': list(counts.keys()),
            'count': list(counts.values()),
        })
        if labels is not None:
            df['label'] = df['barcode'].map(labels)
        return df.sort_values('barcode').reset_index(drop=True)

    @property
    def total_counts(self) -> int:
        """Total number of reads tallied."""
        return sum(self._reasons.values())

    @property
    def n_passed(self) -> int:
        return self._reasons.get(PASS, 0)
