"""
Infer molecular barcodes from observed abundances.

When no reference list is given, real barcodes are assumed to be the most
abundant barcode sequences in the training sample, with abundances that
cluster tightly; sequencing-error variants and noise are comparatively rare.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

import numpy as np

from .barcodes import BarcodeCatalog, generate_barcode_variants

logger = logging.getLogger(__name__)

# Fewer accepted barcodes than this use the permissive 1% rule
MIN_BARCODES_FOR_STDDEV = 3
# Abundance must be within this many standard deviations below the mean
STDDEV_CUTOFF = 3
# With few accepted barcodes, n * LOW_N_FACTOR must reach the mean
LOW_N_FACTOR = 100


class BarcodeLearner:
    """
    Outlier-survivor barcode discovery.

    Distinct barcodes are grouped by count and the groups are visited in
    descending count order. A group's count ``n`` is accepted while

    - fewer than 3 barcodes are accepted and ``n * 100 >= mean(accepted)``, or
    - ``n >= mean(accepted) - 3 * std(accepted)`` (population std).

    The first rejected count ends learning. Every barcode of an accepted group
    that has not been claimed as a variant becomes canonical; its variants are
    indexed and removed from the pool. Within a group, barcodes are visited in
    lexicographic order.

    Examples
    --------
    >>> observed = ["ACGT"] * 1000 + ["ACGA"] * 5 + ["TTTT"] * 2
    >>> catalog = BarcodeLearner().learn(observed)
    >>> sorted(catalog.counts)
    ['ACGT']
    """

    def __init__(self):
        self.accepted_counts: List[int] = []

    @staticmethod
    def _accepts(n: int, accepted: List[int]) -> bool:
        if not accepted:
            return True
        mean = float(np.mean(accepted))
        if len(accepted) < MIN_BARCODES_FOR_STDDEV:
            return n * LOW_N_FACTOR >= mean
        stddev = float(np.std(accepted))
        return n >= mean - STDDEV_CUTOFF * stddev

    def learn(self, observed: Iterable[Optional[str]]) -> BarcodeCatalog:
        """
        Build a catalog from observed barcode strings.

        Parameters
        ----------
        observed : iterable of str
            One barcode per read; empty values are ignored.

        Returns
        -------
        BarcodeCatalog
            Learned catalog; labels are the barcode sequences.
        """
        putative = Counter(b for b in observed if b)
        by_count: Dict[int, List[str]] = {}
        for barcode, n in putative.items():
            by_count.setdefault(n, []).append(barcode)

        catalog = BarcodeCatalog(learned=True)
        self.accepted_counts = []
        for n in sorted(by_count, reverse=True):
            if not self._accepts(n, self.accepted_counts):
                logger.debug(f"Barcode abundance {n} rejected; stopping")
                break
            for barcode in sorted(by_count[n]):
                if barcode not in putative:
                    continue
                catalog.add(barcode)
                self.accepted_counts.append(n)
                for variant in generate_barcode_variants(barcode):
                    putative.pop(variant, None)
            logger.debug(f"Barcode abundance {n} accepted ({len(catalog)} barcodes)")

        if len(catalog) == 0:
            logger.warning("No molecular barcodes found in the training sample")
        else:
            logger.info(f"Learned {len(catalog)} molecular barcodes")
        return catalog


def learn_barcodes(observed: Iterable[Optional[str]]) -> BarcodeCatalog:
    """Convenience wrapper around ``BarcodeLearner().learn``."""
    return BarcodeLearner().learn(observed)
