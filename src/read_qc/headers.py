"""
FASTQ header parsing.

Splits a raw header line into the read's base id, its position in a pair
and its molecular barcode. Headers come in many instrument dialects which
overlap, so the dialects are tried as an ordered list of rules and the
first match wins.
"""

import re
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Pattern

from .exceptions import HeaderParseError

# Case-insensitive nucleotide class for barcodes embedded in headers
_BC = r"[aAtTcCgGnN]+"


class ParsedHeader(NamedTuple):
    """Identity fields extracted from a header line."""

    base: str
    pair: Optional[int]
    barcode: Optional[str]
    rule: str


@dataclass(frozen=True)
class HeaderRule:
    """
    One header dialect.

    Parameters
    ----------
    name : str
        Short dialect name, reported in ``ParsedHeader.rule``.
    pattern : re.Pattern
        Anchored pattern with a ``base`` group and optional ``pair`` and
        ``barcode`` groups.
    example : str
        A header of this dialect.
    """

    name: str
    pattern: Pattern
    example: str

    def match(self, header: str) -> Optional[ParsedHeader]:
        m = self.pattern.match(header)
        if m is None:
            return None
        groups = m.groupdict()
        pair = groups.get("pair")
        barcode = groups.get("barcode")
        return ParsedHeader(
            base=groups["base"],
            pair=int(pair) if pair is not None else None,
            barcode=barcode.upper() if barcode is not None else None,
            rule=self.name,
        )


def _rule(name: str, pattern: str, example: str) -> HeaderRule:
    return HeaderRule(name=name, pattern=re.compile(pattern), example=example)


# Order matters: earlier rules shadow later ones.
HEADER_RULES: List[HeaderRule] = [
    _rule(
        "illumina_barcode_pair",
        rf"^@(?P<base>\S+:\d+:\d+:\d+:\d+)#(?P<barcode>{_BC})/(?P<pair>[12])",
        "@INST:1:2:3:4#ACGT/1",
    ),
    _rule(
        "illumina_pair_barcode",
        rf"^@(?P<base>\S+:\d+:\d+:\d+:\d+)/(?P<pair>[12])#(?P<barcode>{_BC})",
        "@INST:1:2:3:4/2#ACGT",
    ),
    _rule(
        "illumina_pair",
        r"^@(?P<base>\S+:\d+:\d+:\d+:\d+)/(?P<pair>[12])",
        "@INST:1:2:3:4/1",
    ),
    _rule(
        "illumina_barcode",
        rf"^@(?P<base>\S+:\d+:\d+:\d+:\d+)#(?P<barcode>{_BC})",
        "@INST:1:2:3:4#ACGT",
    ),
    _rule(
        "casava18_barcode",
        rf"^@(?P<base>\S+:\d+:\d+\S+:\d+:\d+:\d+:\d+) (?P<pair>[12]):\S:\d:(?P<barcode>{_BC})",
        "@M00123:45:000000000-A1B2C:1:1101:15589:1333 1:N:0:ACGTAC",
    ),
    _rule(
        "casava18_flowcell_barcode",
        rf"^@(?P<base>\S+:\d+:\S+:\d+:\d+:\d+:\d+) (?P<pair>[12]):\S:\S:(?P<barcode>{_BC})",
        "@HISEQ08:232:C15DJACXX:6:1101:1072:2149 2:Y:N:GATCAG",
    ),
    _rule(
        "casava18_no_barcode",
        r"^@(?P<base>\S+:\d+:\S+:\d+:\d+:\d+:\d+) (?P<pair>[12]):\S:\d:",
        "@HISEQ08:232:C15DJACXX:6:1101:1235:2140 1:N:0:",
    ),
    _rule(
        "hiseq_short_barcode",
        rf"^@(?P<base>\S+:\d+:\d+:\d+:\d+) (?P<pair>[12]):\S:\S:(?P<barcode>{_BC})",
        "@HWI-ST753_98:3:1101:1590:1994 1:N:0:CGCCTTAAGGA",
    ),
    _rule(
        "illumina_unpaired",
        r"^@(?P<base>\S+:\d+:\d+:\d+:\d+)",
        "@INST:1:2:3:4",
    ),
    _rule(
        "roche_barcode_pair",
        rf"^@(?P<base>\S+) length=\d+ xy=\d+_\d+ region=\d run=.*#(?P<barcode>{_BC})/(?P<pair>[12])",
        "@GCNQ7SR01A0BAH length=250 xy=0120_1903 region=1 run=R_2009_01_01#ACGT/1",
    ),
    _rule(
        "roche",
        r"^@(?P<base>\S+) length=\d+ xy=\d+_\d+ region=\d run=\S",
        "@GCNQ7SR01A0BAH length=250 xy=0120_1903 region=1 run=R_2009_01_01",
    ),
    _rule(
        "dangl_barcode",
        rf"^@(?P<base>\d+:{_BC}_{_BC})#(?P<barcode>{_BC})",
        "@12:ACGT_TTGA#GGCC",
    ),
    _rule(
        "generic_barcode_pair",
        rf"^@(?P<base>\S+)#(?P<barcode>{_BC})/(?P<pair>[12])",
        "@read_17#ACGT/2",
    ),
    _rule(
        "generic_barcode",
        rf"^@(?P<base>\S+)#(?P<barcode>{_BC})",
        "@read_17#ACGT",
    ),
    _rule(
        "generic",
        r"^@(?P<base>\S+)",
        "@read_17 some description",
    ),
]


class HeaderParser:
    """
    Parse FASTQ header lines with a prioritized list of dialect rules.

    Parameters
    ----------
    rules : list of HeaderRule, optional
        Rules in priority order. Defaults to ``HEADER_RULES``.

    Examples
    --------
    >>> HeaderParser().parse("@INST:1:2:3:4#acgt/1")
    ParsedHeader(base='INST:1:2:3:4', pair=1, barcode='ACGT', rule='illumina_barcode_pair')
    """

    def __init__(self, rules: Optional[List[HeaderRule]] = None):
        self.rules = list(rules) if rules is not None else list(HEADER_RULES)

    def parse(self, header: str) -> ParsedHeader:
        """
        Parse a header line.

        A missing leading ``@`` is added before matching.

        Raises
        ------
        HeaderParseError
            If no rule matches.
        """
        if not header.startswith("@"):
            header = "@" + header
        for rule in self.rules:
            parsed = rule.match(header)
            if parsed is not None:
                return parsed
        raise HeaderParseError(header)


_default_parser = HeaderParser()


def parse_header(header: str) -> ParsedHeader:
    """Parse a header with the default rule list."""
    return _default_parser.parse(header)


def format_identity(base: str, barcode: Optional[str] = None, pair: Optional[int] = None) -> str:
    """Build the ``base[#barcode][/pair]`` identity string."""
    identity = base
    if barcode:
        identity += f"#{barcode}"
    if pair:
        identity += f"/{pair}"
    return identity
