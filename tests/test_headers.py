"""Tests for header dialect parsing."""

import pytest

from read_qc.exceptions import HeaderParseError
from read_qc.headers import HEADER_RULES, HeaderParser, format_identity, parse_header


@pytest.mark.parametrize("rule", HEADER_RULES, ids=lambda r: r.name)
def test_each_dialect_example_matches_its_own_rule(rule):
    assert parse_header(rule.example).rule == rule.name


@pytest.mark.parametrize(
    "header, base, pair, barcode",
    [
        ("@INST:1:2:3:4#ACGT/1", "INST:1:2:3:4", 1, "ACGT"),
        ("@INST:1:2:3:4/2#acgt", "INST:1:2:3:4", 2, "ACGT"),
        ("@INST:1:2:3:4/1", "INST:1:2:3:4", 1, None),
        ("@INST:1:2:3:4#NNAC", "INST:1:2:3:4", None, "NNAC"),
        ("@M00123:45:000000000-A1B2C:1:1101:15589:1333 1:N:0:ACGTAC",
         "M00123:45:000000000-A1B2C:1:1101:15589:1333", 1, "ACGTAC"),
        ("@HISEQ08:232:C15DJACXX:6:1101:1072:2149 2:Y:N:gatcag",
         "HISEQ08:232:C15DJACXX:6:1101:1072:2149", 2, "GATCAG"),
        ("@HISEQ08:232:C15DJACXX:6:1101:1235:2140 1:N:0:",
         "HISEQ08:232:C15DJACXX:6:1101:1235:2140", 1, None),
        ("@HWI-ST753_98:3:1101:1590:1994 1:N:0:CGCCTTAAGGA",
         "HWI-ST753_98:3:1101:1590:1994", 1, "CGCCTTAAGGA"),
        ("@INST:1:2:3:4 extra words", "INST:1:2:3:4", None, None),
        ("@GCNQ7SR01A0BAH length=250 xy=0120_1903 region=1 run=R_2009#TTGA/2",
         "GCNQ7SR01A0BAH", 2, "TTGA"),
        ("@GCNQ7SR01A0BAH length=250 xy=0120_1903 region=1 run=R_2009_01_01",
         "GCNQ7SR01A0BAH", None, None),
        ("@12:ACGT_TTGA#GGCC", "12:ACGT_TTGA", None, "GGCC"),
        ("@read_17#acgt/2", "read_17", 2, "ACGT"),
        ("@read_17#ACGT", "read_17", None, "ACGT"),
        ("@read_17 some description", "read_17", None, None),
        ("@r1/1", "r1/1", None, None),
    ],
)
def test_dialect_fields(header, base, pair, barcode):
    parsed = parse_header(header)
    assert parsed.base == base
    assert parsed.pair == pair
    assert parsed.barcode == barcode


@pytest.mark.parametrize("rule", HEADER_RULES, ids=lambda r: r.name)
def test_identity_round_trips_through_parser(rule):
    parsed = parse_header(rule.example)
    identity = format_identity(parsed.base, parsed.barcode, parsed.pair)
    reparsed = parse_header("@" + identity)
    assert (reparsed.base, reparsed.pair, reparsed.barcode) == (parsed.base, parsed.pair, parsed.barcode)


def test_identity_format():
    assert format_identity("A") == "A"
    assert format_identity("A", "ACGT") == "A#ACGT"
    assert format_identity("A", None, 2) == "A/2"
    assert format_identity("A", "ACGT", 1) == "A#ACGT/1"


def test_missing_sentinel_is_added():
    assert parse_header("INST:1:2:3:4/1").base == "INST:1:2:3:4"


@pytest.mark.parametrize("header", ["@", "@ starts with space", ""])
def test_unparseable_header_raises(header):
    with pytest.raises(HeaderParseError):
        parse_header(header)


def test_rule_order_decides_the_winner():
    header = "@INST:1:2:3:4#ACGT/1"
    assert HeaderParser().parse(header).rule == "illumina_barcode_pair"

    reversed_parser = HeaderParser(rules=list(reversed(HEADER_RULES)))
    parsed = reversed_parser.parse(header)
    assert parsed.rule == "generic"
    assert parsed.base == "INST:1:2:3:4#ACGT/1"


def test_empty_rule_list_rejects_everything():
    with pytest.raises(HeaderParseError):
        HeaderParser(rules=[]).parse("@read1")
