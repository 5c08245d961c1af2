from pathlib import Path

import pytest

from seer_data_manager.spec_reader import (
    extract_description,
    extract_name,
    extract_offset,
    extract_specs,
    extract_width,
    has_char_marker,
    has_numeric_marker,
    is_field_line,
    read_sas_specs,
    specs_to_dataframe,
)
from seer_data_manager.types_and_errors import ColumnSpec, MalformedSpecLine

from conftest import LISTING

EXAMPLE_LINES = [
    "@1     caseid       $10.    /* case id */",
    "@11    year_dx      4.      /* year */",
]


def test_extract_specs_reads_example_listing():
    specs = extract_specs(EXAMPLE_LINES)

    assert specs == [
        ColumnSpec(start=1, stop=10, name="caseid", is_char=True, is_numeric=False,
                   width=10, description="case id"),
        ColumnSpec(start=11, stop=14, name="year_dx", is_char=False, is_numeric=False,
                   width=4, description="year"),
    ]
    assert "".join(spec.type_code for spec in specs) == "ci"


def test_extract_specs_ignores_lines_without_field_marker():
    lines = LISTING.splitlines()
    specs = extract_specs(lines)

    assert len(specs) == sum(1 for line in lines if line.lstrip().startswith("@"))
    assert [spec.name for spec in specs] == ["caseid", "year_dx"]


def test_stop_is_start_plus_width_minus_one():
    lines = [
        "  @ 1   PUBCSNUM   $char8.   /* Patient ID */",
        "  @ 9   REG        $char10.  /* SEER registry */",
        "  @ 19  MAR_STAT   $char1.   /* Marital status at diagnosis */",
        "  @ 39  YEAR_DX    4.        /* Year of diagnosis */",
        "  @ 200 RATE       6.2       /* Some rate */",
    ]
    for spec in extract_specs(lines):
        assert spec.stop == spec.start + spec.width - 1


def test_names_are_lower_cased_and_keep_suffixes():
    specs = extract_specs(["@ 1 PUBCSNUM $char8.", "@ 9 HISTO3V 4.", "@ 13 EOD10_SZ $char3."])
    assert [spec.name for spec in specs] == ["pubcsnum", "histo3v", "eod10_sz"]


def test_numeric_marker_marks_decimal_fields():
    spec = extract_specs(["@ 20  rate   5.2   /* rate per 100k */"])[0]

    assert spec.is_numeric
    assert not spec.is_char
    assert spec.width == 5
    assert spec.stop == 24
    assert spec.type_code == "d"


def test_char_marker_with_tag():
    spec = extract_specs(["@ 9 REG $char10. /* SEER registry */"])[0]
    assert spec.is_char
    assert spec.width == 10
    assert spec.type_code == "c"


def test_duplicate_names_are_kept():
    specs = extract_specs(["@1 filler $2.", "@3 filler $2."])
    assert [spec.name for spec in specs] == ["filler", "filler"]


def test_incomplete_line_yields_row_with_missing_values():
    specs = extract_specs(["@ caseid $char. /* no offset or width */"])

    assert len(specs) == 1
    spec = specs[0]
    assert spec.start is None
    assert spec.width is None
    assert spec.stop is None
    assert spec.name == "caseid"
    assert spec.description == "no offset or width"
    assert not spec.is_complete
    assert spec.type_code == "i"


def test_strict_mode_raises_for_incomplete_line():
    with pytest.raises(MalformedSpecLine) as excinfo:
        extract_specs(["@ 5 caseid /* no width */"], strict=True)
    assert excinfo.value.missing == ["width"]


@pytest.mark.parametrize(
    "line, expected",
    [
        ("@1 caseid $10.", True),
        ("   @ 39 year_dx 4.", True),
        ("input", False),
        ("/* @1 commented */", False),
        ("", False),
    ],
)
def test_is_field_line(line, expected):
    assert is_field_line(line) is expected


def test_extraction_rules_are_independent():
    line = "@  39 year_dx 4.2 /* Year */"
    assert extract_offset(line) == 39
    assert extract_name(line) == "year_dx"
    assert not has_char_marker(line)
    assert has_numeric_marker(line)
    assert extract_width(line) == 4
    assert extract_description(line) == "Year"


def test_extraction_rules_return_none_when_absent():
    line = "caseid"
    assert extract_offset(line) is None
    assert extract_width(line) is None
    assert extract_description(line) is None
    assert not has_char_marker(line)
    assert not has_numeric_marker(line)


def test_description_stops_at_first_comment_end():
    assert extract_description("@1 a $1. /*  first  */ /* second */") == "first"


def test_offset_is_not_a_numeric_marker():
    # '@ 1.' style offsets are not decimal informats
    assert not has_numeric_marker("@1 caseid $10.")


def test_read_sas_specs_falls_back_to_latin1(tmp_path: Path):
    listing = tmp_path / "read.seer.sas"
    listing.write_bytes("@1 caseid $10. /* Num\xe9ro */\n".encode("iso-8859-1"))

    specs = read_sas_specs(listing)

    assert specs[0].description == "Num\xe9ro"


def test_specs_to_dataframe_columns():
    df = specs_to_dataframe(extract_specs(EXAMPLE_LINES))

    assert list(df.columns) == ["colstart", "colstop", "varname", "char", "num", "width", "desc"]
    assert df["colstop"].tolist() == [10, 14]
    assert df["varname"].tolist() == ["caseid", "year_dx"]
