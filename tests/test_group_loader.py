from pathlib import Path

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from seer_data_manager.config_options import LoaderConfig, SetupConfig
from seer_data_manager.group_loader import SEERGroupLoader, load_group
from seer_data_manager.setup_builder import SEERSetupBuilder
from seer_data_manager.types_and_errors import ColumnSpec, NoMatchError, SetupBundle


@pytest.fixture
def setup(seer_tree: Path, setup_config: SetupConfig) -> SetupBundle:
    return SEERSetupBuilder(setup_config).build_setup(seer_tree)


@pytest.fixture
def loader(loader_config: LoaderConfig) -> SEERGroupLoader:
    return SEERGroupLoader(loader_config)


def test_group_filter_selects_matching_files(setup, loader):
    assert [f.name for f in loader.match_files(setup, "breast")] == ["breast_2010.txt"]
    assert [f.name for f in loader.match_files(setup, "BREAST")] == ["breast_2010.txt"]
    assert [f.name for f in loader.match_files(setup, ".")] == ["breast_2010.txt", "colrect_2010.txt"]
    assert len(loader.match_files(setup, "")) == 2


def test_group_filter_ignores_directories_above_root(tmp_path: Path, setup_config, loader):
    root = tmp_path / "mother_share" / "incidence"
    root.mkdir(parents=True)
    (root / "spec.sas").write_text("@1 caseid $10.\n", encoding="utf-8")
    (root / "BREAST.TXT").write_text("00000001  \n", encoding="utf-8")
    (root / "OTHER.TXT").write_text("00000002  \n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(root)

    assert [f.name for f in loader.match_files(setup, "OTHER")] == ["OTHER.TXT"]
    assert loader.load_group(setup, "OTHER").to_dicts() == [{"caseid": "00000002"}]
    assert len(loader.match_files(setup, "share")) == 0


def test_group_filter_sees_subfolders_below_root(seer_tree: Path, setup_config, loader):
    nested = seer_tree / "yr1992_2013.sj_la_rg_ak"
    nested.mkdir()
    (nested / "RESPIR.TXT").write_text("1         2000\n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    assert [f.name for f in loader.match_files(setup, "sj_la")] == ["RESPIR.TXT"]


def test_bundle_without_root_matches_file_names(tmp_path: Path, loader):
    folder = tmp_path / "breast_exports"
    folder.mkdir()
    data_file = folder / "other.txt"
    data_file.write_text("x\n", encoding="utf-8")
    setup = SetupBundle.from_specs(
        [ColumnSpec(start=1, stop=1, name="x", is_char=True, width=1)], data_files=[data_file]
    )

    assert loader.match_files(setup, "breast") == []
    assert loader.match_files(setup, "other") == [data_file]


def test_invalid_pattern_is_matched_literally(setup, loader):
    assert loader.match_files(setup, "breast[") == []


def test_load_group_parses_example_line(setup, loader):
    df = loader.load_group(setup, "breast")

    assert df.columns == ["caseid", "year_dx"]
    assert df.schema["caseid"] == pl.Utf8
    assert df.schema["year_dx"] == pl.Int64
    assert df.to_dicts() == [
        {"caseid": "12345ABC", "year_dx": 2010},
        {"caseid": "00000001", "year_dx": 2011},
    ]


def test_character_fields_untrimmed_when_configured(setup, tmp_path: Path):
    loader = SEERGroupLoader(LoaderConfig(trim_strings=False, logs_folder=tmp_path / "logs"))
    df = loader.load_group(setup, "breast")
    assert df["caseid"].to_list() == ["12345ABC  ", "00000001  "]


def test_rows_concatenate_in_file_order(setup, loader):
    df = loader.load_group(setup, ".")

    assert df["year_dx"].to_list() == [2010, 2011, 2009]
    assert loader.last_result.files_matched == 2
    assert loader.last_result.total_rows == 3


def test_columns_omitted_equals_all_columns(setup, loader):
    all_columns = loader.load_group(setup, ".")
    named = loader.load_group(setup, ".", columns=setup.column_names)
    assert_frame_equal(all_columns, named)


def test_unnamed_column_selectable_by_output_name(tmp_path: Path, loader):
    data_file = tmp_path / "pop.txt"
    data_file.write_text("AB7\n", encoding="utf-8")
    specs = [
        ColumnSpec(start=1, stop=2, name="code", is_char=True, width=2),
        ColumnSpec(start=3, stop=3, width=1),
    ]
    setup = SetupBundle.from_specs(specs, data_files=[data_file])

    all_columns = loader.load_group(setup, ".")
    named = loader.load_group(setup, ".", columns=["code", "column_2"])

    assert all_columns.columns == ["code", "column_2"]
    assert_frame_equal(all_columns, named)
    assert loader.load_group(setup, ".", columns=["COLUMN_2"]).columns == ["column_2"]


def test_non_string_column_names_raise(tmp_path: Path, loader):
    data_file = tmp_path / "pop.txt"
    data_file.write_text("AB7\n", encoding="utf-8")
    specs = [
        ColumnSpec(start=1, stop=2, name="code", is_char=True, width=2),
        ColumnSpec(start=3, stop=3, width=1),
    ]
    setup = SetupBundle.from_specs(specs, data_files=[data_file])

    with pytest.raises(ValueError, match="must be strings"):
        loader.load_group(setup, ".", columns=setup.column_names)


def test_duplicate_names_selectable_both_ways(tmp_path: Path, loader):
    data_file = tmp_path / "dup.txt"
    data_file.write_text("abc\n", encoding="utf-8")
    specs = [
        ColumnSpec(start=1, stop=1, name="filler", is_char=True, width=1),
        ColumnSpec(start=2, stop=2, name="id", is_char=True, width=1),
        ColumnSpec(start=3, stop=3, name="filler", is_char=True, width=1),
    ]
    setup = SetupBundle.from_specs(specs, data_files=[data_file])

    assert loader.load_group(setup, ".", columns=["filler_2"]).to_dicts() == [{"filler_2": "c"}]
    assert loader.load_group(setup, ".", columns=["filler"]).columns == ["filler", "filler_2"]


def test_loading_twice_is_idempotent(setup, loader):
    assert_frame_equal(loader.load_group(setup, "."), loader.load_group(setup, "."))


def test_requested_columns_follow_specification_order(setup, loader):
    df = loader.load_group(setup, ".", columns=["year_dx", "caseid"])
    assert df.columns == ["caseid", "year_dx"]

    only_year = loader.load_group(setup, ".", columns={"YEAR_DX"})
    assert only_year.columns == ["year_dx"]


def test_unknown_columns_only_raises(setup, loader):
    with pytest.raises(ValueError):
        loader.load_group(setup, ".", columns=["not_a_column"])


def test_no_matching_files_raises(setup, loader):
    with pytest.raises(NoMatchError):
        loader.load_group(setup, "lymyleuk")


def test_short_line_yields_missing_trailing_field(seer_tree: Path, setup_config, loader):
    (seer_tree / "respir_2010.txt").write_text("12345ABC  20\n123\n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    df = loader.load_group(setup, "respir")

    assert df.to_dicts() == [
        {"caseid": "12345ABC", "year_dx": None},
        {"caseid": None, "year_dx": None},
    ]
    assert loader.last_result.coercion_failures == 0


def test_unparseable_value_becomes_null_and_is_counted(seer_tree: Path, setup_config, loader):
    (seer_tree / "urinary_2010.txt").write_text("12345ABC  20x0\n12345ABD  2012\n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    df = loader.load_group(setup, "urinary")

    assert df["year_dx"].to_list() == [None, 2012]
    assert df["caseid"].to_list() == ["12345ABC", "12345ABD"]
    assert loader.last_result.coercion_failures == 1


def test_blank_numeric_field_is_null_but_not_a_failure(seer_tree: Path, setup_config, loader):
    (seer_tree / "other_2010.txt").write_text("12345ABC      \n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    df = loader.load_group(setup, "other")

    assert df["year_dx"].to_list() == [None]
    assert loader.last_result.coercion_failures == 0


def test_decimal_and_incomplete_columns(tmp_path: Path, loader):
    data_file = tmp_path / "pop_2010.txt"
    data_file.write_text("AB 12.5\nCD  7.0\n", encoding="utf-8")
    specs = [
        ColumnSpec(start=1, stop=2, name="code", is_char=True, width=2),
        ColumnSpec(start=4, stop=7, name="rate", is_numeric=True, width=4),
        ColumnSpec(name="broken"),
    ]
    setup = SetupBundle.from_specs(specs, data_files=[data_file])

    df = loader.load_group(setup, "pop")

    assert setup.type_codes == "cdi"
    assert df.schema["rate"] == pl.Float64
    assert df.schema["broken"] == pl.Int64
    assert df.to_dicts() == [
        {"code": "AB", "rate": 12.5, "broken": None},
        {"code": "CD", "rate": 7.0, "broken": None},
    ]


def test_duplicate_names_are_numbered(tmp_path: Path, loader):
    data_file = tmp_path / "dup.txt"
    data_file.write_text("ab\n", encoding="utf-8")
    specs = [
        ColumnSpec(start=1, stop=1, name="filler", is_char=True, width=1),
        ColumnSpec(start=2, stop=2, name="filler", is_char=True, width=1),
    ]
    setup = SetupBundle.from_specs(specs, data_files=[data_file])

    df = loader.load_group(setup, ".")

    assert df.columns == ["filler", "filler_2"]
    assert df.row(0) == ("a", "b")


def test_blank_lines_are_skipped(seer_tree: Path, setup_config, loader):
    (seer_tree / "femgen_2010.txt").write_text("12345ABC  2010\n\n   \n00000002  2011\n", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    assert loader.load_group(setup, "femgen").height == 2


def test_empty_file_contributes_no_rows(seer_tree: Path, setup_config, loader):
    (seer_tree / "breast_2011.txt").write_text("", encoding="utf-8")
    setup = SEERSetupBuilder(setup_config).build_setup(seer_tree)

    df = loader.load_group(setup, "breast")

    assert df.height == 2
    assert loader.last_result.rows_by_file[str(seer_tree / "breast_2011.txt")] == 0


def test_threaded_reading_preserves_order(setup, tmp_path: Path, loader):
    threaded = SEERGroupLoader(LoaderConfig(max_workers=4, logs_folder=tmp_path / "logs"))
    assert_frame_equal(threaded.load_group(setup, "."), loader.load_group(setup, "."))


def test_load_groups_skips_missing_groups(setup, loader):
    frames = loader.load_groups(setup, ["BREAST", "LYMYLEUK", "COLRECT"])

    assert list(frames) == ["BREAST", "COLRECT"]
    assert frames["COLRECT"].height == 1
    assert loader.results["LYMYLEUK"].files_matched == 0
    assert loader.results["LYMYLEUK"].errors


def test_module_level_load_group(setup, loader_config):
    df = load_group(setup, "colrect", columns=["caseid"], config=loader_config)
    assert df.to_dicts() == [{"caseid": "99999"}]
