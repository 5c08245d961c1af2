import sys
from pathlib import Path

import pytest

# Allow importing seer_data_manager from repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from seer_data_manager.config_options import LoaderConfig, SetupConfig

LISTING = """\
filename seerdata 'C:\\SEER\\incidence\\*.txt';
data in;
  infile seerdata lrecl=14;
  input
    @1     caseid       $10.    /* case id */
    @11    year_dx      4.      /* year */
  ;
run;
"""


@pytest.fixture
def setup_config(tmp_path: Path) -> SetupConfig:
    return SetupConfig(logs_folder=tmp_path / "logs")


@pytest.fixture
def loader_config(tmp_path: Path) -> LoaderConfig:
    return LoaderConfig(logs_folder=tmp_path / "logs")


@pytest.fixture
def seer_tree(tmp_path: Path) -> Path:
    """Incidence folder with one listing and two group files."""
    root = tmp_path / "incidence"
    root.mkdir()
    (root / "spec.sas").write_text(LISTING, encoding="utf-8")
    (root / "breast_2010.txt").write_text(
        "12345ABC  2010\n00000001  2011\n", encoding="utf-8"
    )
    (root / "colrect_2010.txt").write_text("99999     2009\n", encoding="utf-8")
    return root
