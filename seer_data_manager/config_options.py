#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Data Manager - Configuration Options

This module contains all configuration dataclasses for the SEER data loading pipeline.
Every component receives its configuration explicitly; nothing is read from
process-wide defaults.

Classes:
    - SetupConfig: Configuration for SEERSetupBuilder
    - LoaderConfig: Configuration for SEERGroupLoader
    - DownloadConfig: Configuration for SEERDownloader
    - CensusConfig: Configuration for CensusPopulationFetcher

Author: Jonathan E. Becker
"""

from pathlib import Path
from typing import List, Union
from dataclasses import dataclass, field

# ==========================================
# CONFIGURATION CLASSES
# ==========================================

@dataclass
class SetupConfig:
    """Configuration class for the SEER setup builder."""
    incidence_dir: Union[str, Path] = "data/raw/incidence"
    spec_suffix: str = ".sas"
    data_suffixes: List[str] = field(default_factory=lambda: ['.txt'])
    encoding: str = "utf-8"
    fallback_encoding: str = "iso-8859-1"
    reject_incomplete_specs: bool = False

    # Logging
    log_level: str = "INFO"
    logs_folder: Path = Path("logs")

    @classmethod
    def for_release(cls, data_root: Union[str, Path], year: int, **kwargs) -> "SetupConfig":
        """Config pointing at the incidence folder of an unpacked SEER_1973_<year>_TEXTDATA release."""
        incidence_dir = Path(data_root) / f"SEER_1973_{year}_TEXTDATA" / "incidence"
        return cls(incidence_dir=incidence_dir, **kwargs)


@dataclass
class LoaderConfig:
    """Configuration class for the SEER group loader."""
    encoding: str = "utf-8"
    fallback_encoding: str = "iso-8859-1"
    text_column_name: str = "text_content"
    trim_strings: bool = True
    skip_blank_lines: bool = True
    max_workers: int = 1

    # Logging
    log_level: str = "INFO"
    logs_folder: Path = Path("logs")


@dataclass
class DownloadConfig:
    """Configuration class for the SEER downloader."""
    # SEER research data credentials
    username: str
    password: str
    user_agent: str = "seer-data-manager"
    options_url: str = "http://seer.cancer.gov/data/options.html"
    link_selector: str = "#content a:nth-child(5)"

    # Folder settings
    data_folder: Union[str, Path] = "data/raw"

    # Request/Retry/Timeout settings
    request_timeout_s: int = 30
    retry_total: int = 3
    retry_backoff: float = 1.0
    retry_statuses: List[int] = field(default_factory=lambda: [429, 500, 502, 503, 504])
    retry_allowed_methods: List[str] = field(default_factory=lambda: ["GET"])
    stream_chunk_size: int = 1048576  # 1 MiB

    # Logging
    log_level: str = "INFO"
    logs_folder: Path = Path("logs")


@dataclass
class CensusConfig:
    """Configuration class for the Census International Database fetcher."""
    url_template: str = (
        "https://www.census.gov/data-tools/demo/idb/region.php"
        "?N=%20Results%20&T={ages}&A={agg}&RT=0&Y={years}&R={rvalue}&C={countries}"
    )
    site: str = "https://www.census.gov/data-tools/demo/idb/region.php"
    user_agent: str = "seer-data-manager"
    request_timeout_s: int = 30
    retry_total: int = 3
    retry_backoff: float = 1.0
    retry_statuses: List[int] = field(default_factory=lambda: [429, 500, 502, 503, 504])

    # Logging
    log_level: str = "INFO"
    logs_folder: Path = Path("logs")
