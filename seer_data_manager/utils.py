#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Data Manager - Utility Functions

This module contains shared utility functions for configuration creation and
environment setup.

Functions:
    - create_default_configs: Create default configuration objects
    - create_pipeline_from_env: Create pipeline from environment variables

Author: Jonathan E. Becker
"""

import os
from pathlib import Path
from typing import Optional, Tuple, Union
from dotenv import load_dotenv

# Imports from other modules
try:
    from .config_options import DownloadConfig, LoaderConfig, SetupConfig
    from .pipeline import SEERPipeline
except ImportError:
    from config_options import DownloadConfig, LoaderConfig, SetupConfig
    from pipeline import SEERPipeline

# ==========================================
# CONVENIENCE FUNCTIONS
# ==========================================

def create_default_configs(
    data_folder: Union[str, Path] = "data/raw",
    release_year: int = 2013,
    username: Optional[str] = None,
    password: Optional[str] = None,
    logs_folder: Union[str, Path] = "logs",
) -> Tuple[SetupConfig, LoaderConfig, Optional[DownloadConfig]]:
    """
    Create default configurations for all pipeline components.

    Args:
        data_folder: Folder the SEER archive is (or will be) unzipped into
        release_year: Last diagnosis year of the release (2013 for the 2016 release)
        username: SEER research data username (no DownloadConfig if omitted)
        password: SEER research data password
        logs_folder: Folder for log files

    Returns:
        Tuple of (SetupConfig, LoaderConfig, DownloadConfig or None)
    """
    logs_folder = Path(logs_folder)

    setup_config = SetupConfig.for_release(data_folder, release_year, logs_folder=logs_folder)
    loader_config = LoaderConfig(logs_folder=logs_folder)

    download_config = None
    if username and password:
        download_config = DownloadConfig(
            username=username,
            password=password,
            data_folder=data_folder,
            logs_folder=logs_folder,
        )

    return setup_config, loader_config, download_config


def create_pipeline_from_env() -> SEERPipeline:
    """
    Create a complete pipeline using environment variables.

    Reads these environment variables (a .env file is honoured):
    - SEER_DATA_DIR: folder holding the unzipped release (default "data/raw")
    - SEER_RELEASE_YEAR: last diagnosis year of the release (default 2013)
    - SEER_USERNAME / SEER_PASSWORD: optional, enable downloading

    Returns:
        Configured SEERPipeline instance
    """
    load_dotenv()

    release_year = os.getenv('SEER_RELEASE_YEAR', '2013')
    if not release_year.isdigit():
        raise ValueError(f"SEER_RELEASE_YEAR must be a year, got {release_year!r}")

    setup_config, loader_config, download_config = create_default_configs(
        data_folder=os.getenv('SEER_DATA_DIR', 'data/raw'),
        release_year=int(release_year),
        username=os.getenv('SEER_USERNAME'),
        password=os.getenv('SEER_PASSWORD'),
        logs_folder=os.getenv('LOGS_FOLDER', 'logs'),
    )

    return SEERPipeline(setup_config, loader_config, download_config)
