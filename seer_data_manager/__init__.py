#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Data Manager - Fixed-Width Incidence Data Loading

This package reads the SEER research data (ASCII text version) into Polars
DataFrames, using the SAS input statements shipped with the data to work out
where each field sits in the fixed-width records.

Components:
    - SEERSetupBuilder: Locate the SAS listing and data files, extract column specs
    - SEERGroupLoader: Load and stack the files of a tumor group
    - SEERDownloader: Download and unzip the research data archive
    - CensusPopulationFetcher: Population counts by age from the Census IDB
    - SEERPipeline: Complete workflow orchestrator

Configuration:
    - SetupConfig, LoaderConfig, DownloadConfig, CensusConfig

Usage:
    from seer_data_manager import SEERSetupBuilder, SEERGroupLoader, SetupConfig, LoaderConfig

    setup = SEERSetupBuilder(SetupConfig.for_release("data/raw", 2013)).build_setup()
    loader = SEERGroupLoader(LoaderConfig())
    seer = loader.load_group(setup, "LYMYLEUK", columns=["pubcsnum", "year_dx", "siterwho"])

Author: Jonathan E. Becker
"""

from .config_options import (
    CensusConfig,
    DownloadConfig,
    LoaderConfig,
    SetupConfig,
)

from .types_and_errors import (
    ColumnSpec,
    ReadPosition,
    SetupBundle,
    LoadResult,
    SEERDataError,
    ConfigurationError,
    MalformedSpecLine,
    NoMatchError,
    ParseError,
    DownloadError,
)

from .spec_reader import extract_specs, read_sas_specs, specs_to_dataframe
from .population_specs import (
    build_population_setup,
    build_population_specs,
    parse_population_dictionary,
)
from .setup_builder import SEERSetupBuilder, build_setup
from .group_loader import SEER_GROUPS, SEERGroupLoader, load_group
from .downloader import SEERDownloader
from .census import CensusPopulationFetcher
from .pipeline import SEERPipeline

from .utils import (
    create_default_configs,
    create_pipeline_from_env,
)

__all__ = [
    # Main classes
    'SEERSetupBuilder',
    'SEERGroupLoader',
    'SEERDownloader',
    'CensusPopulationFetcher',
    'SEERPipeline',

    # Configuration classes
    'SetupConfig',
    'LoaderConfig',
    'DownloadConfig',
    'CensusConfig',

    # Types and result classes
    'ColumnSpec',
    'ReadPosition',
    'SetupBundle',
    'LoadResult',

    # Exceptions
    'SEERDataError',
    'ConfigurationError',
    'MalformedSpecLine',
    'NoMatchError',
    'ParseError',
    'DownloadError',

    # Functions
    'extract_specs',
    'read_sas_specs',
    'specs_to_dataframe',
    'build_population_specs',
    'build_population_setup',
    'parse_population_dictionary',
    'build_setup',
    'load_group',
    'SEER_GROUPS',
    'create_default_configs',
    'create_pipeline_from_env',
]

# Package metadata
__version__ = "1.0.0"
__author__ = "Jonathan E. Becker"
__description__ = "SEER fixed-width incidence data loading"
