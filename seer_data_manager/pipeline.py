#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Pipeline Orchestrator

This module contains the SEERPipeline class that coordinates the SEER data
loading workflow.

Workflow:
    1. Download and unzip the research data (optional)
    2. Build the setup from the incidence folder
    3. Load one or more tumor groups

Dependencies:
    - All other modules (downloader, setup_builder, group_loader)
    - config_options: All configuration classes

Author: Jonathan E. Becker
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import polars as pl

# Imports from other modules
try:
    from .config_options import DownloadConfig, LoaderConfig, SetupConfig
    from .downloader import SEERDownloader
    from .group_loader import SEERGroupLoader
    from .setup_builder import SEERSetupBuilder
    from .types_and_errors import SetupBundle
except ImportError:
    from config_options import DownloadConfig, LoaderConfig, SetupConfig
    from downloader import SEERDownloader
    from group_loader import SEERGroupLoader
    from setup_builder import SEERSetupBuilder
    from types_and_errors import SetupBundle


class SEERPipeline:
    """
    Complete SEER data loading pipeline orchestrator.

    The setup is built once and reused for every group that is loaded.
    """

    def __init__(
        self,
        setup_config: SetupConfig,
        loader_config: LoaderConfig,
        download_config: Optional[DownloadConfig] = None,
        verbose: bool = True
    ):
        """
        Initialize the complete pipeline.

        Args:
            setup_config: Configuration for the setup builder
            loader_config: Configuration for the group loader
            download_config: Configuration for the downloader (only needed to download)
            verbose: Whether to show detailed progress
        """
        self.verbose = verbose
        self.setup_config = setup_config
        self._setup_logging()

        self.setup_builder = SEERSetupBuilder(setup_config)
        self.loader = SEERGroupLoader(loader_config)
        self.downloader = SEERDownloader(download_config) if download_config is not None else None
        self.setup: Optional[SetupBundle] = None

        self.logger.info("SEER Pipeline initialized")

    def _setup_logging(self) -> None:
        """Set up pipeline logging."""
        # Ensure logs directory exists
        Path(self.setup_config.logs_folder).mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=logging.INFO if self.verbose else logging.WARNING,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(Path(self.setup_config.logs_folder) / 'seer_pipeline.log'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def prepare(self, download: bool = False) -> SetupBundle:
        """Optionally download the data, then build and cache the setup."""
        if download:
            if self.downloader is None:
                raise ValueError("A DownloadConfig is required to download SEER data")
            self.downloader.download_seer()

        self.setup = self.setup_builder.build_setup()
        return self.setup

    def load(
        self,
        groups: Optional[Iterable[str]] = None,
        columns: Optional[Iterable[str]] = None,
    ) -> Dict[str, pl.DataFrame]:
        """Load groups with the cached setup, building it first if needed."""
        if self.setup is None:
            self.prepare()
        return self.loader.load_groups(self.setup, groups, columns)

    def process_complete_workflow(
        self,
        groups: Optional[Iterable[str]] = None,
        columns: Optional[Iterable[str]] = None,
        download: bool = False,
    ) -> Dict[str, Any]:
        """
        Execute the complete workflow.

        Args:
            groups: Tumor groups to load (default all SEER groups)
            columns: Column names to keep (default all)
            download: Whether to download the data first

        Returns:
            Dict: Results from each step, with loaded frames under 'data'
        """
        results: Dict[str, Any] = {}

        # Step 1: Download
        if download:
            self.logger.info("Step 1: Downloading SEER data")
            try:
                if self.downloader is None:
                    raise ValueError("A DownloadConfig is required to download SEER data")
                data_dir = self.downloader.download_seer()
                results['download'] = {'status': 'completed', 'data_dir': str(data_dir)}
            except Exception as e:
                self.logger.error(f"Download failed: {e}")
                results['download'] = {'status': 'failed', 'error': str(e)}
                return results

        # Step 2: Setup
        self.logger.info("Step 2: Building setup")
        try:
            self.setup = self.setup_builder.build_setup()
            results['setup'] = {
                'status': 'completed',
                'columns': len(self.setup.column_specs),
                'data_files': len(self.setup.data_files),
                'incomplete_specs': len(self.setup.incomplete_specs()),
            }
        except Exception as e:
            self.logger.error(f"Setup failed: {e}")
            results['setup'] = {'status': 'failed', 'error': str(e)}
            return results

        # Step 3: Load
        self.logger.info("Step 3: Loading groups")
        frames = self.loader.load_groups(self.setup, groups, columns)
        results['load'] = {
            group: {
                'status': 'completed' if group in frames else 'failed',
                'files': result.files_matched,
                'rows': result.total_rows,
                'coercion_failures': result.coercion_failures,
            }
            for group, result in self.loader.results.items()
        }
        results['data'] = frames

        self.logger.info("Completed workflow")
        return results
