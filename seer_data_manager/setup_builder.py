#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Setup Builder

This module contains the SEERSetupBuilder class, which scans an unpacked SEER
incidence folder, locates the SAS listing, extracts the column specifications,
and returns a reusable SetupBundle for the group loader.

Features:
    - Recursive discovery of the listing and the fixed-width data files
    - Explicit failure on missing or ambiguous listings
    - Type code derivation ('c', 'd', 'i') per column
    - No data file is opened while building the setup

Classes:
    - SEERSetupBuilder: Main setup class

Dependencies:
    - config_options: SetupConfig
    - spec_reader: read_sas_specs
    - types_and_errors: SetupBundle, ConfigurationError, MalformedSpecLine

Author: Jonathan E. Becker
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

# Imports from other modules
try:
    from .config_options import SetupConfig
    from .spec_reader import read_sas_specs
    from .types_and_errors import ConfigurationError, MalformedSpecLine, SetupBundle
except ImportError:
    from config_options import SetupConfig
    from spec_reader import read_sas_specs
    from types_and_errors import ConfigurationError, MalformedSpecLine, SetupBundle


class SEERSetupBuilder:
    """
    Builds SetupBundles from an unpacked SEER incidence directory.

    A directory is expected to hold exactly one SAS listing (by default the
    only '.sas' file) and any number of fixed-width data files ('.txt' or
    '.TXT'), possibly in subfolders.
    """

    def __init__(self, config: SetupConfig):
        """
        Initialize the setup builder with configuration.

        Args:
            config: SetupConfig object containing all necessary parameters
        """
        self.config = config
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Ensure logs directory exists
        Path(self.config.logs_folder).mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(Path(self.config.logs_folder) / 'seer_setup.log'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def list_files(self, root_dir: Union[str, Path]) -> List[Path]:
        """Recursively list all files under root_dir, sorted by path."""
        root_dir = Path(root_dir)
        if not root_dir.is_dir():
            self.logger.error(f"Incidence directory not found: {root_dir}")
            raise ConfigurationError(f"Incidence directory not found: {root_dir}")
        return sorted(p for p in root_dir.rglob('*') if p.is_file())

    def _is_listing(self, path: Path) -> bool:
        return path.name.lower().endswith(self.config.spec_suffix.lower())

    def _is_data_file(self, path: Path) -> bool:
        suffixes = {suffix.lower() for suffix in self.config.data_suffixes}
        return path.suffix.lower() in suffixes

    def partition_files(
        self,
        files: List[Path],
        listing_path: Optional[Union[str, Path]] = None,
    ) -> Tuple[Path, List[Path]]:
        """
        Split a file inventory into the one specification listing and the data files.

        Args:
            files: All files found under the incidence directory
            listing_path: Optional explicit listing, bypassing the suffix search

        Returns:
            Tuple of (listing path, data file paths)
        """
        if listing_path is not None:
            listing = Path(listing_path)
            if not listing.is_file():
                self.logger.error(f"Specification file not found: {listing}")
                raise ConfigurationError(f"Specification file not found: {listing}")
        else:
            listings = [f for f in files if self._is_listing(f)]
            if not listings:
                self.logger.error(f"No specification file ending in '{self.config.spec_suffix}' found")
                raise ConfigurationError(
                    f"No specification file ending in '{self.config.spec_suffix}' found"
                )
            if len(listings) > 1:
                names = ', '.join(str(f) for f in listings)
                self.logger.error(f"Ambiguous specification file, found {len(listings)}: {names}")
                raise ConfigurationError(f"Ambiguous specification file, found {len(listings)}: {names}")
            listing = listings[0]

        data_files = [
            f for f in files
            if self._is_data_file(f) and f.resolve() != listing.resolve()
        ]
        return listing, data_files

    def build_setup(
        self,
        root_dir: Optional[Union[str, Path]] = None,
        listing_path: Optional[Union[str, Path]] = None,
    ) -> SetupBundle:
        """
        Build a SetupBundle for every data file under root_dir.

        Args:
            root_dir: Incidence directory (defaults to config.incidence_dir)
            listing_path: Optional explicit SAS listing

        Returns:
            SetupBundle with type codes, positional specs and data file list
        """
        root_dir = Path(root_dir if root_dir is not None else self.config.incidence_dir)
        self.logger.info(f"Building setup from {root_dir}")

        files = self.list_files(root_dir)
        listing, data_files = self.partition_files(files, listing_path)
        self.logger.info(f"Using specification file {listing} with {len(data_files)} data files")

        try:
            specs = read_sas_specs(
                listing,
                encoding=self.config.encoding,
                fallback_encoding=self.config.fallback_encoding,
                strict=self.config.reject_incomplete_specs,
            )
        except MalformedSpecLine as e:
            self.logger.error(f"Rejecting {listing.name}: {e}")
            raise

        setup = SetupBundle.from_specs(specs, data_files=data_files, listing_path=listing, root_dir=root_dir)

        incomplete = setup.incomplete_specs()
        if incomplete:
            self.logger.warning(
                f"{len(incomplete)} incomplete specifications in {listing.name}; they will load as empty integer columns"
            )

        self.logger.info(f"Setup complete: {len(setup.column_specs)} columns, {len(setup.data_files)} data files")
        return setup


def build_setup(
    root_dir: Union[str, Path],
    listing_path: Optional[Union[str, Path]] = None,
    config: Optional[SetupConfig] = None,
) -> SetupBundle:
    """Convenience wrapper: build a setup with a fresh SetupBuilder."""
    builder = SEERSetupBuilder(config if config is not None else SetupConfig())
    return builder.build_setup(root_dir, listing_path)
