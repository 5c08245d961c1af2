#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Research Data Downloader

This module contains the SEERDownloader class for fetching the SEER research
data archive (ASCII text version) and unpacking it into a local data folder.

Features:
    - Resolution of the current archive link from the SEER data options page
    - HTTP basic authentication with the SEER research data credentials
    - Streamed download with retries and partial-file cleanup
    - Archive extraction

Classes:
    - SEERDownloader: Main downloader class

Dependencies:
    - config_options: DownloadConfig
    - types_and_errors: DownloadError

Author: Jonathan E. Becker
"""

import logging
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Imports from other modules
try:
    from .config_options import DownloadConfig
    from .types_and_errors import DownloadError
except ImportError:
    from config_options import DownloadConfig
    from types_and_errors import DownloadError


class SEERDownloader:
    """
    A class for downloading the SEER research data archive.

    The archive link changes with every release, so it is looked up on the
    SEER data options page before each download. The file is over 300 MB.
    """

    def __init__(self, config: DownloadConfig):
        """
        Initialize the downloader with configuration.

        Args:
            config: DownloadConfig object containing all necessary parameters
        """
        self.config = config
        self.session = None

        # Set up logging
        self._setup_logging()

        # Set up session
        self._setup_session()

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Ensure logs directory exists
        Path(self.config.logs_folder).mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(Path(self.config.logs_folder) / 'seer_downloader.log'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def _setup_session(self) -> None:
        """Set up the requests session with basic authentication."""
        self.session = requests.Session()
        self.session.auth = (self.config.username, self.config.password)
        self.session.headers.update({"user-agent": self.config.user_agent})

        # Configure retries for robustness
        retry_strategy = Retry(
            total=self.config.retry_total,
            backoff_factor=self.config.retry_backoff,
            status_forcelist=self.config.retry_statuses,
            allowed_methods=self.config.retry_allowed_methods,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        self.logger.info("Session configured with SEER credentials")

    def get_file_url(self) -> str:
        """
        Get the URL of the current archive from the SEER data options page.

        Returns:
            Absolute URL of the zip archive
        """
        self.logger.info("Getting URL for download...")
        try:
            response = self.session.get(self.config.options_url, timeout=self.config.request_timeout_s)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to load {self.config.options_url}: {e}")
            raise DownloadError(f"Failed to load {self.config.options_url}: {e}")

        soup = BeautifulSoup(response.text, 'html.parser')
        link = soup.select_one(self.config.link_selector)
        if link is None or not link.get('href'):
            raise DownloadError(
                f"No download link matching '{self.config.link_selector}' on {self.config.options_url}"
            )

        return urljoin(self.config.options_url, link['href'])

    def download_archive(self, url: str, local_path: Union[str, Path]) -> Path:
        """
        Stream a file to disk.

        Args:
            url: URL to download from
            local_path: Local path to save the file

        Returns:
            Path to the downloaded file
        """
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.logger.info(f"Starting download of {url}. This may take several minutes.")
            with self.session.get(url, stream=True, timeout=self.config.request_timeout_s) as response:
                response.raise_for_status()
                total_bytes = 0
                with open(local_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.config.stream_chunk_size):
                        if chunk:
                            f.write(chunk)
                            total_bytes += len(chunk)

            self.logger.info(f"Downloaded: {local_path} ({total_bytes} bytes)")
            return local_path

        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to download {url}: {e}")
            # Clean up partial download
            if local_path.exists():
                local_path.unlink()
            raise DownloadError(f"Failed to download {url}: {e}")

    def unzip_archive(self, archive_path: Union[str, Path], data_dir: Union[str, Path]) -> Path:
        """Extract a zip archive into data_dir, overwriting existing files."""
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"Unzipping {archive_path} to {data_dir}...")
        try:
            with zipfile.ZipFile(archive_path) as archive:
                archive.extractall(data_dir)
        except zipfile.BadZipFile as e:
            self.logger.error(f"Invalid archive {archive_path}: {e}")
            raise DownloadError(f"Invalid archive {archive_path}: {e}")

        self.logger.info("Unzip complete.")
        return data_dir

    def download_seer(self, data_dir: Optional[Union[str, Path]] = None) -> Path:
        """
        Download and unzip the latest SEER archive.

        The zip is downloaded to a temporary file that is removed afterwards.

        Args:
            data_dir: Folder to unzip into (defaults to config.data_folder)

        Returns:
            Path to the data folder
        """
        data_dir = Path(data_dir if data_dir is not None else self.config.data_folder)
        url = self.get_file_url()

        with tempfile.TemporaryDirectory() as tmp_dir:
            archive_path = self.download_archive(url, Path(tmp_dir) / 'seer.zip')
            self.unzip_archive(archive_path, data_dir)

        return data_dir
