#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Census International Database Population Fetcher

Gets population counts by age for any country from the US Census Bureau
International Database (IDB) region page, using two-letter FIPS 10-4 country
codes (the United States is "US").

Note that even with single-year ages, 85 is 85-89, 90 is 90-94, 95 is 95-99,
and 100 is 100 and older.

Classes:
    - CensusPopulationFetcher: Builds IDB queries and reshapes the result table

Author: Jonathan E. Becker
"""

import datetime
import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd
import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Imports from other modules
try:
    from .config_options import CensusConfig
    from .types_and_errors import DownloadError
except ImportError:
    from config_options import CensusConfig
    from types_and_errors import DownloadError

IDB_COLUMNS = ["year", "age", "total", "male", "female", "percent", "pctMale", "pctFemale", "sexratio"]
COUNT_COLUMNS = IDB_COLUMNS[:5]
SUMMARY_ROWS = ("Total", "Median Age")


def _join(values: Union[str, int, Iterable]) -> str:
    if isinstance(values, (str, int)):
        return str(values)
    return ",".join(str(v) for v in values)


class CensusPopulationFetcher:
    """
    Fetches population pyramids (counts by age and sex) from the Census IDB.

    Usage:
        fetcher = CensusPopulationFetcher(CensusConfig())
        pop = fetcher.get_pop_by_age("US", 2017)
    """

    def __init__(self, config: CensusConfig):
        self.config = config
        self._setup_logging()
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
                logging.FileHandler(Path(self.config.logs_folder) / 'census_fetcher.log'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def _setup_session(self) -> None:
        self.session = requests.Session()
        self.session.headers.update({"user-agent": self.config.user_agent})
        retry_strategy = Retry(
            total=self.config.retry_total,
            backoff_factor=self.config.retry_backoff,
            status_forcelist=self.config.retry_statuses,
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def build_url(
        self,
        countries: Union[str, Iterable[str]],
        years: Union[int, Iterable[int]],
        ages: int = 15,
        agg: str = "separate",
        rvalue: int = -1,
    ) -> str:
        """
        Build the IDB region query URL.

        Args:
            countries: Country code or codes (grouped into a region if agg="aggregate")
            years: Year or years (stacked in the result)
            ages: 10 for 5-year age groups, 15 for 1-year age groups
            agg: "separate" or "aggregate"
            rvalue: R parameter of the region page
        """
        return self.config.url_template.format(
            ages=ages,
            agg=agg,
            years=_join(years),
            rvalue=rvalue,
            countries=_join(countries),
        )

    def parse_population_table(self, html: str) -> pd.DataFrame:
        """
        Reshape the first table of an IDB result page into integer counts.

        Returns:
            DataFrame with columns year, age, total, male, female (nullable Int64)
        """
        soup = BeautifulSoup(html, 'html.parser')
        table = soup.find('table')
        if table is None:
            raise DownloadError("No table found in Census IDB response")

        rows = []
        for tr in table.find_all('tr'):
            cells = tr.find_all('td')
            if cells:
                rows.append([cell.get_text(strip=True) for cell in cells])

        width = min(len(IDB_COLUMNS), max((len(row) for row in rows), default=0))
        if width < len(COUNT_COLUMNS):
            raise DownloadError(f"Census IDB table has {width} columns, expected at least {len(COUNT_COLUMNS)}")

        df = pd.DataFrame([row[:width] for row in rows], columns=IDB_COLUMNS[:width])
        df = df[COUNT_COLUMNS]
        df = df[~df['age'].isin(SUMMARY_ROWS)].reset_index(drop=True)
        df['age'] = df['age'].str.replace(r'(-\d+|\+)', '', regex=True)

        for col in COUNT_COLUMNS:
            cleaned = df[col].astype(str).str.replace(',', '', regex=False)
            df[col] = pd.to_numeric(cleaned, errors='coerce').astype('Int64')

        return df

    def get_pop_by_age(
        self,
        countries: Union[str, Iterable[str]],
        years: Union[int, Iterable[int]],
        ages: int = 15,
        agg: str = "separate",
        rvalue: int = -1,
    ) -> pd.DataFrame:
        """
        Get population counts by age, one row per year and age.

        The source site and access date are stored in df.attrs.
        """
        url = self.build_url(countries, years, ages=ages, agg=agg, rvalue=rvalue)
        self.logger.info(f"Fetching Census IDB table: {url}")

        try:
            response = self.session.get(url, timeout=self.config.request_timeout_s)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to fetch {url}: {e}")
            raise DownloadError(f"Failed to fetch {url}: {e}")

        df = self.parse_population_table(response.text)
        df.attrs['site'] = self.config.site
        df.attrs['date_accessed'] = datetime.date.today()

        self.logger.info(f"Retrieved {len(df)} population rows")
        return df
