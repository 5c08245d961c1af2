#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Group Loader

This module contains the SEERGroupLoader class for reading the SEER fixed-width
incidence files that belong to a tumor group (BREAST, COLRECT, ...) and stacking
them into a single Polars DataFrame.

Features:
    - Group selection by case-insensitive regular expression on the path below the incidence root
    - Column subsetting (output keeps specification order)
    - Per-field type coercion from the setup type codes
    - Short lines and unparseable values become nulls instead of errors
    - Optional threaded reading with file order preserved

Classes:
    - SEERGroupLoader: Main loader class

Dependencies:
    - config_options: LoaderConfig
    - types_and_errors: SetupBundle, LoadResult, NoMatchError

Author: Jonathan E. Becker
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import polars as pl

# Imports from other modules
try:
    from .config_options import LoaderConfig
    from .types_and_errors import LoadResult, NoMatchError, ReadPosition, SetupBundle
except ImportError:
    from config_options import LoaderConfig
    from types_and_errors import LoadResult, NoMatchError, ReadPosition, SetupBundle

# Tumor group files shipped with the SEER research data
SEER_GROUPS = (
    "BREAST", "COLRECT", "DIGOTHR", "FEMGEN", "LYMYLEUK",
    "MALEGEN", "RESPIR", "URINARY", "OTHER",
)

TYPE_CODE_DTYPES = {
    'c': pl.Utf8,
    'd': pl.Float64,
    'i': pl.Int64,
}


class SEERGroupLoader:
    """
    Loads every fixed-width data file of a group into one DataFrame.

    A SetupBundle (from SEERSetupBuilder) supplies the column positions, type
    codes and the file inventory; the loader itself holds no state besides the
    result of the last call.
    """

    def __init__(self, config: LoaderConfig):
        """
        Initialize the loader with configuration.

        Args:
            config: LoaderConfig object containing all necessary parameters
        """
        self.config = config
        self.last_result: Optional[LoadResult] = None
        self.results: Dict[str, LoadResult] = {}
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
                logging.FileHandler(Path(self.config.logs_folder) / 'seer_loader.log'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    # ==========================================
    # Selection
    # ==========================================

    def match_files(self, setup: SetupBundle, group_filter: str = "") -> List[Path]:
        """
        Data files whose path matches group_filter (case-insensitive regex search).

        The filter is searched in the path relative to setup.root_dir, or in the
        file name when the bundle has no root, so directories above the
        incidence folder never match. An empty filter or '.' matches every
        file. A filter that is not a valid regular expression is matched as a
        literal substring.
        """
        try:
            pattern = re.compile(group_filter, re.IGNORECASE)
        except re.error as e:
            self.logger.warning(f"Group filter {group_filter!r} is not a valid pattern ({e}), matching literally")
            pattern = re.compile(re.escape(group_filter), re.IGNORECASE)

        return [f for f in setup.data_files if pattern.search(self._match_target(setup, f))]

    @staticmethod
    def _match_target(setup: SetupBundle, file_path: Path) -> str:
        if setup.root_dir is not None:
            try:
                return file_path.relative_to(setup.root_dir).as_posix()
            except ValueError:
                pass
        return file_path.name

    def select_columns(
        self,
        setup: SetupBundle,
        columns: Optional[Iterable[str]] = None,
    ) -> Tuple[List[ReadPosition], str, List[str]]:
        """
        Subset the setup's positions and type codes to the requested columns.

        Args:
            setup: SetupBundle to select from
            columns: Names to keep (None keeps every column). Both specification
                names and output names ('column_2', 'filler_2') are accepted.

        Returns:
            Tuple of (positions, type codes, output column names), all in specification order
        """
        output_names = self._output_names(setup)

        if columns is None:
            keep = list(range(len(setup.column_specs)))
        else:
            columns = list(columns)
            invalid = [name for name in columns if not isinstance(name, str)]
            if invalid:
                raise ValueError(f"Column names must be strings, got {invalid!r}")

            wanted = {name.lower() for name in columns}
            keep = [
                i for i, (position, output_name) in enumerate(zip(setup.column_specs, output_names))
                if output_name.lower() in wanted or (position.name or '').lower() in wanted
            ]
            known = {name.lower() for name in output_names}
            known.update(position.name.lower() for position in setup.column_specs if position.name)
            unknown = wanted - known
            if unknown:
                self.logger.warning(f"Requested columns not in specification: {sorted(unknown)}")
            if not keep:
                raise ValueError(f"None of the requested columns are in the specification: {sorted(wanted)}")

        positions = [setup.column_specs[i] for i in keep]
        type_codes = ''.join(setup.type_codes[i] for i in keep)
        names = [output_names[i] for i in keep]
        return positions, type_codes, names

    def _output_names(self, setup: SetupBundle) -> List[str]:
        """Column names with unnamed specs filled in and duplicates numbered."""
        seen: Dict[str, int] = {}
        names = []
        for i, position in enumerate(setup.column_specs):
            base = position.name or f"column_{i + 1}"
            count = seen.get(base, 0)
            names.append(f"{base}_{count + 1}" if count else base)
            seen[base] = count + 1
        duplicates = [name for name, count in seen.items() if count > 1]
        if duplicates:
            self.logger.warning(f"Duplicate column names in specification were numbered: {duplicates}")
        return names

    # ==========================================
    # Parsing
    # ==========================================

    def _read_lines(self, file_path: Path) -> List[str]:
        """Read a data file into a list of lines without terminators."""
        try:
            with open(file_path, 'r', encoding=self.config.encoding) as f:
                lines = [line.rstrip('\r\n') for line in f]
        except UnicodeDecodeError:
            self.logger.warning(
                f"Could not decode {file_path} as {self.config.encoding}, retrying with {self.config.fallback_encoding}"
            )
            with open(file_path, 'r', encoding=self.config.fallback_encoding) as f:
                lines = [line.rstrip('\r\n') for line in f]

        if self.config.skip_blank_lines:
            lines = [line for line in lines if line.strip()]
        return lines

    def _field_expressions(
        self,
        positions: List[ReadPosition],
        type_codes: str,
        names: List[str],
    ) -> Tuple[List[pl.Expr], List[pl.Expr]]:
        """
        Build the slicing/casting expressions for each column.

        Returns:
            Tuple of (value expressions, coercion-failure count expressions)
        """
        raw = pl.col(self.config.text_column_name)
        values = []
        failures = []

        for i, (position, code, name) in enumerate(zip(positions, type_codes, names)):
            dtype = TYPE_CODE_DTYPES[code]

            if position.start is None or position.stop is None:
                values.append(pl.lit(None, dtype=dtype).alias(name))
                continue

            width = max(position.stop - position.start + 1, 0)
            field = (
                pl.when(raw.str.len_chars() >= position.stop)
                .then(raw.str.slice(position.start - 1, width))
                .otherwise(pl.lit(None, dtype=pl.Utf8))
            )

            if code == 'c':
                value = field.str.strip_chars() if self.config.trim_strings else field
                values.append(value.alias(name))
                continue

            stripped = field.str.strip_chars()
            value = stripped.cast(dtype, strict=False)
            values.append(value.alias(name))
            failures.append(
                (stripped.is_not_null() & (stripped != "") & value.is_null())
                .sum()
                .alias(f"__failures_{i}")
            )

        return values, failures

    def parse_lines(
        self,
        lines: List[str],
        positions: List[ReadPosition],
        type_codes: str,
        names: List[str],
    ) -> Tuple[pl.DataFrame, int]:
        """
        Parse fixed-width lines into a typed DataFrame.

        Returns:
            Tuple of (DataFrame, number of values that failed type coercion)
        """
        text_column = self.config.text_column_name
        df = pl.DataFrame({text_column: lines}, schema={text_column: pl.Utf8})

        values, failures = self._field_expressions(positions, type_codes, names)
        parsed = df.with_columns(values).select(names)

        failure_count = 0
        if failures and df.height:
            failure_count = int(sum(df.select(failures).row(0)))

        return parsed, failure_count

    def read_file(
        self,
        file_path: Union[str, Path],
        positions: List[ReadPosition],
        type_codes: str,
        names: List[str],
    ) -> Tuple[pl.DataFrame, int]:
        """Read and parse one fixed-width data file."""
        file_path = Path(file_path)
        lines = self._read_lines(file_path)
        df, failure_count = self.parse_lines(lines, positions, type_codes, names)

        if failure_count:
            self.logger.warning(f"{failure_count} values in {file_path.name} could not be converted and were set to null")
        self.logger.debug(f"Read {df.height} records from {file_path.name}")
        return df, failure_count

    # ==========================================
    # Public API
    # ==========================================

    def load_group(
        self,
        setup: SetupBundle,
        group_filter: str = "",
        columns: Optional[Iterable[str]] = None,
    ) -> pl.DataFrame:
        """
        Load every data file matching group_filter into a single DataFrame.

        Args:
            setup: SetupBundle from SEERSetupBuilder
            group_filter: Case-insensitive pattern searched in each path relative to the setup root ('.' for all files)
            columns: Optional column names to keep (default all)

        Returns:
            Polars DataFrame, rows in file-list order then line order

        Raises:
            NoMatchError: If no data file matches group_filter
        """
        result = LoadResult(group_filter)
        self.last_result = result

        files = self.match_files(setup, group_filter)
        result.files_matched = len(files)
        if not files:
            self.logger.error(f"No data files match group filter {group_filter!r}")
            raise NoMatchError(f"No data files match group filter {group_filter!r}")

        positions, type_codes, names = self.select_columns(setup, columns)
        self.logger.info(f"Loading {len(names)} columns from {len(files)} files for group {group_filter!r}")

        def _read(path: Path) -> Tuple[pl.DataFrame, int]:
            return self.read_file(path, positions, type_codes, names)

        if self.config.max_workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                parsed = list(executor.map(_read, files))
        else:
            parsed = [_read(path) for path in files]

        for path, (df, failure_count) in zip(files, parsed):
            result.add_file(path, df.height, failure_count)

        combined = pl.concat([df for df, _ in parsed], how="vertical")

        self.logger.info(
            f"Loaded {result.total_rows} records for group {group_filter!r} "
            f"({result.coercion_failures} values set to null)"
        )
        return combined

    def load_groups(
        self,
        setup: SetupBundle,
        groups: Optional[Iterable[str]] = None,
        columns: Optional[Iterable[str]] = None,
    ) -> Dict[str, pl.DataFrame]:
        """
        Load several groups in batch.

        Groups with no matching files are logged and recorded as failures
        instead of stopping the batch.

        Args:
            setup: SetupBundle from SEERSetupBuilder
            groups: Group names (defaults to SEER_GROUPS)
            columns: Optional column names to keep

        Returns:
            Dictionary mapping group name to DataFrame
        """
        if groups is None:
            groups = SEER_GROUPS

        columns = list(columns) if columns is not None else None
        frames = {}
        self.results = {}

        for group in groups:
            try:
                frames[group] = self.load_group(setup, group, columns)
            except NoMatchError as e:
                self.logger.warning(f"Skipping group {group}: {e}")
                self.last_result.add_failure(group, str(e))
            self.results[group] = self.last_result

        return frames


def load_group(
    setup: SetupBundle,
    group_filter: str = "",
    columns: Optional[Iterable[str]] = None,
    config: Optional[LoaderConfig] = None,
) -> pl.DataFrame:
    """Convenience wrapper: load a group with a fresh SEERGroupLoader."""
    loader = SEERGroupLoader(config if config is not None else LoaderConfig())
    return loader.load_group(setup, group_filter, columns)
