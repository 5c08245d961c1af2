#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Data Manager - Type Definitions and Result Classes

This module contains the record types, result classes, and exceptions
used across the SEER data loading pipeline.

Classes:
    - ColumnSpec: One field of a fixed-width record, as read from a SAS listing
    - ReadPosition: (start, stop, name) triple used for positional reads
    - SetupBundle: Specifications + file inventory + type codes for a release
    - LoadResult: Results from a group loading operation
    - SEERDataError and subclasses: Exception taxonomy

Author: Jonathan E. Becker
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple, Union
import datetime

import yaml

# ==========================================
# SPECIFICATION TYPES
# ==========================================

@dataclass(frozen=True)
class ColumnSpec:
    """One field of a fixed-width record. Any attribute may be None if it could not be extracted."""
    start: Optional[int] = None
    stop: Optional[int] = None
    name: Optional[str] = None
    is_char: bool = False
    is_numeric: bool = False
    width: Optional[int] = None
    description: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return None not in (self.start, self.stop, self.name, self.width)

    @property
    def type_code(self) -> str:
        """'c' for character, 'd' for decimal, 'i' (the default) for integer."""
        if self.is_char:
            return 'c'
        if self.is_numeric:
            return 'd'
        return 'i'

    def to_position(self) -> "ReadPosition":
        return ReadPosition(self.start, self.stop, self.name)


class ReadPosition(NamedTuple):
    """Positional read specification for a single column (1-based, inclusive)."""
    start: Optional[int]
    stop: Optional[int]
    name: Optional[str]


@dataclass(frozen=True)
class SetupBundle:
    """
    Everything needed to load a batch of fixed-width files.

    Attributes:
        type_codes: One character per column ('c', 'd', 'i') in specification order
        column_specs: ReadPosition per column, same order as type_codes
        data_files: Candidate data files, sorted by path
        specs: Full ColumnSpec records the bundle was derived from
        listing_path: The SAS listing the specs were read from (None for population bundles)
        root_dir: Directory the data files were discovered under; group filters
            are matched against paths relative to it (file names when None)
    """
    type_codes: str
    column_specs: Tuple[ReadPosition, ...]
    data_files: Tuple[Path, ...] = ()
    specs: Tuple[ColumnSpec, ...] = ()
    listing_path: Optional[Path] = None
    root_dir: Optional[Path] = None

    def __post_init__(self):
        if len(self.type_codes) != len(self.column_specs):
            raise ValueError(
                f"type_codes has {len(self.type_codes)} entries but column_specs has {len(self.column_specs)}"
            )

    @classmethod
    def from_specs(
        cls,
        specs: List[ColumnSpec],
        data_files: Union[List[Path], Tuple[Path, ...]] = (),
        listing_path: Optional[Path] = None,
        root_dir: Optional[Path] = None,
    ) -> "SetupBundle":
        specs = tuple(specs)
        return cls(
            type_codes=''.join(spec.type_code for spec in specs),
            column_specs=tuple(spec.to_position() for spec in specs),
            data_files=tuple(Path(f) for f in data_files),
            specs=specs,
            listing_path=Path(listing_path) if listing_path is not None else None,
            root_dir=Path(root_dir) if root_dir is not None else None,
        )

    @property
    def column_names(self) -> List[Optional[str]]:
        return [position.name for position in self.column_specs]

    def incomplete_specs(self) -> List[ColumnSpec]:
        """Specs that are missing an offset, width or name."""
        return [spec for spec in self.specs if not spec.is_complete]

    # Persistence
    def save(self, path: Union[str, Path]) -> Path:
        """Write the bundle to a YAML file so it can be reused without rescanning."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            'listing_path': str(self.listing_path) if self.listing_path else None,
            'root_dir': str(self.root_dir) if self.root_dir else None,
            'data_files': [str(f) for f in self.data_files],
            'specs': [
                {
                    'start': spec.start,
                    'stop': spec.stop,
                    'name': spec.name,
                    'is_char': spec.is_char,
                    'is_numeric': spec.is_numeric,
                    'width': spec.width,
                    'description': spec.description,
                }
                for spec in self.specs
            ],
        }
        with open(path, 'w') as f:
            yaml.safe_dump(payload, f, sort_keys=False)
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SetupBundle":
        try:
            with open(path, 'r') as f:
                payload = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Setup file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing setup file {path}: {e}")

        if not isinstance(payload, dict):
            raise ConfigurationError(f"Setup file {path} does not contain a mapping")

        specs = []
        for entry in payload.get('specs') or []:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Invalid specification entry in {path}: {entry!r}")
            try:
                specs.append(ColumnSpec(**entry))
            except TypeError as e:
                raise ConfigurationError(f"Invalid specification entry in {path}: {e}")

        return cls.from_specs(
            specs,
            data_files=payload.get('data_files') or [],
            listing_path=payload.get('listing_path'),
            root_dir=payload.get('root_dir'),
        )


# ==========================================
# RESULT CLASSES
# ==========================================

class LoadResult:
    """Container for group loading results."""

    def __init__(self, group_filter: str = ""):
        self.group_filter = group_filter
        self.files_matched = 0
        self.successful = 0
        self.total_rows = 0
        self.coercion_failures = 0
        self.rows_by_file: Dict[str, int] = {}
        self.errors: List[Dict] = []

    def add_file(self, file_path: Union[str, Path], row_count: int, coercion_failures: int = 0):
        self.successful += 1
        self.total_rows += row_count
        self.coercion_failures += coercion_failures
        self.rows_by_file[str(file_path)] = row_count

    def add_failure(self, file_path: Union[str, Path], error: str):
        self.errors.append({
            'file': str(file_path),
            'error': error,
            'timestamp': datetime.datetime.now().isoformat()
        })


# ==========================================
# EXCEPTION CLASSES
# ==========================================

class SEERDataError(Exception):
    """Base class for SEER data manager errors."""
    pass


class ConfigurationError(SEERDataError):
    """The directory tree does not hold exactly one usable specification listing."""
    pass


class MalformedSpecLine(SEERDataError):
    """A listing line starts with '@' but its offset or width cannot be extracted."""

    def __init__(self, line: str, missing: List[str]):
        self.line = line
        self.missing = missing
        super().__init__(f"Missing {', '.join(missing)} in specification line: {line.strip()!r}")


class NoMatchError(SEERDataError):
    """No data file matches the group filter."""
    pass


class ParseError(SEERDataError):
    """
    A field value cannot be coerced to its declared type.

    The group loader does not raise this: such values load as null and are
    counted in LoadResult.coercion_failures. It is kept for callers that want
    to escalate a non-zero count.
    """
    pass


class DownloadError(SEERDataError):
    """Custom exception for download errors."""
    pass
