#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER SAS Specification Reader

This module turns the SAS column-input listing shipped with the SEER research
data (the ``read.seer.research.*.sas`` file) into an ordered list of ColumnSpec
records that can be used to read the fixed-width incidence files.

Only lines whose first non-whitespace character is ``@`` describe a field, e.g.:

    @ 1   PUBCSNUM   $char8.   /* Patient ID */
    @ 9   REG        $char10.  /* SEER registry */
    @ 39  YEAR_DX    4.        /* Year of diagnosis */

Each attribute of a field is pulled out by its own rule so that a missing or
malformed token for one attribute never blocks the others:

    - extract_offset: starting column (first digits after '@')
    - extract_name: variable name, lower-cased
    - has_char_marker: '$' (optionally '$char') followed by a width
    - has_numeric_marker: a 'w.d' informat surrounded by whitespace
    - extract_width: integer part of the first 'w.' / 'w.d' token
    - extract_description: text inside the first '/* ... */'

Author: Jonathan E. Becker
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

# Imports from other modules
try:
    from .types_and_errors import ColumnSpec, MalformedSpecLine
except ImportError:
    from types_and_errors import ColumnSpec, MalformedSpecLine

logger = logging.getLogger(__name__)

# ==========================================
# EXTRACTION RULES
# ==========================================

FIELD_LINE_PATTERN = re.compile(r'^\s*@')
OFFSET_PATTERN = re.compile(r'@\s*(\d+)')
NAME_PATTERN = re.compile(r'[A-Za-z]+\d*\S*')
CHAR_MARKER_PATTERN = re.compile(r'\$[A-Za-z]*\d+')
NUMERIC_MARKER_PATTERN = re.compile(r'\s\d+\.\d+\s')
WIDTH_PATTERN = re.compile(r'(\d+)\.\d*')
DESCRIPTION_PATTERN = re.compile(r'/\*(.*?)\*/')


def is_field_line(line: str) -> bool:
    """True if the first non-whitespace character of the line is '@'."""
    return FIELD_LINE_PATTERN.match(line) is not None


def extract_offset(line: str) -> Optional[int]:
    match = OFFSET_PATTERN.search(line)
    return int(match.group(1)) if match else None


def extract_name(line: str) -> Optional[str]:
    match = NAME_PATTERN.search(line)
    return match.group(0).lower() if match else None


def has_char_marker(line: str) -> bool:
    return CHAR_MARKER_PATTERN.search(line) is not None


def has_numeric_marker(line: str) -> bool:
    # Needs whitespace on both sides so the '@ 1' offset is never mistaken for an informat
    return NUMERIC_MARKER_PATTERN.search(line) is not None


def extract_width(line: str) -> Optional[int]:
    match = WIDTH_PATTERN.search(line)
    return int(match.group(1)) if match else None


def extract_description(line: str) -> Optional[str]:
    match = DESCRIPTION_PATTERN.search(line)
    return match.group(1).strip() if match else None


# ==========================================
# LISTING PARSER
# ==========================================

def parse_spec_line(line: str, strict: bool = False) -> ColumnSpec:
    """
    Build a ColumnSpec from a single '@' line.

    Args:
        line: A line of the SAS listing that starts with '@'
        strict: Raise MalformedSpecLine instead of returning an incomplete spec

    Returns:
        ColumnSpec, with None for any attribute that could not be extracted
    """
    start = extract_offset(line)
    width = extract_width(line)

    missing = [label for label, value in (('offset', start), ('width', width)) if value is None]
    if missing:
        if strict:
            raise MalformedSpecLine(line, missing)
        logger.warning(f"Incomplete specification line (missing {', '.join(missing)}): {line.strip()!r}")

    stop = start + width - 1 if start is not None and width is not None else None

    return ColumnSpec(
        start=start,
        stop=stop,
        name=extract_name(line),
        is_char=has_char_marker(line),
        is_numeric=has_numeric_marker(line),
        width=width,
        description=extract_description(line),
    )


def extract_specs(lines: Iterable[str], strict: bool = False) -> List[ColumnSpec]:
    """
    Parse the lines of a SAS column-input listing into ColumnSpec records.

    Lines that do not start with '@' (after whitespace) are ignored. Output
    order follows line order and duplicate names are kept as-is.

    Args:
        lines: Raw text lines of the listing
        strict: Raise MalformedSpecLine for '@' lines missing an offset or width

    Returns:
        List of ColumnSpec, one per '@' line
    """
    specs = []
    for line in lines:
        line = line.rstrip('\r\n')
        if not is_field_line(line):
            continue
        specs.append(parse_spec_line(line, strict=strict))
    return specs


def read_sas_specs(
    listing_path: Union[str, Path],
    encoding: str = "utf-8",
    fallback_encoding: str = "iso-8859-1",
    strict: bool = False,
) -> List[ColumnSpec]:
    """
    Read a SAS listing file and extract its column specifications.

    Args:
        listing_path: Path to the .sas file
        encoding: Encoding to try first
        fallback_encoding: Encoding used if the first one fails to decode
        strict: See extract_specs

    Returns:
        List of ColumnSpec
    """
    listing_path = Path(listing_path)
    try:
        text = listing_path.read_text(encoding=encoding)
    except UnicodeDecodeError:
        logger.warning(f"Could not decode {listing_path} as {encoding}, retrying with {fallback_encoding}")
        text = listing_path.read_text(encoding=fallback_encoding)

    specs = extract_specs(text.splitlines(), strict=strict)
    logger.info(f"Extracted {len(specs)} column specifications from {listing_path.name}")
    return specs


def specs_to_dataframe(specs: List[ColumnSpec]) -> pd.DataFrame:
    """
    Tabulate specs for inspection.

    Example:
        >>> specs_to_dataframe(extract_specs(['@1 caseid $10. /* case id */']))
           colstart  colstop  varname  char    num  width     desc
        0         1       10   caseid  True  False     10  case id
    """
    return pd.DataFrame(
        {
            'colstart': pd.array([spec.start for spec in specs], dtype='Int64'),
            'colstop': pd.array([spec.stop for spec in specs], dtype='Int64'),
            'varname': [spec.name for spec in specs],
            'char': [spec.is_char for spec in specs],
            'num': [spec.is_numeric for spec in specs],
            'width': pd.array([spec.width for spec in specs], dtype='Int64'),
            'desc': [spec.description for spec in specs],
        }
    )
