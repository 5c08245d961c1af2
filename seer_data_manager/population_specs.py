#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SEER Population Specification Builder

Builds ColumnSpec records for the SEER population (denominator) files from the
population data dictionary, which is published as an HTML table with four
columns: variable name, start column, length, and data type.

The result is a SetupBundle that the group loader can read population files
with. Population bundles are never combined with incidence bundles.

Author: Jonathan E. Becker
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Union

import numpy as np
import pandas as pd
from bs4 import BeautifulSoup

# Imports from other modules
try:
    from .types_and_errors import ColumnSpec, SetupBundle
except ImportError:
    from types_and_errors import ColumnSpec, SetupBundle

logger = logging.getLogger(__name__)

POPULATION_TABLE_COLUMNS = ['name', 'start', 'width', 'type']


def normalize_population_name(raw_name) -> str:
    """
    Turn a dictionary label into a usable column name.

    Example:
        >>> normalize_population_name("State FIPS code\\n(see table)")
        'state_fips_code'
    """
    name = re.sub(r'\n.*$', '', str(raw_name), flags=re.DOTALL)
    name = re.sub(r'\s+$', '', name)
    name = re.sub(r'\s+', '_', name)
    name = re.sub(r'\W', '', name)
    return name.lower()


def classify_population_type(type_text) -> str:
    """Return 'character' or 'numeric'. Anything unrecognised is treated as character."""
    text = str(type_text).lower()
    if 'character' in text:
        return 'character'
    if 'numeric' in text:
        return 'numeric'
    return 'character'


def build_population_specs(table: pd.DataFrame) -> List[ColumnSpec]:
    """
    Build ColumnSpec records from a population dictionary table.

    Columns are taken positionally as [name, start, width, type]. Widths are
    floored to integers and fields are laid out contiguously from them.

    Args:
        table: DataFrame with the four dictionary columns

    Returns:
        List of ColumnSpec in table order
    """
    if table.shape[1] < 4:
        raise ValueError(f"Population table needs 4 columns {POPULATION_TABLE_COLUMNS}, got {table.shape[1]}")

    table = table.iloc[:, :4].copy()
    table.columns = POPULATION_TABLE_COLUMNS

    widths = np.floor(pd.to_numeric(table['width'], errors='coerce')).astype('Int64')
    listed_starts = pd.to_numeric(table['start'], errors='coerce')

    specs = []
    offset = 1
    for i, row in table.reset_index(drop=True).iterrows():
        width = widths.iloc[i]
        if pd.isna(width):
            raise ValueError(f"Population dictionary row {i} has no usable width: {row['width']!r}")
        width = int(width)
        name = normalize_population_name(row['name'])
        kind = classify_population_type(row['type'])

        if pd.notna(listed_starts.iloc[i]) and int(listed_starts.iloc[i]) != offset:
            logger.debug(f"Listed start {int(listed_starts.iloc[i])} for '{name}' differs from laid-out start {offset}")

        specs.append(ColumnSpec(
            start=offset,
            stop=offset + width - 1,
            name=name,
            is_char=kind == 'character',
            is_numeric=kind == 'numeric',
            width=width,
        ))
        offset += width

    return specs


def build_population_setup(
    table: pd.DataFrame,
    data_files: Iterable[Union[str, Path]] = (),
) -> SetupBundle:
    """Wrap population specs into a SetupBundle for the group loader."""
    specs = build_population_specs(table)
    bundle = SetupBundle.from_specs(specs, data_files=sorted(Path(f) for f in data_files))
    logger.info(f"Built population setup with {len(specs)} columns, type codes '{bundle.type_codes}'")
    return bundle


def parse_population_dictionary(html: str) -> pd.DataFrame:
    """
    Parse the HTML population data dictionary into a [name, start, width, type] table.

    All tables on the page are stacked; header rows (th cells) and rows that do
    not have four cells are skipped.
    """
    soup = BeautifulSoup(html, 'html.parser')
    rows = []
    for table in soup.find_all('table'):
        for tr in table.find_all('tr'):
            cells = tr.find_all('td')
            if len(cells) < 4:
                continue
            # Keep line breaks in the name cell so the annotation after them can be dropped
            name = cells[0].get_text('\n').strip()
            rows.append([name] + [cell.get_text(' ', strip=True) for cell in cells[1:4]])

    if not rows:
        raise ValueError("No dictionary rows found in population dictionary HTML")

    return pd.DataFrame(rows, columns=POPULATION_TABLE_COLUMNS)
