"""
Read rustasim log files into pandas tables with a fixed, named schema
"""

import csv
import io
import logging
from pathlib import Path
from typing import List

import pandas as pd

from .errors import SchemaMismatchError
from .schema import CATEGORICAL, INTEGER, NUMERIC, TableSchema


def _data_lines(path: Path, schema: TableSchema) -> List[str]:
    """File lines minus the leading skip lines, comment lines and blank lines"""
    with open(path, 'r') as f:
        lines = f.readlines()[schema.skip:]
    if schema.comment:
        lines = [line for line in lines if not line.startswith(schema.comment)]
    return [line for line in lines if line.strip()]


def _check_field_counts(path: Path, lines: List[str], schema: TableSchema):
    """Every data row must have as many fields as the header (or the schema, without one)"""
    records = csv.reader(lines, delimiter=schema.delimiter)
    if schema.header:
        expected = len(next(records))
    else:
        expected = len(schema.names)
    for number, record in enumerate(records, start=1):
        fields = len(record)
        if fields != expected:
            raise SchemaMismatchError(path, f"malformed data row {number}: expected {expected} fields, got {fields}")


def _coerce(path: Path, raw: pd.Series, kind: str) -> pd.Series:
    name = raw.name
    if kind == CATEGORICAL:
        if raw.isna().any():
            raise SchemaMismatchError(path, f"column '{name}' has missing values")
        return raw.astype(str)

    values = pd.to_numeric(raw, errors='coerce')
    bad = values.isna()
    if bad.any():
        row = int(bad.idxmax())
        raise SchemaMismatchError(path, f"column '{name}' expects {kind} values, got {raw.iloc[row]!r} in data row {row + 1}")

    if kind == INTEGER:
        fractional = values % 1 != 0
        if fractional.any():
            row = int(fractional.idxmax())
            raise SchemaMismatchError(path, f"column '{name}' expects integer values, got {raw.iloc[row]!r} in data row {row + 1}")
        return values.astype('int64')
    return values.astype('float64')


def load_table(path, schema: TableSchema) -> pd.DataFrame:
    """Load a delimited file and coerce every schema column to its declared kind"""
    path = Path(path)
    logging.info(f"Loading {schema.name} table from {path}")

    lines = _data_lines(path, schema)
    if not lines:
        if schema.header:
            raise SchemaMismatchError(path, "file has no header row")
        return pd.DataFrame({c.name: pd.Series(dtype=_empty_dtype(c.kind)) for c in schema.columns})
    _check_field_counts(path, lines, schema)

    try:
        raw = pd.read_csv(
            io.StringIO("".join(lines)),
            sep=schema.delimiter,
            header=0 if schema.header else None,
            index_col=False,
            dtype=str,
            keep_default_na=False,
            na_values=[],
        )
    except pd.errors.ParserError as e:
        raise SchemaMismatchError(path, f"malformed row: {e}") from e

    if schema.header:
        columns = [str(c).strip() for c in raw.columns]
        raw.columns = columns
        if schema.ordered and columns != schema.names:
            raise SchemaMismatchError(path, f"expected columns {schema.names}, got {columns}")
        missing = [name for name in schema.required if name not in columns]
        if missing:
            raise SchemaMismatchError(path, f"missing columns {missing}")
    else:
        if raw.shape[1] != len(schema.names):
            raise SchemaMismatchError(path, f"expected {len(schema.names)} fields per row, got {raw.shape[1]}")
        raw.columns = schema.names

    table = raw.copy()
    for column in schema.columns:
        if column.name in table.columns:
            table[column.name] = _coerce(path, raw[column.name], column.kind)

    logging.info(f"Loaded {len(table)} {schema.name} records")
    return table


def _empty_dtype(kind: str) -> str:
    return {NUMERIC: 'float64', INTEGER: 'int64'}.get(kind, 'object')
