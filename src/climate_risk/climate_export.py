#!/usr/bin/env python3
"""CSV export of a daily history series (one row per sample, ``N/A`` for gaps)."""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

import pandas as pd

REPORT_DIR = Path(os.environ.get('CLIMATE_REPORT_DIR', Path.cwd() / 'reports'))

EXPORT_COLUMNS = {
    'temperature_2m_max': 'Max_Temperature_C',
    'precipitation_sum': 'Precipitation_mm',
    'wind_speed_10m_max': 'Max_Wind_Speed_kmh',
}
MISSING_MARKER = 'N/A'


def _number_text(value: float) -> str:
    # Whole numbers are written without a trailing .0, as the browser export does.
    text = repr(float(value))
    return text[:-2] if text.endswith('.0') else text


def export_filename(city: str, date: str) -> str:
    safe_city = re.sub(r'[\\/:*?"<>|]+', '_', city.split(',')[0].strip()) or 'location'
    return f"Climate_Report_{safe_city}_{date}.csv"


def _column(series: Mapping[str, Sequence], key: str, length: int) -> pd.Series:
    values = series.get(key)
    if values is None:
        values = [None] * length
    if len(values) != length:
        raise ValueError(f"{key} has {len(values)} values for {length} dates")
    return pd.to_numeric(pd.Series(list(values), dtype='object'), errors='coerce').astype('float64')


def series_to_frame(series: Optional[Mapping[str, Sequence]]) -> pd.DataFrame:
    if series is None or series.get('time') is None or len(series['time']) == 0:
        raise ValueError('No data to download.')
    times = pd.to_datetime(pd.Series(list(series['time']), dtype='object'), errors='coerce')
    if times.isna().any():
        raise ValueError('time column contains unparseable dates')
    frame = pd.DataFrame({'Year': times.dt.year.astype('int64')})
    for key, header in EXPORT_COLUMNS.items():
        frame[header] = _column(series, key, len(times))
    return frame


def write_series_csv(series: Mapping[str, Sequence], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = series_to_frame(series)
    frame.to_csv(
        path,
        index=False,
        na_rep=MISSING_MARKER,
        float_format=_number_text,
        lineterminator='\r\n',
        encoding='utf-8',
    )
    try:
        display_path = path.relative_to(Path.cwd())
    except ValueError:
        display_path = path
    print(f"✔️  Wrote {display_path}")
    return path


def read_series_csv(path: Union[str, Path]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing export file: {path}")
    frame = pd.read_csv(path, na_values=[MISSING_MARKER], keep_default_na=False, float_precision='round_trip')
    expected = ['Year', *EXPORT_COLUMNS.values()]
    missing = set(expected) - set(frame.columns)
    if missing:
        raise RuntimeError(f"Export CSV missing columns: {missing}")
    for header in EXPORT_COLUMNS.values():
        frame[header] = frame[header].astype('float64')
    return frame[expected]
