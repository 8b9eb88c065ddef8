#!/usr/bin/env python3
"""Fetch the multi-decade daily history behind a risk assessment from the Open-Meteo archive."""
from __future__ import annotations

import datetime as dt
import os
from typing import Dict, List, Optional, Tuple, Union

import requests

ARCHIVE_URL = os.environ.get('CLIMATE_ARCHIVE_URL', 'https://archive-api.open-meteo.com/v1/archive')
HISTORY_YEARS = int(os.environ.get('CLIMATE_HISTORY_YEARS', 30))
REQUEST_TIMEOUT = float(os.environ.get('CLIMATE_REQUEST_TIMEOUT', 30))
DAILY_VARIABLES = ['temperature_2m_max', 'precipitation_sum', 'wind_speed_10m_max']


def _as_date(value: Union[str, dt.date]) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def _same_day_in(year: int, target: dt.date) -> dt.date:
    try:
        return target.replace(year=year)
    except ValueError:
        # Feb 29 in a non-leap year
        return dt.date(year, target.month, 28)


def archive_window(
    target_date: Union[str, dt.date],
    today: Optional[dt.date] = None,
    years: int = HISTORY_YEARS,
) -> Tuple[str, str]:
    """Start/end dates spanning the last ``years`` full years on the target's month/day."""
    if years < 1:
        raise ValueError(f"History window must cover at least one year, got {years}")
    target = _as_date(target_date)
    today = today or dt.date.today()
    start = _same_day_in(today.year - years, target)
    end = _same_day_in(today.year - 1, target)
    return start.isoformat(), end.isoformat()


def fetch_daily_history(
    lat: float,
    lon: float,
    target_date: Union[str, dt.date],
    session: Optional[requests.Session] = None,
    today: Optional[dt.date] = None,
) -> Dict[str, List]:
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ValueError(f"Coordinates out of range: {lat}, {lon}")
    start, end = archive_window(target_date, today=today)
    params = {
        'latitude': lat,
        'longitude': lon,
        'start_date': start,
        'end_date': end,
        'daily': ','.join(DAILY_VARIABLES),
        'timezone': 'auto',
    }
    http = session or requests
    response = http.get(ARCHIVE_URL, params=params, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    payload = response.json()
    daily = payload.get('daily') if isinstance(payload, dict) else None
    if not daily or 'time' not in daily:
        reason = payload.get('reason') if isinstance(payload, dict) else None
        raise RuntimeError(f"Archive response has no daily series{': ' + reason if reason else ''}")
    print(f"✔️  Fetched {len(daily['time'])} days ({start} → {end}) for {lat:.4f}, {lon:.4f}")
    return daily
