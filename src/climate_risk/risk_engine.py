#!/usr/bin/env python3
"""Climate risk scoring for a planned activity on a given calendar day.

Two strategies share this module:

* ``threshold_count``: counts historical years whose annual summary breaches any
  caller-supplied absolute threshold and reports the share as a probability.
* ``percentile_weighted``: takes a multi-year daily series (Open-Meteo ``daily``
  payload shape), derives the chance of extreme heat (above the sample p90) and
  of meaningful rain (> 1 mm), and blends them with activity-specific weights.

Both are pure functions of their arguments. Failures come back as sentinel
dicts, never as exceptions.
"""
from __future__ import annotations

import math
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

HistoricalSeries = Mapping[str, Sequence]
YearlyRecord = Dict[str, float]
Thresholds = Dict[str, float]
RiskResult = Dict[str, object]

MIN_DAILY_SAMPLES = 10
HEAT_PERCENTILE = 0.9
RAIN_CUTOFF_MM = 1.0
TREND_BAND = 1.0

VALUE_COLUMNS = ('temperature_2m_max', 'precipitation_sum', 'wind_speed_10m_max')

# (rainWeight, heatWeight)
VIBE_WEIGHTS: Dict[str, Tuple[float, float]] = {
    'Beach Day': (0.7, 0.2),
    'Hiking Trip': (0.4, 0.6),
}
DEFAULT_VIBE_WEIGHTS: Tuple[float, float] = (0.8, 0.2)

GENERIC_NARRATIVES = {
    'high': "HIGH RISK. There's a significant chance of disruptive weather for a {activity}. A backup plan is strongly advised.",
    'moderate': 'MODERATE RISK. While you might get a good day, be prepared for a notable chance of challenging conditions for your {activity}.',
    'low': 'Historically, this looks like a great day for a {activity}. Conditions appear favorable.',
}
VIBE_NARRATIVES: Dict[str, Dict[str, str]] = {
    'Beach Day': {
        'high': "HIGH RISK. Historically, there's a strong chance of rain or storms. Maybe pack an umbrella instead of sunscreen? ⛈️",
    },
    'Hiking Trip': {
        'moderate': 'MODERATE RISK. The weather is a real gamble on this day. Be prepared for anything from sun to a sudden downpour. Pack layers! 🌦️',
    },
}

# (high, moderate) lower bounds, both exclusive
SCORE_BANDS = (65, 35)
PROBABILITY_BANDS = (60, 30)

THRESHOLD_SUMMARIES = {
    'high': 'A high probability of unfavorable weather. Plan accordingly.',
    'moderate': 'A moderate probability of unfavorable weather.',
    'low': 'A low probability of unfavorable weather.',
}
NO_DATA_MESSAGE = 'No historical data available.'
INSUFFICIENT_DATA_MESSAGE = 'Insufficient historical data for a reliable analysis.'


# -----------------------------------------------------------------------------------------------
# Shared statistics helpers


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (``Math.round`` for non-negatives)."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _as_float_series(values: Optional[Sequence]) -> pd.Series:
    if values is None:
        return pd.Series([], dtype='float64')
    return pd.to_numeric(pd.Series(list(values), dtype='object'), errors='coerce').astype('float64')


def non_null_sorted(values: Optional[Sequence]) -> List[float]:
    series = _as_float_series(values).dropna().sort_values(kind='mergesort')
    return [float(v) for v in series]


def nearest_rank(sample: Sequence[float], fraction: float) -> Optional[float]:
    """Value at ``floor(fraction * n)`` of an ascending sample, index clamped into range."""
    if not sample:
        return None
    index = min(int(math.floor(fraction * len(sample))), len(sample) - 1)
    return sample[max(index, 0)]


def _percent_above(values: Optional[Sequence], cutoff: float, denominator: int) -> float:
    # Missing readings compare false, so they only dilute the share.
    above = int((_as_float_series(values) > cutoff).sum())
    return above * 100 / denominator


def _is_column(values: object) -> bool:
    if isinstance(values, (str, bytes, Mapping)):
        return False
    return hasattr(values, '__len__') and hasattr(values, '__iter__')


def _time_column(series: Optional[HistoricalSeries]) -> Optional[Sequence]:
    if series is None:
        return None
    times = series.get('time')
    return times if _is_column(times) else None


def validate_series(series: Optional[HistoricalSeries]) -> List[str]:
    """List problems with a daily series; an empty list means it is usable.

    Accepts the archive's ``daily`` mapping or a DataFrame with the same columns.
    """
    if _time_column(series) is None:
        return ['series has no time column']
    problems: List[str] = []
    times = list(series['time'])
    for column in VALUE_COLUMNS:
        values = series.get(column)
        if values is None:
            continue
        if not _is_column(values):
            problems.append(f"{column} is not a sequence")
        elif len(values) != len(times):
            problems.append(f"{column} has {len(values)} values for {len(times)} dates")
    parsed = pd.to_datetime(pd.Series(times, dtype='object'), errors='coerce')
    if parsed.isna().any():
        problems.append('time column contains unparseable dates')
    elif not parsed.is_unique:
        problems.append('time column contains duplicate dates')
    elif not parsed.is_monotonic_increasing:
        problems.append('time column is not in ascending order')
    return problems


def summarize_temperatures(series: Optional[HistoricalSeries]) -> Optional[Dict[str, float]]:
    if series is None or not _is_column(series.get('temperature_2m_max')):
        return None
    temps = non_null_sorted(series.get('temperature_2m_max'))
    if not temps:
        return None
    return {
        'min': temps[0],
        'max': temps[-1],
        'mean': sum(temps) / len(temps),
        'count': len(temps),
    }


def risk_band(score: object, bands: Tuple[int, int] = SCORE_BANDS) -> str:
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        return 'unknown'
    high, moderate = bands
    if score > high:
        return 'high'
    if score > moderate:
        return 'moderate'
    return 'low'


# -----------------------------------------------------------------------------------------------
# Activity profiles


def vibe_weights(vibe: Optional[str]) -> Tuple[float, float]:
    return VIBE_WEIGHTS.get(vibe or '', DEFAULT_VIBE_WEIGHTS)


def register_vibe(
    name: str,
    rain_weight: float,
    heat_weight: float,
    high: Optional[str] = None,
    moderate: Optional[str] = None,
) -> None:
    if not name:
        raise ValueError('Activity profile needs a name')
    if rain_weight < 0 or heat_weight < 0:
        raise ValueError(f"Weights for '{name}' must be non-negative, got ({rain_weight}, {heat_weight})")
    VIBE_WEIGHTS[name] = (float(rain_weight), float(heat_weight))
    phrasing = {band: text for band, text in (('high', high), ('moderate', moderate)) if text}
    if phrasing:
        VIBE_NARRATIVES[name] = phrasing
    else:
        VIBE_NARRATIVES.pop(name, None)


def _narrative(vibe: Optional[str], band: str) -> str:
    activity = (vibe or 'day out').lower()
    template = VIBE_NARRATIVES.get(vibe or '', {}).get(band, GENERIC_NARRATIVES[band])
    return template.format(activity=activity)


def score_insights(insights: Mapping[str, float], vibe: Optional[str]) -> int:
    rain_weight, heat_weight = vibe_weights(vibe)
    raw = rain_weight * insights.get('chanceOfRain', 0) + heat_weight * insights.get('chanceOfExtremeHeat', 0)
    return round_half_up(clamp(raw, 0, 100))


# -----------------------------------------------------------------------------------------------
# Strategies


def _insufficient(summary: str = INSUFFICIENT_DATA_MESSAGE) -> RiskResult:
    return {'riskScore': 'N/A', 'summary': summary, 'insights': {}, 'historicalTemps': []}


def evaluate_percentile_weighted(series: Optional[HistoricalSeries], vibe: Optional[str]) -> RiskResult:
    times = _time_column(series)
    if times is None or len(times) < MIN_DAILY_SAMPLES:
        return _insufficient()
    problems = validate_series(series)
    if problems:
        return _insufficient(f"{INSUFFICIENT_DATA_MESSAGE} ({problems[0]})")

    day_count = len(times)
    temps = non_null_sorted(series.get('temperature_2m_max'))
    p90_temp = nearest_rank(temps, HEAT_PERCENTILE)

    # The percentile comes from the non-null sample but both chances divide by
    # every date in the window, null days included.
    insights = {
        'chanceOfExtremeHeat': (
            _percent_above(series.get('temperature_2m_max'), p90_temp, day_count) if p90_temp is not None else 0.0
        ),
        'chanceOfRain': _percent_above(series.get('precipitation_sum'), RAIN_CUTOFF_MM, day_count),
    }
    risk_score = score_insights(insights, vibe)
    return {
        'riskScore': risk_score,
        'summary': _narrative(vibe, risk_band(risk_score)),
        'insights': insights,
        'p90_temp': p90_temp,
        'historicalTemps': temps,
    }


def _breaches(value: Optional[float], limit: Optional[float], above: bool) -> bool:
    if value is None or limit is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    return value > limit if above else value < limit


def is_unfavorable_year(record: Mapping[str, float], thresholds: Mapping[str, float]) -> bool:
    checks = [
        _breaches(record.get('avg_temp'), thresholds.get('maxTemp'), above=True),
        _breaches(record.get('avg_temp'), thresholds.get('minTemp'), above=False),
        _breaches(record.get('precipitation_mm'), thresholds.get('maxPrecipitation'), above=True),
        _breaches(record.get('wind_speed_mph'), thresholds.get('maxWind'), above=True),
    ]
    return any(checks)


def _trend(first: Optional[float], last: Optional[float]) -> str:
    if _breaches(last, None if first is None else first + TREND_BAND, above=True):
        return 'Warming Trend'
    if _breaches(last, None if first is None else first - TREND_BAND, above=False):
        return 'Cooling Trend'
    return 'Stable'


def evaluate_threshold_count(
    yearly_records: Optional[Sequence[Mapping[str, float]]],
    thresholds: Mapping[str, float],
) -> Dict[str, object]:
    if not yearly_records:
        return {'error': NO_DATA_MESSAGE}
    records = list(yearly_records)
    unfavorable = sum(1 for record in records if is_unfavorable_year(record, thresholds))
    probability = round_half_up(unfavorable * 100 / len(records))
    # Caller order is taken as-is: first vs last record, no chronological sort.
    trend = _trend(records[0].get('avg_temp'), records[-1].get('avg_temp'))
    return {
        'probability': probability,
        'trend': trend,
        'summary': THRESHOLD_SUMMARIES[risk_band(probability, PROBABILITY_BANDS)],
    }


# -----------------------------------------------------------------------------------------------
# Strategy registry

STRATEGIES: Dict[str, Callable[..., Dict[str, object]]] = {
    'threshold_count': evaluate_threshold_count,
    'percentile_weighted': evaluate_percentile_weighted,
}


def evaluate(strategy: str, data, profile) -> Dict[str, object]:
    """Run one strategy.

    ``threshold_count`` takes yearly records and a thresholds dict;
    ``percentile_weighted`` takes a daily series and an activity profile name.
    """
    evaluator = STRATEGIES.get(strategy)
    if evaluator is None:
        return {'error': f"Unknown strategy '{strategy}'. Available: {', '.join(STRATEGIES)}"}
    return evaluator(data, profile)
