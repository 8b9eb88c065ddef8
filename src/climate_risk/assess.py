#!/usr/bin/env python3
"""Score a planned activity against the climate history of its location and day."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import requests

from climate_risk import archive_client, climate_export, risk_engine


def _load_json(path: str):
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Missing input file: {source}")
    return json.loads(source.read_text(encoding='utf-8'))


def _load_series(args: argparse.Namespace) -> Dict[str, List]:
    if args.series:
        payload = _load_json(args.series)
        if isinstance(payload, dict) and 'daily' in payload:
            payload = payload['daily']
        if not isinstance(payload, dict):
            raise ValueError(f"{args.series} does not hold a daily series object")
        return payload
    if args.lat is None or args.lon is None or not args.date:
        raise ValueError('Provide --series FILE or all of --lat, --lon and --date')
    return archive_client.fetch_daily_history(args.lat, args.lon, args.date)


def _load_yearly(path: str) -> List[Dict]:
    payload = _load_json(path)
    if not isinstance(payload, list) or not all(isinstance(record, dict) for record in payload):
        raise ValueError(f"{path} does not hold a list of yearly records")
    return payload


def _thresholds(args: argparse.Namespace) -> Dict[str, float]:
    values = {
        'maxTemp': args.max_temp,
        'minTemp': args.min_temp,
        'maxPrecipitation': args.max_precipitation,
        'maxWind': args.max_wind,
    }
    missing = [key for key, value in values.items() if value is None]
    if missing:
        raise ValueError(f"Threshold mode needs all four thresholds; missing: {', '.join(missing)}")
    return values


def _print_report(strategy: str, result: Dict, vibe: str, temperatures: Optional[Dict]) -> None:
    if strategy == 'threshold_count':
        print(f"Unfavorable years: {result['probability']}%  ({result['trend']})")
        print(result['summary'])
        return
    band = risk_engine.risk_band(result['riskScore'])
    print(f"Climate briefing · {vibe}")
    print(f"Vibe-adjusted risk score: {result['riskScore']} ({band})")
    print(result['summary'])
    insights = result['insights']
    if insights:
        p90 = result.get('p90_temp')
        label = f"> {p90:.1f}°C" if p90 is not None else 'no temperature readings'
        print(f"  Chance of extreme heat ({label}): {insights['chanceOfExtremeHeat']:.0f}%")
        print(f"  Chance of any rain (>{risk_engine.RAIN_CUTOFF_MM:g}mm): {insights['chanceOfRain']:.0f}%")
    if temperatures:
        print(
            f"  Temperature range: {temperatures['min']:.1f}°C to {temperatures['max']:.1f}°C, "
            f"average {temperatures['mean']:.1f}°C over {temperatures['count']} days"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Assess historical weather risk for an activity on a calendar day.')
    parser.add_argument('--strategy', choices=list(risk_engine.STRATEGIES), default='percentile_weighted')
    parser.add_argument('--vibe', default='Beach Day', help='Activity profile name')
    parser.add_argument('--series', help='JSON file with an archive payload or its daily mapping')
    parser.add_argument('--lat', type=float)
    parser.add_argument('--lon', type=float)
    parser.add_argument('--date', help='Target day (YYYY-MM-DD); only month and day are used')
    parser.add_argument('--yearly', help='JSON list of yearly records (threshold_count strategy)')
    parser.add_argument('--max-temp', type=float)
    parser.add_argument('--min-temp', type=float)
    parser.add_argument('--max-precipitation', type=float)
    parser.add_argument('--max-wind', type=float)
    parser.add_argument('--csv', nargs='?', const='', help='Write the daily series as CSV (optional path)')
    parser.add_argument('--city', default='location', help='Label used in the CSV file name')
    parser.add_argument('--json', action='store_true', help='Print the raw result as JSON')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    series = None
    try:
        if args.strategy == 'threshold_count':
            if not args.yearly:
                raise ValueError('threshold_count needs --yearly FILE')
            result = risk_engine.evaluate(args.strategy, _load_yearly(args.yearly), _thresholds(args))
        else:
            series = _load_series(args)
            result = risk_engine.evaluate(args.strategy, series, args.vibe)
        if args.csv is not None:
            if series is None:
                series = _load_series(args)
            target = args.csv or climate_export.REPORT_DIR / climate_export.export_filename(args.city, args.date or 'history')
            climate_export.write_series_csv(series, target)
    except (requests.RequestException, RuntimeError, ValueError, OSError) as exc:
        print(f"⚠️  {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    if 'error' in result:
        if not args.json:
            print(f"⚠️  {result['error']}", file=sys.stderr)
        return 2
    if result.get('riskScore') == 'N/A':
        if not args.json:
            print(f"⚠️  {result['summary']}", file=sys.stderr)
        return 2
    if not args.json:
        _print_report(args.strategy, result, args.vibe, risk_engine.summarize_temperatures(series))
    return 0


if __name__ == '__main__':
    sys.exit(main())
