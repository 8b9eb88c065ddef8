import math
import random
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'src'))

from climate_risk import climate_export  # noqa: E402

HEADER = 'Year,Max_Temperature_C,Precipitation_mm,Max_Wind_Speed_kmh'


def _sample_series():
    return {
        'time': ['1995-07-14', '1996-07-14', '1997-07-14'],
        'temperature_2m_max': [25.3, None, 31.07],
        'precipitation_sum': [0.0, 4.2, None],
        'wind_speed_10m_max': [12.0, 18.4, 9.9],
    }


def test_write_series_csv_layout(tmp_path, capsys):
    path = climate_export.write_series_csv(_sample_series(), tmp_path / 'report.csv')

    raw = path.read_bytes().decode('utf-8')
    lines = raw.split('\r\n')
    assert lines[0] == HEADER
    assert lines[1] == '1995,25.3,0,12'
    assert lines[2] == '1996,N/A,4.2,18.4'
    assert lines[3] == '1997,31.07,N/A,9.9'
    assert lines[4] == ''
    assert 'Wrote' in capsys.readouterr().out


def test_export_round_trips_non_null_values(tmp_path):
    series = _sample_series()
    path = climate_export.write_series_csv(series, tmp_path / 'nested' / 'report.csv')

    frame = climate_export.read_series_csv(path)

    assert list(frame.columns) == HEADER.split(',')
    assert frame['Year'].tolist() == [1995, 1996, 1997]
    for key, header in climate_export.EXPORT_COLUMNS.items():
        for original, restored in zip(series[key], frame[header].tolist()):
            if original is None:
                assert math.isnan(restored)
            else:
                assert restored == original


def test_export_round_trips_full_precision_floats(tmp_path):
    rng = random.Random(11)
    days = 2000
    series = {
        'time': [stamp.strftime('%Y-%m-%d') for stamp in pd.date_range('1995-01-01', periods=days, freq='D')],
        'temperature_2m_max': [rng.uniform(-40, 50) for _ in range(days)],
        'precipitation_sum': [rng.choice([None, 0.0, rng.uniform(0, 120)]) for _ in range(days)],
        'wind_speed_10m_max': [float(rng.randint(0, 90)) for _ in range(days)],
    }
    path = climate_export.write_series_csv(series, tmp_path / 'long.csv')

    frame = climate_export.read_series_csv(path)

    for key, header in climate_export.EXPORT_COLUMNS.items():
        restored = frame[header].tolist()
        mismatches = [
            (original, back)
            for original, back in zip(series[key], restored)
            if not (original is None and math.isnan(back)) and original != back
        ]
        assert mismatches == []


def test_series_without_wind_exports_na(tmp_path):
    series = _sample_series()
    del series['wind_speed_10m_max']

    frame = climate_export.series_to_frame(series)

    assert frame['Max_Wind_Speed_kmh'].isna().all()


def test_series_to_frame_rejects_empty_series():
    with pytest.raises(ValueError, match='No data to download'):
        climate_export.series_to_frame({'time': []})
    with pytest.raises(ValueError):
        climate_export.series_to_frame(None)


def test_series_to_frame_rejects_ragged_columns():
    series = _sample_series()
    series['precipitation_sum'] = [0.0]

    with pytest.raises(ValueError, match='precipitation_sum'):
        climate_export.series_to_frame(series)


def test_read_series_csv_requires_columns(tmp_path):
    path = tmp_path / 'bad.csv'
    path.write_text('Year,Max_Temperature_C\r\n1995,20.0\r\n', encoding='utf-8')

    with pytest.raises(RuntimeError, match='missing columns'):
        climate_export.read_series_csv(path)


def test_export_filename_uses_city_before_comma():
    assert climate_export.export_filename('Lisbon, Portugal', '2025-07-14') == 'Climate_Report_Lisbon_2025-07-14.csv'
    assert climate_export.export_filename('a/b', '2025-07-14') == 'Climate_Report_a_b_2025-07-14.csv'
