import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

@pytest.fixture
def fit_message():
    """Factory for mock fitparse DataMessages."""
    def make_message(name: str, values: dict, units: dict = None):
        units = units or {}
        message = Mock()
        message.name = name
        fields = []
        for field_name, value in values.items():
            field = Mock()
            field.name = field_name
            field.value = value
            field.units = units.get(field_name)
            fields.append(field)
        message.fields = fields
        return message
    return make_message

@pytest.fixture
def start_time():
    return datetime(2024, 5, 4, 8, 30, tzinfo=timezone.utc)

@pytest.fixture
def decoded_activity(start_time):
    """One session with two laps of three and two records."""
    def record(seconds: int) -> dict:
        return {
            "timestamp": start_time + timedelta(seconds=seconds),
            "distance": seconds * 0.008,
            "power": 200 + seconds,
            "altitude": 0.1,
            "speed": 28.8,
            "cadence": 90,
        }
    return {
        "activity": {
            "timestamp": start_time + timedelta(seconds=5),
            "sessions": [{
                "start_time": start_time,
                "total_elapsed_time": 5.0,
                "avg_speed": 28.8,
                "avg_cadence": 90,
                "avg_power": 202,
                "total_distance": 0.04,
                "total_ascent": 3,
                "total_descent": 2,
                "num_laps": 2,
                "laps": [
                    {"start_time": start_time, "records": [record(0), record(1), record(2)]},
                    {"start_time": start_time + timedelta(seconds=3), "records": [record(3), record(4)]},
                ],
            }],
        }
    }
