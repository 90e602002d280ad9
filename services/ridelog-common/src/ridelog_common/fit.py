"""Decode FIT activity files into a session -> laps -> records structure."""
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from fitparse import FitFile, FitParseError

from ridelog_common.errors import FitDecodeError

logger = logging.getLogger(__name__)

SPEED_FACTORS = {
    "m/s": 1.0,
    "km/h": 3.6,
    "mph": 3600 / 1609.344,
}

LENGTH_FACTORS = {
    "m": 1.0,
    "km": 1 / 1000,
    "mi": 1 / 1609.344,
}

TEMPERATURE_CONVERTERS = {
    "celsius": lambda value: value,
    "kelvin": lambda value: value + 273.15,
    "fahrenheit": lambda value: value * 9 / 5 + 32,
}

# Devices write the high resolution variant only when the plain field would overflow
ENHANCED_FIELDS = {
    "speed": "enhanced_speed",
    "altitude": "enhanced_altitude",
    "avg_speed": "enhanced_avg_speed",
    "max_speed": "enhanced_max_speed",
    "min_altitude": "enhanced_min_altitude",
    "max_altitude": "enhanced_max_altitude",
}


@dataclass(frozen=True)
class DecoderOptions:
    speed_unit: str = "km/h"
    length_unit: str = "km"
    temperature_unit: str = "kelvin"
    force: bool = True
    elapsed_record_field: bool = True

    def __post_init__(self):
        if self.speed_unit not in SPEED_FACTORS:
            raise ValueError(f"Unsupported speed unit: {self.speed_unit}")
        if self.length_unit not in LENGTH_FACTORS:
            raise ValueError(f"Unsupported length unit: {self.length_unit}")
        if self.temperature_unit not in TEMPERATURE_CONVERTERS:
            raise ValueError(f"Unsupported temperature unit: {self.temperature_unit}")


def convert_value(value: Any, units: Optional[str], options: DecoderOptions) -> Any:
    """Convert a numeric field value from FIT base units to the configured units."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return value
    if units == "m/s":
        return value * SPEED_FACTORS[options.speed_unit]
    if units == "m":
        return value * LENGTH_FACTORS[options.length_unit]
    if units == "C":
        return TEMPERATURE_CONVERTERS[options.temperature_unit](value)
    return value


def message_values(message, options: DecoderOptions) -> Dict[str, Any]:
    values = {}
    for field in message.fields:
        if field.value is None or field.name.startswith("unknown_"):
            continue
        value = field.value
        if isinstance(value, datetime) and value.tzinfo is None and field.name != "local_timestamp":
            # FIT timestamps are UTC, except local_timestamp
            value = value.replace(tzinfo=timezone.utc)
        values[field.name] = convert_value(value, field.units, options)
    for plain, enhanced in ENHANCED_FIELDS.items():
        if values.get(plain) is None and enhanced in values:
            values[plain] = values[enhanced]
    return values


def assign_records_to_laps(laps: List[dict], records: List[dict]) -> None:
    """Split records across laps by each lap's start time.

    A record belongs to the last lap that started at or before it. Records
    logged before the first lap started go to the first lap and the final
    lap takes whatever remains.
    """
    index = 0
    for position, lap in enumerate(laps):
        next_start = laps[position + 1].get("start_time") if position + 1 < len(laps) else None
        lap_records = []
        while index < len(records):
            timestamp = records[index].get("timestamp")
            if next_start is not None and timestamp is not None and timestamp >= next_start:
                break
            lap_records.append(records[index])
            index += 1
        lap["records"] = lap_records


def assign_laps_to_sessions(sessions: List[dict], laps: List[dict]) -> None:
    lap_index = 0
    for position, session in enumerate(sessions):
        num_laps = session.get("num_laps")
        if num_laps is None or position == len(sessions) - 1:
            end = len(laps)
        else:
            end = lap_index + num_laps
        session["laps"] = laps[lap_index:end]
        lap_index = end


def add_elapsed_time(records: List[dict]) -> None:
    start: Optional[datetime] = None
    for record in records:
        timestamp = record.get("timestamp")
        if not isinstance(timestamp, datetime):
            continue
        if start is None:
            start = timestamp
        record["elapsed_time"] = (timestamp - start).total_seconds()


def decode_fit(content: bytes, options: Optional[DecoderOptions] = None) -> dict:
    """Decode the raw bytes of a FIT activity file.

    Args:
        content: Full contents of the FIT file
        options: Output units and strictness. Defaults to km/h, km and kelvin
            with CRC checking disabled.

    Returns:
        A dict of the form ``{"file_id": {...}, "activity": {"timestamp": ...,
        "sessions": [{..., "laps": [{..., "records": [...]}]}]}}``

    Raises:
        FitDecodeError: If the file cannot be parsed or has no session.
    """
    options = options or DecoderOptions()
    try:
        fit_file = FitFile(content, check_crc=not options.force)
        messages = list(fit_file.get_messages())
    except (FitParseError, ValueError) as e:
        raise FitDecodeError(f"Invalid FIT file: {str(e)}") from e

    file_id: Dict[str, Any] = {}
    activity: Dict[str, Any] = {}
    sessions: List[dict] = []
    laps: List[dict] = []
    records: List[dict] = []

    for message in messages:
        if message.name == "record":
            records.append(message_values(message, options))
        elif message.name == "lap":
            laps.append(message_values(message, options))
        elif message.name == "session":
            sessions.append(message_values(message, options))
        elif message.name == "activity":
            activity.update(message_values(message, options))
        elif message.name == "file_id":
            file_id.update(message_values(message, options))

    logger.debug(
        f"Decoded {len(messages)} messages: {len(sessions)} sessions, "
        f"{len(laps)} laps, {len(records)} records"
    )
    if not sessions:
        raise FitDecodeError("No session message found in FIT file")

    if options.elapsed_record_field:
        add_elapsed_time(records)
    assign_records_to_laps(laps, records)
    assign_laps_to_sessions(sessions, laps)

    if "timestamp" not in activity and "time_created" in file_id:
        activity["timestamp"] = file_id["time_created"]
    activity["sessions"] = sessions
    return {"file_id": file_id, "activity": activity}
