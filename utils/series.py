# utils/series.py

from typing import Any, Mapping, Optional


def latest_value(
    response: Optional[Mapping[str, Any]],
    payload_key: Optional[str] = None,
    field: Optional[str] = None,
) -> Optional[float]:
    """
    Returns the value for the most recent date in an Alpha Vantage series.

    `payload_key` selects the series inside a full response
    (e.g. "Technical Analysis: EMA"); without it `response` is the series itself.
    `field` names the value to read (e.g. "SlowK"); without it the first field
    of the latest record is read.

    Date keys are ISO formatted, so the lexicographic max is the latest date.
    Returns None for a missing payload, an empty series, a missing field or a
    non-numeric value.
    """

    if not response:
        return None

    series = response.get(payload_key) if payload_key is not None else response
    if not isinstance(series, Mapping) or not series:
        return None

    record = series.get(max(series))
    if not isinstance(record, Mapping) or not record:
        return None

    if field is None:
        raw = next(iter(record.values()))
    elif field in record:
        raw = record[field]
    else:
        return None

    try:
        return float(raw)
    except (TypeError, ValueError):
        return None
