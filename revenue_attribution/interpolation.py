"""Last-known-value lookup over irregular time series"""
from datetime import datetime

from revenue_attribution.errors import EmptySeries
from revenue_attribution.models.attribution import TimeSeries, Value


def value_at_or_before(series: TimeSeries, timestamp: datetime) -> Value:
    """
    Return the last value observed strictly before `timestamp`.

    Queries at or before the first sample get the first sample's value, and
    queries past the last sample get the last sample's value. The series must
    be sorted ascending by timestamp.

    Raises:
        EmptySeries: If the series has no samples
    """
    if not series:
        raise EmptySeries("Cannot interpolate a value from an empty series")

    last = series[0].value
    for sample in series:
        if sample.timestamp >= timestamp:
            return last
        last = sample.value
    return last
