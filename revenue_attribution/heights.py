"""Wall-clock timestamp to ledger height resolution"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Tuple

from revenue_attribution.errors import ResolutionError
from revenue_attribution.models.networks import NetworkId

logger = logging.getLogger(__name__)

ResolveHeightFn = Callable[[NetworkId, datetime], int]


def to_unix_seconds(timestamp: datetime) -> int:
    """Whole unix seconds for a datetime; naive datetimes are taken as UTC"""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return int(timestamp.timestamp())


class HeightResolver:
    """Maps timestamps to the nearest height on a network, memoizing results"""

    def __init__(self, resolve_height_for_time: ResolveHeightFn):
        self._resolve = resolve_height_for_time
        self._cache: Dict[Tuple[NetworkId, int], int] = {}

    def nearest_height(self, network_id: NetworkId, timestamp: datetime) -> int:
        """
        Resolve the ledger height nearest to `timestamp` on `network_id`.

        Raises:
            ResolutionError: If the network is unknown
            UpstreamUnavailable: If the height index fails
        """
        if not isinstance(network_id, NetworkId):
            raise ResolutionError(f"No height index mapping for network: {network_id}")

        key = (network_id, to_unix_seconds(timestamp))
        if key not in self._cache:
            height = self._resolve(network_id, timestamp)
            logger.debug(f"Resolved {network_id.value} @ {key[1]} to height {height}")
            self._cache[key] = height
        return self._cache[key]
