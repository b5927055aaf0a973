"""Block height by timestamp index service"""
import logging
from datetime import datetime

from revenue_attribution.errors import ResolutionError, UpstreamUnavailable
from revenue_attribution.heights import to_unix_seconds
from revenue_attribution.models.networks import NETWORK_ID_TO_DEFI_LLAMA_CHAIN, NetworkId
from revenue_attribution.services.http import get_json

logger = logging.getLogger(__name__)


class DefiLlamaAPI:
    """Looks up the block nearest a unix timestamp on a chain"""

    def __init__(self, base_url: str, timeout: float = 30.0, retries: int = 3):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retries = retries

    def resolve_height_for_time(self, network_id: NetworkId, timestamp: datetime) -> int:
        """
        Get the block nearest to `timestamp`.

        Raises:
            ResolutionError: If the network has no index chain mapping
            UpstreamUnavailable: If the index fails or returns no height
        """
        chain = NETWORK_ID_TO_DEFI_LLAMA_CHAIN.get(network_id)
        if chain is None:
            raise ResolutionError(f"No block index mapping for network: {network_id}")

        unix_timestamp = to_unix_seconds(timestamp)
        data = get_json(
            f'{self.base_url}/block/{chain}/{unix_timestamp}',
            timeout=self.timeout,
            retries=self.retries
        )
        try:
            return int(data['height'])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected block index response for {chain} @ {unix_timestamp}: {data}")
            raise UpstreamUnavailable(f"Block index returned no height for {chain} @ {unix_timestamp}") from e
