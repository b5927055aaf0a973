"""Vault data API integration service"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

from web3 import Web3

from revenue_attribution.errors import ResolutionError, UpstreamUnavailable
from revenue_attribution.models.attribution import PositionRecord, TimeSample
from revenue_attribution.models.networks import (
    BEEFY_CHAIN_TO_NETWORK_ID,
    NETWORK_ID_TO_BEEFY_CHAIN,
    NetworkId,
)
from revenue_attribution.services.http import get_json

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from the API as an aware UTC datetime"""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way the API expects, e.g. 2024-01-01T00:00:00.000Z"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


def split_time_range(start: datetime, end: datetime, span: timedelta) -> List[Tuple[datetime, datetime]]:
    """Break [start, end) into consecutive sections no longer than `span`"""
    sections = []
    section_start = start
    while section_start < end:
        section_end = min(section_start + span, end)
        sections.append((section_start, section_end))
        section_start = section_end
    return sections


def vault_address_from_product_key(product_key: str) -> str:
    """Product keys look like beefy:vault:<chain>:<address>"""
    return Web3.to_checksum_address(product_key.split(':')[-1])


class BeefyAPI:
    """Handles vault data API interactions: position timelines and vault TVL history"""

    def __init__(self, base_url: str, timeout: float = 30.0, retries: int = 3, tvl_span_days: int = 7):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retries = retries
        self.tvl_span = timedelta(days=tvl_span_days)

    def _make_request(self, endpoint: str, params: Dict[str, Any] = None) -> Any:
        return get_json(f'{self.base_url}/{endpoint}', params=params, timeout=self.timeout, retries=self.retries)

    def get_timeline(self, address: str) -> List[Dict]:
        """Get the raw investor timeline for an address"""
        response = self._make_request('timeline', {'address': address})
        if not isinstance(response, list):
            logger.error(f"Unexpected timeline response for {address}: {response}")
            raise UpstreamUnavailable(f"Unexpected timeline format. Expected list, got: {type(response)}")
        return response

    def _format_record(self, entry: Dict) -> PositionRecord:
        """Format a single timeline entry into our domain model"""
        try:
            chain = entry['chain']
            network_id = BEEFY_CHAIN_TO_NETWORK_ID.get(chain)
            if network_id is None:
                raise ResolutionError(f"No network id mapping for chain: {chain}")

            return PositionRecord(
                timestamp=parse_timestamp(entry['datetime']),
                vault_id=vault_address_from_product_key(entry['product_key']),
                network_id=network_id,
                position_value=entry['usd_balance']
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed timeline entry: {entry}")
            raise UpstreamUnavailable(f"Malformed timeline entry: {e}") from e

    def fetch_position_history(self, address: str) -> List[PositionRecord]:
        """
        Get every position record for an address across all vaults and networks.

        Records are not filtered by time: a vault held before a query window
        has to stay visible to it. Entries without a balance are dropped.
        """
        timeline = self.get_timeline(address)
        records = [self._format_record(entry) for entry in timeline if entry.get('usd_balance') is not None]
        logger.info(f"Fetched {len(records)} position records for {address}")
        return records

    def fetch_pool_value_history(
            self,
            vault_id: str,
            network_id: NetworkId,
            start_time: datetime,
            end_time: datetime
    ) -> List[TimeSample]:
        """
        Get a vault's TVL history between two times.

        The endpoint accepts at most one week per call, so longer ranges are
        fetched in consecutive sections and concatenated in order.
        """
        beefy_chain = NETWORK_ID_TO_BEEFY_CHAIN.get(network_id)
        if beefy_chain is None:
            raise ResolutionError(f"No vault API chain mapping for network: {network_id}")

        samples: List[TimeSample] = []
        for section_start, section_end in split_time_range(start_time, end_time, self.tvl_span):
            response = self._make_request(
                f'product/{beefy_chain}/{vault_id}/tvl',
                {
                    'from_date_utc': format_timestamp(section_start),
                    'to_date_utc': format_timestamp(section_end),
                }
            )
            if not isinstance(response, list):
                logger.error(f"Unexpected TVL response for {vault_id} on {network_id.value}: {response}")
                raise UpstreamUnavailable(f"Unexpected TVL format. Expected list, got: {type(response)}")
            try:
                samples.extend(TimeSample(timestamp=parse_timestamp(ts), value=tvl) for ts, tvl in response)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Malformed TVL history for {vault_id} on {network_id.value}: {response}")
                raise UpstreamUnavailable(f"Malformed TVL history for {vault_id}: {e}") from e

        logger.info(f"Fetched {len(samples)} TVL samples for {vault_id} on {network_id.value}")
        return samples
