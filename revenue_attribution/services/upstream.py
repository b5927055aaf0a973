"""The external lookups the attribution engine depends on"""
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Protocol, Tuple

from revenue_attribution.config import Settings
from revenue_attribution.errors import ResolutionError
from revenue_attribution.models.attribution import FeeLog, PoolMetadata, PositionRecord, TimeSample
from revenue_attribution.models.networks import NetworkId, parse_network_id
from revenue_attribution.services.beefy import BeefyAPI
from revenue_attribution.services.chain import ChainClient
from revenue_attribution.services.defillama import DefiLlamaAPI

logger = logging.getLogger(__name__)


class Upstream(Protocol):
    """
    Remote lookups consumed by the engine.

    Every method raises UpstreamUnavailable when the remote side fails.
    """

    def fetch_position_history(self, address: str) -> List[PositionRecord]: ...

    def fetch_pool_value_history(
            self, vault_id: str, network_id: NetworkId, start_time: datetime, end_time: datetime
    ) -> List[TimeSample]: ...

    def resolve_height_for_time(self, network_id: NetworkId, timestamp: datetime) -> int: ...

    def resolve_time_for_height(self, network_id: NetworkId, height: int) -> datetime: ...

    def fetch_fee_logs(self, vault_id: str, network_id: NetworkId, from_height: int, to_height: int) -> List[FeeLog]: ...

    def read_pool_metadata(self, vault_id: str, network_id: NetworkId) -> PoolMetadata: ...


class UpstreamGateway:
    """
    Routes engine lookups to the vault API, the block index and per-network
    chain clients.

    Lookups whose answers never change once published (block times,
    strategy addresses, native tokens) are memoized for the lifetime of the
    gateway, so a batch over many participants sharing vaults only asks
    once. Heights by time are memoized by the engine's HeightResolver.
    """

    def __init__(self, beefy: BeefyAPI, block_index: DefiLlamaAPI, chain_clients: Mapping[NetworkId, ChainClient]):
        self.beefy = beefy
        self.block_index = block_index
        self.chain_clients = dict(chain_clients)
        self._block_times: Dict[Tuple[NetworkId, int], datetime] = {}
        self._strategies: Dict[Tuple[NetworkId, str], str] = {}
        self._metadata: Dict[Tuple[NetworkId, str], PoolMetadata] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> 'UpstreamGateway':
        """Build every client from application settings"""
        http = settings.http_settings
        chain_clients = {}
        for network_name, rpc_url in settings.RPC_URLS.items():
            network_id = parse_network_id(network_name)
            if network_id is None:
                logger.warning(f"Ignoring RPC URL for unknown network: {network_name}")
                continue
            chain_clients[network_id] = ChainClient(network_id, rpc_url, timeout=http.timeout)

        return cls(
            beefy=BeefyAPI(
                settings.BEEFY_API_URL,
                timeout=http.timeout,
                retries=http.retries,
                tvl_span_days=settings.TVL_SPAN_DAYS
            ),
            block_index=DefiLlamaAPI(settings.DEFI_LLAMA_API_URL, timeout=http.timeout, retries=http.retries),
            chain_clients=chain_clients
        )

    def _chain(self, network_id: NetworkId) -> ChainClient:
        client = self.chain_clients.get(network_id)
        if client is None:
            raise ResolutionError(f"No chain client configured for network: {network_id}")
        return client

    def _strategy_address(self, vault_id: str, network_id: NetworkId) -> str:
        key = (network_id, vault_id)
        if key not in self._strategies:
            self._strategies[key] = self._chain(network_id).get_strategy_address(vault_id)
        return self._strategies[key]

    def fetch_position_history(self, address: str) -> List[PositionRecord]:
        return self.beefy.fetch_position_history(address)

    def fetch_pool_value_history(
            self, vault_id: str, network_id: NetworkId, start_time: datetime, end_time: datetime
    ) -> List[TimeSample]:
        return self.beefy.fetch_pool_value_history(vault_id, network_id, start_time, end_time)

    def resolve_height_for_time(self, network_id: NetworkId, timestamp: datetime) -> int:
        return self.block_index.resolve_height_for_time(network_id, timestamp)

    def resolve_time_for_height(self, network_id: NetworkId, height: int) -> datetime:
        key = (network_id, height)
        if key not in self._block_times:
            self._block_times[key] = self._chain(network_id).get_block_timestamp(height)
        return self._block_times[key]

    def fetch_fee_logs(self, vault_id: str, network_id: NetworkId, from_height: int, to_height: int) -> List[FeeLog]:
        strategy = self._strategy_address(vault_id, network_id)
        return self._chain(network_id).get_fee_logs(strategy, from_height, to_height)

    def read_pool_metadata(self, vault_id: str, network_id: NetworkId) -> PoolMetadata:
        key = (network_id, vault_id)
        if key not in self._metadata:
            native = self._chain(network_id).get_native_token(self._strategy_address(vault_id, network_id))
            self._metadata[key] = PoolMetadata(native_asset_id=f'{network_id.value}:{native}')
        return self._metadata[key]
