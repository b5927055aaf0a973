"""On-chain reads over JSON-RPC: block timestamps, fee logs and strategy metadata"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from revenue_attribution.errors import UpstreamUnavailable
from revenue_attribution.models.attribution import FeeLog
from revenue_attribution.models.networks import NetworkId

logger = logging.getLogger(__name__)

VAULT_ABI = [
    {
        'name': 'strategy',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [],
        'outputs': [{'name': '', 'type': 'address'}],
    },
]

STRATEGY_ABI = [
    {
        'name': 'native',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [],
        'outputs': [{'name': '', 'type': 'address'}],
    },
    {
        'name': 'ChargedFees',
        'type': 'event',
        'anonymous': False,
        'inputs': [
            {'name': 'callFees', 'type': 'uint256', 'indexed': False},
            {'name': 'beefyFees', 'type': 'uint256', 'indexed': False},
            {'name': 'strategistFees', 'type': 'uint256', 'indexed': False},
        ],
    },
]


class ChainClient:
    """Read-only access to one network through a JSON-RPC endpoint"""

    def __init__(self, network_id: NetworkId, rpc_url: str, timeout: float = 30.0, w3: Web3 = None):
        self.network_id = network_id
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))

    def _call(self, description: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (Web3Exception, requests.RequestException, ValueError) as e:
            logger.error(f"RPC call failed on {self.network_id.value} ({description}): {e}")
            raise UpstreamUnavailable(f"RPC call failed on {self.network_id.value} ({description}): {e}") from e

    def get_block_timestamp(self, height: int) -> datetime:
        """Get the wall-clock time of a block"""
        block = self._call(f'get_block {height}', lambda: self.w3.eth.get_block(height))
        return datetime.fromtimestamp(int(block['timestamp']), timezone.utc)

    def get_strategy_address(self, vault_address: str) -> str:
        """Get the strategy contract a vault currently delegates to"""
        vault = self.w3.eth.contract(address=Web3.to_checksum_address(vault_address), abi=VAULT_ABI)
        return self._call(f'strategy of {vault_address}', lambda: vault.functions.strategy().call())

    def get_native_token(self, strategy_address: str) -> str:
        """Get the native token the strategy charges fees in"""
        strategy = self.w3.eth.contract(address=Web3.to_checksum_address(strategy_address), abi=STRATEGY_ABI)
        return self._call(f'native of {strategy_address}', lambda: strategy.functions.native().call())

    def get_fee_logs(self, strategy_address: str, from_block: int, to_block: int) -> List[FeeLog]:
        """Get ChargedFees logs emitted in [from_block, to_block], both inclusive"""
        strategy = self.w3.eth.contract(address=Web3.to_checksum_address(strategy_address), abi=STRATEGY_ABI)
        logs = self._call(
            f'ChargedFees {from_block}-{to_block}',
            lambda: strategy.events.ChargedFees.get_logs(from_block=from_block, to_block=to_block)
        )
        return [
            FeeLog(
                height=int(log['blockNumber']),
                log_index=int(log['logIndex']),
                amount=int(log['args'].get('beefyFees') or 0)
            )
            for log in logs
        ]
