"""Network identifiers and their upstream naming"""
from enum import Enum
from typing import Dict, Optional


class NetworkId(str, Enum):
    """Networks a vault can be deployed on"""
    ETHEREUM = 'ethereum-mainnet'
    ARBITRUM = 'arbitrum-one'
    OPTIMISM = 'op-mainnet'
    CELO = 'celo-mainnet'
    POLYGON = 'polygon-pos-mainnet'
    BASE = 'base-mainnet'


# Chain names used by the vault data API
BEEFY_CHAIN_TO_NETWORK_ID: Dict[str, NetworkId] = {
    'ethereum': NetworkId.ETHEREUM,
    'arbitrum': NetworkId.ARBITRUM,
    'optimism': NetworkId.OPTIMISM,
    'polygon': NetworkId.POLYGON,
    'base': NetworkId.BASE,
}

NETWORK_ID_TO_BEEFY_CHAIN: Dict[NetworkId, str] = {
    network_id: chain for chain, network_id in BEEFY_CHAIN_TO_NETWORK_ID.items()
}

# Chain names used by the block-by-timestamp index
NETWORK_ID_TO_DEFI_LLAMA_CHAIN: Dict[NetworkId, str] = {
    NetworkId.ETHEREUM: 'Ethereum',
    NetworkId.ARBITRUM: 'Arbitrum',
    NetworkId.OPTIMISM: 'Optimism',
    NetworkId.CELO: 'Celo',
    NetworkId.POLYGON: 'Polygon',
    NetworkId.BASE: 'base',
}


def parse_network_id(value: str) -> Optional[NetworkId]:
    """Return the NetworkId for a string value, or None if it is unknown"""
    try:
        return NetworkId(value)
    except ValueError:
        return None
