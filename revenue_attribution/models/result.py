"""Per-network, per-asset accumulation of attributed revenue"""
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple


def _network_key(network_id: object) -> str:
    if isinstance(network_id, Enum):
        return str(network_id.value)
    return str(network_id)


class AttributionResult:
    """
    Two-level ordered mapping of network id -> asset id -> amount.

    Amounts are exact base-unit integers. Entries are created on first
    insertion and summed on every later one.
    """

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, int]]] = None):
        self._entries: Dict[str, Dict[str, int]] = {}
        if entries:
            for network_id, assets in entries.items():
                for asset_id, amount in assets.items():
                    self.add(network_id, asset_id, amount)

    def add(self, network_id: str, asset_id: str, amount: int) -> None:
        """Insert the amount, or add it to the existing entry"""
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError(f"Revenue amounts must be integers, got {type(amount).__name__}")
        assets = self._entries.setdefault(_network_key(network_id), {})
        assets[asset_id] = assets.get(asset_id, 0) + amount

    def merge(self, other: 'AttributionResult') -> 'AttributionResult':
        """Fold another result into this one and return self"""
        for network_id, asset_id, amount in other.items():
            self.add(network_id, asset_id, amount)
        return self

    def items(self) -> Iterator[Tuple[str, str, int]]:
        for network_id, assets in self._entries.items():
            for asset_id, amount in assets.items():
                yield network_id, asset_id, amount

    def networks(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def get(self, network_id: str, asset_id: str, default: int = 0) -> int:
        return self._entries.get(_network_key(network_id), {}).get(asset_id, default)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        """Render amounts as decimal strings so they survive JSON encoding"""
        return {
            network_id: {asset_id: str(amount) for asset_id, amount in assets.items()}
            for network_id, assets in self._entries.items()
        }

    def __getitem__(self, network_id: str) -> Dict[str, int]:
        return dict(self._entries[_network_key(network_id)])

    def __contains__(self, network_id: object) -> bool:
        return _network_key(network_id) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributionResult):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"AttributionResult({self._entries!r})"
