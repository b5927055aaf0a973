"""Domain models for vault positions, pools and fee events"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Sequence, Tuple, Union

from revenue_attribution.models.networks import NetworkId

Value = Union[int, float, Decimal, str]


@dataclass(frozen=True)
class TimeSample:
    """A balance or total-value figure observed at a point in time"""
    timestamp: datetime
    value: Value


# Sorted ascending by timestamp; later entries win on equal timestamps
TimeSeries = Sequence[TimeSample]


@dataclass(frozen=True)
class FeeEvent:
    """One on-chain fee charge, in the vault's native asset base units"""
    amount: int
    timestamp: datetime


@dataclass(frozen=True)
class FeeLog:
    """Raw fee-charge entry as read from the chain, before timestamp resolution"""
    height: int
    log_index: int
    amount: int


@dataclass(frozen=True)
class PositionRecord:
    """A participant's position value after one vault transaction"""
    timestamp: datetime
    vault_id: str
    network_id: NetworkId
    position_value: Value


@dataclass(frozen=True)
class PoolMetadata:
    """Static vault details read from the chain"""
    native_asset_id: str


@dataclass(frozen=True)
class Position:
    """One participant's relationship to one vault"""
    participant_address: str
    vault_id: str
    network_id: NetworkId
    value_history: Tuple[TimeSample, ...]


@dataclass(frozen=True)
class Pool:
    """Aggregate state of one vault over the query window"""
    vault_id: str
    network_id: NetworkId
    native_asset_id: str
    total_value_history: Tuple[TimeSample, ...]
    fee_events: Tuple[FeeEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class VaultContribution:
    """Revenue attributed to a participant from a single vault"""
    vault_id: str
    network_id: NetworkId
    native_asset_id: str
    amount: int
    fee_event_count: int
