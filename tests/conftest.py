from datetime import datetime, timezone
from typing import Dict, List, Tuple

import pytest

from revenue_attribution.models.attribution import FeeLog, PoolMetadata, PositionRecord, TimeSample
from revenue_attribution.models.networks import NetworkId


def ts(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, timezone.utc)


def series(*points: Tuple[int, object]) -> Tuple[TimeSample, ...]:
    return tuple(TimeSample(timestamp=ts(t), value=v) for t, v in points)


class FakeUpstream:
    """
    Deterministic upstream where a block's height equals its unix time.

    Fee logs are stored per vault and filtered by the requested inclusive
    height range, like eth_getLogs.
    """

    def __init__(self):
        self.records: List[PositionRecord] = []
        self.tvl: Dict[Tuple[NetworkId, str], List[TimeSample]] = {}
        self.fee_logs: Dict[Tuple[NetworkId, str], List[FeeLog]] = {}
        self.native: Dict[Tuple[NetworkId, str], str] = {}
        self.calls: List[tuple] = []

    def add_position(self, vault_id, network_id, t, value):
        self.records.append(PositionRecord(timestamp=ts(t), vault_id=vault_id, network_id=network_id, position_value=value))

    def add_pool(self, vault_id, network_id, tvl_points, fee_logs=(), native='0xNative'):
        self.tvl[(network_id, vault_id)] = list(series(*tvl_points))
        self.fee_logs[(network_id, vault_id)] = [
            FeeLog(height=height, log_index=index, amount=amount)
            for index, (height, amount) in enumerate(fee_logs)
        ]
        self.native[(network_id, vault_id)] = f'{network_id.value}:{native}'

    def fetch_position_history(self, address):
        self.calls.append(('fetch_position_history', address))
        return list(self.records)

    def fetch_pool_value_history(self, vault_id, network_id, start_time, end_time):
        self.calls.append(('fetch_pool_value_history', vault_id, network_id))
        return list(self.tvl[(network_id, vault_id)])

    def resolve_height_for_time(self, network_id, timestamp):
        self.calls.append(('resolve_height_for_time', network_id, timestamp))
        return int(timestamp.timestamp())

    def resolve_time_for_height(self, network_id, height):
        self.calls.append(('resolve_time_for_height', network_id, height))
        return ts(height)

    def fetch_fee_logs(self, vault_id, network_id, from_height, to_height):
        self.calls.append(('fetch_fee_logs', vault_id, from_height, to_height))
        return [log for log in self.fee_logs[(network_id, vault_id)] if from_height <= log.height <= to_height]

    def read_pool_metadata(self, vault_id, network_id):
        self.calls.append(('read_pool_metadata', vault_id, network_id))
        return PoolMetadata(native_asset_id=self.native[(network_id, vault_id)])


@pytest.fixture
def upstream():
    return FakeUpstream()
