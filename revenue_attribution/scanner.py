"""Windowed scanning of fee-charge logs over a height range"""
import logging
from datetime import datetime
from typing import Callable, List

from revenue_attribution.heights import HeightResolver
from revenue_attribution.models.attribution import FeeEvent, FeeLog
from revenue_attribution.models.networks import NetworkId

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 10_000

FetchFeeLogsFn = Callable[[str, NetworkId, int, int], List[FeeLog]]
ResolveTimeFn = Callable[[NetworkId, int], datetime]


class FeeEventScanner:
    """Reads a vault's fee events in bounded height windows"""

    def __init__(
            self,
            height_resolver: HeightResolver,
            fetch_fee_logs: FetchFeeLogsFn,
            resolve_time_for_height: ResolveTimeFn,
            window_size: int = DEFAULT_WINDOW_SIZE
    ):
        if window_size < 1:
            raise ValueError(f"Window size must be at least 1, got {window_size}")
        self.height_resolver = height_resolver
        self.fetch_fee_logs = fetch_fee_logs
        self.resolve_time_for_height = resolve_time_for_height
        self.window_size = window_size

    def scan_heights(self, vault_id: str, network_id: NetworkId, start_height: int, end_height: int) -> List[FeeEvent]:
        """
        Collect fee events emitted in [start_height, end_height).

        Windows are half-open and processed in ascending order, and logs within
        a window are ordered by height then log index, so the result is in
        emission order and no block is read twice.
        """
        fee_events: List[FeeEvent] = []
        current = start_height
        while current < end_height:
            to_height = min(current + self.window_size, end_height)
            fee_logs = self.fetch_fee_logs(vault_id, network_id, current, to_height - 1)
            for fee_log in sorted(fee_logs, key=lambda log: (log.height, log.log_index)):
                fee_events.append(FeeEvent(
                    amount=fee_log.amount,
                    timestamp=self.resolve_time_for_height(network_id, fee_log.height)
                ))
            if fee_logs:
                logger.info(f"Found {len(fee_logs)} fee events for {vault_id} in blocks {current}-{to_height - 1}")
            current = to_height
        return fee_events

    def scan_fee_events(
            self,
            vault_id: str,
            network_id: NetworkId,
            start_time: datetime,
            end_time: datetime
    ) -> List[FeeEvent]:
        """Collect a vault's fee events between two wall-clock times"""
        start_height = self.height_resolver.nearest_height(network_id, start_time)
        end_height = self.height_resolver.nearest_height(network_id, end_time)
        logger.info(f"Scanning {vault_id} on {network_id.value} from block {start_height} to {end_height}")
        return self.scan_heights(vault_id, network_id, start_height, end_height)
