"""Fee revenue attribution across a participant's vaults and networks"""
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Sequence, Tuple

from revenue_attribution.allocation import FIXED_POINT_DECIMALS, FeeAllocator
from revenue_attribution.errors import AttributionError
from revenue_attribution.heights import HeightResolver
from revenue_attribution.models.attribution import Pool, Position, PositionRecord, TimeSample, VaultContribution
from revenue_attribution.models.networks import NetworkId
from revenue_attribution.models.result import AttributionResult
from revenue_attribution.scanner import DEFAULT_WINDOW_SIZE, FeeEventScanner
from revenue_attribution.services.upstream import Upstream

logger = logging.getLogger(__name__)

VaultKey = Tuple[NetworkId, str]


def fold_contributions(contributions: Sequence[VaultContribution]) -> AttributionResult:
    """Sum per-vault contributions into a per-network, per-asset result"""
    result = AttributionResult()
    for contribution in contributions:
        result.add(contribution.network_id, contribution.native_asset_id, contribution.amount)
    return result


def build_positions(participant_address: str, records: Sequence[PositionRecord]) -> List[Position]:
    """
    Group raw position records into one Position per vault.

    Vaults keep the order they were first seen in. Each value history is
    sorted oldest to newest; the sort is stable so records sharing a
    timestamp keep their upstream order.
    """
    grouped: Dict[VaultKey, List[PositionRecord]] = {}
    for record in records:
        grouped.setdefault((record.network_id, record.vault_id), []).append(record)

    positions = []
    for (network_id, vault_id), vault_records in grouped.items():
        history = sorted(vault_records, key=lambda record: record.timestamp)
        positions.append(Position(
            participant_address=participant_address,
            vault_id=vault_id,
            network_id=network_id,
            value_history=tuple(
                TimeSample(timestamp=record.timestamp, value=record.position_value) for record in history
            )
        ))
    return positions


class AttributionEngine:
    """Computes the fee revenue attributable to one participant over a time window"""

    def __init__(
            self,
            upstream: Upstream,
            window_size: int = DEFAULT_WINDOW_SIZE,
            decimals: int = FIXED_POINT_DECIMALS
    ):
        """Initialize the engine with its external lookups"""
        self.upstream = upstream
        self.height_resolver = HeightResolver(upstream.resolve_height_for_time)
        self.scanner = FeeEventScanner(
            self.height_resolver,
            upstream.fetch_fee_logs,
            upstream.resolve_time_for_height,
            window_size=window_size
        )
        self.allocator = FeeAllocator(decimals)

    def build_pool(self, vault_id: str, network_id: NetworkId, start_time: datetime, end_time: datetime) -> Pool:
        """Fetch everything known about a vault over the window"""
        total_value_history = self.upstream.fetch_pool_value_history(vault_id, network_id, start_time, end_time)
        fee_events = self.scanner.scan_fee_events(vault_id, network_id, start_time, end_time)
        metadata = self.upstream.read_pool_metadata(vault_id, network_id)
        return Pool(
            vault_id=vault_id,
            network_id=network_id,
            native_asset_id=metadata.native_asset_id,
            total_value_history=tuple(total_value_history),
            fee_events=tuple(fee_events)
        )

    def attribute_vaults(
            self,
            participant_address: str,
            start_time: datetime,
            end_time: datetime,
            positions: Sequence[Position],
            pools: Mapping[VaultKey, Pool]
    ) -> List[VaultContribution]:
        """Compute the contribution from every vault the participant holds a position in"""
        contributions = []
        for position in positions:
            pool = pools[(position.network_id, position.vault_id)]
            amount = self.allocator.vault_total(position, pool)
            logger.info(
                f"{participant_address}: {amount} {pool.native_asset_id} from {pool.vault_id} "
                f"({len(pool.fee_events)} fee events between {start_time.isoformat()} and {end_time.isoformat()})"
            )
            contributions.append(VaultContribution(
                vault_id=pool.vault_id,
                network_id=pool.network_id,
                native_asset_id=pool.native_asset_id,
                amount=amount,
                fee_event_count=len(pool.fee_events)
            ))
        return contributions

    def attribute(
            self,
            participant_address: str,
            start_time: datetime,
            end_time: datetime,
            positions: Sequence[Position],
            pools: Mapping[VaultKey, Pool]
    ) -> AttributionResult:
        """Sum per-vault contributions by network and native asset"""
        return fold_contributions(self.attribute_vaults(participant_address, start_time, end_time, positions, pools))

    def compute_vault_contributions(
            self,
            participant_address: str,
            start_time: datetime,
            end_time: datetime
    ) -> List[VaultContribution]:
        """
        Fetch a participant's positions and the matching pools, then attribute.

        Position history is not filtered by the window, so a
        participant who held a balance before `start_time` and did nothing
        inside the window still earns a share of its fees.

        Raises:
            AttributionError: Any failure is fatal to the computation
        """
        if end_time < start_time:
            raise ValueError(f"End time {end_time.isoformat()} is before start time {start_time.isoformat()}")

        try:
            records = self.upstream.fetch_position_history(participant_address)
            positions = build_positions(participant_address, records)
            logger.info(f"{participant_address} has positions in {len(positions)} vaults")

            pools = {
                (position.network_id, position.vault_id): self.build_pool(
                    position.vault_id, position.network_id, start_time, end_time
                )
                for position in positions
            }
            return self.attribute_vaults(participant_address, start_time, end_time, positions, pools)

        except AttributionError as e:
            logger.error(f"Error attributing revenue for {participant_address}: {e}")
            raise

    def compute_attribution(self, participant_address: str, start_time: datetime, end_time: datetime) -> AttributionResult:
        """Revenue attributable to a participant, keyed by network and native asset"""
        return fold_contributions(self.compute_vault_contributions(participant_address, start_time, end_time))
