"""Report models written by the command line"""
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from revenue_attribution.models.attribution import VaultContribution
from revenue_attribution.models.result import AttributionResult


class VaultRevenue(BaseModel):
    """Revenue attributed from one vault, amount in native base units"""
    vault_id: str
    network_id: str
    native_asset_id: str
    amount: str
    fee_event_count: int

    @classmethod
    def from_contribution(cls, contribution: VaultContribution) -> 'VaultRevenue':
        return cls(
            vault_id=contribution.vault_id,
            network_id=contribution.network_id.value,
            native_asset_id=contribution.native_asset_id,
            amount=str(contribution.amount),
            fee_event_count=contribution.fee_event_count
        )


class AttributionReport(BaseModel):
    """
    Revenue attributed to one participant over a time window.

    Attributes:
        address: Participant address as given on input
        revenue: network id -> native asset id -> amount, as decimal strings
        vaults: Per-vault breakdown that sums to `revenue`
        error: Set when the computation failed and the address was skipped
    """
    address: str
    start_time: datetime
    end_time: datetime
    revenue: Dict[str, Dict[str, str]] = {}
    vaults: List[VaultRevenue] = []
    error: Optional[str] = None

    @classmethod
    def from_contributions(
            cls,
            address: str,
            start_time: datetime,
            end_time: datetime,
            contributions: Sequence[VaultContribution],
            result: AttributionResult
    ) -> 'AttributionReport':
        return cls(
            address=address,
            start_time=start_time,
            end_time=end_time,
            revenue=result.to_dict(),
            vaults=[VaultRevenue.from_contribution(c) for c in contributions]
        )


class BatchReport(BaseModel):
    """Reports for every input address plus their combined total"""
    start_time: datetime
    end_time: datetime
    reports: List[AttributionReport] = []
    total_revenue: Dict[str, Dict[str, str]] = {}
    failed_addresses: List[str] = []
