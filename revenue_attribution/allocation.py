"""Proportional allocation of fee events to a participant"""
import logging
from decimal import Decimal, localcontext

from revenue_attribution.errors import DivisionByZero
from revenue_attribution.interpolation import value_at_or_before
from revenue_attribution.models.attribution import FeeEvent, Pool, Position, Value

logger = logging.getLogger(__name__)

FIXED_POINT_DECIMALS = 18


def to_fixed_point(value: Value, decimals: int = FIXED_POINT_DECIMALS) -> int:
    """
    Convert a value figure into an integer scaled by 10**decimals.

    Floats go through their shortest decimal representation so that 0.1
    becomes exactly 10**(decimals - 1). Digits beyond the scale are
    truncated toward zero.
    """
    if isinstance(value, float):
        value = repr(value)
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Value figures must be finite, got {value}")
    if amount < 0:
        raise ValueError(f"Value figures must be non-negative, got {value}")

    digits = len(amount.as_tuple().digits)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, digits + decimals + abs(amount.as_tuple().exponent) + 2)
        return int(amount.scaleb(decimals))


class FeeAllocator:
    """Splits fee events between participants in proportion to their share of the pool"""

    def __init__(self, decimals: int = FIXED_POINT_DECIMALS):
        self.decimals = decimals

    def allocate(self, position: Position, pool: Pool, fee_event: FeeEvent) -> int:
        """
        Attribute part of a fee event to a position.

        Returns floor(user_value * amount / pool_value), computed on integers
        scaled to `decimals` places.

        Raises:
            DivisionByZero: If the pool value when the fee was charged is zero,
                including a non-zero value that truncates to zero at the
                fixed-point scale
            EmptySeries: If either value history is empty
        """
        user_value = to_fixed_point(value_at_or_before(position.value_history, fee_event.timestamp), self.decimals)
        pool_value = to_fixed_point(value_at_or_before(pool.total_value_history, fee_event.timestamp), self.decimals)

        if pool_value == 0:
            raise DivisionByZero(
                f"Pool {pool.vault_id} on {pool.network_id.value} value truncates to zero at 10^-{self.decimals} "
                f"scale at fee event {fee_event.timestamp.isoformat()}"
            )
        return user_value * fee_event.amount // pool_value

    def vault_total(self, position: Position, pool: Pool) -> int:
        """Sum the contributions of every fee event in the pool"""
        total = 0
        for fee_event in pool.fee_events:
            total += self.allocate(position, pool, fee_event)
        logger.debug(f"Allocated {total} from {len(pool.fee_events)} fee events in {pool.vault_id}")
        return total
