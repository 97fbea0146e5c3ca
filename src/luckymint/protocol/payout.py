"""
luckymint/protocol/payout.py

Turns one luck draw into a token payout.

Order of operations:
    1. base      = floor(max_supply * probability / 100)
    2. combo     = streak + 1 if probability >= combo threshold else 0
       multiplier = min(combo, cap) on a high draw, else 1
    3. amount    = base * multiplier
    4. jackpot   = high enough draw claims the whole pool,
                   otherwise 1/10 of the amount is skimmed into the pool
    5. lucky     = exact lucky-number match doubles the post-jackpot amount

Nothing here touches storage; the engine applies the breakdown.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from ..config import EngineConfig
from .numeric import checked_add, checked_mul, checked_sub, ensure_u64, floor_div


@dataclass(frozen=True)
class PayoutBreakdown:
    """Every intermediate value of one payout computation."""
    probability: int
    base_amount: int
    combo: int
    multiplier: int
    is_jackpot: bool
    jackpot_claimed: int
    contribution: int
    lucky_hit: bool
    final_amount: int
    jackpot_pool_after: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def next_combo(current_combo: int, probability: int, config: EngineConfig) -> int:
    """Streak after this draw: extended on a high draw, reset otherwise."""
    if probability >= config.combo_threshold:
        return checked_add(current_combo, 1)
    return 0


def combo_multiplier(combo: int, probability: int, config: EngineConfig) -> int:
    if probability >= config.combo_threshold:
        return max(1, min(combo, config.max_combo_multiplier))
    return 1


def compute_payout(
    probability: int,
    current_combo: int,
    jackpot_pool: int,
    lucky_number: int,
    config: EngineConfig = None,
) -> PayoutBreakdown:
    """
    Compute the payout for one draw.

    Args:
        probability: Luck value drawn for this mint
        current_combo: Participant's streak before this draw
        jackpot_pool: Round's pool before this draw
        lucky_number: Round's lucky number
        config: Engine tunables (defaults used if omitted)

    Returns:
        PayoutBreakdown with the final amount and the pool after the mint

    Raises:
        ValueError: If probability is outside the configured draw range
        ArithmeticFault: If any intermediate leaves the u64 range
    """
    config = config or EngineConfig()
    if not config.min_probability <= probability <= config.max_probability:
        raise ValueError(
            f"Probability {probability} outside "
            f"{config.min_probability}..{config.max_probability}"
        )
    ensure_u64(jackpot_pool, "jackpot_pool")

    base_amount = floor_div(checked_mul(config.round_max_supply, probability), 100)

    combo = next_combo(current_combo, probability, config)
    multiplier = combo_multiplier(combo, probability, config)
    amount = checked_mul(base_amount, multiplier)

    if probability >= config.jackpot_threshold:
        is_jackpot = True
        jackpot_claimed = jackpot_pool
        contribution = 0
        amount = checked_add(amount, jackpot_pool)
        pool_after = 0
    else:
        is_jackpot = False
        jackpot_claimed = 0
        contribution = floor_div(amount, config.jackpot_contribution_divisor)
        pool_after = checked_add(jackpot_pool, contribution)
        amount = checked_sub(amount, contribution)

    lucky_hit = probability == lucky_number
    if lucky_hit:
        amount = checked_mul(amount, config.lucky_number_multiplier)

    return PayoutBreakdown(
        probability=probability,
        base_amount=base_amount,
        combo=combo,
        multiplier=multiplier,
        is_jackpot=is_jackpot,
        jackpot_claimed=jackpot_claimed,
        contribution=contribution,
        lucky_hit=lucky_hit,
        final_amount=amount,
        jackpot_pool_after=pool_after,
    )
