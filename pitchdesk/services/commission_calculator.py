"""Lost commission calculator shown to prospective agents."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from pitchdesk.utils.errors import ValidationError

Number = Union[int, float, str, Decimal]

DEFAULT_COMMISSION_RATE = Decimal("0.03")
TARGET_SPLIT_PERCENT = Decimal("90")
_CENTS = Decimal("0.01")


def _to_decimal(value: Number, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", {"field": field})
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number", {"field": field})
    return result


def calculate_lost_commission(
    sales_volume: Number,
    current_split_percent: Number,
    commission_rate: Number = DEFAULT_COMMISSION_RATE,
    target_split_percent: Number = TARGET_SPLIT_PERCENT,
) -> dict[str, Decimal]:
    """
    Compare the agent's share at their current split against a 90/10 split.

    Assumes a 3% commission on sales volume. The lost amount floors at zero,
    so agents already at or above the target split lose nothing.
    """
    volume = _to_decimal(sales_volume, "sales_volume")
    split = _to_decimal(current_split_percent, "current_split_percent")
    rate = _to_decimal(commission_rate, "commission_rate")
    target = _to_decimal(target_split_percent, "target_split_percent")

    if volume < 0:
        raise ValidationError("sales_volume must be non-negative", {"field": "sales_volume"})
    if split < 0 or split > 100:
        raise ValidationError("current_split_percent must be between 0 and 100", {"field": "current_split_percent"})
    if rate < 0 or rate > 1:
        raise ValidationError("commission_rate must be between 0 and 1", {"field": "commission_rate"})
    if target < 0 or target > 100:
        raise ValidationError("target_split_percent must be between 0 and 100", {"field": "target_split_percent"})

    total_commission = volume * rate
    current_share = total_commission * split / 100
    potential_share = total_commission * target / 100
    lost = max(Decimal("0"), potential_share - current_share)

    return {
        "total_commission": total_commission.quantize(_CENTS, rounding=ROUND_HALF_UP),
        "current_share": current_share.quantize(_CENTS, rounding=ROUND_HALF_UP),
        "potential_share": potential_share.quantize(_CENTS, rounding=ROUND_HALF_UP),
        "lost_commission": lost.quantize(_CENTS, rounding=ROUND_HALF_UP),
    }
