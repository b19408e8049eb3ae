"""Wish list match scoring between an agent and a brokerage offer."""

import math
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from pitchdesk.models.offer import OfferDetails
from pitchdesk.models.wish_list import TAG_TO_BENEFIT, WishListTag

T = TypeVar("T")

CAP_25K = 25_000
CAP_15K = 15_000
LOW_MONTHLY_FEE_LIMIT = 500

Predicate = Callable[[OfferDetails], bool]

TERM_PREDICATES: dict[WishListTag, Predicate] = {
    WishListTag.SPLIT_90_10: lambda offer: offer.split_percent >= 90,
    WishListTag.SPLIT_80_20: lambda offer: offer.split_percent >= 80,
    WishListTag.SPLIT_100: lambda offer: offer.split_percent == 100,
    WishListTag.CAP_UNDER_25K: lambda offer: offer.cap_amount is not None and offer.cap_amount <= CAP_25K,
    WishListTag.CAP_UNDER_15K: lambda offer: offer.cap_amount is not None and offer.cap_amount <= CAP_15K,
    WishListTag.NO_MONTHLY_FEES: lambda offer: offer.monthly_fee == 0,
    WishListTag.LOW_MONTHLY_FEES: lambda offer: offer.monthly_fee < LOW_MONTHLY_FEE_LIMIT,
}


def is_tag_satisfied(tag: str, offer: OfferDetails) -> bool:
    """Whether an offer satisfies one wish list tag. Unknown tags never do."""
    try:
        wish = WishListTag(tag)
    except ValueError:
        return False

    predicate = TERM_PREDICATES.get(wish)
    if predicate is not None:
        return predicate(offer)

    benefit = TAG_TO_BENEFIT.get(wish)
    if benefit is not None:
        return offer.has_benefit(benefit)

    return False


def calculate_match_score(wish_list: Sequence[str], offer: OfferDetails) -> int:
    """
    Percentage (0-100) of wish list tags the offer satisfies.

    An empty wish list is a vacuous 100. Halves round up.
    """
    if not wish_list:
        return 100

    satisfied = sum(1 for tag in wish_list if is_tag_satisfied(tag, offer))
    return math.floor(100 * satisfied / len(wish_list) + 0.5)


def _agent_wish_list(agent: Any) -> Sequence[str]:
    if isinstance(agent, dict):
        return agent.get("wish_list") or []
    return agent.wish_list


def rank_by_match_score(
    items: Iterable[T],
    offer: OfferDetails,
    wish_list_of: Optional[Callable[[T], Sequence[str]]] = None,
) -> list[tuple[T, int]]:
    """Pair each item with its score, highest first. Ties keep input order.

    Items are agents by default; pass `wish_list_of` for other shapes.
    """
    if wish_list_of is None:
        wish_list_of = _agent_wish_list
    scored = [(item, calculate_match_score(wish_list_of(item), offer)) for item in items]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
