"""Wish list and benefit vocabularies shared by agents and brokerages."""

from enum import Enum


class WishListCategory(str, Enum):
    """Wish list grouping shown on the agent profile form."""
    COMPENSATION = "compensation"
    FEES = "fees"
    BENEFITS = "benefits"
    SUPPORT = "support"
    TECH = "tech"
    WORKSPACE = "workspace"
    CULTURE = "culture"


class WishListTag(str, Enum):
    """Valid wish list tags an agent can pick."""
    # Compensation
    SPLIT_90_10 = "90_10_SPLIT"
    SPLIT_80_20 = "80_20_SPLIT"
    SPLIT_100 = "100_SPLIT"
    CAP_UNDER_25K = "CAP_UNDER_25K"
    CAP_UNDER_15K = "CAP_UNDER_15K"
    # Fees
    NO_MONTHLY_FEES = "NO_MONTHLY_FEES"
    LOW_MONTHLY_FEES = "LOW_MONTHLY_FEES"
    # Benefits
    HEALTH_INSURANCE = "HEALTH_INSURANCE"
    RETIREMENT_401K = "RETIREMENT_401K"
    # Support
    TRAINING_MENTORSHIP = "TRAINING_MENTORSHIP"
    LEADS_PROVIDED = "LEADS_PROVIDED"
    TRANSACTION_COORDINATOR = "TRANSACTION_COORDINATOR"
    MARKETING_SUPPORT = "MARKETING_SUPPORT"
    # Tech
    FOLLOW_UP_BOSS_CRM = "FOLLOW_UP_BOSS_CRM"
    KVCORE_CRM = "KVCORE_CRM"
    TECH_STACK_INCLUDED = "TECH_STACK_INCLUDED"
    # Workspace
    OFFICE_SPACE = "OFFICE_SPACE"
    REMOTE_FRIENDLY = "REMOTE_FRIENDLY"
    # Culture
    TEAM_ENVIRONMENT = "TEAM_ENVIRONMENT"
    INDEPENDENT_WORK = "INDEPENDENT_WORK"


class Benefit(str, Enum):
    """Benefit ids a brokerage can include in its standard offer."""
    HEALTH_INSURANCE = "health_insurance"
    RETIREMENT_401K = "401k"
    TRAINING = "training"
    LEADS = "leads"
    TRANSACTION_COORDINATOR = "transaction_coordinator"
    MARKETING = "marketing"
    TECH_STACK = "tech_stack"
    OFFICE_SPACE = "office_space"


WISH_LIST_OPTIONS: dict[WishListTag, tuple[str, WishListCategory]] = {
    WishListTag.SPLIT_90_10: ("90/10 Split or Better", WishListCategory.COMPENSATION),
    WishListTag.SPLIT_80_20: ("80/20 Split or Better", WishListCategory.COMPENSATION),
    WishListTag.SPLIT_100: ("100% Commission (Flat Fee)", WishListCategory.COMPENSATION),
    WishListTag.CAP_UNDER_25K: ("Cap Under $25,000", WishListCategory.COMPENSATION),
    WishListTag.CAP_UNDER_15K: ("Cap Under $15,000", WishListCategory.COMPENSATION),
    WishListTag.NO_MONTHLY_FEES: ("No Monthly Fees", WishListCategory.FEES),
    WishListTag.LOW_MONTHLY_FEES: ("Monthly Fees Under $500", WishListCategory.FEES),
    WishListTag.HEALTH_INSURANCE: ("Health Insurance Available", WishListCategory.BENEFITS),
    WishListTag.RETIREMENT_401K: ("401(k) or Retirement Plan", WishListCategory.BENEFITS),
    WishListTag.TRAINING_MENTORSHIP: ("Training & Mentorship Program", WishListCategory.SUPPORT),
    WishListTag.LEADS_PROVIDED: ("Leads Provided", WishListCategory.SUPPORT),
    WishListTag.TRANSACTION_COORDINATOR: ("Transaction Coordinator Support", WishListCategory.SUPPORT),
    WishListTag.MARKETING_SUPPORT: ("Marketing Support & Materials", WishListCategory.SUPPORT),
    WishListTag.FOLLOW_UP_BOSS_CRM: ("Follow Up Boss CRM", WishListCategory.TECH),
    WishListTag.KVCORE_CRM: ("kvCORE CRM", WishListCategory.TECH),
    WishListTag.TECH_STACK_INCLUDED: ("Tech Stack Included", WishListCategory.TECH),
    WishListTag.OFFICE_SPACE: ("Office Space Provided", WishListCategory.WORKSPACE),
    WishListTag.REMOTE_FRIENDLY: ("Remote-Friendly", WishListCategory.WORKSPACE),
    WishListTag.TEAM_ENVIRONMENT: ("Team Environment", WishListCategory.CULTURE),
    WishListTag.INDEPENDENT_WORK: ("Independent Work Style", WishListCategory.CULTURE),
}

# Benefit wish list tags satisfied by set membership in additional_benefits
TAG_TO_BENEFIT: dict[WishListTag, Benefit] = {
    WishListTag.HEALTH_INSURANCE: Benefit.HEALTH_INSURANCE,
    WishListTag.RETIREMENT_401K: Benefit.RETIREMENT_401K,
    WishListTag.TRAINING_MENTORSHIP: Benefit.TRAINING,
    WishListTag.LEADS_PROVIDED: Benefit.LEADS,
    WishListTag.TRANSACTION_COORDINATOR: Benefit.TRANSACTION_COORDINATOR,
    WishListTag.MARKETING_SUPPORT: Benefit.MARKETING,
    WishListTag.TECH_STACK_INCLUDED: Benefit.TECH_STACK,
    WishListTag.OFFICE_SPACE: Benefit.OFFICE_SPACE,
}


def wish_list_label(tag: str) -> str:
    """Human label for a tag, falling back to the raw tag."""
    try:
        return WISH_LIST_OPTIONS[WishListTag(tag)][0]
    except ValueError:
        return tag


def normalize_wish_list(tags) -> list[str]:
    """Validate and de-duplicate wish list tags, keeping first-seen order."""
    if tags is None:
        return []
    if isinstance(tags, str) or not isinstance(tags, (list, tuple, set, frozenset)):
        raise ValueError("wish list must be a list of tags")

    normalized: list[str] = []
    for tag in tags:
        value = tag.value if isinstance(tag, WishListTag) else tag
        try:
            WishListTag(value)
        except ValueError:
            raise ValueError(f"Unknown wish list tag: {value}")
        if value not in normalized:
            normalized.append(value)
    return normalized
