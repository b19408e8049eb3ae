"""Agent and brokerage profile management."""

from pitchdesk.models.agent import Agent, AgentProfileInput, AgentProfileUpdate
from pitchdesk.models.brokerage import Brokerage, BrokerageProfileInput, BrokerageProfileUpdate
from pitchdesk.services.supabase_client import (
    create_agent,
    create_brokerage,
    get_agent_by_user_id,
    get_brokerage_by_user_id,
    update_agent,
    update_brokerage,
)
from pitchdesk.utils.errors import DuplicateProfileError, ForbiddenError, NotFoundError
from pitchdesk.utils.ids import generate_id, utc_now_iso
from pitchdesk.utils.logging import get_correlation_id, get_structured_logger, mask_id

logger = get_structured_logger(__name__)


async def get_agent_profile(user_id: str) -> Agent:
    row = await get_agent_by_user_id(user_id)
    if row is None:
        raise NotFoundError("Agent profile not found")
    return Agent.model_validate(row)


async def get_brokerage_profile(user_id: str) -> Brokerage:
    row = await get_brokerage_by_user_id(user_id)
    if row is None:
        raise NotFoundError("Brokerage profile not found")
    return Brokerage.model_validate(row)


async def create_agent_profile(user_id: str, profile: AgentProfileInput) -> Agent:
    """Create the agent profile for a user. Agents start anonymous."""
    if await get_agent_by_user_id(user_id) is not None:
        raise DuplicateProfileError("Agent profile already exists")

    now = utc_now_iso()
    row = await create_agent({
        "id": generate_id(),
        "user_id": user_id,
        "anonymous_id": generate_id(),
        **profile.model_dump(mode="json"),
        "is_anonymous": True,
        "created_at": now,
        "updated_at": now,
    })
    agent = Agent.model_validate(row)

    logger.info(
        "Agent profile created",
        correlation_id=get_correlation_id(),
        agent_id=agent.id,
        user_id=mask_id(user_id),
        wish_list_size=len(agent.wish_list)
    )
    return agent


async def update_agent_profile(user_id: str, changes: AgentProfileUpdate) -> Agent:
    """
    Apply a partial update to the caller's agent profile.

    is_anonymous is owned by the payment flow: echoing the current value is
    accepted, any attempt to change it is refused.
    """
    agent = await get_agent_profile(user_id)
    updates = changes.model_dump(mode="json", exclude_unset=True)

    requested = updates.pop("is_anonymous", None)
    if requested is not None and requested != agent.is_anonymous:
        raise ForbiddenError(
            "Anonymity is managed by the platform and cannot be changed directly",
            {"field": "isAnonymous"}
        )

    if not updates:
        return agent

    updates["updated_at"] = utc_now_iso()
    row = await update_agent(agent.id, updates)

    logger.info(
        "Agent profile updated",
        correlation_id=get_correlation_id(),
        agent_id=agent.id,
        fields=sorted(k for k in updates if k != "updated_at")
    )
    return Agent.model_validate(row)


async def create_brokerage_profile(user_id: str, profile: BrokerageProfileInput) -> Brokerage:
    if await get_brokerage_by_user_id(user_id) is not None:
        raise DuplicateProfileError("Brokerage profile already exists")

    now = utc_now_iso()
    data = profile.model_dump(mode="json", exclude={"standard_offer"})
    row = await create_brokerage({
        "id": generate_id(),
        "user_id": user_id,
        **data,
        "standard_offer": profile.standard_offer.to_record(),
        "created_at": now,
        "updated_at": now,
    })
    brokerage = Brokerage.model_validate(row)

    logger.info(
        "Brokerage profile created",
        correlation_id=get_correlation_id(),
        brokerage_id=brokerage.id,
        user_id=mask_id(user_id)
    )
    return brokerage


async def update_brokerage_profile(user_id: str, changes: BrokerageProfileUpdate) -> Brokerage:
    """Partial update. Existing pitches keep the offer they were sent with."""
    brokerage = await get_brokerage_profile(user_id)
    updates = changes.model_dump(mode="json", exclude_unset=True, exclude={"standard_offer"})
    if "standard_offer" in changes.model_fields_set and changes.standard_offer is not None:
        updates["standard_offer"] = changes.standard_offer.to_record()

    if not updates:
        return brokerage

    updates["updated_at"] = utc_now_iso()
    row = await update_brokerage(brokerage.id, updates)

    logger.info(
        "Brokerage profile updated",
        correlation_id=get_correlation_id(),
        brokerage_id=brokerage.id,
        fields=sorted(k for k in updates if k != "updated_at")
    )
    return Brokerage.model_validate(row)
