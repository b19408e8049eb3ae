"""Contact visibility - what each side may see of the other, gated per pitch on payment."""

from typing import Optional

from pitchdesk.models.agent import Agent
from pitchdesk.models.brokerage import Brokerage
from pitchdesk.models.pitch import Pitch
from pitchdesk.models.views import (
    AgentPitchView,
    AgentView,
    BrokeragePitchView,
    BrokerageView,
    DiscoveryEntry,
)
from pitchdesk.services.match_score import calculate_match_score
from pitchdesk.services.supabase_client import list_agents, list_pitches_by_brokerage
from pitchdesk.utils.logging import get_correlation_id, get_structured_logger, timed

logger = get_structured_logger(__name__)


def _reveals(pitch: Optional[Pitch], agent_id: str, brokerage_id: Optional[str] = None) -> bool:
    """Only a paid pitch between exactly this pair discloses contact details."""
    if pitch is None or not pitch.is_paid:
        return False
    if pitch.agent_id != agent_id:
        return False
    if brokerage_id is not None and pitch.brokerage_id != brokerage_id:
        return False
    return True


def project_agent_for_brokerage(agent: Agent, pitch: Optional[Pitch]) -> AgentView:
    """
    An agent as seen by the brokerage that owns `pitch`.

    Name and license number are present only when that pitch is paid. The
    agent's global is_anonymous flag plays no part: paying one brokerage
    never reveals the agent to another.
    """
    revealed = _reveals(pitch, agent.id)
    return AgentView(
        id=agent.id,
        anonymous_id=agent.anonymous_id,
        years_experience=agent.years_experience,
        sales_volume=agent.sales_volume,
        wish_list=list(agent.wish_list),
        name=agent.name if revealed else None,
        license_number=agent.license_number if revealed else None,
    )


def project_brokerage_for_agent(
    brokerage: Brokerage,
    pitch: Pitch,
    contact_email: Optional[str],
) -> BrokerageView:
    """A brokerage as seen by the agent on `pitch`. Email only once paid."""
    revealed = _reveals(pitch, pitch.agent_id, brokerage.id)
    return BrokerageView(
        id=brokerage.id,
        company_name=brokerage.company_name,
        location=brokerage.location,
        logo_url=brokerage.logo_url,
        description=brokerage.description,
        email=contact_email if revealed else None,
    )


def brokerage_pitch_view(pitch: Pitch, agent: Agent) -> BrokeragePitchView:
    return BrokeragePitchView(
        **pitch.model_dump(include=set(BrokeragePitchView.model_fields) - {"agent"}),
        agent=project_agent_for_brokerage(agent, pitch),
    )


def agent_pitch_view(pitch: Pitch, brokerage: Brokerage, contact_email: Optional[str]) -> AgentPitchView:
    return AgentPitchView(
        **pitch.model_dump(include=set(AgentPitchView.model_fields) - {"brokerage"}),
        brokerage=project_brokerage_for_agent(brokerage, pitch, contact_email),
    )


@timed("discovery_feed", logger=logger)
async def discovery_feed(
    brokerage: Brokerage,
    min_experience: int = 0,
    min_volume: float = 0,
    wish_list_filter: Optional[list[str]] = None,
    include_pitched: bool = True,
    sort_by_match: bool = True,
) -> list[DiscoveryEntry]:
    """
    Agents a brokerage can browse, scored against its standard offer.

    Every agent is listed regardless of is_anonymous; identity fields are
    filled only for agents this brokerage has a paid pitch with.
    """
    correlation_id = get_correlation_id()

    agent_rows = await list_agents(min_experience=min_experience, min_volume=min_volume)
    pitch_rows = await list_pitches_by_brokerage(brokerage.id)
    pitches_by_agent = {row["agent_id"]: Pitch.model_validate(row) for row in pitch_rows}

    wanted = set(wish_list_filter or [])
    entries: list[DiscoveryEntry] = []
    for row in agent_rows:
        agent = Agent.model_validate(row)
        pitch = pitches_by_agent.get(agent.id)

        if pitch is not None and not include_pitched:
            continue
        if wanted and not wanted.intersection(agent.wish_list):
            continue

        entries.append(DiscoveryEntry(
            agent=project_agent_for_brokerage(agent, pitch),
            match_score=calculate_match_score(agent.wish_list, brokerage.standard_offer),
            pitch_id=pitch.id if pitch else None,
            status=pitch.status if pitch else None,
            payment_status=pitch.payment_status if pitch else None,
        ))

    if sort_by_match:
        # Stable: equal scores keep the store's sales-volume order
        entries.sort(key=lambda entry: entry.match_score, reverse=True)

    logger.info(
        "Discovery feed built",
        correlation_id=correlation_id,
        brokerage_id=brokerage.id,
        agents_listed=len(entries),
        filters_applied=bool(wanted or min_experience or min_volume)
    )
    return entries
