"""Session authentication for API callers (HS256 bearer tokens)."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
import jwt

from pitchdesk.models.agent import Agent
from pitchdesk.models.brokerage import Brokerage
from pitchdesk.services.supabase_client import get_agent_by_user_id, get_brokerage_by_user_id
from pitchdesk.utils.config import AppConfig
from pitchdesk.utils.errors import ForbiddenError, NotFoundError, UnauthorizedError
from pitchdesk.utils.http import get_header
from pitchdesk.utils.logging import get_structured_logger, mask_id

logger = get_structured_logger(__name__)

JWT_ALGORITHM = "HS256"
SESSION_EXPIRE_HOURS = 24


class Role(str, Enum):
    AGENT = "AGENT"
    BROKERAGE = "BROKERAGE"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""
    user_id: str
    role: Role


def create_session_token(user_id: str, role: Role, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a session token. Used by the sign-in flow and by tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role.value,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=SESSION_EXPIRE_HOURS)),
    }
    return jwt.encode(payload, AppConfig.require("SESSION_SECRET"), algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> Actor:
    """Validate a session token and return the caller it names."""
    try:
        payload = jwt.decode(
            token,
            AppConfig.require("SESSION_SECRET"),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Session token rejected", error=str(e))
        raise UnauthorizedError("Invalid session")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise UnauthorizedError("Invalid session")
    return Actor(user_id=str(payload["sub"]), role=role)


def authenticate(request: dict) -> Actor:
    """Resolve the caller from `Authorization: Bearer <token>`."""
    header = get_header(request, "authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Unauthorized")
    return decode_session_token(token.strip())


def require_role(actor: Actor, role: Role) -> None:
    if actor.role != role:
        logger.info("Role check failed", user_id=mask_id(actor.user_id), required_role=role.value)
        raise ForbiddenError(f"Only {role.value.lower()} accounts can do this")


async def resolve_agent(actor: Actor) -> Agent:
    """The agent profile owned by the caller."""
    require_role(actor, Role.AGENT)
    row = await get_agent_by_user_id(actor.user_id)
    if row is None:
        raise NotFoundError("Agent profile not found")
    return Agent.model_validate(row)


async def resolve_brokerage(actor: Actor) -> Brokerage:
    """The brokerage profile owned by the caller."""
    require_role(actor, Role.BROKERAGE)
    row = await get_brokerage_by_user_id(actor.user_id)
    if row is None:
        raise NotFoundError("Brokerage profile not found")
    return Brokerage.model_validate(row)
