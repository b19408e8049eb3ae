"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_pitchdesk")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_pitchdesk")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-with-enough-length-for-hs256")
os.environ.setdefault("APP_BASE_URL", "https://app.example.com")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from pitchdesk.models.pitch import CheckoutSession  # noqa: E402
from pitchdesk.services import supabase_client  # noqa: E402
from tests.utils.factories import (  # noqa: E402
    create_agent_data,
    create_brokerage_data,
    create_offer_data,
    create_user_data,
)
from tests.utils.fake_supabase import FakeSupabase  # noqa: E402


@pytest.fixture(autouse=True)
def _no_optional_env(monkeypatch):
    """Keep optional settings from the developer's shell out of tests."""
    for key in ("RESEND_API_KEY", "STRIPE_CONTACT_FEE_CENTS", "CRON_SECRET"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_store(monkeypatch):
    """In-memory Supabase installed as the client singleton."""
    store = FakeSupabase()
    monkeypatch.setattr(supabase_client, "_client", store)
    return store


@pytest.fixture
def agent_user(fake_store):
    user = create_user_data(role="AGENT", email="agent@example.com")
    fake_store.seed("users", user)
    return user


@pytest.fixture
def brokerage_user(fake_store):
    user = create_user_data(role="BROKERAGE", email="brokerage@example.com")
    fake_store.seed("users", user)
    return user


@pytest.fixture
def agent_row(fake_store, agent_user):
    """An anonymous agent with a 3 million sales volume."""
    row = create_agent_data(
        user_id=agent_user["id"],
        wish_list=["90_10_SPLIT", "HEALTH_INSURANCE", "LEADS_PROVIDED"],
        sales_volume=3_000_000,
        years_experience=8,
    )
    fake_store.seed("agents", row)
    return row


@pytest.fixture
def brokerage_row(fake_store, brokerage_user):
    row = create_brokerage_data(
        user_id=brokerage_user["id"],
        standard_offer=create_offer_data(
            split_percent=90,
            cap_amount=20_000,
            monthly_fee=0,
            additional_benefits=["health_insurance"],
        ),
    )
    fake_store.seed("brokerages", row)
    return row


@pytest.fixture
def second_brokerage_row(fake_store):
    user = create_user_data(role="BROKERAGE", email="other-brokerage@example.com")
    fake_store.seed("users", user)
    row = create_brokerage_data(user_id=user["id"])
    fake_store.seed("brokerages", row)
    return row


@pytest.fixture
def mock_checkout(monkeypatch):
    """Replace Stripe checkout creation with a predictable session factory."""
    created = []

    def _create(amount_cents, metadata, success_url, cancel_url, description=None):
        session = CheckoutSession(
            session_id=f"cs_test_{len(created) + 1}",
            redirect_url=f"https://checkout.stripe.com/c/pay/cs_test_{len(created) + 1}",
        )
        created.append({
            "amount_cents": amount_cents,
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "description": description,
            "session": session,
        })
        return session

    monkeypatch.setattr("pitchdesk.services.pitch_lifecycle.create_checkout_session", _create)
    return created


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2026-03-02 12:00:00") as frozen_time:
        yield frozen_time
