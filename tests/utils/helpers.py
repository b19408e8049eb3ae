"""Test helper functions."""

import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from pitchdesk.services.auth import Role, create_session_token


def generate_stripe_signature(secret: str, payload: str, timestamp: Optional[int] = None) -> str:
    """Generate a valid Stripe-Signature header for testing."""
    if timestamp is None:
        timestamp = int(time.time())
    signed_payload = f"{timestamp}.{payload}"
    signature = hmac.new(
        secret.encode('utf-8'),
        signed_payload.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def create_checkout_event(
    event_type: str = "checkout.session.completed",
    session_id: str = "cs_test_123",
    pitch_id: Optional[str] = None,
    event_id: str = "evt_test_123",
) -> Dict[str, Any]:
    """Create a Stripe checkout event payload for testing."""
    metadata = {}
    if pitch_id:
        metadata["pitchId"] = pitch_id
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "metadata": metadata,
                "payment_status": "paid" if event_type.endswith("completed") else "unpaid",
            }
        },
    }


def auth_headers(user_id: str, role: Role) -> Dict[str, str]:
    """Authorization headers carrying a session token for the given user."""
    return {
        "authorization": f"Bearer {create_session_token(user_id, role)}",
        "content-type": "application/json",
    }


def create_vercel_request(
    method: str = "POST",
    path: str = "/api/pitches",
    body: Any = None,
    headers: Dict[str, str] = None,
    query: Dict[str, str] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    if body is None:
        raw_body = ""
    elif isinstance(body, (dict, list)):
        raw_body = json.dumps(body)
    else:
        raw_body = body

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": raw_body,
        "query": query or {}
    }


def response_json(response: Dict[str, Any]) -> Any:
    return json.loads(response["body"])
