"""Helpers shared by the serverless handlers in api/."""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from pitchdesk.utils.errors import DomainError, ValidationError, WebhookVerificationError
from pitchdesk.utils.logging import correlation_context, get_structured_logger
from pitchdesk.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)

M = TypeVar("M", bound=BaseModel)
Route = Callable[[dict], Awaitable[dict]]


def json_response(status_code: int, payload: Any, headers: Optional[dict] = None) -> dict:
    """Build a Vercel-style response dict."""
    response_headers = {"Content-Type": "application/json"}
    if headers:
        response_headers.update(headers)
    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(payload, default=str),
    }


def error_response(error: Exception) -> dict:
    """Map an exception onto an HTTP error response."""
    if isinstance(error, DomainError):
        return json_response(error.status_code, error.to_dict())
    if isinstance(error, WebhookVerificationError):
        return json_response(400, {"error": str(error), "code": "invalid_webhook"})
    return json_response(500, {"error": "internal server error"})


def get_header(request: dict, name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    headers = request.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_query_param(request: dict, name: str, default: Optional[str] = None) -> Optional[str]:
    query = request.get("query") or {}
    value = query.get(name, default)
    # Some runtimes deliver repeated params as lists
    if isinstance(value, list):
        return value[0] if value else default
    return value


def get_raw_body(request: dict) -> str:
    body = request.get("body")
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8")
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    return body


def parse_json_body(request: dict) -> dict:
    """Parse the request body as a JSON object."""
    raw_body = get_raw_body(request)
    if not raw_body:
        return {}
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def parse_model(model: Type[M], data: dict) -> M:
    """Validate a payload into a pydantic model, raising a domain ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid request body",
            {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
        )


def run_async(coro: Awaitable[Any]) -> Any:
    """Run a coroutine from a synchronous handler."""
    return asyncio.run(coro)


def dispatch(request: dict, routes: dict[str, Route], endpoint: str) -> dict:
    """
    Route a request to the coroutine registered for its method.

    Every request runs inside a correlation context; typed domain errors
    become their HTTP status, anything unexpected becomes a 500.
    """
    LoggingConfig.setup_logging()
    method = (request.get("method") or "GET").upper()

    with correlation_context(get_header(request, LoggingConfig.LOG_CORRELATION_ID_HEADER)) as correlation_id:
        route = routes.get(method)
        if route is None:
            return json_response(
                405,
                {"error": "method not allowed"},
                {"Allow": ", ".join(sorted(routes)), LoggingConfig.LOG_CORRELATION_ID_HEADER: correlation_id}
            )

        try:
            response = run_async(route(request))
        except (DomainError, WebhookVerificationError) as e:
            logger.warning(
                "Request rejected",
                correlation_id=correlation_id,
                endpoint=endpoint,
                method=method,
                error_type=type(e).__name__,
                error=str(e)
            )
            response = error_response(e)
        except Exception as e:
            logger.exception(
                "Unhandled error",
                correlation_id=correlation_id,
                endpoint=endpoint,
                method=method,
                error_type=type(e).__name__
            )
            response = error_response(e)

        response.setdefault("headers", {})[LoggingConfig.LOG_CORRELATION_ID_HEADER] = correlation_id
        return response


def pitch_id_from_request(request: dict) -> str:
    """Pitch ID from `?id=` or a JSON body `{"pitchId": ...}`."""
    pitch_id = get_query_param(request, "id") or parse_json_body(request).get("pitchId")
    if not pitch_id:
        raise ValidationError("Pitch ID is required", {"field": "pitchId"})
    return str(pitch_id)
