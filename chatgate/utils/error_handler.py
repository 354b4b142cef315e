"""Error handling utilities."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import requests

from .exceptions import ChatGatewayError, StreamDecodeError, UpstreamError

logger = logging.getLogger(__name__)


def extract_error_message(response: requests.Response) -> str:
    """
    Pull the provider's error message out of a failed response.

    Understands the common shapes: ``{"error": {"message": ...}}`` (OpenAI,
    Claude, Google), ``{"error": "..."}`` (Ollama) and ``{"message": ...}``.
    Falls back to the raw body text.

    Args:
        response: Failed HTTP response

    Returns:
        Human readable error message
    """
    text = response.text or ""
    try:
        data = json.loads(text)
    except ValueError:
        return text.strip()[:500] or (response.reason or "")

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])
    return text.strip()[:500]


def raise_for_upstream(response: requests.Response) -> None:
    """
    Raise UpstreamError for non-2xx responses.

    Raises:
        UpstreamError: With status code and provider message attached
    """
    if 200 <= response.status_code < 300:
        return
    message = extract_error_message(response)
    logger.error("Upstream returned HTTP %s: %s", response.status_code, message)
    raise UpstreamError(
        f"Upstream returned HTTP {response.status_code}: {message}",
        status_code=response.status_code,
        response_text=response.text,
    )


@contextmanager
def upstream_call(operation: str) -> Iterator[None]:
    """
    Wrap transport and body-decoding failures of one provider call.

    Gateway errors raised inside pass through untouched.

    Usage:
        with upstream_call("chat completion"):
            response = session.post(...)
    """
    try:
        yield
    except ChatGatewayError:
        raise
    except requests.exceptions.RequestException as e:
        logger.error(f"{operation} failed: {e}")
        raise UpstreamError(f"Failed to get {operation} response: {e}") from e
    except (ValueError, TypeError, AttributeError, KeyError) as e:
        # malformed JSON, or well-formed JSON of an unexpected shape
        logger.error(f"{operation} returned an undecodable body: {e}")
        raise UpstreamError(f"Failed to decode {operation} response: {e}") from e


def parse_json_chunk(raw: str) -> Any:
    """
    Parse one JSON chunk of a response stream.

    Raises:
        StreamDecodeError: If the chunk is not valid JSON
    """
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StreamDecodeError(f"Failed to deserialize response: {e}", content=raw) from None


def notify_with_retry(send: Callable[[Any], None], event: Any, retries: int = 1) -> bool:
    """
    Deliver one notification, retrying locally on failure.

    Delivery is best effort: after the retries are used up the event is
    dropped and logged.

    Args:
        send: Sink callable
        event: Event to deliver
        retries: Extra attempts after the first failure

    Returns:
        True if the event was delivered
    """
    last_error: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            send(event)
            return True
        except Exception as e:
            last_error = e
            logger.warning(f"Notification delivery failed (attempt {attempt + 1}/{retries + 1}): {e}")

    logger.error(f"Dropping notification {event!r}: {last_error}")
    return False
