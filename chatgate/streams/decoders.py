"""
Stream decoders.

Each decoder turns the raw lines of a streaming response into canonical
``BotReply`` deltas. Four wire families are understood:

- delta JSON over SSE terminated by ``[DONE]`` (OpenAI and compatibles)
- named-event SSE (Claude)
- newline-delimited JSON (Ollama)
- full-response SSE ending with the body (Google)
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

import requests

from ..entities.replies import BotReply
from ..services.cancellation import CancellationToken
from ..utils.error_handler import parse_json_chunk
from ..utils.exceptions import (
    ChatGatewayError,
    StreamDecodeError,
    StreamTerminatedByProviderError,
    UpstreamError,
)
from .sse import iter_sse_events

logger = logging.getLogger(__name__)

Lines = Iterable[Union[bytes, str]]
Decoder = Callable[[Lines], Iterator[BotReply]]

DONE_SENTINEL = "[DONE]"


def _total(prompt: Optional[int], completion: Optional[int]) -> Optional[int]:
    if prompt is None or completion is None:
        return None
    return prompt + completion


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def _require_object(chunk: Any, raw: str) -> Dict[str, Any]:
    if not isinstance(chunk, dict):
        raise StreamDecodeError("Failed to deserialize response: expected a JSON object", content=raw)
    return chunk


@contextmanager
def _chunk_shape(raw: str) -> Iterator[None]:
    """Report well-formed JSON of an unexpected shape as a decode error."""
    try:
        yield
    except (AttributeError, TypeError, ValueError) as e:
        raise StreamDecodeError(f"Failed to deserialize response: {e}", content=raw) from e


def _raise_if_error(chunk: Dict[str, Any], raw: str):
    if chunk.get("error"):
        raise StreamTerminatedByProviderError(
            f"Stream terminated by provider: {_error_text(chunk['error'])}", content=raw
        )


def openai_usage_reply(usage: Optional[Dict[str, Any]]) -> BotReply:
    usage = usage or {}
    return BotReply(
        message="",
        prompt_tokens=usage.get("prompt_tokens"),
        completion_tokens=usage.get("completion_tokens"),
        total_tokens=usage.get("total_tokens"),
    )


def openai_chunk_replies(chunk: Dict[str, Any]) -> List[BotReply]:
    choices = chunk.get("choices") or []
    usage = chunk.get("usage")

    # Usage-only chunk arrives last with include_usage
    if not choices:
        return [openai_usage_reply(usage)]

    replies = []
    for choice in choices:
        content = (choice.get("delta") or {}).get("content")
        if content:
            replies.append(BotReply(message=content))
    if usage:
        replies.append(openai_usage_reply(usage))
    return replies


def decode_openai_stream(lines: Lines) -> Iterator[BotReply]:
    """Decode delta-JSON SSE frames until ``[DONE]``."""
    for event in iter_sse_events(lines):
        data = event.data.strip()
        if not data:
            continue
        if data == DONE_SENTINEL:
            logger.debug("Stream finished with [DONE]")
            return

        chunk = _require_object(parse_json_chunk(data), data)
        _raise_if_error(chunk, data)
        with _chunk_shape(data):
            replies = openai_chunk_replies(chunk)
        yield from replies


def decode_claude_stream(lines: Lines) -> Iterator[BotReply]:
    """Decode Claude named-event SSE until ``message_stop``."""
    prompt_tokens: Optional[int] = None

    for event in iter_sse_events(lines):
        name = event.event
        data = event.data.strip()

        if name == "message_stop":
            logger.debug("Stream finished with message_stop")
            return

        if name == "error":
            try:
                payload = parse_json_chunk(data)
                message = _error_text(payload.get("error", payload)) if isinstance(payload, dict) else data
            except StreamDecodeError:
                message = data
            raise StreamTerminatedByProviderError(f"Stream terminated by provider: {message}", content=data)

        if name not in ("message_start", "content_block_delta", "message_delta"):
            logger.debug("Skipping Claude stream event: %s", name)
            continue

        payload = _require_object(parse_json_chunk(data), data)
        reply = None
        with _chunk_shape(data):
            if name == "message_start":
                usage = (payload.get("message") or {}).get("usage") or {}
                prompt_tokens = usage.get("input_tokens")

            elif name == "content_block_delta":
                text = (payload.get("delta") or {}).get("text")
                # thinking and tool-input deltas carry no text
                if isinstance(text, str):
                    reply = BotReply(message=text)

            else:
                usage = payload.get("usage") or {}
                prompt = usage.get("input_tokens", prompt_tokens)
                completion = usage.get("output_tokens")
                reply = BotReply(
                    message="",
                    prompt_tokens=prompt,
                    completion_tokens=completion,
                    total_tokens=_total(prompt, completion),
                )

        if reply is not None:
            yield reply


def ollama_reply(chunk: Dict[str, Any]) -> BotReply:
    content = (chunk.get("message") or {}).get("content") or ""
    if not chunk.get("done"):
        return BotReply(message=content)
    prompt = chunk.get("prompt_eval_count")
    completion = chunk.get("eval_count")
    return BotReply(
        message=content,
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=_total(prompt, completion),
    )


def decode_ollama_stream(lines: Lines) -> Iterator[BotReply]:
    """Decode newline-delimited JSON until the ``done`` chunk."""
    for raw in lines:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        line = line.strip()
        if not line:
            continue

        chunk = _require_object(parse_json_chunk(line), line)
        _raise_if_error(chunk, line)
        with _chunk_shape(line):
            reply = ollama_reply(chunk)

        if chunk.get("done"):
            logger.debug("Stream finished with done chunk (%s)", chunk.get("done_reason"))
            yield reply
            return
        if reply.message:
            yield reply


def google_reply(chunk: Dict[str, Any]) -> BotReply:
    candidates = chunk.get("candidates") or []
    text = ""
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    usage = chunk.get("usageMetadata") or {}
    return BotReply(
        message=text,
        prompt_tokens=usage.get("promptTokenCount"),
        completion_tokens=usage.get("candidatesTokenCount"),
        total_tokens=usage.get("totalTokenCount"),
    )


def decode_google_stream(lines: Lines) -> Iterator[BotReply]:
    """Decode Gemini SSE frames until the body ends."""
    for event in iter_sse_events(lines):
        data = event.data.strip()
        if not data:
            continue

        chunk = _require_object(parse_json_chunk(data), data)
        _raise_if_error(chunk, data)
        with _chunk_shape(data):
            reply = google_reply(chunk)
        if reply.message or reply.has_usage:
            yield reply


class ReplyStream:
    """
    Single-consumer iterator of streamed replies.

    Owns the HTTP response and closes it on exhaustion, error or
    cancellation. Errors are raised from ``next()`` and end the stream. A
    stream that is cancelled simply stops.

    Usage:
        with client.chat_stream(messages, options, settings) as stream:
            for reply in stream:
                print(reply.message, end="")
    """

    def __init__(
        self,
        response: requests.Response,
        decoder: Decoder,
        cancel_token: Optional[CancellationToken] = None,
        abort: Optional[Callable[[], None]] = None,
    ):
        self._response = response
        self._cancel_token = cancel_token
        self._abort = abort
        self._closed = False
        self._replies = decoder(response.iter_lines())
        self._unsubscribe = cancel_token.on_cancel(self._on_cancel) if cancel_token else None

    @property
    def closed(self) -> bool:
        return self._closed

    def _cancelled(self) -> bool:
        return self._cancel_token is not None and self._cancel_token.cancelled

    def __iter__(self) -> "ReplyStream":
        return self

    def __next__(self) -> BotReply:
        if self._closed or self._cancelled():
            self.close()
            raise StopIteration

        try:
            reply = next(self._replies)
        except StopIteration:
            self.close()
            raise
        except ChatGatewayError:
            self.close()
            raise
        except Exception as e:
            # closing the response under a blocked read surfaces here
            if self._cancelled():
                self.close()
                raise StopIteration from None
            self.close()
            if isinstance(e, (requests.exceptions.RequestException, OSError)):
                logger.error(f"Stream read failed: {e}")
                raise UpstreamError(f"Failed to read response stream: {e}") from e
            raise

        if self._cancelled():
            self.close()
            raise StopIteration
        return reply

    def _on_cancel(self):
        # closing the response alone does not wake a thread blocked in a read
        if self._abort is not None and not self._closed:
            self._abort()
        self.close()

    def close(self):
        """Release the HTTP response. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        try:
            self._response.close()
        except Exception as e:
            logger.debug(f"Error while closing stream response: {e}")

    def __enter__(self) -> "ReplyStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
