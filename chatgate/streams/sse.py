"""Server-sent events framing over a line iterator."""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_EVENT = "message"


@dataclass
class SSEEvent:
    """One dispatched server-sent event."""

    event: str = DEFAULT_EVENT
    data: str = ""
    id: Optional[str] = None


def _decode(line: Union[bytes, str]) -> str:
    if isinstance(line, bytes):
        return line.decode("utf-8", errors="replace")
    return line


def iter_sse_events(lines: Iterable[Union[bytes, str]]) -> Iterator[SSEEvent]:
    """
    Group response lines into SSE events.

    A blank line dispatches the pending event. Multiple ``data:`` lines are
    joined with ``\\n``. Comment lines (leading ``:``) are ignored. A pending
    event without a trailing blank line is still dispatched at end of input.

    Args:
        lines: Lines without terminators, as produced by ``Response.iter_lines``

    Yields:
        SSEEvent objects in arrival order
    """
    event_name: Optional[str] = None
    event_id: Optional[str] = None
    data: List[str] = []

    for raw in lines:
        line = _decode(raw).rstrip("\r")

        if not line:
            if data or event_name:
                yield SSEEvent(event=event_name or DEFAULT_EVENT, data="\n".join(data), id=event_id)
            event_name, data = None, []
            continue

        if line.startswith(":"):
            continue

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            data.append(value)
        elif field == "event":
            event_name = value
        elif field == "id":
            event_id = value
        elif field == "retry":
            pass
        else:
            logger.debug("Ignoring unknown SSE field: %s", field)

    if data or event_name:
        yield SSEEvent(event=event_name or DEFAULT_EVENT, data="\n".join(data), id=event_id)
