"""Detect and parse a confirmed workflow record embedded in an assistant reply.

``is_complete`` is a cheap substring gate. ``extract`` is authoritative: it
walks bracket-balanced ``{...}`` spans left to right and accepts the first
one that decodes to an object with the required keys, in the order the
discovery prompt mandates, and that validates as a :class:`WorkflowRecord`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any, Optional

from pydantic import ValidationError

from .schema import WorkflowRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = (
    "title",
    "start_event",
    "end_event",
    "steps",
    "people",
    "systems",
    "pain_points",
)

_MARKERS = tuple(f'"{name}"' for name in REQUIRED_FIELDS)


def is_complete(text: str) -> bool:
    """True iff every required field marker occurs somewhere in ``text``."""
    return all(marker in text for marker in _MARKERS)


def iter_object_spans(text: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` for every balanced ``{...}`` span, by start offset.

    Braces inside JSON string literals (including escaped quotes) are ignored.
    Unbalanced openings are skipped.
    """
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            yield start, end
        start = text.find("{", start + 1)


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return pos + 1
    return None


def has_required_key_order(obj: dict[str, Any]) -> bool:
    keys = list(obj)
    try:
        positions = [keys.index(name) for name in REQUIRED_FIELDS]
    except ValueError:
        return False
    return positions == sorted(positions)


def extract(text: str) -> Optional[WorkflowRecord]:
    """Return the first valid workflow record in ``text``, or ``None``.

    ``None`` means "not yet extractable"; callers keep the conversation going.
    """
    for start, end in iter_object_spans(text):
        candidate = text[start:end]
        if not is_complete(candidate):
            continue

        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError as exc:
            logger.debug("Skipping span at %d: invalid JSON (%s)", start, exc.msg)
            continue

        if not isinstance(obj, dict) or not has_required_key_order(obj):
            logger.debug("Skipping span at %d: required keys missing or out of order", start)
            continue

        try:
            return WorkflowRecord.model_validate(obj)
        except ValidationError as exc:
            logger.debug("Skipping span at %d: %d schema errors", start, exc.error_count())
            continue

    return None
