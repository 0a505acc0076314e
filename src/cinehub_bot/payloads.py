"""Deep-link payload resolution.

``/start`` payloads and subscription confirmations carry the same payload
strings: ``dlp_<partId>`` requests a part, ``content_<id>`` requests a content
card, anything else falls back to the plain welcome.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PART_PREFIX = "dlp_"
CONTENT_PREFIX = "content_"

START_COMMAND_PATTERN = re.compile(r"^/start(?:@\w+)?(?:\s+(?P<payload>.*))?$", re.DOTALL)
ADMIN_COMMAND_PATTERN = re.compile(r"^/admin(?:@\w+)?$")
PAYLOAD_ID_PATTERN = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class PartRequest:
    part_id: int


@dataclass(frozen=True)
class ContentRequest:
    content_id: int


DeepLink = PartRequest | ContentRequest


def parse_start_command(text: str) -> tuple[bool, str | None]:
    """Split a ``/start`` command from its payload.

    Returns:
        ``(is_start, payload)``; the payload is None when absent or blank.
    """
    match = START_COMMAND_PATTERN.match(text.strip())
    if match is None:
        return False, None
    payload = (match.group("payload") or "").strip()
    return True, payload or None


def is_admin_command(text: str) -> bool:
    return ADMIN_COMMAND_PATTERN.match(text.strip()) is not None


def resolve_payload(payload: str | None) -> DeepLink | None:
    """Resolve a payload to a deep-link request.

    Payloads with a known prefix but a non-numeric id resolve to None, the
    same as no payload.
    """
    if not payload:
        return None
    if payload.startswith(PART_PREFIX):
        raw = payload[len(PART_PREFIX) :]
        return PartRequest(int(raw)) if PAYLOAD_ID_PATTERN.match(raw) else None
    if payload.startswith(CONTENT_PREFIX):
        raw = payload[len(CONTENT_PREFIX) :]
        return ContentRequest(int(raw)) if PAYLOAD_ID_PATTERN.match(raw) else None
    return None


def part_payload(part_id: int) -> str:
    return f"{PART_PREFIX}{part_id}"


def content_payload(content_id: int) -> str:
    return f"{CONTENT_PREFIX}{content_id}"
