"""Parsing of raw model output into a ProtocolDraft."""

import json
import re
from collections.abc import Mapping
from typing import Any

from meeting_pipeline.exceptions import InvalidModelOutputError
from meeting_pipeline.logging import setup_logging

from .models import ActionItem, ProtocolDraft

logger = setup_logging()

DEFAULT_TITLE = "Meeting protocol"
FALLBACK_SUMMARY = "The meeting was held and the topics below were discussed."
FALLBACK_MAIN_POINTS = (
    "The meeting covered the topics in the transcript.",
    "No further points could be extracted automatically.",
)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

_WRAPPER_KEYS = ("protocol", "protokoll")
_TITLE_KEYS = ("title", "titel")
_SUMMARY_KEYS = ("summary", "sammanfattning", "sammandrag")
_MAIN_POINT_KEYS = ("mainPoints", "main_points", "huvudpunkter", "punkter")
_DECISION_KEYS = ("decisions", "beslut")
_ACTION_ITEM_KEYS = ("actionItems", "action_items", "åtgärdspunkter", "atgardsPunkter")
_NEXT_MEETING_KEYS = (
    "nextMeetingSuggestions",
    "next_meeting_suggestions",
    "nästaMöteFörslag",
    "nextMeetingTopics",
)

_ITEM_TITLE_KEYS = ("title", "titel")
_ITEM_DESCRIPTION_KEYS = ("description", "beskrivning")
_ITEM_OWNER_KEYS = ("owner", "ansvarig")
_ITEM_DEADLINE_KEYS = ("deadline", "sistaDatum", "deadlineDatum")
_ITEM_PRIORITY_KEYS = ("priority", "prioritet")

_PRIORITIES = {
    "critical": "critical",
    "kritisk": "critical",
    "high": "high",
    "hög": "high",
    "medium": "medium",
    "medel": "medium",
    "low": "low",
    "låg": "low",
}


def extract_json_object(raw: str) -> dict[str, Any]:
    """
    Extracts the JSON object from model output that may carry prose or fences.

    Raises:
        InvalidModelOutputError: If no JSON object can be decoded.
    """
    text = raw or ""
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise InvalidModelOutputError("Model output contains no JSON object")

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise InvalidModelOutputError("Model output is not valid JSON", cause=e) from e

    if not isinstance(data, dict):
        raise InvalidModelOutputError("Model output is not a JSON object")
    return data


def _coalesce(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, list) and not value:
            continue
        return value
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _action_item(value: Any) -> ActionItem | None:
    if isinstance(value, str):
        return ActionItem(title=value.strip()) if value.strip() else None
    if not isinstance(value, Mapping):
        return None

    title = _text(_coalesce(value, _ITEM_TITLE_KEYS))
    if not title:
        return None
    priority = _PRIORITIES.get(_text(_coalesce(value, _ITEM_PRIORITY_KEYS)).lower(), "medium")
    return ActionItem(
        title=title,
        description=_text(_coalesce(value, _ITEM_DESCRIPTION_KEYS)),
        owner=_text(_coalesce(value, _ITEM_OWNER_KEYS)),
        deadline=_text(_coalesce(value, _ITEM_DEADLINE_KEYS)),
        priority=priority,
    )


def parse_protocol(raw: str, meeting_name: str | None = None) -> ProtocolDraft:
    """
    Parses raw model output into a ProtocolDraft.

    Field names are accepted in English and Swedish. Missing list fields
    become empty lists; a missing summary or main points list is replaced
    with fixed fallback text, and each substitution is recorded in
    ``used_fallbacks``.

    Args:
        raw: Raw text returned by the generation provider.
        meeting_name: Used as the title when the model gives none.

    Returns:
        The parsed ProtocolDraft.

    Raises:
        InvalidModelOutputError: If the output holds no decodable JSON object.
    """
    data = extract_json_object(raw)
    wrapped = _coalesce(data, _WRAPPER_KEYS)
    if isinstance(wrapped, Mapping):
        data = wrapped

    used_fallbacks: list[str] = []

    summary = _text(_coalesce(data, _SUMMARY_KEYS))
    if not summary:
        summary = FALLBACK_SUMMARY
        used_fallbacks.append("summary")

    main_points = _string_list(_coalesce(data, _MAIN_POINT_KEYS))
    if not main_points:
        main_points = list(FALLBACK_MAIN_POINTS)
        used_fallbacks.append("main_points")

    raw_items = _coalesce(data, _ACTION_ITEM_KEYS)
    action_items = [
        item
        for item in (_action_item(value) for value in (raw_items if isinstance(raw_items, list) else []))
        if item is not None
    ]

    title = _text(_coalesce(data, _TITLE_KEYS)) or _text(meeting_name) or DEFAULT_TITLE

    if used_fallbacks:
        logger.warning(
            "Protocol fields replaced with fallbacks",
            extra={"fields": used_fallbacks},
        )

    return ProtocolDraft(
        title=title,
        summary=summary,
        main_points=main_points,
        decisions=_string_list(_coalesce(data, _DECISION_KEYS)),
        action_items=action_items,
        next_meeting_suggestions=_string_list(_coalesce(data, _NEXT_MEETING_KEYS)),
        used_fallbacks=used_fallbacks,
    )
