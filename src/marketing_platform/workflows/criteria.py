"""
Trigger criteria parsing and matching.

Workflows store their trigger condition as text. Event-style workflows store a
JSON object::

    {"eventType": "KeywordReceived", "keyword": "join", "groupId": 12}

``eventType`` is mandatory. ``keyword``, ``groupId`` and ``tagId`` narrow the
match only when the incoming event carries the same field; a field present on
one side only imposes no constraint, so criteria can be authored coarse first
and refined later.

Keyword workflows store either a JSON object with ``keyword`` and/or
``keywords`` (a JSON array, or a string holding one) or a bare comma-separated
list such as ``"join, start"``.

Parsing happens once per distinct stored text; the parsed forms are frozen
dataclasses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping

from marketing_platform.shared.logging import get_logger

logger = get_logger(__name__)

INACTIVITY_EVENT = "Inactivity"


def _event_name(event_type: Any) -> str:
    return str(getattr(event_type, "value", event_type))


def _normalize_keyword(value: Any) -> str:
    return str(value).strip().casefold()


def _as_text(value: Any) -> str | None:
    """Render a criteria/event value for equality checks; None when absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return int(number) if number.is_integer() else None


@dataclass(frozen=True)
class EventCriteria:
    """Criteria of an Event-triggered workflow."""

    event_type: str
    keyword: str | None = None
    group_id: str | None = None
    tag_id: str | None = None
    inactive_days: int | None = None

    @property
    def is_inactivity(self) -> bool:
        return self.event_type.casefold() == INACTIVITY_EVENT.casefold()

    def matches(self, event_type: Any, event_data: Mapping[str, Any] | None = None) -> bool:
        """Check an incoming event against these criteria.

        Args:
            event_type: Incoming event type (enum member or name).
            event_data: Incoming event payload.

        Returns:
            True when the event type matches and every refinement present on
            both sides agrees.
        """
        if self.event_type.casefold() != _event_name(event_type).casefold():
            return False

        data = event_data or {}

        incoming_keyword = _as_text(data.get("keyword"))
        if self.keyword is not None and incoming_keyword is not None:
            if _normalize_keyword(self.keyword) != _normalize_keyword(incoming_keyword):
                return False

        incoming_group = _as_text(data.get("groupId"))
        if self.group_id is not None and incoming_group is not None:
            if self.group_id != incoming_group:
                return False

        incoming_tag = _as_text(data.get("tagId"))
        if self.tag_id is not None and incoming_tag is not None:
            if self.tag_id != incoming_tag:
                return False

        return True

    def to_json(self) -> str:
        """Serialize to the stored criteria format."""
        payload: dict[str, Any] = {"eventType": self.event_type}
        if self.keyword is not None:
            payload["keyword"] = self.keyword
        if self.group_id is not None:
            payload["groupId"] = self.group_id
        if self.tag_id is not None:
            payload["tagId"] = self.tag_id
        if self.inactive_days is not None:
            payload["inactiveDays"] = self.inactive_days
        return json.dumps(payload)


@dataclass(frozen=True)
class KeywordCriteria:
    """Criteria of a Keyword-triggered workflow: a set of normalized keywords."""

    keywords: frozenset[str] = field(default_factory=frozenset)

    def matches(self, incoming_keyword: str | None) -> bool:
        if not incoming_keyword or not incoming_keyword.strip():
            return False
        return _normalize_keyword(incoming_keyword) in self.keywords

    def to_json(self) -> str:
        return json.dumps({"keywords": sorted(self.keywords)})


def parse_event_criteria(raw: str | None) -> EventCriteria | None:
    """Parse stored Event criteria.

    Returns:
        Parsed criteria, or None when the text is blank, malformed, not an
        object, or lacks ``eventType`` (such a workflow never matches).
    """
    if raw is None or not raw.strip():
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(
            "Failed to deserialize trigger criteria",
            extra={"criteria": raw},
        )
        return None

    if not isinstance(data, dict):
        return None

    event_type = _as_text(data.get("eventType"))
    if event_type is None:
        return None

    return EventCriteria(
        event_type=event_type,
        keyword=_as_text(data.get("keyword")),
        group_id=_as_text(data.get("groupId")),
        tag_id=_as_text(data.get("tagId")),
        inactive_days=_as_int(data.get("inactiveDays")),
    )


def _split_keywords(raw: str) -> frozenset[str]:
    return frozenset(
        _normalize_keyword(part) for part in raw.split(",") if part.strip()
    )


def parse_keyword_criteria(raw: str | None) -> KeywordCriteria:
    """Parse stored Keyword criteria.

    Malformed JSON degrades to treating the whole text as a comma list.
    """
    if raw is None or not raw.strip():
        return KeywordCriteria()

    text = raw.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                return KeywordCriteria()

            keywords: set[str] = set()

            single = data.get("keyword")
            if single is not None and str(single).strip():
                keywords.add(_normalize_keyword(single))

            multiple = data.get("keywords")
            if isinstance(multiple, str):
                multiple = json.loads(multiple)
            if multiple is not None:
                if not isinstance(multiple, list):
                    raise ValueError("keywords must be a list")
                keywords.update(
                    _normalize_keyword(k) for k in multiple if k is not None and str(k).strip()
                )

            return KeywordCriteria(frozenset(keywords))
        except (ValueError, TypeError):
            logger.debug(
                "Keyword criteria is not valid JSON, treating as comma list",
                extra={"criteria": raw},
            )

    return KeywordCriteria(_split_keywords(text))


@lru_cache(maxsize=4096)
def parse_criteria(is_keyword: bool, raw: str | None) -> EventCriteria | KeywordCriteria | None:
    """Parse and cache stored criteria for one workflow trigger kind."""
    if is_keyword:
        return parse_keyword_criteria(raw)
    return parse_event_criteria(raw)
