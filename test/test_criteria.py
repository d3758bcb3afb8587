"""
Tests for trigger criteria parsing and matching.
"""

import json

import pytest

from marketing_platform.workflows.criteria import (
    EventCriteria,
    KeywordCriteria,
    parse_criteria,
    parse_event_criteria,
    parse_keyword_criteria,
)
from marketing_platform.workflows.models import EventType, TriggerType, Workflow


class TestEventCriteria:
    """Tests for Event-type criteria."""

    @pytest.mark.parametrize("event_type", list(EventType))
    def test_event_type_matches_itself(self, event_type: EventType) -> None:
        criteria = parse_event_criteria(json.dumps({"eventType": event_type.value}))

        assert criteria is not None
        assert criteria.matches(event_type, {}) is True

    def test_event_type_is_case_insensitive(self) -> None:
        criteria = parse_event_criteria('{"eventType": "messagedelivered"}')

        assert criteria is not None
        assert criteria.matches(EventType.MESSAGE_DELIVERED) is True
        assert criteria.matches(EventType.MESSAGE_FAILED) is False

    def test_keyword_refinement(self) -> None:
        criteria = parse_event_criteria('{"eventType": "KeywordReceived", "keyword": "join"}')

        assert criteria.matches(EventType.KEYWORD_RECEIVED, {"keyword": "JOIN"}) is True
        assert criteria.matches(EventType.KEYWORD_RECEIVED, {"keyword": " Join "}) is True
        assert criteria.matches(EventType.KEYWORD_RECEIVED, {"keyword": "stop"}) is False

    def test_refinement_absent_from_event_does_not_constrain(self) -> None:
        criteria = parse_event_criteria('{"eventType": "KeywordReceived", "keyword": "join"}')

        assert criteria.matches(EventType.KEYWORD_RECEIVED, {}) is True
        assert criteria.matches(EventType.KEYWORD_RECEIVED, {"keyword": None}) is True

    def test_event_field_absent_from_criteria_does_not_constrain(self) -> None:
        criteria = parse_event_criteria('{"eventType": "ContactAddedToGroup"}')

        assert criteria.matches(EventType.CONTACT_ADDED_TO_GROUP, {"groupId": 12}) is True

    def test_group_and_tag_compare_as_strings(self) -> None:
        criteria = parse_event_criteria(
            '{"eventType": "ContactAddedToGroup", "groupId": 12, "tagId": "7"}'
        )

        assert criteria.matches(EventType.CONTACT_ADDED_TO_GROUP, {"groupId": "12", "tagId": 7})
        assert not criteria.matches(EventType.CONTACT_ADDED_TO_GROUP, {"groupId": 13})
        assert not criteria.matches(EventType.CONTACT_ADDED_TO_GROUP, {"tagId": "8"})

    @pytest.mark.parametrize(
        "raw",
        [None, "", "   ", "{not json", "[1, 2]", '"Inactivity"', '{"keyword": "join"}'],
    )
    def test_unusable_criteria_never_match(self, raw: str | None) -> None:
        assert parse_event_criteria(raw) is None

    def test_inactivity_criteria(self) -> None:
        criteria = parse_event_criteria('{"eventType": "Inactivity", "inactiveDays": 30}')

        assert criteria.is_inactivity is True
        assert criteria.inactive_days == 30

    def test_inactive_days_not_an_integer(self) -> None:
        criteria = parse_event_criteria('{"eventType": "Inactivity", "inactiveDays": "soon"}')

        assert criteria.is_inactivity is True
        assert criteria.inactive_days is None

    def test_authored_criteria_round_trip(self) -> None:
        authored = EventCriteria(
            event_type="KeywordReceived",
            keyword="join",
            group_id="12",
        )

        parsed = parse_event_criteria(authored.to_json())

        assert parsed == authored
        assert parsed.matches(EventType.KEYWORD_RECEIVED, {"keyword": "JOIN", "groupId": 12})


class TestKeywordCriteria:
    """Tests for Keyword-type criteria."""

    def test_comma_list(self) -> None:
        criteria = parse_keyword_criteria("join, Start ,,")

        assert criteria.keywords == frozenset({"join", "start"})
        assert criteria.matches("JOIN") is True
        assert criteria.matches("  start ") is True
        assert criteria.matches("stop") is False

    def test_json_keyword_and_keywords(self) -> None:
        criteria = parse_keyword_criteria('{"keyword": "Join", "keywords": ["Go", "yes"]}')

        assert criteria.keywords == frozenset({"join", "go", "yes"})

    def test_keywords_as_json_encoded_string(self) -> None:
        criteria = parse_keyword_criteria('{"keywords": "[\\"deal\\", \\"promo\\"]"}')

        assert criteria.matches("PROMO") is True

    def test_malformed_json_falls_back_to_comma_list(self) -> None:
        criteria = parse_keyword_criteria("{join, start")

        assert criteria.keywords == frozenset({"{join", "start"})
        assert criteria.matches("start") is True

    def test_blank_criteria_matches_nothing(self) -> None:
        assert parse_keyword_criteria("").matches("join") is False
        assert parse_keyword_criteria(None).keywords == frozenset()

    def test_blank_incoming_keyword_never_matches(self) -> None:
        criteria = KeywordCriteria(frozenset({"join"}))

        assert criteria.matches("") is False
        assert criteria.matches("   ") is False
        assert criteria.matches(None) is False

    def test_authored_criteria_round_trip(self) -> None:
        authored = KeywordCriteria(frozenset({"join", "start"}))

        assert parse_keyword_criteria(authored.to_json()) == authored


class TestWorkflowCriteria:
    """Tests for the parsed criteria exposed by workflows."""

    def test_event_workflow_exposes_event_criteria(self) -> None:
        workflow = Workflow(
            owner_id="a",
            name="w",
            trigger_type=TriggerType.EVENT,
            trigger_criteria='{"eventType": "MessageDelivered"}',
        )

        assert isinstance(workflow.criteria, EventCriteria)

    def test_keyword_workflow_exposes_keyword_criteria(self) -> None:
        workflow = Workflow(
            owner_id="a",
            name="w",
            trigger_type=TriggerType.KEYWORD,
            trigger_criteria="join",
        )

        assert isinstance(workflow.criteria, KeywordCriteria)

    def test_parsing_is_cached(self) -> None:
        raw = '{"eventType": "TagAdded", "tagId": 99}'

        assert parse_criteria(False, raw) is parse_criteria(False, raw)
