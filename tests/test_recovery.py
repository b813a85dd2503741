"""Tests for chatstream.llm.recovery."""

from __future__ import annotations

from chatstream.llm import parser, recovery
from chatstream.llm.types import EventKind, ModelProvider


class TestRecover:

    def test_truncated_payload_with_complete_text(self):
        payload = '{"candidates":[{"content":{"parts":[{"text": "hello"}, {"inline'
        assert recovery.recover(payload) == "hello"

    def test_whitespace_around_colon(self):
        assert recovery.recover('{"text"   :\t"hello" , "x": ') == "hello"

    def test_unterminated_value_fails(self):
        assert recovery.recover('{"text": "partial') is None

    def test_no_text_field(self):
        assert recovery.recover('{"delta": "A", "other":') is None

    def test_first_match_wins(self):
        assert recovery.recover('{"text": "one"}, {"text": "two"') == "one"

    def test_escaped_quote_is_kept(self):
        assert recovery.recover(r'{"text": "say \"hi\"", "x') == 'say "hi"'

    def test_escape_sequences_are_decoded(self):
        assert recovery.recover(r'{"text": "line\nbreak", ') == "line\nbreak"

    def test_empty_value(self):
        assert recovery.recover('{"text": "", "more') == ""


class TestSynthesize:

    def test_synthesized_chunk_parses_as_gemini(self):
        obj = recovery.synthesize("hello")
        assert parser.text_delta(obj, ModelProvider.GEMINI) == "hello"


class TestRecoverEvent:

    def test_text_event(self):
        event = recovery.recover_event('{"text": "hello", "broken')
        assert event is not None
        assert event.kind is EventKind.TEXT_DELTA
        assert event.text == "hello"

    def test_empty_text_gives_no_event(self):
        assert recovery.recover_event('{"text": "", "broken') is None

    def test_failure(self):
        assert recovery.recover_event("garbage") is None

    def test_same_event_as_a_parsed_chunk(self):
        event = recovery.recover_event('{"text": "hi", "cut')
        assert [event] == parser.parse_events(recovery.synthesize("hi"), ModelProvider.GEMINI)
