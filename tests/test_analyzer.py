"""Tests for idea_hunter.services.analyzer."""
import json

import httpx
import openai
import pytest

from idea_hunter.config import ConfigurationError
from idea_hunter.services.analyzer import (
    AnalyzerState,
    IdeaAnalyzerService,
    IdeaParseError,
    extract_payload,
    is_quota_error,
    is_retryable_error,
    parse_ideas,
)
from idea_hunter.services.retry import RetryPolicy

from helpers import FakeAPIError, fake_openai, make_item, make_items


def idea(index, title=None, potential="High"):
    return {
        "title": title or f"idea {index}",
        "category": "SaaS",
        "painPoint": "pain",
        "idea": "do the thing",
        "potential": potential,
        "potentialReason": "big market",
        "sourceIndex": index,
    }


def fenced(*indices):
    return "Here you go:\n```json\n" + json.dumps([idea(i) for i in indices]) + "\n```\n"


def make_analyzer(config, settings, script):
    client, completions = fake_openai(script)
    sleeps = []
    analyzer = IdeaAnalyzerService(config, settings, client=client, sleep=sleeps.append)
    return analyzer, completions, sleeps


REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls, status, body):
    return cls("error", response=httpx.Response(status, request=REQUEST), body=body)


class TestClassification:
    def test_rate_limit_is_retryable(self):
        assert is_retryable_error(FakeAPIError(429, code="rate_limit_exceeded"))

    def test_server_error_is_retryable(self):
        assert is_retryable_error(FakeAPIError(502))

    def test_quota_is_not_retryable(self):
        error = FakeAPIError(429, code="insufficient_quota")
        assert is_quota_error(error)
        assert not is_retryable_error(error)

    def test_quota_detected_by_type(self):
        assert is_quota_error(FakeAPIError(429, type="insufficient_quota"))

    def test_client_errors_are_not_retryable(self):
        assert not is_retryable_error(FakeAPIError(400))
        assert not is_retryable_error(ValueError("x"))

    def test_openai_sdk_errors(self):
        quota = status_error(openai.RateLimitError, 429, {"code": "insufficient_quota", "type": "insufficient_quota"})
        limited = status_error(openai.RateLimitError, 429, {"code": "rate_limit_exceeded"})
        server = status_error(openai.InternalServerError, 500, None)

        assert is_quota_error(quota) and not is_retryable_error(quota)
        assert is_retryable_error(limited) and not is_quota_error(limited)
        assert is_retryable_error(server)
        assert is_retryable_error(openai.APITimeoutError(request=REQUEST))
        assert is_retryable_error(openai.APIConnectionError(request=REQUEST))


class TestParsing:
    def test_fenced_block_is_extracted(self):
        assert extract_payload("text\n```json\n[1]\n```\nmore") == "[1]"

    def test_bare_fence(self):
        assert extract_payload("```\n[]\n```") == "[]"

    def test_fence_with_other_info_strings(self):
        for tag in ("JSON", "javascript", "jsonc"):
            text = f"Ideas:\n```{tag}\n" + json.dumps([idea(2)]) + "\n```"
            assert [i.source_index for i in parse_ideas(text)] == [2]

    def test_single_line_fence(self):
        assert extract_payload("```JSON []```") == "[]"

    def test_raw_json_is_used_as_is(self):
        ideas = parse_ideas(json.dumps([idea(3)]))
        assert ideas[0].source_index == 3
        assert ideas[0].pain_point == "pain"
        assert ideas[0].potential_reason == "big market"

    def test_not_json_raises(self):
        with pytest.raises(IdeaParseError):
            parse_ideas("I could not find any ideas.")

    def test_object_instead_of_array_raises(self):
        with pytest.raises(IdeaParseError):
            parse_ideas('{"title": "x"}')

    def test_invalid_entries_are_dropped_individually(self):
        payload = json.dumps([idea(0), idea(1, potential="Huge"), "junk", {"category": "SaaS"}])
        assert [i.source_index for i in parse_ideas(payload)] == [0]

    def test_values_are_normalized(self):
        raw = idea(0, potential="high")
        raw["category"] = "Hardware"
        parsed = parse_ideas(json.dumps([raw]))[0]
        assert parsed.potential == "High"
        assert parsed.category == "その他"


class TestAnalyze:
    def test_empty_input_makes_no_request(self, config, settings):
        analyzer, completions, _ = make_analyzer(config, settings, [])
        assert analyzer.analyze([]) == []
        assert completions.prompts == []

    def test_batches_are_sent_in_order(self, config, settings):
        items = make_items(45)
        analyzer, completions, _ = make_analyzer(config, settings, [fenced(0), fenced(20), fenced(40)])

        ideas = analyzer.analyze(items)

        assert [i.source_index for i in ideas] == [0, 20, 40]
        assert len(completions.prompts) == 3
        assert "Index: 19" in completions.prompts[0]
        assert "Index: 20" not in completions.prompts[0]
        assert "Index: 20" in completions.prompts[1]
        assert "Index: 44" in completions.prompts[2]

    def test_source_index_resolves_against_batch_offset(self, config, settings):
        items = make_items(45)
        analyzer, _, _ = make_analyzer(config, settings, [fenced(0), fenced(25), fenced(25, 44)])

        first, middle, stray, last = analyzer.analyze(items)

        assert first.original_url == items[0].url
        assert middle.original_url == items[25].url
        assert middle.original_source == "reddit"
        assert middle.collected_at == items[25].collected_at
        # 25 is outside the third batch (40-44): kept but not enriched
        assert stray.source_index == 25
        assert stray.original_url is None and not stray.is_enriched
        assert last.original_url == items[44].url

    def test_missing_source_index_is_left_unenriched(self, config, settings):
        raw = idea(0)
        del raw["sourceIndex"]
        analyzer, _, _ = make_analyzer(config, settings, [json.dumps([raw])])
        ideas = analyzer.analyze(make_items(3))
        assert len(ideas) == 1 and ideas[0].original_url is None

    def test_quota_error_short_circuits_remaining_batches(self, config, settings):
        items = make_items(80)
        analyzer, completions, sleeps = make_analyzer(config, settings, [
            fenced(0, 1),
            FakeAPIError(429, code="insufficient_quota"),
            fenced(40),
            fenced(60),
        ])

        ideas = analyzer.analyze(items)

        assert [i.source_index for i in ideas] == [0, 1]
        assert len(completions.prompts) == 2
        assert sleeps == []
        assert analyzer.state is AnalyzerState.QUOTA_EXHAUSTED

    def test_quota_state_persists_for_the_engine_lifetime(self, config, settings):
        analyzer, completions, _ = make_analyzer(config, settings, [FakeAPIError(429, code="insufficient_quota")])
        analyzer.analyze(make_items(5))
        assert analyzer.analyze(make_items(5)) == []
        assert len(completions.prompts) == 1

    def test_rate_limits_are_retried_with_backoff(self, config, settings):
        analyzer, completions, sleeps = make_analyzer(config, settings, [
            FakeAPIError(429, code="rate_limit_exceeded"),
            FakeAPIError(429, code="rate_limit_exceeded"),
            fenced(3),
        ])

        ideas = analyzer.analyze(make_items(10))

        assert [i.source_index for i in ideas] == [3]
        assert sleeps == [1.0, 2.0]
        assert len(completions.prompts) == 3
        assert analyzer.state is AnalyzerState.ACTIVE

    def test_exhausted_retries_only_lose_that_batch(self, config, settings):
        analyzer, _, sleeps = make_analyzer(config, settings, [
            FakeAPIError(503), FakeAPIError(503), FakeAPIError(503),
            fenced(20),
        ])

        ideas = analyzer.analyze(make_items(25))

        assert [i.source_index for i in ideas] == [20]
        assert sleeps == [1.0, 2.0]

    def test_backoff_respects_policy_cap(self, config, settings):
        client, _ = fake_openai([FakeAPIError(500)] * 4 + [fenced(0)])
        sleeps = []
        analyzer = IdeaAnalyzerService(
            config, settings, client=client, sleep=sleeps.append,
            retry_policy=RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=3.0),
        )
        assert len(analyzer.analyze(make_items(1))) == 1
        assert sleeps == [1.0, 2.0, 3.0, 3.0]

    def test_malformed_batch_is_contained(self, config, settings):
        analyzer, _, _ = make_analyzer(config, settings, [
            fenced(0, 5),
            "Sorry, I cannot produce JSON today.",
            fenced(45),
        ])

        ideas = analyzer.analyze(make_items(60))

        assert [i.source_index for i in ideas] == [0, 5, 45]
        assert analyzer.state is AnalyzerState.ACTIVE

    def test_other_errors_are_not_retried(self, config, settings):
        analyzer, completions, sleeps = make_analyzer(config, settings, [FakeAPIError(400), fenced(20)])
        ideas = analyzer.analyze(make_items(21))
        assert [i.source_index for i in ideas] == [20]
        assert len(completions.prompts) == 2
        assert sleeps == []

    def test_prompt_content_is_bounded(self, config, settings):
        analyzer, completions, _ = make_analyzer(config, settings, ["[]"])
        analyzer.analyze([make_item(0, content="y" * 800)])
        prompt = completions.prompts[0]
        assert "y" * 500 in prompt
        assert "y" * 501 not in prompt

    def test_japan_focus_note(self, config, settings):
        config.analysis.japan_focus = False
        analyzer, completions, _ = make_analyzer(config, settings, ["[]"])
        analyzer.analyze(make_items(1))
        assert "日本市場" not in completions.prompts[0]

    def test_missing_api_key_fails_fast(self, config, bare_settings):
        with pytest.raises(ConfigurationError):
            IdeaAnalyzerService(config, bare_settings)
