import json
from types import SimpleNamespace

import httpx
import pytest

import enhancer
from config import AIConfig
from conftest import make_listing
from enhancer import (
    DISCARD_MARKER, BatchEnhancer, ClaudeEnhancer, NoOpEnhancer, OpenAICompatibleEnhancer,
    apply_batch_response, build_batch_prompt, build_enhancer, is_discarded,
)


class CannedEnhancer(BatchEnhancer):
    provider = "canned"

    def __init__(self, reply, **kwargs):
        super().__init__(**kwargs)
        self.reply = reply
        self.prompts = []

    def _complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply(prompt) if callable(self.reply) else self.reply


def test_prompt_contains_every_listing_with_its_id():
    batch = [make_listing(0, title="Java Dev"), make_listing(1, title="Kotlin Dev", location="")]
    prompt = build_batch_prompt(batch)
    assert "###ANALYSIS ID: 0###" in prompt and "###ANALYSIS ID: 1###" in prompt
    assert "Java Dev @ Acme" in prompt
    assert "Location: Not specified" in prompt


def test_apply_batch_response_attaches_and_marks_discards():
    batch = [make_listing(i) for i in range(3)]
    content = (
        "###ANALYSIS ID: 0###\nVerdict: EXCELLENT\nAI Score: 92\n"
        "###ANALYSIS ID: 1###\nVerdict: DISCARD\nAI Score: 10\n"
        "###ANALYSIS ID: 7###\nVerdict: GOOD\n"
    )
    apply_batch_response(batch, content)

    assert batch[0].ai_analysis.startswith("Verdict: EXCELLENT")
    assert batch[1].ai_analysis == DISCARD_MARKER
    assert batch[2].ai_analysis is None


def test_is_discarded():
    assert is_discarded(make_listing(ai_analysis=DISCARD_MARKER))
    assert is_discarded(make_listing(ai_analysis="Verdict: LOW RELEVANCE\nAI Score: 30"))
    assert not is_discarded(make_listing(ai_analysis="Verdict: GOOD"))
    assert not is_discarded(make_listing())


def test_batch_enhancer_requires_a_completion_backend():
    with pytest.raises(TypeError):
        BatchEnhancer()


def test_batches_and_max_jobs_cap():
    listings = [make_listing(i) for i in range(5)]
    reply = "###ANALYSIS ID: 0###\nVerdict: GOOD\n###ANALYSIS ID: 1###\nVerdict: GOOD\n"
    canned = CannedEnhancer(reply, batch_size=2, max_jobs=3)

    result = canned.enhance_all(listings)

    assert result == listings
    assert len(canned.prompts) == 2
    assert [l.ai_analysis is not None for l in listings] == [True, True, True, False, False]


def test_failed_batch_is_left_unenhanced():
    def reply(prompt):
        if "Fail me" in prompt:
            raise RuntimeError("timeout")
        return "###ANALYSIS ID: 0###\nVerdict: GOOD\n"

    first = [make_listing(0, title="Fail me")]
    second = [make_listing(1)]
    canned = CannedEnhancer(reply, batch_size=1)

    canned.enhance_all(first + second)

    assert first[0].ai_analysis is None
    assert second[0].ai_analysis == "Verdict: GOOD"


def test_noop_enhancer():
    listings = [make_listing(1)]
    noop = NoOpEnhancer()
    assert not noop.is_enabled()
    assert noop.enhance_all(listings) is listings


def test_claude_enhancer_uses_messages_api():
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(text="###ANALYSIS ID: 0###\nVerdict: GOOD\n")])

    client = SimpleNamespace(messages=SimpleNamespace(create=create))
    claude = ClaudeEnhancer("key", client=client)
    listing = make_listing(1)

    claude.enhance_all([listing])

    assert calls[0]["model"] == enhancer.DEFAULT_CLAUDE_MODEL
    assert listing.ai_analysis == "Verdict: GOOD"


def test_openai_compatible_retries_once_on_rate_limit(monkeypatch):
    monkeypatch.setattr(enhancer.time, "sleep", lambda s: None)
    responses = [
        httpx.Response(429),
        httpx.Response(200, json={"choices": [{"message": {"content": "###ANALYSIS ID: 0###\nVerdict: GOOD"}}]}),
    ]
    seen = []

    def handler(request):
        seen.append(request)
        return responses.pop(0)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    groq = OpenAICompatibleEnhancer("groq", "secret", client=client)
    listing = make_listing(1)

    groq.enhance_all([listing])

    assert len(seen) == 2
    assert seen[0].headers["Authorization"] == "Bearer secret"
    assert json.loads(seen[0].content)["model"] == "llama-3.3-70b-versatile"
    assert listing.ai_analysis == "Verdict: GOOD"


def test_openai_compatible_unknown_provider():
    with pytest.raises(ValueError):
        OpenAICompatibleEnhancer("nope", "key")


def test_build_enhancer_selection(monkeypatch):
    assert isinstance(build_enhancer(AIConfig(provider="none")), NoOpEnhancer)

    monkeypatch.setattr(enhancer, "get_ai_api_key", lambda provider: "")
    assert isinstance(build_enhancer(AIConfig(provider="groq")), NoOpEnhancer)

    monkeypatch.setattr(enhancer, "get_ai_api_key", lambda provider: "key")
    groq = build_enhancer(AIConfig(provider="groq", max_jobs=5, batch_size=3))
    assert isinstance(groq, OpenAICompatibleEnhancer)
    assert (groq.max_jobs, groq.batch_size) == (5, 3)

    assert isinstance(build_enhancer(AIConfig(provider="mystery")), NoOpEnhancer)
