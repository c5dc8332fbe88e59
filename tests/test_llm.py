import json

import httpx
import pytest

from config import HTTPX_CONFIG, OPENAI_CONFIG
from pipeline.errors import UpstreamFailure
from pipeline.llm import OpenAIChatClient, SYSTEM_PROMPT, decode_segments
from pipeline.models import Animation, FacialExpression
from utils.httpx_manager import HttpxManager

SEGMENT = {"text": "Hi!", "facialExpression": "smile", "animation": "Talking_0"}


def test_bare_array(logger):
    drafts = decode_segments(json.dumps([SEGMENT, dict(SEGMENT, text="Bye")]), logger)
    assert [d.text for d in drafts] == ["Hi!", "Bye"]
    assert drafts[0].facialExpression == FacialExpression.SMILE
    assert drafts[0].animation == Animation.TALKING_0


def test_object_with_single_array_property(logger):
    drafts = decode_segments(json.dumps({"messages": [SEGMENT]}), logger)
    assert [d.text for d in drafts] == ["Hi!"]


def test_wrapper_property_name_does_not_matter(logger):
    drafts = decode_segments(json.dumps({"reply": [SEGMENT], "mood": "happy"}), logger)
    assert len(drafts) == 1


@pytest.mark.parametrize("raw", [
    "not json",
    json.dumps({"text": "Hi!"}),
    json.dumps({"a": [SEGMENT], "b": [SEGMENT]}),
    json.dumps("just a string"),
    json.dumps([{"facialExpression": "smile"}]),
    json.dumps([{"text": 42}]),
    json.dumps(["plain text item"]),
])
def test_malformed_replies_fail_the_run(logger, raw):
    with pytest.raises(UpstreamFailure) as exc_info:
        decode_segments(raw, logger)
    assert exc_info.value.step == "llm"


def test_more_than_three_segments_are_cut(logger):
    items = [dict(SEGMENT, text=str(i)) for i in range(5)]
    drafts = decode_segments(json.dumps(items), logger, max_segments=3)
    assert [d.text for d in drafts] == ["0", "1", "2"]


def test_unknown_tags_fall_back(logger):
    drafts = decode_segments(json.dumps([{"text": "Hm", "facialExpression": "smirk", "animation": "Dance"}]), logger)
    assert drafts[0].facialExpression == FacialExpression.DEFAULT
    assert drafts[0].animation == Animation.IDLE


def test_empty_array_is_an_empty_reply(logger):
    assert decode_segments("[]", logger) == []


def _client(logger_manager, handler, api_key="sk-test"):
    transport = httpx.MockTransport(handler)
    manager = HttpxManager(logger_manager=logger_manager, config=dict(HTTPX_CONFIG, RETRY_ATTEMPTS=1),
                           transport=transport)
    return OpenAIChatClient(manager, logger_manager, dict(OPENAI_CONFIG, API_KEY=api_key,
                                                          BASE_URL="https://llm.test/v1"))


@pytest.mark.asyncio
async def test_complete_sends_system_prompt_and_returns_content(logger_manager):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": json.dumps([SEGMENT])}}]})

    client = _client(logger_manager, handler)
    content = await client.complete("How are you?")
    assert json.loads(content) == [SEGMENT]
    assert seen["url"] == "https://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert seen["body"]["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert seen["body"]["messages"][1] == {"role": "user", "content": "How are you?"}


@pytest.mark.asyncio
async def test_provider_error_becomes_upstream_failure(logger_manager):
    client = _client(logger_manager, lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(UpstreamFailure) as exc_info:
        await client.complete("hi")
    assert exc_info.value.step == "llm"
    assert "boom" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_response_without_choices_is_upstream_failure(logger_manager):
    client = _client(logger_manager, lambda request: httpx.Response(200, json={"id": "x"}))
    with pytest.raises(UpstreamFailure):
        await client.complete("hi")


@pytest.mark.parametrize("key,expected", [("sk-test", True), ("", False), ("-", False)])
def test_configured_flag(logger_manager, key, expected):
    client = _client(logger_manager, lambda request: httpx.Response(200), api_key=key)
    assert client.configured is expected
