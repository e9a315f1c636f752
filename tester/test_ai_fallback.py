import json

import aiohttp

from conftest import FakeResponse, completion_body
from emotichat.emoticonService.aiFallback import KeywordSuggester, parse_suggestion

ENDPOINT = "https://llm.test/v1/chat/completions"


def make_suggester(session):
    return KeywordSuggester(session, endpoint=ENDPOINT, model="deepseek-chat", temperature=0.3, max_tokens=30)


def test_parse_suggestion_takes_first_clean_term():
    assert parse_suggestion("狗头\n滑稽") == "狗头"
    assert parse_suggestion("1. \"doge\"\n2. shiba") == "doge"
    assert parse_suggestion("1、熊猫头、蘑菇头") == "熊猫头"
    assert parse_suggestion("- 「无语」") == "无语"
    assert parse_suggestion("   ") is None


async def test_suggestion_request_shape(fake_session):
    fake_session.add("POST", ENDPOINT, FakeResponse(body=completion_body("熊猫头\n蘑菇头")))

    suggestion = await make_suggester(fake_session).suggest_alternative("老铁没毛病", "sk-user")

    assert suggestion == "熊猫头"
    call = fake_session.calls[0]
    assert call["headers"]["Authorization"] == "Bearer sk-user"
    payload = json.loads(call["data"].decode("utf-8"))
    assert payload["model"] == "deepseek-chat"
    assert payload["temperature"] == 0.3
    assert payload["max_tokens"] == 30
    assert "老铁没毛病" in payload["messages"][0]["content"]


async def test_same_keyword_is_rejected(fake_session):
    fake_session.add("POST", ENDPOINT, FakeResponse(body=completion_body("Doge")))
    assert await make_suggester(fake_session).suggest_alternative("doge", "sk-user") is None


async def test_without_credential_no_request_is_made(fake_session):
    assert await make_suggester(fake_session).suggest_alternative("doge", None) is None
    assert fake_session.calls == []


async def test_upstream_failures_stop_silently(fake_session):
    suggester = make_suggester(fake_session)

    fake_session.add("POST", ENDPOINT, FakeResponse(status=500, body={"error": {"message": "boom"}}))
    assert await suggester.suggest_alternative("doge", "sk-user") is None

    fake_session.routes.clear()
    fake_session.add("POST", ENDPOINT, FakeResponse(body={"choices": []}))
    assert await suggester.suggest_alternative("doge", "sk-user") is None

    fake_session.routes.clear()
    fake_session.add("POST", ENDPOINT, aiohttp.ClientConnectionError("refused"))
    assert await suggester.suggest_alternative("doge", "sk-user") is None

    fake_session.routes.clear()
    fake_session.add("POST", ENDPOINT, FakeResponse(body=b"<html>oops</html>"))
    assert await suggester.suggest_alternative("doge", "sk-user") is None
