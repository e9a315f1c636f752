import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from emotichat.emoticonService.models import SearchResult


class FakeResponse:
    def __init__(self, status: int = 200, body: Any = b"", headers: Optional[Dict[str, str]] = None):
        self.status = status
        self.headers = dict(headers or {})
        if isinstance(body, (dict, list)):
            body = json.dumps(body, ensure_ascii=False)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def text(self) -> str:
        return self._body.decode("utf-8")

    async def json(self, content_type=None) -> Any:
        return json.loads(self._body.decode("utf-8"))


class _RequestContext:
    def __init__(self, outcome):
        self.outcome = outcome

    async def __aenter__(self):
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stand-in for aiohttp.ClientSession.

    Responses are queued per (method, url); the last queued response repeats
    once the queue is drained. Unknown URLs answer 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, url: str, *outcomes):
        self.routes.setdefault((method.upper(), url), []).extend(outcomes)
        return self

    def calls_to(self, url: str, method: Optional[str] = None) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["url"] == url and (method is None or c["method"] == method)]

    def _dispatch(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        queue = self.routes.get((method, url))
        if not queue:
            return _RequestContext(FakeResponse(status=404, body=b"not found"))
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        return _RequestContext(outcome)

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, **kwargs)

    async def close(self):
        pass


class FakeSearchClient:
    """Keyword -> results map; records every keyword it was asked for."""

    def __init__(self, hits: Optional[Dict[str, List[SearchResult]]] = None, failing: Optional[set] = None):
        self.hits = hits or {}
        self.failing = failing or set()
        self.calls: List[str] = []
        self.limits: List[Optional[int]] = []

    async def search(self, keyword: str, inline: bool = True, limit: Optional[int] = None) -> List[SearchResult]:
        self.calls.append(keyword)
        self.limits.append(limit)
        if keyword in self.failing:
            raise RuntimeError(f"search blew up for {keyword}")
        return list(self.hits.get(keyword, []))


class FakeSuggester:
    def __init__(self, suggestions: Optional[List[Optional[str]]] = None):
        self.suggestions = list(suggestions or [])
        self.calls: List[Tuple[str, str]] = []

    async def suggest_alternative(self, keyword: str, credential: Optional[str]) -> Optional[str]:
        self.calls.append((keyword, credential))
        if not self.suggestions:
            return None
        return self.suggestions.pop(0)


def completion_body(content: str) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "deepseek-chat",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 5, "total_tokens": 10},
    }


def search_page(*images: str) -> str:
    return "<html><body>" + "".join(images) + "</body></html>"


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
