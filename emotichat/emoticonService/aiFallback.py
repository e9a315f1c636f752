import re
from typing import Optional

import aiohttp
from loguru import logger

from emotichat.chatEngine.completion import request_completion, extract_content
from emotichat.commons.errors import UpstreamMalformedResponse, UpstreamRequestFailed
from emotichat.pipeline.config import (
    DEEPSEEK_API_URL,
    EMOTICON_FALLBACK_MODEL,
    EMOTICON_FALLBACK_TEMPERATURE,
    EMOTICON_FALLBACK_MAX_TOKENS,
    EMOTICON_FALLBACK_TIMEOUT,
)

SUGGESTION_PROMPT = (
    "Suggest 1-2 alternative search terms for finding a meme/emoticon image "
    "about \"{keyword}\". Use the same language as the keyword. "
    "Reply with the terms only, one per line, no explanations."
)

_SPLIT_RE = re.compile(r"[\n,，、;；/|]+")
_PREFIX_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)、])\s*")


def parse_suggestion(content: str) -> Optional[str]:
    for part in _SPLIT_RE.split(content or ""):
        term = _PREFIX_RE.sub("", part).strip().strip("\"'“”‘’「」《》").strip()
        if term and not term.isdigit():
            return term
    return None


class KeywordSuggester:

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str = DEEPSEEK_API_URL,
        model: str = EMOTICON_FALLBACK_MODEL,
        temperature: float = EMOTICON_FALLBACK_TEMPERATURE,
        max_tokens: int = EMOTICON_FALLBACK_MAX_TOKENS,
        timeout: float = EMOTICON_FALLBACK_TIMEOUT,
    ):
        self.session = session
        self.endpoint = endpoint
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def suggest_alternative(self, keyword: str, credential: Optional[str]) -> Optional[str]:
        if not credential or not keyword:
            return None

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": SUGGESTION_PROMPT.format(keyword=keyword)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        try:
            data = await request_completion(
                self.session, credential, payload, endpoint=self.endpoint, timeout=self.timeout
            )
            suggestion = parse_suggestion(extract_content(data))
        except (UpstreamRequestFailed, UpstreamMalformedResponse) as e:
            logger.warning(f"[AIFallback] Suggestion for '{keyword}' failed: {e}")
            return None

        if not suggestion or suggestion.casefold() == keyword.strip().casefold():
            logger.debug(f"[AIFallback] No new keyword for '{keyword}'")
            return None
        logger.info(f"[AIFallback] '{keyword}' -> '{suggestion}'")
        return suggestion
