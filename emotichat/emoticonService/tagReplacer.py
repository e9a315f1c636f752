"""
Placeholder scanning and substitution.

A placeholder is a bracketed file name such as ``(老铁没毛病.jpg)`` or
``【doge.GIF］``. Each one is resolved independently:

    derive variations -> search each in order -> first hit wins
    nothing found     -> ask the model for an alternative keyword and search
                         it, at most ``max_fallback_attempts`` times
    still nothing     -> the placeholder stays in the text verbatim
"""
import html
import re
from typing import Callable, Dict, Iterator, List, Optional
from urllib.parse import quote

from loguru import logger

from emotichat.emoticonService.keywordDeriver import derive_variations
from emotichat.emoticonService.models import PlaceholderMatch, ReplacementOutcome, SearchResult
from emotichat.pipeline.config import EMOTICON_FALLBACK_ATTEMPTS, EMOTICON_PROXY_PATH

OPENING_BRACKETS = "([（［【"
CLOSING_BRACKETS = ")]）］】"
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")

PLACEHOLDER_RE = re.compile(
    r"[" + re.escape(OPENING_BRACKETS) + r"]"
    r"\s*([^" + re.escape(OPENING_BRACKETS + CLOSING_BRACKETS) + r"\r\n]+?"
    r"\.(?:" + "|".join(IMAGE_EXTENSIONS) + r"))\s*"
    r"[" + re.escape(CLOSING_BRACKETS) + r"]",
    re.IGNORECASE,
)


def iter_placeholders(text: str) -> Iterator[PlaceholderMatch]:
    for match in PLACEHOLDER_RE.finditer(text or ""):
        yield PlaceholderMatch(
            full_match=match.group(0),
            file_name_token=match.group(1),
            start=match.start(),
            end=match.end(),
        )


class TagReplacer:

    def __init__(
        self,
        search_client,
        suggester=None,
        max_fallback_attempts: int = EMOTICON_FALLBACK_ATTEMPTS,
        proxy_path: Optional[str] = EMOTICON_PROXY_PATH,
        derive: Callable[[str], List[str]] = derive_variations,
    ):
        self.search_client = search_client
        self.suggester = suggester
        self.max_fallback_attempts = max(0, max_fallback_attempts)
        self.proxy_path = proxy_path
        self.derive = derive

    async def resolve(self, text: str, credential: Optional[str] = None) -> ReplacementOutcome:
        if not text:
            return ReplacementOutcome(processed_text=text or "", emoticons=[])

        pieces: List[str] = []
        emoticons: List[SearchResult] = []
        resolved: Dict[str, Optional[SearchResult]] = {}
        cursor = 0

        for placeholder in iter_placeholders(text):
            pieces.append(text[cursor:placeholder.start])
            cursor = placeholder.end
            token = placeholder.file_name_token

            if token in resolved:
                result = resolved[token]
            else:
                try:
                    result = await self.resolve_token(token, credential)
                    resolved[token] = result
                except Exception as e:
                    logger.error(f"[TagReplacer] Failed to resolve '{token}': {e}", exc_info=True)
                    result = None

            if result is None:
                pieces.append(placeholder.full_match)
                continue
            pieces.append(self.render(result))
            emoticons.append(result)

        pieces.append(text[cursor:])
        if emoticons:
            logger.info(f"[TagReplacer] Substituted {len(emoticons)} emoticon(s)")
        return ReplacementOutcome(processed_text="".join(pieces), emoticons=emoticons)

    async def resolve_token(self, token: str, credential: Optional[str] = None) -> Optional[SearchResult]:
        variations = self.derive(token)
        if not variations:
            logger.debug(f"[TagReplacer] '{token}' has no usable keyword")
            return None

        result = await self._first_match(variations)
        if result is not None:
            return result

        if not credential or self.suggester is None:
            return None

        keyword = variations[0]
        for depth in range(1, self.max_fallback_attempts + 1):
            alternative = await self.suggester.suggest_alternative(keyword, credential)
            if not alternative:
                break
            result = await self._first_match([alternative])
            if result is not None:
                logger.info(f"[TagReplacer] '{token}' matched via alternative '{alternative}' (depth {depth})")
                return result
            keyword = alternative

        logger.info(f"[TagReplacer] '{token}' left unresolved")
        return None

    async def _first_match(self, keywords: List[str]) -> Optional[SearchResult]:
        for keyword in keywords:
            results = await self.search_client.search(keyword, limit=1)
            if results:
                logger.debug(f"[TagReplacer] Hit for '{keyword}'")
                return results[0]
        return None

    def render(self, result: SearchResult) -> str:
        src = result.url
        if self.proxy_path and not result.is_inline:
            src = f"{self.proxy_path}?url={quote(result.url, safe='')}"
        return (
            f'<img src="{html.escape(src, quote=True)}" '
            f'alt="{html.escape(result.alt, quote=True)}" class="emoticon" />'
        )
