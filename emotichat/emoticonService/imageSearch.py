import asyncio
import base64
import mimetypes
from typing import List, Optional, Union
from urllib.parse import quote

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

from emotichat.commons.errors import ImageFetchFailed, UpstreamRequestFailed, UpstreamUnavailable
from emotichat.commons.utils import get_random_user_agent
from emotichat.emoticonService.models import SearchResult
from emotichat.pipeline.config import (
    EMOTICON_SEARCH_URL_TEMPLATE,
    EMOTICON_REFERER,
    EMOTICON_PAGE_TIMEOUT,
    EMOTICON_IMAGE_TIMEOUT,
    EMOTICON_MAX_RESULTS,
    EMOTICON_SEARCH_ATTEMPTS,
    EMOTICON_RETRY_BACKOFF,
    EMOTICON_DOWNLOAD_DELAY,
    EMOTICON_INLINE_MAX_BYTES,
)

# lazy-load attributes win over the placeholder src
IMAGE_SOURCE_ATTRIBUTES = ("data-original", "data-src", "src")


def normalize_image_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    if url.startswith(("http://", "https://")):
        return url
    return None


def parse_search_page(page: Union[str, bytes], keyword: str) -> List[SearchResult]:
    """Image candidates in page order, relative and inline sources dropped.

    Raw bytes are decoded by BeautifulSoup, which sniffs the charset when
    the page does not declare one.
    """
    soup = BeautifulSoup(page, "html.parser")
    results = []
    seen = set()
    for img in soup.find_all("img"):
        raw = None
        for attribute in IMAGE_SOURCE_ATTRIBUTES:
            if img.get(attribute):
                raw = img.get(attribute)
                break
        url = normalize_image_url(raw)
        if not url or url in seen:
            continue
        seen.add(url)
        label = (img.get("title") or img.get("alt") or "").strip() or keyword
        results.append(SearchResult(url=url, alt=label))
    return results


def _guess_mime(url: str, content_type: Optional[str]) -> str:
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime.startswith("image/"):
            return mime
    guessed, _ = mimetypes.guess_type(url.split("?")[0])
    if guessed and guessed.startswith("image/"):
        return guessed
    return "image/jpeg"


class EmoticonSearchClient:

    def __init__(
        self,
        session: aiohttp.ClientSession,
        search_url_template: str = EMOTICON_SEARCH_URL_TEMPLATE,
        referer: str = EMOTICON_REFERER,
        page_timeout: float = EMOTICON_PAGE_TIMEOUT,
        image_timeout: float = EMOTICON_IMAGE_TIMEOUT,
        max_results: int = EMOTICON_MAX_RESULTS,
        max_attempts: int = EMOTICON_SEARCH_ATTEMPTS,
        retry_backoff: float = EMOTICON_RETRY_BACKOFF,
        download_delay: float = EMOTICON_DOWNLOAD_DELAY,
        inline_max_bytes: int = EMOTICON_INLINE_MAX_BYTES,
    ):
        self.session = session
        self.search_url_template = search_url_template
        self.referer = referer
        self.page_timeout = page_timeout
        self.image_timeout = image_timeout
        self.max_results = max_results
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff
        self.download_delay = download_delay
        self.inline_max_bytes = inline_max_bytes

    def build_search_url(self, keyword: str) -> str:
        return self.search_url_template.format(keyword=quote(keyword.strip(), safe=""))

    async def search(self, keyword: str, inline: bool = True, limit: Optional[int] = None) -> List[SearchResult]:
        """Up to ``max_results`` images for one keyword, in page order.

        Any failure ends this keyword with an empty list so the caller can
        move on to the next variation.
        """
        if not keyword or not keyword.strip():
            return []

        count = self.max_results if limit is None else max(0, min(limit, self.max_results))
        url = self.build_search_url(keyword)
        try:
            page = await self._fetch_page(url)
            candidates = parse_search_page(page, keyword.strip())[:count]
        except UpstreamUnavailable as e:
            logger.warning(f"[ImageSearch] '{keyword}' gave up after {self.max_attempts} attempts: {e}")
            return []
        except (UpstreamRequestFailed, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"[ImageSearch] '{keyword}' page request failed: {type(e).__name__}: {e}")
            return []
        except Exception as e:
            logger.error(f"[ImageSearch] '{keyword}' search failed: {type(e).__name__}: {e}", exc_info=True)
            return []

        logger.debug(f"[ImageSearch] '{keyword}' -> {len(candidates)} candidates")
        if not inline:
            return candidates

        results = []
        for index, candidate in enumerate(candidates):
            if index > 0 and self.download_delay > 0:
                await asyncio.sleep(self.download_delay)
            results.append(await self._inline(candidate))
        return results

    async def _fetch_page(self, url: str) -> bytes:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._get_page(url)
            except UpstreamUnavailable:
                if attempt >= self.max_attempts:
                    raise
                delay = attempt * self.retry_backoff
                logger.info(f"[ImageSearch] 503 from source (attempt {attempt}/{self.max_attempts}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
        raise UpstreamUnavailable(url, 503)

    async def _get_page(self, url: str) -> bytes:
        headers = {"User-Agent": get_random_user_agent()}
        async with self.session.get(
            url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.page_timeout),
        ) as resp:
            if resp.status == 503:
                raise UpstreamUnavailable(url, resp.status)
            if resp.status >= 400:
                raise UpstreamRequestFailed(f"Search page returned HTTP {resp.status}", status=resp.status)
            return await resp.read()

    async def _inline(self, candidate: SearchResult) -> SearchResult:
        try:
            body, content_type = await self._download(candidate.url)
        except (ImageFetchFailed, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"[ImageSearch] Keeping remote URL for {candidate.url}: {e}")
            return candidate
        except Exception as e:
            logger.warning(f"[ImageSearch] Keeping remote URL for {candidate.url}: {type(e).__name__}: {e}")
            return candidate

        if body is None or len(body) >= self.inline_max_bytes:
            return candidate

        mime = _guess_mime(candidate.url, content_type)
        encoded = base64.b64encode(body).decode("ascii")
        return SearchResult(url=f"data:{mime};base64,{encoded}", alt=candidate.alt)

    async def _download(self, url: str):
        headers = {
            "Referer": self.referer,
            "User-Agent": get_random_user_agent(),
        }
        async with self.session.get(
            url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.image_timeout),
        ) as resp:
            if resp.status != 200:
                raise ImageFetchFailed(f"HTTP {resp.status} for {url}")
            content_type = resp.headers.get("Content-Type")
            declared = resp.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) >= self.inline_max_bytes:
                return None, content_type
            return await resp.read(), content_type
