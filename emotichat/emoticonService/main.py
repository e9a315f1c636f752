from typing import Optional

import aiohttp
from loguru import logger

from emotichat.emoticonService.aiFallback import KeywordSuggester
from emotichat.emoticonService.imageSearch import EmoticonSearchClient
from emotichat.emoticonService.quotaLimiter import InMemoryQuotaStore, QuotaStore, RedisQuotaStore
from emotichat.emoticonService.tagReplacer import TagReplacer
from emotichat.pipeline.config import QUOTA_BACKEND

_tag_replacer: Optional[TagReplacer] = None


def create_quota_store(backend: str = QUOTA_BACKEND) -> QuotaStore:
    if backend == "redis":
        return RedisQuotaStore.from_config()
    if backend != "memory":
        logger.warning(f"[EmoticonService] Unknown QUOTA_BACKEND '{backend}', using memory")
    return InMemoryQuotaStore()


def initialize_tag_replacer(session: aiohttp.ClientSession) -> TagReplacer:
    global _tag_replacer
    _tag_replacer = TagReplacer(
        search_client=EmoticonSearchClient(session),
        suggester=KeywordSuggester(session),
    )
    logger.info("[EmoticonService] Global tag replacer initialized")
    return _tag_replacer


def get_tag_replacer() -> Optional[TagReplacer]:
    return _tag_replacer
