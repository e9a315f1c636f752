from typing import Optional

import aiohttp
from loguru import logger

from .chat_engine import ChatEngine
from emotichat.emoticonService.quotaLimiter import QuotaStore
from emotichat.emoticonService.tagReplacer import TagReplacer

_chat_engine: Optional[ChatEngine] = None


def initialize_chat_engine(
    session: aiohttp.ClientSession,
    quota_store: QuotaStore,
    tag_replacer: TagReplacer,
) -> ChatEngine:
    global _chat_engine
    _chat_engine = ChatEngine(session, quota_store, tag_replacer)
    logger.info("[ChatEngine] Global chat engine initialized")
    return _chat_engine


def get_chat_engine() -> Optional[ChatEngine]:
    global _chat_engine
    return _chat_engine
