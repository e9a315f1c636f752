from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from emotichat.chatEngine.completion import build_messages, extract_content, request_completion
from emotichat.commons.errors import CredentialMissing, QuotaExceeded
from emotichat.emoticonService.models import ReplacementOutcome
from emotichat.emoticonService.quotaLimiter import QuotaStore
from emotichat.emoticonService.tagReplacer import TagReplacer
from emotichat.pipeline.config import (
    DEEPSEEK_API_KEY,
    DEEPSEEK_API_URL,
    CHAT_MODEL,
    CHAT_TEMPERATURE,
    CHAT_MAX_TOKENS,
    GUEST_LIMIT,
    GUEST_LIMIT_MESSAGE,
    EMOTICON_FALLBACK_FOR_GUESTS,
    UNKNOWN_CLIENT_ID,
)


class ChatEngine:

    def __init__(
        self,
        session: aiohttp.ClientSession,
        quota_store: QuotaStore,
        tag_replacer: TagReplacer,
        server_api_key: Optional[str] = DEEPSEEK_API_KEY,
        endpoint: str = DEEPSEEK_API_URL,
        model: str = CHAT_MODEL,
        guest_limit: int = GUEST_LIMIT,
        fallback_for_guests: bool = EMOTICON_FALLBACK_FOR_GUESTS,
    ):
        self.session = session
        self.quota_store = quota_store
        self.tag_replacer = tag_replacer
        self.server_api_key = server_api_key
        self.endpoint = endpoint
        self.model = model
        self.guest_limit = max(1, guest_limit)
        self.fallback_for_guests = fallback_for_guests
        logger.info("[ChatEngine] Initialized")

    async def respond(
        self,
        message: str,
        history: Optional[List[Dict[str, Any]]] = None,
        api_key: Optional[str] = None,
        client_id: str = UNKNOWN_CLIENT_ID,
    ) -> Dict[str, Any]:
        """Run one chat turn and return the response payload.

        Guests (no ``api_key``) are charged one unit of quota before anything
        else happens; when the quota is spent the fixed limit payload is
        returned and no upstream call is made.
        """
        if not api_key:
            try:
                await self._enforce_quota(client_id)
            except QuotaExceeded as e:
                logger.info(f"[ChatEngine] {e}")
                return self.limit_payload()

        effective_key = api_key or self.server_api_key
        if not effective_key:
            raise CredentialMissing("No API key provided and server key not configured")

        fallback_credential = self.fallback_credential(api_key)
        user_outcome = await self.tag_replacer.resolve(message, fallback_credential)

        payload = {
            "model": self.model,
            "messages": build_messages(history, message),
            "temperature": CHAT_TEMPERATURE,
            "max_tokens": CHAT_MAX_TOKENS,
        }
        data = await request_completion(self.session, effective_key, payload, endpoint=self.endpoint)
        reply = extract_content(data)

        reply_outcome = await self.tag_replacer.resolve(reply, fallback_credential)
        return self.build_payload(data, reply_outcome, user_outcome)

    async def resolve_text(self, text: str, api_key: Optional[str] = None) -> ReplacementOutcome:
        return await self.tag_replacer.resolve(text, self.fallback_credential(api_key))

    def fallback_credential(self, api_key: Optional[str]) -> Optional[str]:
        if api_key:
            return api_key
        if self.fallback_for_guests:
            return self.server_api_key
        return None

    async def _enforce_quota(self, client_id: str) -> None:
        decision = await self.quota_store.check_and_increment(client_id, self.guest_limit)
        if not decision.allowed:
            raise QuotaExceeded(client_id, self.guest_limit)
        logger.debug(f"[ChatEngine] Guest {client_id} has {decision.remaining} request(s) left today")

    @staticmethod
    def limit_payload() -> Dict[str, Any]:
        return {
            "choices": [{
                "message": {
                    "role": "assistant",
                    "content": GUEST_LIMIT_MESSAGE
                }
            }],
            "response": GUEST_LIMIT_MESSAGE,
            "content": {"text": GUEST_LIMIT_MESSAGE, "emoticons": []},
            "emoticons": [],
        }

    @staticmethod
    def build_payload(
        data: Dict[str, Any],
        reply_outcome: ReplacementOutcome,
        user_outcome: ReplacementOutcome,
    ) -> Dict[str, Any]:
        payload = dict(data)
        payload["response"] = reply_outcome.processed_text
        payload["content"] = reply_outcome.to_dict()
        payload["emoticons"] = [e.to_dict() for e in reply_outcome.emoticons]
        payload["user_content"] = user_outcome.to_dict()
        return payload
