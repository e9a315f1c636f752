import asyncio
import json
from typing import Any, Dict, List

import aiohttp
from loguru import logger

from emotichat.commons.errors import UpstreamMalformedResponse, UpstreamRequestFailed
from emotichat.pipeline.config import DEEPSEEK_API_URL, CHAT_UPSTREAM_TIMEOUT, ERROR_MESSAGE_TRUNCATE


async def request_completion(
    session: aiohttp.ClientSession,
    api_key: str,
    payload: Dict[str, Any],
    endpoint: str = DEEPSEEK_API_URL,
    timeout: float = CHAT_UPSTREAM_TIMEOUT,
) -> Dict[str, Any]:
    """POST a chat completion request and return the decoded JSON body.

    Raises UpstreamRequestFailed for transport errors, non-JSON bodies and
    non-2xx answers; the upstream error payload travels in ``detail``.
    """
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    headers = {
        "Content-Type": "application/json; charset=utf-8",
        "Authorization": f"Bearer {api_key}",
    }
    try:
        async with session.post(
            endpoint,
            data=body,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            status = resp.status
            try:
                data = await resp.json(content_type=None)
            except (json.JSONDecodeError, aiohttp.ContentTypeError, ValueError) as e:
                raise UpstreamRequestFailed(f"Completion endpoint returned a non-JSON body (HTTP {status})", status=status) from e
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise UpstreamRequestFailed(f"Completion request failed: {type(e).__name__}") from e

    if status < 200 or status >= 300:
        logger.error(f"[Completion] HTTP {status}: {str(data)[:ERROR_MESSAGE_TRUNCATE]}")
        raise UpstreamRequestFailed(f"Completion endpoint returned HTTP {status}", status=status, detail=data)
    return data


def extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamMalformedResponse("Missing choices[0].message.content", detail=data) from e
    if not isinstance(content, str) or not content:
        raise UpstreamMalformedResponse("Empty choices[0].message.content", detail=data)
    return content


def build_messages(history: Any, message: str) -> List[Dict[str, str]]:
    messages = []
    if isinstance(history, list):
        for msg in history:
            if isinstance(msg, dict) and msg.get("role") and msg.get("content"):
                messages.append({"role": msg["role"], "content": str(msg["content"])})
    messages.append({"role": "user", "content": str(message)})
    return messages
