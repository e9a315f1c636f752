"""Image proxy gateway.

Browsers cannot attach a custom Referer to inline images, so remote
emoticons are fetched here with the source site's Referer and streamed back.
"""
import asyncio
import logging
import aiohttp
from quart import request, Response
from emotichat.commons.errors import ImageFetchFailed
from emotichat.commons.utils import get_random_user_agent, validate_url_for_fetch
from emotichat.pipeline.config import EMOTICON_REFERER, PROXY_IMAGE_TIMEOUT, PROXY_CACHE_MAX_AGE

logger = logging.getLogger("emotichat-api")


async def proxy_image(session: aiohttp.ClientSession):
    image_url = request.args.get("url")
    if not image_url:
        return Response("Missing image URL", status=400)

    if not validate_url_for_fetch(image_url):
        return Response("Invalid image URL", status=400)

    try:
        async with session.get(
            image_url,
            headers={
                "Referer": EMOTICON_REFERER,
                "User-Agent": get_random_user_agent(),
            },
            timeout=aiohttp.ClientTimeout(total=PROXY_IMAGE_TIMEOUT),
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise ImageFetchFailed(f"Failed to fetch image: HTTP {resp.status}")
            image_bytes = await resp.read()
            content_type = resp.headers.get("Content-Type") or "image/*"
    except (ImageFetchFailed, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Image proxy error for {image_url}: {e}")
        return Response("Failed to proxy image", status=500)

    return Response(
        image_bytes,
        status=200,
        content_type=content_type,
        headers={"Cache-Control": f"public, max-age={PROXY_CACHE_MAX_AGE}"},
    )
