import logging
import asyncio
from typing import Optional

import aiohttp
from quart import Quart, request, jsonify
from quart_cors import cors
from emotichat.chatEngine.main import initialize_chat_engine
from emotichat.commons.requestID import RequestIDMiddleware
from emotichat.emoticonService.main import create_quota_store, initialize_tag_replacer
from emotichat.emoticonService.quotaLimiter import QuotaStore
from emotichat.app.gateways import health, chat, emoticons, proxy
logger = logging.getLogger("emotichat-api")


class EmotiChat:

    def __init__(
        self,
        http_session: Optional[aiohttp.ClientSession] = None,
        quota_store: Optional[QuotaStore] = None,
    ):
        self.app = Quart(__name__)
        self.pipeline_initialized = False
        self.initialization_lock = asyncio.Lock()
        self.session = http_session
        self.owns_session = http_session is None
        self.quota_store = quota_store
        self.owns_quota_store = quota_store is None

        self._setup_cors()
        self._setup_middleware()
        self._register_routes()
        self._register_error_handlers()
        self._register_lifecycle_hooks()

    def _setup_cors(self):
        cors(self.app)

    def _setup_middleware(self):
        middleware = RequestIDMiddleware(self.app.asgi_app)
        self.app.asgi_app = middleware

    def _register_routes(self):
        async def health_check_wrapper():
            return await health.health_check(self.pipeline_initialized)

        async def chat_wrapper():
            return await chat.chat(self.pipeline_initialized)

        async def emoticons_wrapper():
            return await emoticons.resolve_emoticons(self.pipeline_initialized)

        async def proxy_image_wrapper():
            if not self.pipeline_initialized:
                return jsonify({"error": "Server not initialized"}), 503
            return await proxy.proxy_image(self.session)

        self.app.route('/api/health', methods=['GET'])(health_check_wrapper)
        self.app.route('/api/chat', methods=['POST'])(chat_wrapper)
        self.app.route('/api/emoticons/resolve', methods=['POST'])(emoticons_wrapper)
        self.app.route('/api/proxy-image', methods=['GET'])(proxy_image_wrapper)

    def _register_error_handlers(self):
        @self.app.errorhandler(404)
        async def not_found(error):
            return jsonify({"error": "Not found"}), 404

        @self.app.errorhandler(500)
        async def internal_error(error):
            request_id = request.headers.get("X-Request-ID", "")
            logger.error(f"[{request_id}] Internal error: {error}", exc_info=True)
            return jsonify({
                "error": "Failed to process request",
                "request_id": request_id
            }), 500

    def _register_lifecycle_hooks(self):
        @self.app.before_serving
        async def startup():
            async with self.initialization_lock:
                if self.pipeline_initialized:
                    return

                logger.info("[APP] Initializing emotiChat...")
                try:
                    if self.session is None:
                        self.session = aiohttp.ClientSession()
                    if self.quota_store is None:
                        self.quota_store = create_quota_store()
                    tag_replacer = initialize_tag_replacer(self.session)
                    initialize_chat_engine(self.session, self.quota_store, tag_replacer)

                    self.pipeline_initialized = True
                    logger.info("[APP] emotiChat initialized and ready")
                except Exception as e:
                    logger.error(f"[APP] Initialization failed: {e}", exc_info=True)
                    raise

        @self.app.after_serving
        async def shutdown():
            logger.info("[APP] Shutting down emotiChat...")
            if self.owns_session and self.session is not None:
                await self.session.close()
            if self.owns_quota_store and self.quota_store is not None:
                await self.quota_store.aclose()

    def run(self, host: str = "0.0.0.0", port: int = 8000, workers: int = 1):
        import hypercorn.asyncio
        from hypercorn.config import Config

        config = Config()
        config.bind = [f"{host}:{port}"]
        config.workers = workers

        logger.info("[APP] Starting emotiChat...")
        logger.info(f"[APP] Listening on http://{host}:{port}")

        asyncio.run(hypercorn.asyncio.serve(self.app, config))


def create_app(
    http_session: Optional[aiohttp.ClientSession] = None,
    quota_store: Optional[QuotaStore] = None,
) -> EmotiChat:
    return EmotiChat(http_session=http_session, quota_store=quota_store)
