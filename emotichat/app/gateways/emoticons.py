"""Standalone emoticon resolution gateway."""
import logging
import uuid
from quart import request, jsonify
from emotichat.app.utils import validate_message
from emotichat.chatEngine.main import get_chat_engine
from emotichat.pipeline.config import X_REQ_ID_SLICE_SIZE, LOG_MESSAGE_QUERY_TRUNCATE

logger = logging.getLogger("emotichat-api")


async def resolve_emoticons(pipeline_initialized: bool):
    if not pipeline_initialized:
        return jsonify({"error": "Server not initialized"}), 503

    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:X_REQ_ID_SLICE_SIZE])

    try:
        data = await request.get_json(silent=True) or {}
        text = data.get("text")
        api_key = (data.get("apiKey") or "").strip() or None

        if not validate_message(text):
            return jsonify({"error": "Text is required"}), 400

        logger.info(f"[{request_id}] Resolve emoticons: {text[:LOG_MESSAGE_QUERY_TRUNCATE]}...")
        outcome = await get_chat_engine().resolve_text(text, api_key=api_key)
        return jsonify(outcome.to_dict())

    except Exception as e:
        logger.error(f"[{request_id}] Emoticon resolution error: {e}", exc_info=True)
        return jsonify({"error": "Failed to process request"}), 500
