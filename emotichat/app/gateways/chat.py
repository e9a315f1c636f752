import asyncio
import logging
import uuid
from quart import request, jsonify
from emotichat.app.utils import validate_message, client_id_from_headers
from emotichat.chatEngine.main import get_chat_engine
from emotichat.commons.errors import CredentialMissing, UpstreamMalformedResponse, UpstreamRequestFailed
from emotichat.pipeline.config import CHAT_REQUEST_TIMEOUT, X_REQ_ID_SLICE_SIZE, LOG_MESSAGE_QUERY_TRUNCATE

logger = logging.getLogger("emotichat-api")


async def chat(pipeline_initialized: bool):
    if not pipeline_initialized:
        return jsonify({"error": "Server not initialized"}), 503

    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:X_REQ_ID_SLICE_SIZE])

    try:
        data = await request.get_json(silent=True) or {}
        user_message = data.get("message")
        history = data.get("history")
        api_key = (data.get("apiKey") or "").strip() or None

        if not validate_message(user_message):
            return jsonify({"error": "Message is required"}), 400

        client_id = client_id_from_headers(request.headers)
        logger.info(
            f"[{request_id}] Chat from {client_id} "
            f"({'key' if api_key else 'guest'}): {user_message[:LOG_MESSAGE_QUERY_TRUNCATE]}..."
        )

        chat_engine = get_chat_engine()
        payload = await asyncio.wait_for(
            chat_engine.respond(user_message, history=history, api_key=api_key, client_id=client_id),
            timeout=CHAT_REQUEST_TIMEOUT,
        )
        return jsonify(payload)

    except CredentialMissing as e:
        logger.warning(f"[{request_id}] {e}")
        return jsonify({"error": str(e)}), 401
    except UpstreamMalformedResponse as e:
        logger.error(f"[{request_id}] Malformed completion response: {e.detail}")
        return jsonify({"error": "Invalid response format from chat model"}), 500
    except UpstreamRequestFailed as e:
        logger.error(f"[{request_id}] Chat model request failed: {e} detail={e.detail}")
        return jsonify({"error": "Failed to get response from chat model"}), 500
    except asyncio.TimeoutError:
        logger.error(f"[{request_id}] Chat turn exceeded {CHAT_REQUEST_TIMEOUT}s")
        return jsonify({"error": "Failed to process request"}), 504
    except Exception as e:
        logger.error(f"[{request_id}] Chat error: {e}", exc_info=True)
        return jsonify({"error": "Failed to process request"}), 500
