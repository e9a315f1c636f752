import re
import uuid
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from emotichat.pipeline.config import X_REQ_ID_SLICE_SIZE

REQUEST_ID_HEADER = "X-Request-ID"
SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def reqID():
    return str(uuid.uuid4())[:X_REQ_ID_SLICE_SIZE]


def clean_request_id(value):
    """Incoming ids are kept only when short and header/log safe."""
    candidate = (value or "").strip()
    if candidate and SAFE_REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return reqID()


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request_id = clean_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        # gateways read the id from the request headers
        header_key = REQUEST_ID_HEADER.lower().encode("latin-1")
        headers = [(k, v) for k, v in request.scope["headers"] if k.lower() != header_key]
        headers.append((header_key, request_id.encode("latin-1")))
        request.scope["headers"] = headers

        logger.info(f"Request {request_id} started: {request.method} {request.url.path}")
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(f"Request {request_id} finished ({response.status_code})")
        return response
