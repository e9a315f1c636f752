import logging
import sys
from typing import Any, Mapping

from emotichat.pipeline.config import LOG_LEVEL, MAX_MESSAGE_LENGTH, UNKNOWN_CLIENT_ID


def setup_logger(name: str) -> logging.Logger:
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    return logging.getLogger(name)


def validate_message(message: Any, max_length: int = MAX_MESSAGE_LENGTH) -> bool:
    if not message or not isinstance(message, str):
        return False
    if len(message) > max_length:
        return False
    if len(message.strip()) == 0:
        return False
    return True


def client_id_from_headers(headers: Mapping[str, str]) -> str:
    """First hop of X-Forwarded-For, or the shared 'unknown' bucket."""
    forwarded = headers.get("X-Forwarded-For", "")
    client_ip = forwarded.split(",")[0].strip()
    return client_ip or UNKNOWN_CLIENT_ID
