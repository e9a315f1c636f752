import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 8000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Request ids / log truncation
X_REQ_ID_SLICE_SIZE = 8
LOG_MESSAGE_QUERY_TRUNCATE = 60
ERROR_MESSAGE_TRUNCATE = 200
MAX_MESSAGE_LENGTH = _env_int("MAX_MESSAGE_LENGTH", 5000)

# Chat completion upstream
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")
DEEPSEEK_API_URL = os.getenv("DEEPSEEK_API_URL", "https://api.deepseek.com/v1/chat/completions")
CHAT_MODEL = os.getenv("CHAT_MODEL", "deepseek-chat")
CHAT_TEMPERATURE = _env_float("CHAT_TEMPERATURE", 0.7)
CHAT_MAX_TOKENS = _env_int("CHAT_MAX_TOKENS", 1000)
CHAT_UPSTREAM_TIMEOUT = _env_float("CHAT_UPSTREAM_TIMEOUT", 60.0)
CHAT_REQUEST_TIMEOUT = _env_float("CHAT_REQUEST_TIMEOUT", 120.0)

# Guest quota
GUEST_LIMIT = max(1, _env_int("GUEST_LIMIT", 3))
QUOTA_WINDOW_SECONDS = _env_int("QUOTA_WINDOW_SECONDS", 24 * 60 * 60)
QUOTA_BACKEND = os.getenv("QUOTA_BACKEND", "memory").lower()
QUOTA_LOCK_SHARDS = _env_int("QUOTA_LOCK_SHARDS", 64)
UNKNOWN_CLIENT_ID = "unknown"
GUEST_LIMIT_MESSAGE = (
    "The current preview experience limit has been reached. "
    "If you continue to ask questions, please set APIKEY"
)

# Redis (quota backend)
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = _env_int("REDIS_PORT", 6379)
REDIS_DB = _env_int("REDIS_DB", 0)
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None
REDIS_KEY_PREFIX = os.getenv("REDIS_KEY_PREFIX", "emotichat")
REDIS_SOCKET_CONNECT_TIMEOUT = _env_float("REDIS_SOCKET_CONNECT_TIMEOUT", 5.0)

# Emoticon source
EMOTICON_SOURCE_URL = os.getenv("EMOTICON_SOURCE_URL", "https://fabiaoqing.com")
EMOTICON_REFERER = os.getenv("EMOTICON_REFERER", "https://fabiaoqing.com/")
EMOTICON_SEARCH_URL_TEMPLATE = os.getenv(
    "EMOTICON_SEARCH_URL_TEMPLATE",
    EMOTICON_SOURCE_URL + "/search/bqb/keyword/{keyword}/type/bq/page/1.html",
)
EMOTICON_PAGE_TIMEOUT = _env_float("EMOTICON_PAGE_TIMEOUT", 10.0)
EMOTICON_IMAGE_TIMEOUT = _env_float("EMOTICON_IMAGE_TIMEOUT", 3.0)
EMOTICON_MAX_RESULTS = _env_int("EMOTICON_MAX_RESULTS", 3)
EMOTICON_SEARCH_ATTEMPTS = _env_int("EMOTICON_SEARCH_ATTEMPTS", 3)
EMOTICON_RETRY_BACKOFF = _env_float("EMOTICON_RETRY_BACKOFF", 1.0)
EMOTICON_DOWNLOAD_DELAY = _env_float("EMOTICON_DOWNLOAD_DELAY", 0.5)
# Images strictly smaller than this are inlined as data: URIs
EMOTICON_INLINE_MAX_BYTES = _env_int("EMOTICON_INLINE_MAX_BYTES", 100 * 1024)
EMOTICON_PROXY_PATH = os.getenv("EMOTICON_PROXY_PATH", "/api/proxy-image")

# AI fallback
EMOTICON_FALLBACK_ATTEMPTS = _env_int("EMOTICON_FALLBACK_ATTEMPTS", 3)
EMOTICON_FALLBACK_MODEL = os.getenv("EMOTICON_FALLBACK_MODEL", CHAT_MODEL)
EMOTICON_FALLBACK_TEMPERATURE = _env_float("EMOTICON_FALLBACK_TEMPERATURE", 0.3)
EMOTICON_FALLBACK_MAX_TOKENS = _env_int("EMOTICON_FALLBACK_MAX_TOKENS", 30)
EMOTICON_FALLBACK_TIMEOUT = _env_float("EMOTICON_FALLBACK_TIMEOUT", 10.0)
EMOTICON_FALLBACK_FOR_GUESTS = _env_bool("EMOTICON_FALLBACK_FOR_GUESTS", False)

# Image proxy
PROXY_IMAGE_TIMEOUT = _env_float("PROXY_IMAGE_TIMEOUT", 10.0)
PROXY_CACHE_MAX_AGE = _env_int("PROXY_CACHE_MAX_AGE", 86400)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/15.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36",
]
