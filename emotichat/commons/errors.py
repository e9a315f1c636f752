"""Error taxonomy shared by the chat engine and the emoticon service."""
from typing import Any, Optional


class EmotiChatError(Exception):
    pass


class QuotaExceeded(EmotiChatError):
    def __init__(self, client_id: str, limit: int):
        super().__init__(f"Daily guest limit of {limit} reached for client {client_id}")
        self.client_id = client_id
        self.limit = limit


class CredentialMissing(EmotiChatError):
    pass


class UpstreamUnavailable(EmotiChatError):
    """The emoticon source answered 503; the page request may be retried."""

    def __init__(self, url: str, status: int):
        super().__init__(f"{url} unavailable (HTTP {status})")
        self.url = url
        self.status = status


class ImageFetchFailed(EmotiChatError):
    pass


class UpstreamRequestFailed(EmotiChatError):
    def __init__(self, message: str, status: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status = status
        self.detail = detail


class UpstreamMalformedResponse(EmotiChatError):
    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.detail = detail
