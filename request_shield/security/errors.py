"""
Protection layer error taxonomy
"""
from typing import Optional


class ProtectionError(Exception):
    """Base class for protection decisions and failures"""


class ClassificationError(ProtectionError):
    """Unexpected failure while matching attack signatures"""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class ThresholdExceeded(ProtectionError):
    """An attempt counter went past its limit inside the current window"""

    def __init__(self, key: str, count: int, limit: int, retry_after: int):
        super().__init__(f"{key} exceeded {limit} attempts ({count})")
        self.key = key
        self.count = count
        self.limit = limit
        self.retry_after = retry_after


class BlockedSource(ProtectionError):
    """Request from a source holding an active block"""

    def __init__(self, source: str, reason: str, retry_after: int):
        super().__init__(f"{source} is blocked ({reason})")
        self.source = source
        self.reason = reason
        self.retry_after = retry_after


class OversizedRequest(ProtectionError):
    """Declared Content-Length above the configured cap"""

    def __init__(self, content_length: int, limit: int):
        super().__init__(f"content-length {content_length} exceeds {limit}")
        self.content_length = content_length
        self.limit = limit
