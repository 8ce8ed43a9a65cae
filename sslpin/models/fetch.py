"""
Data models for pinned HTTP requests.
"""
from dataclasses import dataclass
from typing import Optional, Dict
from datetime import datetime


@dataclass
class FetchedContent:
    """Represents a response received over a pinned connection."""
    url: str
    text: str
    status_code: int
    headers: Dict[str, str]
    encoding: Optional[str] = None
    fetched_at: Optional[datetime] = None

    def __post_init__(self):
        if self.fetched_at is None:
            self.fetched_at = datetime.now()


@dataclass
class FetchResult:
    """Result of a pinned request."""
    success: bool
    content: Optional[FetchedContent] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    pinning_failed: bool = False

    @classmethod
    def success_result(cls, content: FetchedContent) -> 'FetchResult':
        """Create a successful fetch result."""
        return cls(success=True, content=content)

    @classmethod
    def error_result(cls, error_message: str, retry_count: int = 0,
                     pinning_failed: bool = False) -> 'FetchResult':
        """Create an error fetch result."""
        return cls(
            success=False,
            error_message=error_message,
            retry_count=retry_count,
            pinning_failed=pinning_failed
        )
