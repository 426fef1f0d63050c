"""Abstract base class for URL shortener storage implementations."""

from abc import ABC, abstractmethod
from typing import List

from .models import URLRecord, UserURL


class URLStorageBase(ABC):
    """Abstract base class for URL shortener storage operations."""

    @abstractmethod
    async def save(self, code: str, original_url: str) -> None:
        """Store a new short URL mapping.

        Args:
            code: The short code to use
            original_url: The original long URL

        Raises:
            URLAlreadyExistsError: If original_url is already stored
        """
        pass

    @abstractmethod
    async def save_batch(self, records: List[URLRecord]) -> None:
        """Store several short URL mappings at once.

        Args:
            records: Records with code and original_url set

        Raises:
            URLAlreadyExistsError: If any original_url is already stored or
                repeated in the batch; nothing is stored then
        """
        pass

    @abstractmethod
    async def exists(self, code: str) -> bool:
        """Check if a short code is already taken (deleted codes included).

        Args:
            code: The short code to check

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    async def get_url(self, code: str) -> str:
        """Get the original URL for a short code.

        Args:
            code: The short code to lookup

        Returns:
            The original URL

        Raises:
            NotFoundError: If the code is unknown
            URLDeletedError: If the code was deleted
        """
        pass

    @abstractmethod
    async def code_by_url(self, original_url: str) -> str:
        """Get the short code previously assigned to a URL.

        Raises:
            NotFoundError: If the URL is unknown
        """
        pass

    @abstractmethod
    async def save_user_code(self, user_id: str, code: str) -> None:
        """Record that user_id owns code."""
        pass

    @abstractmethod
    async def user_url_codes(self, user_id: str) -> List[str]:
        """List codes owned by a user.

        Returns:
            Codes owned by user_id, empty list if none
        """
        pass

    @abstractmethod
    async def user_urls(self, user_id: str) -> List[UserURL]:
        """List non-deleted URLs owned by a user."""
        pass

    @abstractmethod
    async def delete_urls(self, codes: List[str]) -> None:
        """Mark codes as deleted.

        Unknown and already deleted codes are ignored.

        Args:
            codes: Short codes to mark deleted
        """
        pass

    @abstractmethod
    async def url_count(self) -> int:
        """Number of non-deleted short URLs."""
        pass

    @abstractmethod
    async def user_count(self) -> int:
        """Number of distinct users owning at least one URL."""
        pass

    async def connect(self) -> None:
        """Open connections or load persisted state."""
        pass

    async def health_check(self) -> bool:
        """Check if storage is healthy.

        Returns:
            True if healthy, False otherwise
        """
        return True

    async def close(self) -> None:
        """Release storage resources."""
        pass
