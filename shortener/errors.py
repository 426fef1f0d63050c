"""Domain errors for URL shortener."""

from typing import Optional


class ShortenerError(Exception):
    """Base class for all URL shortener errors."""


class NotFoundError(ShortenerError):
    """Short code or URL is not stored."""


class URLDeletedError(ShortenerError):
    """Short code exists but was soft-deleted."""


class URLAlreadyExistsError(ShortenerError):
    """Original URL is already shortened.

    Carries the code that was previously assigned to the URL (when known),
    so callers can still answer with the existing short link.
    """

    def __init__(self, url: str, code: Optional[str] = None):
        super().__init__(f"URL already exists: {url}")
        self.url = url
        self.code = code


class DeleterStoppedError(ShortenerError):
    """Delete request arrived after the URL deleter began shutting down."""

    def __init__(self):
        super().__init__("URL deleter stopped")


class OwnershipLookupError(ShortenerError):
    """Failed to load the codes owned by a user."""

    def __init__(self, user_id: str):
        super().__init__(f"failed to get user codes (user_id={user_id})")
        self.user_id = user_id


class StorageMutationError(ShortenerError):
    """Failed to mark a batch of codes deleted in storage.

    Raised and handled inside the deleter worker only; it is logged and never
    reaches the caller that submitted the codes.
    """

    def __init__(self, codes: list):
        super().__init__(f"failed to delete {len(codes)} urls")
        self.codes = list(codes)
