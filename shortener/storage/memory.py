"""In-memory storage for URL shortener."""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from .base import URLStorageBase
from .models import URLRecord, UserURL
from ..errors import NotFoundError, URLAlreadyExistsError, URLDeletedError


class MemoryURLStorage(URLStorageBase):
    """Dict-backed storage. State lives for the process lifetime only."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._urls: Dict[str, URLRecord] = {}
        self._codes_by_url: Dict[str, str] = {}
        self._user_codes: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    async def save(self, code: str, original_url: str) -> None:
        async with self._lock:
            existing = self._codes_by_url.get(original_url)
            if existing is not None:
                raise URLAlreadyExistsError(original_url, existing)
            self._put(URLRecord(code=code, original_url=original_url))

    async def save_batch(self, records: List[URLRecord]) -> None:
        async with self._lock:
            seen: Dict[str, str] = {}
            for record in records:
                existing = self._codes_by_url.get(record.original_url) or seen.get(record.original_url)
                if existing is not None:
                    raise URLAlreadyExistsError(record.original_url, existing)
                seen[record.original_url] = record.code

            for record in records:
                self._put(URLRecord(code=record.code, original_url=record.original_url))

    def _put(self, record: URLRecord) -> None:
        self._urls[record.code] = record
        self._codes_by_url[record.original_url] = record.code

    async def exists(self, code: str) -> bool:
        return code in self._urls

    async def get_url(self, code: str) -> str:
        record = self._urls.get(code)
        if record is None:
            raise NotFoundError(code)
        if record.deleted:
            raise URLDeletedError(code)
        return record.original_url

    async def code_by_url(self, original_url: str) -> str:
        code = self._codes_by_url.get(original_url)
        if code is None:
            raise NotFoundError(original_url)
        return code

    async def save_user_code(self, user_id: str, code: str) -> None:
        async with self._lock:
            codes = self._user_codes.setdefault(user_id, [])
            if code not in codes:
                codes.append(code)

    async def user_url_codes(self, user_id: str) -> List[str]:
        return list(self._user_codes.get(user_id, []))

    async def user_urls(self, user_id: str) -> List[UserURL]:
        result = []
        for code in self._user_codes.get(user_id, []):
            record = self._urls.get(code)
            if record and not record.deleted:
                result.append(UserURL(code=code, original_url=record.original_url))
        return result

    async def delete_urls(self, codes: List[str]) -> None:
        async with self._lock:
            for code in codes:
                record = self._urls.get(code)
                if record:
                    record.deleted = True
        self.logger.debug(f"Marked {len(codes)} codes deleted")

    async def url_count(self) -> int:
        return sum(1 for r in self._urls.values() if not r.deleted)

    async def user_count(self) -> int:
        owners: Set[str] = {u for u, codes in self._user_codes.items() if codes}
        return len(owners)
