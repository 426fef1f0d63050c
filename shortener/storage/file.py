"""Append-only file storage for URL shortener.

Every mutation is appended to a JSON-lines file and the full state is
rebuilt by replaying the file on connect. Line formats:

    {"uuid": "1", "short_url": "abc", "original_url": "https://..."}
    {"user_id": "...", "short_url": "abc"}
    {"deleted": ["abc", "def"]}
"""

import asyncio
import json
import logging
import os
from typing import List, Optional

from .memory import MemoryURLStorage
from .models import URLRecord


class FileURLStorage(MemoryURLStorage):
    """Memory index persisted through an append-only JSON-lines log."""

    def __init__(self, filename: str, logger: Optional[logging.Logger] = None):
        super().__init__(logger=logger)
        self.filename = filename
        self._file_lock = asyncio.Lock()
        self._rows_written = 0

    async def connect(self) -> None:
        """Replay the log file into memory."""
        rows = await asyncio.to_thread(self._read_rows)
        for row in rows:
            self._apply(row)
        self._rows_written = sum(1 for r in rows if "original_url" in r)
        self.logger.info(f"Loaded {len(rows)} records from {self.filename}")

    def _read_rows(self) -> List[dict]:
        if not os.path.exists(self.filename):
            return []

        rows = []
        with open(self.filename, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise ValueError(f"{self.filename}:{lineno}: corrupt record") from e
        return rows

    def _apply(self, row: dict) -> None:
        if "deleted" in row:
            for code in row["deleted"]:
                record = self._urls.get(code)
                if record:
                    record.deleted = True
        elif "user_id" in row:
            codes = self._user_codes.setdefault(row["user_id"], [])
            if row["short_url"] not in codes:
                codes.append(row["short_url"])
        else:
            self._put(URLRecord(code=row["short_url"], original_url=row["original_url"]))

    def _write_rows(self, rows: List[dict]) -> None:
        with open(self.filename, "a", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps(row) + "\n")

    async def _append(self, rows: List[dict]) -> None:
        async with self._file_lock:
            await asyncio.to_thread(self._write_rows, rows)

    def _url_row(self, code: str, original_url: str) -> dict:
        self._rows_written += 1
        return {"uuid": str(self._rows_written), "short_url": code, "original_url": original_url}

    async def save(self, code: str, original_url: str) -> None:
        await super().save(code, original_url)
        await self._append([self._url_row(code, original_url)])

    async def save_batch(self, records: List[URLRecord]) -> None:
        await super().save_batch(records)
        await self._append([self._url_row(r.code, r.original_url) for r in records])

    async def save_user_code(self, user_id: str, code: str) -> None:
        await super().save_user_code(user_id, code)
        await self._append([{"user_id": user_id, "short_url": code}])

    async def delete_urls(self, codes: List[str]) -> None:
        if not codes:
            return
        await super().delete_urls(codes)
        await self._append([{"deleted": list(codes)}])

    async def health_check(self) -> bool:
        directory = os.path.dirname(os.path.abspath(self.filename))
        return os.access(directory, os.W_OK)
