from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Optional

import redis

from backoffice.config import get_settings
from backoffice.paths import is_blank
from backoffice.state import DraftRecord

if TYPE_CHECKING:
    from backoffice.entities import EntitySchema

logger = logging.getLogger(__name__)

_memory: dict[str, str] = {}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _has_content(document: Any) -> bool:
    return isinstance(document, dict) and any(not is_blank(v) for v in document.values())


class DraftStore:
    # best-effort: storage failures are logged, an unreadable draft reads as absent
    def __init__(
        self,
        key: str,
        *,
        is_meaningful: Callable[[Any], bool] | None = None,
        client: Optional[redis.Redis] = None,
        clock: Callable[[], datetime] = _now,
        expiry_days: int | None = None,
    ):
        self.key = key
        self.is_meaningful = is_meaningful or _has_content
        self._client = client
        self._clock = clock
        days = get_settings().draft_expiry_days if expiry_days is None else expiry_days
        self.expiry = timedelta(days=days)

    @classmethod
    def for_entity(cls, schema: "EntitySchema", owner: str | None = None, **kwargs: Any) -> "DraftStore":
        key = f"{schema.draft.key}:{owner}" if owner else schema.draft.key
        kwargs.setdefault("client", _redis_client())
        return cls(key, is_meaningful=schema.draft.is_meaningful, **kwargs)

    def save(self, document: dict[str, Any]) -> bool:
        if not self.is_meaningful(document):
            logger.debug("Skipping empty draft save for %s", self.key)
            return False
        try:
            payload = DraftRecord(document=copy.deepcopy(document), saved_at=self._clock()).model_dump_json()
        except (TypeError, ValueError):
            logger.warning("Failed to serialise draft for %s", self.key, exc_info=True)
            return False
        self._write(payload)
        logger.debug("Draft saved for %s", self.key)
        return True

    def load(self) -> DraftRecord | None:
        raw = self._read()
        if not raw:
            return None
        try:
            record = DraftRecord.model_validate_json(raw)
        except ValueError:
            logger.warning("Discarding unreadable draft for %s", self.key)
            self.clear()
            return None

        saved_at = record.saved_at
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        if self._clock() - saved_at > self.expiry:
            logger.info("Draft for %s expired, clearing", self.key)
            self.clear()
            return None
        return record

    def clear(self) -> None:
        _memory.pop(self.key, None)
        if self._client is None:
            return
        try:
            self._client.delete(self.key)
        except redis.RedisError:
            logger.warning("Failed to clear draft %s from redis", self.key, exc_info=True)

    def has_meaningful_draft(self) -> bool:
        record = self.load()
        if record is None:
            return False
        if not self.is_meaningful(record.document):
            logger.debug("Clearing empty draft for %s", self.key)
            self.clear()
            return False
        return True

    def timestamp_of(self) -> datetime | None:
        record = self.load()
        return record.saved_at if record else None

    def describe_age(self, now: datetime | None = None) -> str | None:
        saved_at = self.timestamp_of()
        if saved_at is None:
            return None
        return describe_age(saved_at, now or self._clock())

    def _write(self, payload: str) -> None:
        if self._client is None:
            _memory[self.key] = payload
            return
        try:
            self._client.set(self.key, payload)
            _memory.pop(self.key, None)
        except redis.RedisError:
            logger.warning("Failed to write draft %s to redis, keeping it in memory", self.key, exc_info=True)
            _memory[self.key] = payload

    def _read(self) -> str | None:
        if self._client is not None:
            try:
                raw = self._client.get(self.key)
            except redis.RedisError:
                logger.warning("Failed to read draft %s from redis", self.key, exc_info=True)
                raw = None
            if raw:
                return raw
        return _memory.get(self.key)


def describe_age(saved_at: datetime, now: datetime) -> str:
    if saved_at.tzinfo is None:
        saved_at = saved_at.replace(tzinfo=timezone.utc)
    seconds = max(0, int((now - saved_at).total_seconds()))
    minutes = seconds // 60
    hours = seconds // 3600
    days = seconds // 86400

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return f"{days} day{'s' if days > 1 else ''} ago"


@lru_cache(maxsize=None)
def _cached_client(redis_url: str) -> redis.Redis:
    return redis.Redis.from_url(redis_url, decode_responses=True)


def _redis_client() -> Optional[redis.Redis]:
    redis_url = get_settings().redis_url
    if not redis_url:
        return None
    try:
        return _cached_client(redis_url)
    except (redis.RedisError, ValueError):
        logger.warning("Invalid REDIS_URL, drafts will be kept in memory", exc_info=True)
        return None
