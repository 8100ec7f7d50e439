"""Expiration policy and the cache entry envelope.

An entry is stored on disk as a small JSON document:

    {"value": <payload>, "created_at": <unix seconds>, "ttl": <seconds or null>}

A null ttl means the entry never expires.
"""

import dataclasses
import json
import math
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Tuple, Union

from newscache.domain.errors import CacheFormatError, CacheSerializationError


@dataclass(frozen=True)
class Expiration:
    """A time-to-live duration. `math.inf` seconds means never expire."""
    total_seconds: float

    @classmethod
    def never(cls) -> "Expiration":
        return cls(math.inf)

    @classmethod
    def seconds(cls, seconds: float) -> "Expiration":
        return cls(float(seconds))

    @classmethod
    def minutes(cls, minutes: int) -> "Expiration":
        return cls(float(minutes * 60))

    @classmethod
    def hours(cls, hours: int) -> "Expiration":
        return cls(float(hours * 3600))

    @classmethod
    def days(cls, days: int) -> "Expiration":
        return cls(float(days * 86400))

    @property
    def is_infinite(self) -> bool:
        return math.isinf(self.total_seconds)

    @classmethod
    def coerce(cls, ttl: Union["Expiration", timedelta, float, int, None]) -> Optional["Expiration"]:
        """Normalizes the TTL forms accepted by the public API."""
        if ttl is None or isinstance(ttl, Expiration):
            return ttl
        if isinstance(ttl, timedelta):
            return cls(ttl.total_seconds())
        if isinstance(ttl, (int, float)) and not isinstance(ttl, bool):
            return cls(float(ttl))
        raise TypeError(f"Unsupported TTL type: {type(ttl).__name__}")

    def __str__(self) -> str:
        if self.is_infinite:
            return "never"
        seconds = self.total_seconds
        for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
            if seconds >= size and seconds % size == 0:
                return f"{int(seconds // size)}{unit}"
        return f"{seconds:g}s"


def _encode_default(obj: Any) -> Any:
    """json.dumps hook: dataclass payloads become plain objects."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass(frozen=True, eq=False)
class CacheEntry:
    """Immutable envelope around a cached value.

    Entries are never compared by content (eq=False); only freshness matters.
    """
    value: Any
    created_at: float
    ttl: float  # seconds, math.inf for never

    @classmethod
    def create(cls, value: Any, expiration: Expiration, now: Optional[float] = None) -> "CacheEntry":
        return cls(value=value,
                   created_at=time.time() if now is None else now,
                   ttl=expiration.total_seconds)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """True once the entry is older than its TTL. Infinite TTLs never expire."""
        return _is_expired(self.created_at, self.ttl, now)

    # --- Serialization ---

    def to_json(self) -> str:
        """Encodes the entry as a JSON document.

        Raises:
            CacheSerializationError: If the value is not JSON serializable.
        """
        document = {
            "value": self.value,
            "created_at": self.created_at,
            "ttl": None if math.isinf(self.ttl) else self.ttl,
        }
        try:
            return json.dumps(document, ensure_ascii=False, allow_nan=False, default=_encode_default)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Cannot serialize cache value: {e}") from e

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "CacheEntry":
        """Decodes a stored document.

        Raises:
            CacheFormatError: If the document is not a well-formed entry.
        """
        document = _load_document(text)
        if "value" not in document:
            raise CacheFormatError("Cache document has no 'value' field")
        created_at, ttl = _read_timing(document)
        return cls(value=document["value"], created_at=created_at, ttl=ttl)

    @staticmethod
    def peek_expiry(text: Union[str, bytes]) -> Tuple[float, float]:
        """Reads only (created_at, ttl) from a stored document, ignoring the payload shape."""
        return _read_timing(_load_document(text))

    @staticmethod
    def is_document_expired(text: Union[str, bytes], now: Optional[float] = None) -> bool:
        created_at, ttl = CacheEntry.peek_expiry(text)
        return _is_expired(created_at, ttl, now)


def _is_expired(created_at: float, ttl: float, now: Optional[float]) -> bool:
    if math.isinf(ttl):
        return False
    current = time.time() if now is None else now
    return current - created_at > ttl


def _load_document(text: Union[str, bytes]) -> dict:
    try:
        document = json.loads(text)
    except (ValueError, UnicodeDecodeError) as e:
        raise CacheFormatError(f"Invalid cache document: {e}") from e
    if not isinstance(document, dict):
        raise CacheFormatError("Cache document is not a JSON object")
    return document


def _read_timing(document: dict) -> Tuple[float, float]:
    created_at = document.get("created_at")
    ttl = document.get("ttl")
    if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
        raise CacheFormatError("Cache document has no numeric 'created_at'")
    if ttl is None:
        return float(created_at), math.inf
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise CacheFormatError("Cache document 'ttl' must be a number or null")
    return float(created_at), float(ttl)
