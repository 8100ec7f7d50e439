"""Cache keys: one frozen dataclass per cacheable query shape.

Each key knows its namespace tag and default TTL. The string identifier is
the namespace followed by the percent-encoded parameters, joined with ':'.
Encoding the parameters keeps distinct parameter tuples from collapsing
onto the same identifier (e.g. ("a:b", "c") vs ("a", "b:c")).
"""

from dataclasses import dataclass, fields
from typing import ClassVar, Dict, Iterator, Tuple, Type
from urllib.parse import quote

from newscache.domain.models.cache import Expiration

IDENTIFIER_SEPARATOR = ":"


@dataclass(frozen=True)
class CacheKey:
    """Base class for all cache keys. Subclasses set `namespace` and `default_ttl`."""
    namespace: ClassVar[str] = ""
    default_ttl: ClassVar[Expiration] = Expiration.never()

    @property
    def identifier(self) -> str:
        parts = [self.namespace]
        parts.extend(quote(str(getattr(self, f.name)), safe="") for f in fields(self))
        return IDENTIFIER_SEPARATOR.join(parts)

    def __str__(self) -> str:
        return self.identifier


# --- News ---

@dataclass(frozen=True)
class NewsListKey(CacheKey):
    namespace: ClassVar[str] = "news"
    default_ttl: ClassVar[Expiration] = Expiration.minutes(10)
    category: str
    page: int = 1


@dataclass(frozen=True)
class DouyinHotKey(CacheKey):
    namespace: ClassVar[str] = "douyin_hot"
    default_ttl: ClassVar[Expiration] = Expiration.minutes(3)  # upstream refreshes every 3 minutes


# --- Life services ---

@dataclass(frozen=True)
class WeatherKey(CacheKey):
    namespace: ClassVar[str] = "weather"
    default_ttl: ClassVar[Expiration] = Expiration.hours(1)
    city: str


@dataclass(frozen=True)
class ScenicListKey(CacheKey):
    namespace: ClassVar[str] = "scenic"
    default_ttl: ClassVar[Expiration] = Expiration.days(7)
    keyword: str
    page: int = 1


@dataclass(frozen=True)
class OilPriceKey(CacheKey):
    namespace: ClassVar[str] = "oil"
    default_ttl: ClassVar[Expiration] = Expiration.hours(6)
    province: str


@dataclass(frozen=True)
class ZhongyaoListKey(CacheKey):
    namespace: ClassVar[str] = "zhongyao"
    default_ttl: ClassVar[Expiration] = Expiration.days(7)
    page: int = 1


# --- Fun ---

@dataclass(frozen=True)
class StarFortuneKey(CacheKey):
    namespace: ClassVar[str] = "star"
    default_ttl: ClassVar[Expiration] = Expiration.hours(3)
    constellation: str
    date: str


@dataclass(frozen=True)
class DreamSearchKey(CacheKey):
    namespace: ClassVar[str] = "dream"
    default_ttl: ClassVar[Expiration] = Expiration.days(30)
    keyword: str


@dataclass(frozen=True)
class StoryListKey(CacheKey):
    namespace: ClassVar[str] = "story"
    default_ttl: ClassVar[Expiration] = Expiration.days(7)
    story_type: int
    keyword: str = ""
    page: int = 1


# --- Knowledge ---

@dataclass(frozen=True)
class BrainTeaserListKey(CacheKey):
    namespace: ClassVar[str] = "brainteaser"
    default_ttl: ClassVar[Expiration] = Expiration.minutes(30)
    page: int = 1


@dataclass(frozen=True)
class QuizKey(CacheKey):
    namespace: ClassVar[str] = "quiz"
    default_ttl: ClassVar[Expiration] = Expiration.minutes(5)  # a new question on every refresh


# --- Registry ---

KEY_VARIANTS: Dict[str, Type[CacheKey]] = {
    cls.namespace: cls
    for cls in (
        NewsListKey, DouyinHotKey,
        WeatherKey, ScenicListKey, OilPriceKey, ZhongyaoListKey,
        StarFortuneKey, DreamSearchKey, StoryListKey,
        BrainTeaserListKey, QuizKey,
    )
}


def default_ttl_for(namespace: str) -> Expiration:
    """Returns the default TTL registered for a namespace tag."""
    return KEY_VARIANTS[namespace].default_ttl


def iter_policies() -> Iterator[Tuple[str, Expiration]]:
    """Yields (namespace, default TTL) for every key variant."""
    for namespace, cls in KEY_VARIANTS.items():
        yield namespace, cls.default_ttl
