from .base import PostingSource, SourceError
from .careers import CareerPagesSource, pages_from_config
from .hnjobs import HNJobsSource
from .reddit import RedditSource
from .remoteok import RemoteOKSource
from .remotive import RemotiveSource
from .sharedlists import SharedListsSource
from .ycjobs import YCJobsSource

from jobsniper.config import Settings
from jobsniper.log import get_logger

log = get_logger(__name__)

__all__ = [
    "PostingSource", "SourceError", "CareerPagesSource", "HNJobsSource",
    "RedditSource", "RemoteOKSource", "RemotiveSource", "SharedListsSource",
    "YCJobsSource", "SOURCE_NAMES", "get_sources",
]


def _careers(settings: Settings) -> PostingSource:
    if settings.careers:
        return CareerPagesSource(pages_from_config(settings.careers), timeout=settings.http_timeout)
    return CareerPagesSource(timeout=settings.http_timeout)


_FACTORIES = {
    "remoteok": lambda s: RemoteOKSource(timeout=s.http_timeout),
    "remotive": lambda s: RemotiveSource(s.filters.include_keywords, timeout=s.http_timeout),
    "ycjobs": lambda s: YCJobsSource(timeout=s.http_timeout),
    "careers": _careers,
    "sharedlists": lambda s: SharedListsSource(s.sheets, timeout=s.http_timeout),
    "hnjobs": lambda s: HNJobsSource(timeout=s.http_timeout),
    "reddit": lambda s: RedditSource(timeout=s.http_timeout),
}

# Older config files name the career pages source "companies".
_ALIASES = {"companies": "careers"}

SOURCE_NAMES: tuple[str, ...] = tuple(_FACTORIES)


def get_sources(settings: Settings) -> list[PostingSource]:
    sources: list[PostingSource] = []
    built: set[str] = set()
    for name in settings.enabled_sources():
        name = _ALIASES.get(name, name)
        if name in built:
            continue
        factory = _FACTORIES.get(name)
        if factory is None:
            log.warning("Unknown source %r in config, ignoring (known: %s)", name, ", ".join(SOURCE_NAMES))
            continue
        if name == "sharedlists" and not settings.sheets:
            log.warning("Source 'sharedlists' enabled but no sheets configured, skipping")
            continue
        built.add(name)
        sources.append(factory(settings))
        log.info("Registered source: %s", sources[-1].name)

    if not sources:
        log.warning("No sources enabled; nothing will be fetched")
    return sources
