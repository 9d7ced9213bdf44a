from __future__ import annotations

from abc import ABC, abstractmethod

from jobsniper.models import Posting

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko)"


class SourceError(Exception):
    """An adapter could not produce any postings."""


class PostingSource(ABC):
    """One job board or feed.

    ``fetch`` must bound its own wall time through HTTP timeouts, return
    whatever it gathered when only some sub-requests fail, return each id at
    most once, and touch no state outside its return value: the fan-out runs
    every enabled source in its own thread.
    """

    name: str = ""
    remote_only: bool = False

    def __init__(self, timeout: float = 15.0) -> None:
        self.timeout = timeout

    @abstractmethod
    def fetch(self) -> list[Posting]:
        pass
