import time
from typing import Callable, TypeVar

import structlog

from githeus.provider.base import Page

logger = structlog.get_logger()

T = TypeVar("T")

# page sizes per listing family. Repository runner listings use
# wide pages, aggregate endpoints narrower ones.
REPO_RUNNERS_PER_PAGE = 200
SCOPE_RUNNERS_PER_PAGE = 50
REPOSITORIES_PER_PAGE = 50


class DeadlineExceeded(TimeoutError):
    pass


class Deadline:
    """
    Deadline is the time budget of a single collect call. Every
    upstream call made during that call receives the remaining
    budget as its timeout.
    """

    def __init__(
        self,
        seconds: "float",
        clock: "Callable[[], float]" = time.monotonic,
    ) -> "None":
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> "float":
        """
        returns the seconds left, raising DeadlineExceeded once the
        budget is spent.
        """
        left = self._expires_at - self._clock()
        if left <= 0:
            raise DeadlineExceeded("scrape deadline exceeded")
        return left


def fetch_all(
    call: "Callable[[int, int], Page[T]]",
    per_page: "int",
) -> "list[T]":
    """
    walks every page of a listing call and returns the records in
    page order. call receives (page, per_page).

    Any error is propagated as is; records of the pages fetched so
    far are discarded with the local list.
    """
    records: "list[T]" = []
    page = 1

    # progress is driven only by the advertised next page, a missing
    # signal ends the walk
    while True:
        result = call(page, per_page)
        records.extend(result.items)

        if not result.next_page or result.next_page <= page:
            break

        page = result.next_page

    logger.debug("pages_fetched", pages=page, record_count=len(records))
    return records
