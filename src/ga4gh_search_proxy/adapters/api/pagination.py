"""
Cursor over ``next_page_url`` linked result pages.

Every GA4GH Search endpoint wraps its payload in the same envelope::

    {"<items>": [...], "pagination": {"next_page_url": "https://..."}}

:class:`PageCursor` walks such a chain lazily. A failed page fetch does not
raise: the cursor logs it and stops as if the backend had returned an empty
last page. Callers that need to tell "exhausted" from "cut short" inspect
:attr:`PageCursor.truncated` and :attr:`PageCursor.error` once iteration ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Callable, Generic, Iterator, List, Mapping, Optional, TypeVar

from ...core.logging import get_logger
from .base import APIError

T = TypeVar("T")


@dataclass(slots=True)
class PageEnvelope(Generic[T]):
    """One decoded page: its items plus the link to the following page."""

    payload: List[T] = field(default_factory=list)
    next_page_url: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.next_page_url


PageFetcher = Callable[[str], PageEnvelope[T]]


def read_next_page_url(payload: Mapping[str, Any]) -> Optional[str]:
    """Extract ``pagination.next_page_url``; empty strings count as absent."""

    pagination = payload.get("pagination")
    if not isinstance(pagination, Mapping):
        return None
    next_url = pagination.get("next_page_url")
    if isinstance(next_url, str) and next_url.strip():
        return next_url.strip()
    return None


class PageCursor(Generic[T]):
    """
    Lazy, single-use iteration over a paginated endpoint.

    Parameters
    ----------
    start_url:
        URL of the first page.
    fetch:
        Callable turning a page URL into a :class:`PageEnvelope`. It signals
        failures by raising :class:`~.base.APIError` subclasses.
    first_page:
        Already fetched first page (e.g. the response of a ``POST``). When
        given, ``start_url`` is not requested and iteration continues from the
        page's ``next_page_url``.
    max_pages:
        Optional ceiling on the number of pages consumed. ``None`` follows the
        chain for as long as the backend keeps returning links.
    """

    def __init__(
        self,
        start_url: str,
        fetch: PageFetcher[T],
        *,
        first_page: Optional[PageEnvelope[T]] = None,
        max_pages: Optional[int] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> None:
        self.start_url = start_url
        self._fetch = fetch
        self._first_page = first_page
        self.max_pages = max_pages
        self.logger = logger or get_logger(f"{__name__}.{self.__class__.__name__}")
        self.pages_fetched = 0
        self.truncated = False
        self.error: Optional[APIError] = None
        self._started = False

    def pages(self) -> Iterator[PageEnvelope[T]]:
        """Yield pages in backend order until the chain ends or a fetch fails."""

        if self._started:
            raise RuntimeError(f"Cursor for {self.start_url} has already been consumed.")
        self._started = True

        next_url: Optional[str] = self.start_url
        pending = self._first_page
        while next_url:
            if self.max_pages is not None and self.pages_fetched >= self.max_pages:
                self.truncated = True
                self.logger.warning(
                    "Page limit reached before the end of the result set",
                    extra={"url": next_url, "page": self.pages_fetched},
                )
                return

            if pending is not None:
                page, pending = pending, None
            else:
                self.logger.debug("Fetching page", extra={"url": next_url, "page": self.pages_fetched + 1})
                try:
                    page = self._fetch(next_url)
                except APIError as exc:
                    self.truncated = True
                    self.error = exc
                    self.logger.error(
                        "Page fetch failed; result set truncated",
                        extra={"url": next_url, "page": self.pages_fetched + 1, "error": str(exc)},
                    )
                    return

            self.pages_fetched += 1
            yield page
            next_url = page.next_page_url

    def __iter__(self) -> Iterator[T]:
        for page in self.pages():
            yield from page.payload
