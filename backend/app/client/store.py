from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import httpx

from app.core.schemas import BookOut, BookStatus, Recommendation, StatsResponse


logger = logging.getLogger(__name__)

_UNSET: Any = object()


class ApiError(Exception):
    """A call to the book tracker API did not succeed.

    ``status_code`` is None when the request never produced a response.
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}" if status_code else message)


@dataclass
class ClientState:
    books: list[BookOut] = field(default_factory=list)
    goal: int | None = None
    stats: StatsResponse = field(default_factory=StatsResponse)
    recommendations: list[Recommendation] = field(default_factory=list)


class BookTrackerClient:
    """Local cache of the signed-in user's books, goal and stats.

    The cache reflects server state as of the last successful fetch or
    mutation. A failed call raises ``ApiError`` and leaves ``state`` as it was.
    """

    def __init__(
        self,
        http: httpx.Client,
        token_provider: Callable[[], str],
        api_prefix: str = "/api",
    ) -> None:
        self.http = http
        self.token_provider = token_provider
        self.api_prefix = api_prefix.rstrip("/")
        self.state = ClientState()

    def _request(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token_provider()}"}
        url = f"{self.api_prefix}{path}"
        try:
            response = self.http.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise ApiError(None, str(exc)) from exc
        if not response.is_success:
            try:
                message = response.json().get("error") or response.reason_phrase
            except (ValueError, AttributeError):
                message = response.reason_phrase
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(response.status_code, message)
        return response

    def refresh_books(self) -> list[BookOut]:
        data = self._request("GET", "/getBooks").json()
        self.state.books = [BookOut.model_validate(item) for item in data]
        return self.state.books

    def refresh_stats(self) -> StatsResponse:
        stats = StatsResponse.model_validate(self._request("GET", "/getStats").json())
        self.state.stats = stats
        self.state.goal = stats.goal
        return stats

    def refresh(self) -> ClientState:
        self.refresh_books()
        self.refresh_stats()
        return self.state

    def add_book(
        self,
        title: str,
        author: str,
        status: BookStatus = "Want to Read",
        cover_image_url: str | None = None,
    ) -> BookOut:
        payload: dict[str, Any] = {"title": title, "author": author, "status": status}
        if cover_image_url is not None:
            payload["coverImageUrl"] = cover_image_url
        book = BookOut.model_validate(self._request("POST", "/saveBook", json=payload).json())
        self.state.books = [*self.state.books, book]
        return book

    def update_book_status(
        self,
        book_id: int,
        status: BookStatus,
        rating: int | None = _UNSET,
        review: str | None = _UNSET,
    ) -> None:
        """Send a status change, then patch the cached book and re-fetch stats.

        ``rating`` and ``review`` are only sent when passed; passing None
        clears them on the server.
        """
        changes: dict[str, Any] = {"status": status}
        if rating is not _UNSET:
            changes["rating"] = rating
        if review is not _UNSET:
            changes["review"] = review
        self._request("PUT", "/updateBookStatus", json={"id": book_id, **changes})

        self.state.books = [
            book.model_copy(update=changes) if book.id == book_id else book
            for book in self.state.books
        ]
        self.refresh_stats()

    def save_goal(self, target: int, year: int | None = None) -> bool:
        """Set this year's reading goal; returns True when a new goal was created."""
        payload = {"year": year if year is not None else datetime.utcnow().year, "target": target}
        response = self._request("POST", "/saveGoal", json=payload)
        self.refresh_stats()
        return response.status_code == 201

    def get_recommendations(self) -> list[Recommendation]:
        data = self._request("POST", "/recommendations").json()
        self.state.recommendations = [
            Recommendation.model_validate(item) for item in data.get("recommendations", [])
        ]
        return self.state.recommendations
