import httpx
import pytest

from app.client.store import ApiError, BookTrackerClient
from conftest import make_token


@pytest.fixture
def tracker(client):
    token = make_token("reader")
    return BookTrackerClient(client, lambda: token)


def test_refresh_starts_empty(tracker):
    state = tracker.refresh()
    assert state.books == []
    assert state.goal is None
    assert state.stats.total_books == 0


def test_add_book_appends_server_record(tracker):
    book = tracker.add_book("Dune", "Herbert")
    assert book.id > 0
    assert book.user_id == "reader"
    assert tracker.state.books == [book]

    tracker.refresh_books()
    assert [b.id for b in tracker.state.books] == [book.id]


def test_update_patches_cache_and_refreshes_stats(tracker):
    dune = tracker.add_book("Dune", "Herbert")
    emma = tracker.add_book("Emma", "Austen")

    tracker.update_book_status(dune.id, "Read", rating=5, review="Great")

    patched = {b.id: b for b in tracker.state.books}
    assert patched[dune.id].status == "Read"
    assert patched[dune.id].rating == 5
    assert patched[dune.id].review == "Great"
    assert patched[emma.id] == emma
    assert tracker.state.stats.total_books == 1
    assert tracker.state.stats.average_rating == 5.0

    tracker.update_book_status(dune.id, "Read")
    assert {b.id: b for b in tracker.state.books}[dune.id].rating == 5


def test_save_goal_refreshes_goal(tracker):
    assert tracker.save_goal(12) is True
    assert tracker.state.goal == 12
    assert tracker.save_goal(30) is False
    assert tracker.state.goal == 30


def test_failed_mutation_leaves_state_untouched(tracker):
    tracker.add_book("Dune", "Herbert")
    before = list(tracker.state.books)

    with pytest.raises(ApiError) as info:
        tracker.update_book_status(9999, "Read", rating=1)
    assert info.value.status_code == 404
    assert info.value.message == "Book not found"
    assert tracker.state.books == before


def test_rejected_token_raises_401(client):
    tracker = BookTrackerClient(client, lambda: "garbage")
    with pytest.raises(ApiError) as info:
        tracker.add_book("Dune", "Herbert")
    assert info.value.status_code == 401
    assert tracker.state.books == []


def test_transport_failure_has_no_status():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://tracker.local")
    tracker = BookTrackerClient(http, lambda: "token")
    with pytest.raises(ApiError) as info:
        tracker.refresh_stats()
    assert info.value.status_code is None


def test_recommendations_are_cached(tracker):
    tracker.add_book("Dune", "Herbert")
    assert tracker.get_recommendations() == []
    assert tracker.state.recommendations == []


def test_explicit_zero_year_is_sent_and_rejected(tracker):
    with pytest.raises(ApiError) as info:
        tracker.save_goal(12, year=0)
    assert info.value.status_code == 400
    assert tracker.state.goal is None
