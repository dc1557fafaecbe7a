from sqlalchemy.exc import OperationalError

from app.services.goals import upsert_goal
from app.services.statistics import compute_stats, current_year
from conftest import auth_headers


def _finish(client, book, user_id, rating=None, status="Read"):
    body = {"id": book["id"], "status": status}
    if rating is not None:
        body["rating"] = rating
    r = client.put("/api/updateBookStatus", json=body, headers=auth_headers(user_id))
    assert r.status_code == 200


def test_empty_stats(client):
    r = client.get("/api/getStats", headers=auth_headers())
    assert r.status_code == 200
    assert r.json() == {"goal": None, "totalBooks": 0, "averageRating": 0.0}


def test_average_covers_only_rated_read_books(client, add_book):
    _finish(client, add_book(title="A"), "user-a", rating=4)
    _finish(client, add_book(title="B"), "user-a", rating=3)
    _finish(client, add_book(title="C"), "user-a")
    _finish(client, add_book(title="D"), "user-a", rating=1, status="Currently Reading")
    add_book(title="E")

    r = client.get("/api/getStats", headers=auth_headers())
    assert r.json()["totalBooks"] == 3
    assert r.json()["averageRating"] == 3.5


def test_other_users_books_do_not_change_my_stats(client, add_book):
    _finish(client, add_book(title="Mine"), "user-a", rating=2)
    before = client.get("/api/getStats", headers=auth_headers("user-a")).json()

    for title in ("X", "Y"):
        _finish(client, add_book(user_id="user-b", title=title), "user-b", rating=5)

    after = client.get("/api/getStats", headers=auth_headers("user-a")).json()
    assert after == before == {"goal": None, "totalBooks": 1, "averageRating": 2.0}
    theirs = client.get("/api/getStats", headers=auth_headers("user-b")).json()
    assert theirs["totalBooks"] == 2 and theirs["averageRating"] == 5.0


def test_goal_is_for_the_current_year_only(client, db):
    upsert_goal(db, "user-a", current_year() - 1, 40)
    assert client.get("/api/getStats", headers=auth_headers()).json()["goal"] is None

    upsert_goal(db, "user-a", current_year(), 24)
    assert client.get("/api/getStats", headers=auth_headers()).json()["goal"] == 24


def test_compute_stats_for_explicit_year(db):
    upsert_goal(db, "user-a", 2024, 20)
    stats = compute_stats(db, "user-a", year=2024)
    assert stats == {"goal": 20, "total_books": 0, "average_rating": 0.0}


def test_store_failure_is_a_generic_500(client, monkeypatch):
    def broken(db, user_id):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr("app.api.routes.stats.compute_stats", broken)
    r = client.get("/api/getStats", headers=auth_headers())
    assert r.status_code == 500
    assert r.json() == {"error": "Error fetching stats"}
