import base64
import hashlib
import hmac
import json
import os
import time

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret-for-book-tracker-tokens-0123456789"
os.environ["LLM_API_KEY"] = ""

import jwt
import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine
from app.main import app

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
JWT_ISSUER = "https://test-project.supabase.co/auth/v1"


def make_token(user_id="user-a", secret=JWT_SECRET, **overrides):
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": f"{user_id}@example.com",
        "aud": "authenticated",
        "iss": JWT_ISSUER,
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    claims = {key: value for key, value in claims.items() if value is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


def make_token_with_header(header, user_id="user-a"):
    """HS256-sign a token whose header is taken verbatim, e.g. a non-string alg."""

    def b64(data):
        raw = json.dumps(data, separators=(",", ":")).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    now = int(time.time())
    claims = {"sub": user_id, "aud": "authenticated", "iss": JWT_ISSUER, "exp": now + 3600}
    signing_input = f"{b64(header)}.{b64(claims)}"
    digest = hmac.new(JWT_SECRET.encode(), signing_input.encode(), hashlib.sha256).digest()
    signature = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return f"{signing_input}.{signature}"


def auth_headers(user_id="user-a"):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture(autouse=True)
def _fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_book(client):
    def _add(user_id="user-a", **fields):
        body = {"title": "Dune", "author": "Herbert", "status": "Want to Read"}
        body.update(fields)
        r = client.post("/api/saveBook", json=body, headers=auth_headers(user_id))
        assert r.status_code == 201, r.text
        return r.json()

    return _add
