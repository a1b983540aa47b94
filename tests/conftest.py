# tests/conftest.py
import itertools

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from daansetu.core.config import Settings
from daansetu.core.errors import AuthError
from daansetu.core.security import hash_password
from daansetu.main import create_app
from daansetu.repos.inmemory import InMemoryRepo
from daansetu.services.documents import utcnow
from daansetu.services.users import create_user_profile

PASSWORD = "secret123"


class FakeGoogle:
    """Stands in for Google's tokeninfo endpoint."""

    def __init__(self):
        self.tokens = {}

    async def verify(self, id_token: str):
        if id_token not in self.tokens:
            raise AuthError("Invalid Google token")
        return self.tokens[id_token]


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, jwt_secret="test-secret", debug=True, subscription_timeout_s=0.5)


@pytest.fixture
def repo():
    return InMemoryRepo()


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
async def app(settings, repo, google):
    application = create_app(settings=settings, repo=repo, google_verifier=google)
    async with LifespanManager(application):
        yield application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=True)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(client, repo):
    """Async factory: returns (auth headers, profile json) for a fresh account."""
    seq = itertools.count(1)

    async def _make(role: str = "donor", name: str | None = None, verified: bool = False):
        n = next(seq)
        email = f"{role}{n}@daansetu.org"
        name = name or f"{role.title()} {n}"
        if role == "admin":
            # admins are never self-registered
            uid = f"admin{n}"
            await repo.insert("credentials", {
                "id": uid, "email": email, "password_hash": hash_password(PASSWORD),
                "provider": "password", "created_at": utcnow(),
            })
            await create_user_profile(repo, uid, email, name, "admin")
            r = await client.post("/auth/login", json={"email": email, "password": PASSWORD})
        else:
            r = await client.post("/auth/signup", json={
                "email": email, "password": PASSWORD, "display_name": name, "role": role,
            })
        assert r.status_code in (200, 201), r.text
        body = r.json()
        user = body["user"]
        if verified:
            await repo.update("users", user["id"], {"verification_status": "verified", "is_verified": True})
            user = {**user, "verification_status": "verified", "is_verified": True}
        return {"Authorization": f"Bearer {body['access_token']}"}, user

    return _make


@pytest.fixture
def donation_body():
    return {
        "title": "Rice bags",
        "description": "10kg bags, sealed",
        "category": "food",
        "quantity": 5,
        "address": "MG Road, Bengaluru",
        "location": {"lat": 12.9756, "lng": 77.6050},
    }


@pytest.fixture
def request_body():
    return {
        "title": "School books",
        "description": "Grade 3-5 textbooks",
        "category": "books",
        "quantity": 40,
        "beneficiary_count": 40,
        "urgency": "high",
        "address": "Koramangala, Bengaluru",
        "location": {"lat": 12.9352, "lng": 77.6245},
    }
