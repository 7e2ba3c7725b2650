from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.security import get_password_hash
from app.database import Database
from app.gateways.base import PaymentVerifier
from app.gateways.simulated import SimulatedVerifier
from app.main import create_application
from app.models.profile import CustomerProfile, DeveloperProfile
from app.models.user import User, UserRoleAssignment
from app.services.booking_cache import BookingCache
from app.services.booking_service import BookingService
from app.services.booking_store import BookingStore
from app.services.notification_service import EmailNotifier
from app.services.profile_service import ProfileService
from app.services.realtime import ChangeFeed

# Fixed "now" for service tests: bookings on 2030-01-02 are in the future
NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

PROJECT = {
    "title": "API review",
    "description": "Review our REST API design",
    "requirements": "OpenAPI spec",
    "goals": "A list of concrete fixes",
    "meet_link": "https://meet.example.com/abc-defg-hij",
}


def make_settings(db_path, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite+aiosqlite:///{db_path}",
        auto_create_tables=True,
        environment="test",
        jwt_secret_key="test-secret",
        email_function_url=None,
        payment_validation_delay_seconds=0,
        retry_initial_delay_seconds=0,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path / "api.db")


@pytest.fixture
def client(settings):
    app = create_application(settings)
    with TestClient(app) as c:
        yield c


def signup(client, email, role, full_name="Test User"):
    res = client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": "secret123", "role": role, "full_name": full_name},
    )
    assert res.status_code == 201, res.text
    return res.json()["access_token"]


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@dataclass
class ServiceEnv:
    database: Database
    feed: ChangeFeed
    store: BookingStore
    profiles: ProfileService
    cache: BookingCache
    service: BookingService
    developer_id: UUID
    customer_id: UUID

    async def close(self):
        self.feed.close()
        await self.database.dispose()


async def seed_user(database, email, role, full_name, **profile):
    async with database.session() as session:
        user = User(email=email, password_hash=get_password_hash("secret123"))
        user.role_assignments = [UserRoleAssignment(role=role, is_primary=True)]
        session.add(user)
        await session.flush()
        if role == "developer":
            session.add(DeveloperProfile(id=user.id, full_name=full_name, **profile))
        else:
            session.add(CustomerProfile(id=user.id, full_name=full_name))
        return user.id


async def make_env(
    db_path,
    verifier: PaymentVerifier | None = None,
    notifier: EmailNotifier | None = None,
    hourly_rate=Decimal("150.00"),
    is_available=True,
) -> ServiceEnv:
    database = Database(f"sqlite+aiosqlite:///{db_path}")
    database.connect()
    await database.create_all()
    feed = ChangeFeed(queue_size=10)
    retry = dict(retry_attempts=3, retry_initial_delay=0, retry_backoff_factor=1.5)
    store = BookingStore(database, feed, **retry)
    profiles = ProfileService(database, feed, **retry)
    cache = BookingCache(store)

    developer_id = await seed_user(
        database,
        f"dev-{uuid4().hex[:6]}@example.com",
        "developer",
        "Dana Developer",
        hourly_rate=hourly_rate,
        wallet_address="0xdeveloperwallet",
        is_available=is_available,
    )
    customer_id = await seed_user(
        database, f"cust-{uuid4().hex[:6]}@example.com", "customer", "Casey Customer"
    )

    service = BookingService(
        store=store,
        profiles=profiles,
        verifier=verifier or SimulatedVerifier(delay_seconds=0),
        notifier=notifier,
        cache=cache,
        clock=lambda: NOW,
    )
    return ServiceEnv(database, feed, store, profiles, cache, service, developer_id, customer_id)
