"""
Pytest fixtures for AgentMarket tests.

The marketplace backend is replaced by an in-process FastAPI app driven
through ``httpx.ASGITransport``, so the real client code runs end to end.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agentmarket.api.client import MarketplaceApiClient
from agentmarket.kernel.identity.providers import InMemoryIdentityProvider, backend_identity_loader
from agentmarket.kernel.identity.session_context import SessionContext
from agentmarket.kernel.models.identity import Identity, Session
from agentmarket.kernel.models.notification import Notification

BACKEND_URL = "http://backend"

BUYER_TOKEN = "buyer-token"
SELLER_TOKEN = "seller-token"
ADMIN_TOKEN = "admin-token"

REQUIRED_APPLICATION_FIELDS = ("businessName", "description", "expertise", "experience", "motivation")


class FakeMarketplaceBackend:
    """
    Stand-in for the marketplace backend.

    Every handled request is recorded under a key like
    ``"POST /api/become-seller"``. Tests can queue outcomes for a key
    (``fail_next``) and hold requests at a gate (``hold``) to control the
    order in which responses arrive.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, tuple] = {}
        self.notifications: Dict[int, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.bodies: Dict[str, List[Any]] = defaultdict(list)
        self.outcomes: Dict[str, List[tuple]] = defaultdict(list)
        self.gates: Dict[str, asyncio.Event] = {}
        self.arrived: Dict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self.app = self._build_app()

    # -- test controls -----------------------------------------------------

    def add_user(
        self,
        token: str,
        user_id: str,
        email: str,
        role: str = "user",
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        user = {"id": user_id, "email": email, "role": role}
        self.users[token] = user
        if password is not None:
            self.passwords[email] = (password, token)
        return user

    def add_notification(self, notification: Notification) -> None:
        self.notifications[notification.id] = notification.model_dump(by_alias=True, mode="json")

    def fail_next(self, key: str, status_code: int = 503, body: Optional[Dict[str, Any]] = None) -> None:
        self.outcomes[key].append((status_code, body or {"message": "Service unavailable"}))

    def succeed_next(self, key: str) -> None:
        self.outcomes[key].append((200, None))

    def hold(self, key: str) -> asyncio.Event:
        """Block requests for ``key`` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[key] = gate
        self.arrived[key] = asyncio.Event()
        return gate

    def count(self, key: str) -> int:
        return self.calls.count(key)

    async def wait_for_calls(self, key: str, n: int = 1) -> None:
        while self.count(key) < n:
            await asyncio.sleep(0)

    # -- request plumbing --------------------------------------------------

    async def _checkpoint(self, key: str, request: Request) -> Optional[JSONResponse]:
        self.calls.append(key)
        if request.method in ("POST", "PUT"):
            raw = await request.body()
            self.bodies[key].append(await request.json() if raw else None)
        self.arrived[key].set()
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        queued = self.outcomes.get(key)
        if queued:
            status_code, body = queued.pop(0)
            if status_code >= 400:
                return JSONResponse(status_code=status_code, content=body)
        return None

    def _user_for(self, request: Request) -> Optional[Dict[str, Any]]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.users.get(header[len("Bearer "):])

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        unauthorized = lambda: JSONResponse(status_code=401, content={"message": "Unauthorized"})  # noqa: E731

        @app.post("/api/auth/login")
        async def login(request: Request):
            failure = await self._checkpoint("POST /api/auth/login", request)
            if failure:
                return failure
            body = await request.json()
            known = self.passwords.get(body.get("email"))
            if known is None or known[0] != body.get("password"):
                return JSONResponse(status_code=401, content={"message": "Invalid credentials"})
            token = known[1]
            return {"session": {"accessToken": token, "user": self.users[token]}}

        @app.get("/api/auth/user")
        async def current_user(request: Request):
            failure = await self._checkpoint("GET /api/auth/user", request)
            if failure:
                return failure
            user = self._user_for(request)
            return user if user is not None else unauthorized()

        @app.post("/api/become-seller")
        async def become_seller(request: Request):
            failure = await self._checkpoint("POST /api/become-seller", request)
            if failure:
                return failure
            user = self._user_for(request)
            if user is None:
                return unauthorized()
            body = await request.json()
            errors = [
                {"field": f"body.{name}", "message": "Required"}
                for name in REQUIRED_APPLICATION_FIELDS
                if not str(body.get(name) or "").strip()
            ]
            if errors:
                return JSONResponse(status_code=422, content={"message": "Invalid application", "errors": errors})
            user["role"] = "seller"
            return {"message": "Application approved", "updatedUser": user}

        @app.get("/api/notifications")
        async def list_notifications(request: Request):
            failure = await self._checkpoint("GET /api/notifications", request)
            if failure:
                return failure
            if self._user_for(request) is None:
                return unauthorized()
            return list(self.notifications.values())

        @app.put("/api/notifications/mark-all-read")
        async def mark_all_read(request: Request):
            failure = await self._checkpoint("PUT /api/notifications/mark-all-read", request)
            if failure:
                return failure
            if self._user_for(request) is None:
                return unauthorized()
            for item in self.notifications.values():
                item["isRead"] = True
            return {"success": True}

        @app.put("/api/notifications/{notification_id}/read")
        async def mark_read(notification_id: int, request: Request):
            failure = await self._checkpoint(f"PUT /api/notifications/{notification_id}/read", request)
            if failure:
                return failure
            if self._user_for(request) is None:
                return unauthorized()
            item = self.notifications.get(notification_id)
            if item is None:
                return JSONResponse(status_code=404, content={"message": "Notification not found"})
            item["isRead"] = True
            return {"success": True}

        return app


def make_notifications(now: Optional[datetime] = None) -> List[Notification]:
    """Four feed entries, two unread, newest first."""
    now = now or datetime.now(timezone.utc)
    return [
        Notification(
            id=1,
            type="order",
            title="New Order Received",
            message="You have received a new order for your AI Writing Assistant",
            is_read=False,
            created_at=now - timedelta(minutes=5),
            action_url="/seller-dashboard",
        ),
        Notification(
            id=2,
            type="payment",
            title="Payment Processed",
            message="Your payment of $29.99 has been successfully processed",
            is_read=False,
            created_at=now - timedelta(hours=1),
            action_url="/wallet",
        ),
        Notification(
            id=3,
            type="review",
            title="New Review",
            message="Someone left a 5-star review on your Data Analyzer agent",
            is_read=True,
            created_at=now - timedelta(days=1),
        ),
        Notification(
            id=4,
            type="system",
            title="Welcome to AgentMarket",
            message="Thanks for joining. Explore the marketplace to get started.",
            is_read=True,
            created_at=now - timedelta(days=3),
            action_url="/marketplace",
        ),
    ]


@pytest.fixture
def backend() -> FakeMarketplaceBackend:
    """Fake backend with a buyer, a seller and an admin, plus a small feed."""
    fake = FakeMarketplaceBackend()
    fake.add_user(BUYER_TOKEN, "u-buyer", "buyer@example.com", role="user", password="BuyerPass123")
    fake.add_user(SELLER_TOKEN, "u-seller", "seller@example.com", role="seller", password="SellerPass123")
    fake.add_user(ADMIN_TOKEN, "u-admin", "admin@example.com", role="admin", password="AdminPass123")
    for notification in make_notifications():
        fake.add_notification(notification)
    return fake


@pytest_asyncio.fixture
async def api_client(backend: FakeMarketplaceBackend) -> AsyncGenerator[MarketplaceApiClient, None]:
    """Real client wired to the fake backend."""
    transport = httpx.ASGITransport(app=backend.app)
    async with httpx.AsyncClient(transport=transport, base_url=BACKEND_URL) as http:
        yield MarketplaceApiClient(client=http)


@pytest.fixture
def buyer() -> Identity:
    return Identity(id="u-buyer", email="buyer@example.com", role="user")


@pytest.fixture
def buyer_session(buyer: Identity) -> Session:
    return Session(access_token=BUYER_TOKEN, user=buyer)


@pytest.fixture
def admin_session() -> Session:
    return Session(
        access_token=ADMIN_TOKEN,
        user=Identity(id="u-admin", email="admin@example.com", role="admin"),
    )


@pytest.fixture
def provider(buyer_session: Session) -> InMemoryIdentityProvider:
    """Provider already holding the buyer's session."""
    return InMemoryIdentityProvider(buyer_session)


@pytest_asyncio.fixture
async def session_context(
    provider: InMemoryIdentityProvider,
    api_client: MarketplaceApiClient,
) -> AsyncGenerator[SessionContext, None]:
    """Started context that asks the fake backend who is signed in."""
    context = SessionContext(provider, identity_loader=backend_identity_loader(api_client))
    await context.start()
    yield context
    await context.close()


@pytest.fixture
def sample_notifications() -> List[Notification]:
    return make_notifications()
