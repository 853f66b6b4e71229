"""
HTTP client for the marketplace backend.

The only component that speaks HTTP. Every failure leaves here already
classified into the core's error taxonomy:

- transport errors, 5xx and 429  -> TransientFailure
- 401                            -> AuthenticationRequired
- any other 4xx                  -> ValidationRejected (with field errors when the body has them)
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from agentmarket.config import get_settings
from agentmarket.kernel.errors import (
    AuthenticationRequired,
    TransientFailure,
    ValidationRejected,
)
from agentmarket.kernel.models.identity import Identity, Session
from agentmarket.kernel.models.notification import Notification
from agentmarket.logging_config import get_logger
from agentmarket.schemas.auth import LoginRequest
from agentmarket.schemas.seller_application import SellerApplicationRequest

logger = get_logger(__name__)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _field_errors(body: Any) -> Dict[str, str]:
    """
    Pull per-field messages out of an error body.

    Understands ``{"errors": [{"field": ..., "message": ...}]}`` (dotted
    locations allowed, the last segment is the field) and
    ``{"errors": {"field": "message"}}``. Field names come back snake_case.
    """
    if not isinstance(body, dict):
        return {}
    errors = body.get("errors")
    result: Dict[str, str] = {}
    if isinstance(errors, dict):
        for field, message in errors.items():
            result[to_snake(str(field))] = str(message)
    elif isinstance(errors, list):
        for entry in errors:
            if not isinstance(entry, dict) or not entry.get("field"):
                continue
            field = str(entry["field"]).split(".")[-1]
            result[to_snake(field)] = str(entry.get("message", "invalid"))
    return result


def _error_message(body: Any, response: httpx.Response) -> str:
    if isinstance(body, dict):
        for key in ("message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"{response.status_code} {response.reason_phrase}".strip()


def raise_for_outcome(response: httpx.Response) -> None:
    """Raise the taxonomy error matching a non-2xx response."""
    status = response.status_code
    if status < 400:
        return
    body = _json_or_none(response)
    message = _error_message(body, response)
    if status == 401:
        raise AuthenticationRequired(message)
    if status == 429 or status >= 500:
        raise TransientFailure(message, status_code=status)
    raise ValidationRejected(_field_errors(body), message=message)


class MarketplaceApiClient:
    """
    Async client for the backend endpoints used by the access core.

    Owns its ``httpx.AsyncClient`` unless one is passed in (tests pass one
    wired to an in-process fake through ``httpx.ASGITransport``).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
        )

    async def __aenter__(self) -> "MarketplaceApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning("Backend unreachable: %s %s (%s)", method, url, e)
            raise TransientFailure(f"Network error: {e}") from e
        if response.status_code >= 400:
            logger.info(
                "Backend rejected request",
                extra={"method": method, "url": url, "status_code": response.status_code},
            )
        raise_for_outcome(response)
        return response

    def _parse(self, model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            # A 2xx with a body we cannot read is the server's fault, not the user's
            raise TransientFailure(f"Malformed {what} from backend: {e.error_count()} error(s)") from e

    async def login(self, email: str, password: str) -> Session:
        """POST /api/auth/login -> Session."""
        payload = LoginRequest(email=email, password=password)
        response = await self._request("POST", "/api/auth/login", json=payload.model_dump())
        body = _json_or_none(response) or {}
        return self._parse(Session, body.get("session", body), "session")

    async def get_current_user(self, token: str) -> Identity:
        """GET /api/auth/user -> Identity; the source of truth for the role."""
        response = await self._request("GET", "/api/auth/user", token=token)
        identity = self._parse(Identity, _json_or_none(response), "user")
        return identity.model_copy(update={"session_token": token})

    async def become_seller(self, application: SellerApplicationRequest, token: str) -> Identity:
        """POST /api/become-seller -> the updated user."""
        response = await self._request(
            "POST",
            "/api/become-seller",
            token=token,
            json=application.model_dump(by_alias=True, exclude_none=True),
        )
        body = _json_or_none(response) or {}
        user = body.get("updatedUser", body) if isinstance(body, dict) else body
        identity = self._parse(Identity, user, "user")
        return identity.model_copy(update={"session_token": token})

    async def list_notifications(self, token: str) -> List[Notification]:
        """GET /api/notifications -> feed in backend order."""
        response = await self._request("GET", "/api/notifications", token=token)
        body = _json_or_none(response)
        if isinstance(body, dict):
            body = body.get("notifications", [])
        if not isinstance(body, list):
            raise TransientFailure("Malformed notification feed from backend")
        return [self._parse(Notification, item, "notification") for item in body]

    async def mark_notification_read(self, notification_id: int, token: str) -> None:
        """PUT /api/notifications/{id}/read."""
        await self._request("PUT", f"/api/notifications/{notification_id}/read", token=token)

    async def mark_all_notifications_read(self, token: str) -> None:
        """PUT /api/notifications/mark-all-read."""
        await self._request("PUT", "/api/notifications/mark-all-read", token=token)
