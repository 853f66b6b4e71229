"""
Seller application workflow: the two-step form that promotes a buyer to seller.

Step 1 collects business name, description and expertise; step 2 adds
experience, an optional portfolio link and motivation. Each step has a gate
(all its required fields non-blank after trimming). Submission is a single
POST /api/become-seller; on acceptance the session is refreshed from the
backend before success is reported, so the role resolver already sees the
seller tier.
"""

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import List, Optional, Sequence

from agentmarket.api.client import MarketplaceApiClient
from agentmarket.kernel.errors import (
    AlreadyInFlight,
    AuthenticationRequired,
    SessionLost,
    TransientFailure,
    ValidationRejected,
)
from agentmarket.kernel.identity.role_resolver import resolve_tier
from agentmarket.kernel.identity.session_context import SessionContext
from agentmarket.kernel.models.identity import Identity
from agentmarket.logging_config import get_logger
from agentmarket.schemas.seller_application import SellerApplicationRequest

logger = get_logger(__name__)


class ApplicationStep(IntEnum):
    """Cursor position in the form."""
    BASICS = 1
    DETAILS = 2


STEP_TWO_FIELDS = ("business_name", "description", "expertise")
SUBMIT_FIELDS = STEP_TWO_FIELDS + ("experience", "motivation")


@dataclass
class SellerApplicationDraft:
    """In-progress application. ``portfolio`` is never required."""

    business_name: str = ""
    description: str = ""
    expertise: str = ""
    experience: str = ""
    portfolio: str = ""
    motivation: str = ""
    step: ApplicationStep = ApplicationStep.BASICS


FORM_FIELDS = tuple(f.name for f in fields(SellerApplicationDraft) if f.name != "step")


def _text(draft: SellerApplicationDraft, name: str) -> str:
    # None means "not filled in"
    return (getattr(draft, name) or "").strip()


def missing_fields(draft: SellerApplicationDraft, required: Sequence[str]) -> List[str]:
    """Required fields that are empty or whitespace-only, in form order."""
    return [name for name in required if not _text(draft, name)]


def can_advance(draft: SellerApplicationDraft) -> bool:
    return not missing_fields(draft, STEP_TWO_FIELDS)


def can_submit(draft: SellerApplicationDraft) -> bool:
    return not missing_fields(draft, SUBMIT_FIELDS)


def advance(draft: SellerApplicationDraft) -> SellerApplicationDraft:
    """
    Move from step 1 to step 2.

    Raises:
        ValidationRejected: One entry per blank step-1 field; the step is unchanged
    """
    missing = missing_fields(draft, STEP_TWO_FIELDS)
    if missing:
        raise ValidationRejected.missing(missing)
    draft.step = ApplicationStep.DETAILS
    return draft


def back(draft: SellerApplicationDraft) -> SellerApplicationDraft:
    """Return to step 1. Field values are kept."""
    draft.step = ApplicationStep.BASICS
    return draft


def to_request(draft: SellerApplicationDraft) -> SellerApplicationRequest:
    """Trimmed payload; a blank portfolio is left out."""
    values = {name: _text(draft, name) for name in FORM_FIELDS}
    values["portfolio"] = values["portfolio"] or None
    return SellerApplicationRequest(**values)


class SellerApplicationWorkflow:
    """
    Owns the draft and its single in-flight submission.

    At most one submission runs per draft; a second ``submit`` while the
    first awaits the backend raises AlreadyInFlight without a network call.
    """

    def __init__(self, context: SessionContext, api: MarketplaceApiClient):
        self._context = context
        self._api = api
        self._draft: Optional[SellerApplicationDraft] = None
        self._in_flight = False
        self._disposed = False
        self.redirect_to: Optional[str] = None

    @property
    def draft(self) -> Optional[SellerApplicationDraft]:
        return self._draft

    @property
    def is_open(self) -> bool:
        return self._draft is not None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def open(self) -> SellerApplicationDraft:
        """Start a fresh draft, or return the one already open."""
        if self._draft is None:
            self._draft = SellerApplicationDraft()
            self.redirect_to = None
        return self._draft

    def update(self, **values: Optional[str]) -> SellerApplicationDraft:
        """Set form fields by name. None clears a field."""
        draft = self._require_draft()
        unknown = set(values) - set(FORM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown application fields: {', '.join(sorted(unknown))}")
        for name, value in values.items():
            setattr(draft, name, value or "")
        return draft

    def advance(self) -> SellerApplicationDraft:
        return advance(self._require_draft())

    def back(self) -> SellerApplicationDraft:
        return back(self._require_draft())

    def cancel(self) -> None:
        """Discard the draft. A submission still in flight can no longer touch it."""
        self._draft = None

    def close(self) -> None:
        """Tear down: discard the draft and ignore any late response."""
        self._disposed = True
        self._draft = None

    async def submit(self) -> Identity:
        """
        Submit the open draft.

        Returns:
            The refreshed identity (tier seller). ``redirect_to`` is set to its
            landing route.

        Raises:
            AlreadyInFlight: A submission is already awaiting the backend
            ValidationRejected: Submit gate fails locally, or the backend
                rejected fields (draft kept for correction)
            TransientFailure: Network or server failure (draft kept for retry)
            AuthenticationRequired: No usable session (draft discarded)
            SessionLost: Identity changed while the request was in flight
                (draft discarded, nothing committed)
        """
        draft = self._require_draft()
        if self._in_flight:
            raise AlreadyInFlight("Seller application already submitted, awaiting response")
        missing = missing_fields(draft, SUBMIT_FIELDS)
        if missing:
            raise ValidationRejected.missing(missing)

        applicant = self._context.identity
        token = self._context.access_token
        if applicant is None or token is None:
            self._discard(draft)
            raise AuthenticationRequired("Sign in to apply as a seller")

        self._in_flight = True
        try:
            try:
                await self._api.become_seller(to_request(draft), token)
            except ValidationRejected as e:
                logger.info("Seller application rejected", extra={"fields": e.fields})
                raise
            except TransientFailure as e:
                logger.warning("Seller application failed transiently: %s", e)
                raise
            except AuthenticationRequired:
                self._discard(draft)
                raise
            # Accepted: the draft is spent even if the refresh below fails
            self._discard(draft)
            self._ensure_same_identity(applicant)
            refreshed = await self._context.refresh()
        finally:
            self._in_flight = False

        if self._disposed:
            return refreshed
        self.redirect_to = resolve_tier(refreshed).landing_route
        logger.info(
            "Seller application accepted",
            extra={"identity_id": refreshed.id if refreshed else None, "redirect_to": self.redirect_to},
        )
        return refreshed

    def _ensure_same_identity(self, applicant: Identity) -> None:
        current = self._context.identity
        if current is None or current.id != applicant.id:
            raise SessionLost("Session changed while the seller application was in flight")

    def _discard(self, draft: SellerApplicationDraft) -> None:
        # Only the draft this submission was for; a newer one stays
        if self._draft is draft:
            self._draft = None

    def _require_draft(self) -> SellerApplicationDraft:
        if self._draft is None:
            raise RuntimeError("Seller application is not open")
        return self._draft
