"""Orchestration layer - multi-step workflows over the identity core."""

from agentmarket.orchestration.seller_application import (
    ApplicationStep,
    SellerApplicationDraft,
    SellerApplicationWorkflow,
    advance,
    back,
    can_advance,
    can_submit,
)

__all__ = [
    "ApplicationStep",
    "SellerApplicationDraft",
    "SellerApplicationWorkflow",
    "advance",
    "back",
    "can_advance",
    "can_submit",
]
