"""
AgentMarket access and onboarding core.

Session context, role resolution, route guarding, the seller application
workflow and the notification feed store, plus the FastAPI front-end that
serves the guarded route surface.
"""

__version__ = "1.0.0"
