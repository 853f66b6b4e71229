"""
Access control kernel.

- Identity Core: session context, providers, role resolution
- Permission Core: route surface and route guard
- Shared domain records and the error taxonomy

Tier logic lives here and nowhere else; views ask the route guard.
"""
