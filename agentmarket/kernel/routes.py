"""
Route surface of the marketplace front-end.

Every path a browser can land on is listed here; the route guard treats
anything else as not found.
"""

from typing import FrozenSet
from urllib.parse import urlsplit

LANDING = "/"
BUYER_DASHBOARD = "/dashboard"
SELLER_DASHBOARD = "/seller-dashboard"
ADMIN = "/admin"
ADMIN_ENHANCED = "/admin-enhanced"
ADMIN_LOGIN = "/admin-login"

# Admin areas; sub-paths (e.g. /admin/users) are restricted as well
ADMIN_PATHS: FrozenSet[str] = frozenset({ADMIN, ADMIN_ENHANCED})

KNOWN_PATHS: FrozenSet[str] = frozenset({
    LANDING,
    BUYER_DASHBOARD,
    SELLER_DASHBOARD,
    ADMIN,
    ADMIN_ENHANCED,
    ADMIN_LOGIN,
    "/marketplace",
    "/list-agent",
    "/create-agent",
    "/checkout",
    "/notifications",
    "/about",
    "/terms",
    "/points",
    "/referrals",
    "/leaderboard",
    "/wallet",
    "/seller-wallet",
})


def normalize_path(path: str) -> str:
    """Strip query string, fragment and trailing slash; '' becomes '/'."""
    bare = urlsplit(path or "/").path or "/"
    if not bare.startswith("/"):
        bare = "/" + bare
    if len(bare) > 1:
        bare = bare.rstrip("/") or "/"
    return bare


def is_admin_path(path: str) -> bool:
    path = normalize_path(path)
    return any(path == p or path.startswith(p + "/") for p in ADMIN_PATHS)


def is_known_path(path: str) -> bool:
    path = normalize_path(path)
    return path in KNOWN_PATHS or is_admin_path(path)
