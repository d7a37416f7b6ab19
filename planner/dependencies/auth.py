"""
Credential check for the login route.

The user directory is a fixed, read-only mapping (password == username),
injected into routes through ``get_user_directory`` so tests can override it.
"""
from __future__ import annotations

import hmac
import logging
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

VALID_USERS: Mapping[str, str] = MappingProxyType({
    "Zine": "Zine",
    "Abas": "Abas",
    "Tonga": "Tonga",
    "Ilyas": "Ilyas",
    "Morched": "Morched",
    "عبد الرحمان": "عبد الرحمان",
    "Youssif": "Youssif",
    "عبد العزيز": "عبد العزيز",
    "Med Ali": "Med Ali",
    "Sami": "Sami",
    "جابر": "جابر",
    "محمد الزبيدي": "محمد الزبيدي",
    "فارس": "فارس",
    "AutreProf": "AutreProf",
    "Mohamed": "Mohamed",
})


async def get_user_directory() -> Mapping[str, str]:
    """Username -> password mapping used by POST /login."""
    return VALID_USERS


def check_credentials(
    users: Mapping[str, str],
    username: Optional[str],
    password: Optional[str],
) -> bool:
    """Literal match of ``password`` against the stored one for ``username``."""
    if not username or password is None:
        return False
    expected = users.get(username)
    if expected is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), password.encode("utf-8"))
