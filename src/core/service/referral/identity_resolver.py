"""Resolve a referral token of unknown shape to an existing user."""

from typing import Awaitable, Callable, List, Optional, Tuple
from uuid import UUID

from src.core.logger.logger import get_logger
from src.core.service.account.models import User
from src.core.service.referral.stores import UserStore

logger = get_logger(__name__)

Probe = Tuple[str, Callable[[str], bool], Callable[[str], Awaitable[Optional[User]]]]


def mask_token(token: Optional[str]) -> str:
    """Keep only enough of a token to correlate log lines; emails keep their domain."""
    if not isinstance(token, str):
        return "***"
    local, at, domain = token.partition("@")
    if at:
        return f"{local[:2]}***@{domain}"
    return f"{token[:4]}***" if len(token) > 4 else "***"


def is_primary_key(token: str) -> bool:
    """True when the token parses as the store's native id (a UUID)."""
    try:
        UUID(token)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


class IdentityResolver:
    """
    Tries each applicable lookup strategy in a fixed order; first hit wins.

    A strategy that applies but finds nobody falls through to the next one.
    UUID-shaped external ids and wallet addresses share the external id field,
    so the second and third probes hit the same column.
    """

    def __init__(self, user_store: UserStore):
        self.user_store = user_store
        self.probes: List[Probe] = [
            ("primary_key", is_primary_key, self._by_primary_key),
            ("external_id", lambda t: "-" in t, user_store.get_by_external_id),
            ("wallet_address", lambda t: t.startswith("0x"), user_store.get_by_external_id),
            ("email", lambda t: "@" in t, user_store.get_by_email),
        ]

    async def _by_primary_key(self, token: str) -> Optional[User]:
        return await self.user_store.get_by_id(UUID(token))

    async def resolve(self, token: Optional[str]) -> Optional[User]:
        """
        Args:
            token: Raw referral token

        Returns:
            The referenced user, or None when nothing matches
        """
        if not isinstance(token, str) or not token.strip():
            return None
        token = token.strip()

        for name, applies, lookup in self.probes:
            if not applies(token):
                continue
            user = await lookup(token)
            logger.debug(
                "Referral token probe",
                extra={"probe": name, "token": mask_token(token), "matched": user is not None}
            )
            if user is not None:
                return user

        logger.info("Referral token did not match any user", extra={"token": mask_token(token)})
        return None
