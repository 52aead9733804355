"""Ad Ops Hub - Access Gate.

Roles come from the permissions sheet (identity, role; row 1 = header). The
sheet is re-read on every check so revoked roles take effect immediately.
"""

from typing import Optional

from adops.connectors.sheets.base import SheetSource
from adops.core.logging import get_logger

logger = get_logger("access")


class AccessGate:
    """Resolves caller roles and gates mutations."""

    def __init__(self, permissions: SheetSource):
        self.permissions = permissions

    async def resolve_role(self, identity: Optional[str]) -> Optional[str]:
        """Role for ``identity`` (case-insensitive match), or None.

        A missing or unreadable permissions sheet resolves to None.
        """
        if not identity or not identity.strip():
            return None
        needle = identity.strip().lower()
        try:
            if not await self.permissions.exists():
                logger.warning(
                    "Permissions sheet missing",
                    extra={"sheet": self.permissions.sheet_name},
                )
                return None
            last_row = await self.permissions.last_row_index()
            if last_row <= 1:
                return None
            rows = await self.permissions.read_range(2, 1, last_row - 1, 2)
        except Exception as e:
            logger.error(
                f"Could not read permissions: {e}",
                extra={"sheet": self.permissions.sheet_name},
            )
            return None

        for email, role in rows:
            if isinstance(email, str) and email.strip().lower() == needle:
                return str(role) if role not in (None, "") else None
        return None

    async def authorize(self, identity: Optional[str], required_role: str) -> bool:
        """True iff the caller's role equals ``required_role`` exactly."""
        role = await self.resolve_role(identity)
        allowed = role is not None and role == required_role
        if not allowed:
            logger.info(
                f"Denied: role {role!r} does not match {required_role!r}",
                extra={"identity": identity},
            )
        return allowed

    async def has_any_access(self, identity: Optional[str]) -> bool:
        return await self.resolve_role(identity) is not None
