"""Ad Ops Hub - Error Types.

Read-path errors are reported to the UI as ``{"error": message}`` payloads.
Mutation-path errors propagate to the caller and are mapped to HTTP status
codes by the routers.
"""


class AdOpsError(Exception):
    """Base class for all Ad Ops Hub errors."""


class SourceNotFoundError(AdOpsError):
    """Raised when a backing sheet does not exist."""

    def __init__(self, sheet_name: str):
        self.sheet_name = sheet_name
        super().__init__(f'Source sheet "{sheet_name}" not found.')


class UnresolvedColumnError(AdOpsError):
    """Raised when a configured column reference cannot be resolved."""

    def __init__(self, field: str, reference: str, reason: str):
        self.field = field
        self.reference = reference
        super().__init__(f"Cannot resolve column for '{field}' ({reference}): {reason}")


class PermissionDeniedError(AdOpsError):
    """Raised when the caller lacks the role required for a mutation."""


class InvalidInputError(AdOpsError):
    """Raised when a mutation receives unusable input."""


class CacheReadError(AdOpsError):
    """Raised by cache backends when a stored entry cannot be read."""
