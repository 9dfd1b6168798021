"""Exceptions raised by the catalog core and its gateway adapters."""

from __future__ import annotations

from katalog.types import UpdateResult


class CatalogError(Exception):
    """Base class for catalog failures."""


class ValidationError(CatalogError):
    """Input rejected before any gateway call was made."""


class GatewayError(CatalogError):
    """A collaborator call failed. The message is the collaborator's own."""


class NotFound(GatewayError):
    """Record does not exist in the gateway."""


class PermissionDenied(CatalogError):
    """The acting user's role does not allow the operation."""


class ReorderUnavailable(CatalogError):
    """Reordering was requested while a search query or category filter is active."""


class MutationInProgress(CatalogError):
    """An identical mutation for the same entity has not finished yet."""


class PartialUpdateError(CatalogError):
    """Scalar fields were saved but a later update step failed."""

    def __init__(self, result: UpdateResult) -> None:
        super().__init__(f"Kata {result.kata_id} partially updated; {result.failed_step} step failed: {result.error}")
        self.result = result


class CleanupError(CatalogError):
    """Orphan cleanup aborted. `deleted` lists what was removed before the failure."""

    def __init__(self, message: str, deleted: list[str]) -> None:
        super().__init__(message)
        self.deleted = deleted
