"""Error taxonomy shared across the map pipeline."""

from __future__ import annotations


class DepotMapError(Exception):
    """Base class for depotmap failures."""


class GeometrySourceUnavailable(DepotMapError):
    """Raised when the base map document cannot be loaded or parsed."""


class LoadCancelled(DepotMapError):
    """Raised when a base map load is abandoned before it completes."""


class RegionResolutionFailure(DepotMapError, LookupError):
    """An identifier did not match any region in the registry."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No region matches '{identifier}'")
        self.identifier = identifier


class PersistenceFailure(DepotMapError):
    """A read or write against the attribute store failed."""

    def __init__(self, operation: str, collection: str, detail: str) -> None:
        super().__init__(f"{operation} on '{collection}' failed: {detail}")
        self.operation = operation
        self.collection = collection
        self.detail = detail


class InvalidNumericInput(DepotMapError, ValueError):
    """User-entered value outside the accepted range or not a finite number."""
