"""Application ports - interfaces for external adapters."""

from accessdesk.application.ports.entitlement_store import EntitlementStore
from accessdesk.application.ports.resource_catalog import ResourceCatalog

__all__ = [
    "EntitlementStore",
    "ResourceCatalog",
]
