"""Domain entities."""

from accessdesk.domain.entities.grant import Grant
from accessdesk.domain.entities.resource import Resource

__all__ = [
    "Grant",
    "Resource",
]
