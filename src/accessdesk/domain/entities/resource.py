"""Resource entity - an assignable unit of access control."""

from dataclasses import dataclass


@dataclass
class Resource:
    """Table (or field of a table) that can be granted to an owner.

    attributes stays None until fetched; once fetched it is kept for the
    lifetime of the editor session.
    """

    id: str
    name: str
    description: str | None = None
    attributes: tuple[str, ...] | None = None
