"""Grant entity - an owner's recorded mask on a resource."""

from dataclasses import dataclass

from accessdesk.domain.value_objects import GrantSource, HierarchicalMask


@dataclass
class Grant:
    """Grant as known to the remote authority."""

    id: str
    owner_id: str
    resource_id: str
    mask: HierarchicalMask
    source: GrantSource = GrantSource.DIRECT
    source_name: str | None = None

    @property
    def inherited(self) -> bool:
        return self.source is GrantSource.PROFILE
