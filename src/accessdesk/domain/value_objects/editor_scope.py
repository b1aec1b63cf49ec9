"""Editor scopes and grant sources."""

from enum import StrEnum

from accessdesk.domain.value_objects.permission_mask import (
    FieldMask,
    HierarchicalMask,
    PermissionMask,
)


class EditorScope(StrEnum):
    """What an editor session grants, and to whom."""

    PERMISSION_SET_TABLES = "permission_set_tables"
    PERMISSION_SET_FIELDS = "permission_set_fields"
    USER_TABLES = "user_tables"

    @property
    def mask_type(self) -> type[HierarchicalMask]:
        if self is EditorScope.PERMISSION_SET_FIELDS:
            return FieldMask
        return PermissionMask


class GrantSource(StrEnum):
    """Where a grant comes from. Profile grants are inherited and locked."""

    DIRECT = "direct"
    PROFILE = "profile"
