"""Domain value objects."""

from accessdesk.domain.value_objects.editor_scope import EditorScope, GrantSource
from accessdesk.domain.value_objects.permission_mask import (
    FieldMask,
    HierarchicalMask,
    MaskChange,
    MaskFlag,
    PermissionMask,
)

__all__ = [
    "EditorScope",
    "FieldMask",
    "GrantSource",
    "HierarchicalMask",
    "MaskChange",
    "MaskFlag",
    "PermissionMask",
]
