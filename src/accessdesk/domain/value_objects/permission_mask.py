"""Permission masks with a gate flag that controls its dependent flags.

A table grant carries create/read/update/delete; reading gates updating and
deleting, while creating is independent of reading. A field grant carries
view/edit; viewing gates editing. The hierarchy is enforced on every edit:
clearing the gate clears everything it gates, and enabling a gated flag while
the gate is off is rejected without touching the mask.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any, ClassVar, Self

from accessdesk.domain.exceptions import HierarchyViolation, ValidationError


class MaskFlag(StrEnum):
    """Entitlement flags, named as they travel on the wire."""

    CREATE = "can_create"
    READ = "can_read"
    UPDATE = "can_update"
    DELETE = "can_delete"
    VIEW = "can_view"
    EDIT = "can_edit"


@dataclass(frozen=True)
class MaskChange:
    """Outcome of a mask edit: the new mask and the flags a cascade turned off."""

    mask: HierarchicalMask
    cleared: tuple[MaskFlag, ...] = ()

    @property
    def cascaded(self) -> bool:
        return bool(self.cleared)


class HierarchicalMask:
    """Behaviour shared by mask dataclasses. Subclasses declare gate and gated."""

    gate: ClassVar[MaskFlag]
    gated: ClassVar[tuple[MaskFlag, ...]]

    @classmethod
    def flags(cls) -> tuple[MaskFlag, ...]:
        return tuple(MaskFlag(f.name) for f in fields(cls))

    @classmethod
    def coerce_flag(cls, flag: MaskFlag | str) -> MaskFlag:
        """Accept a MaskFlag, its wire name ("can_read") or short name ("read")."""
        if not isinstance(flag, MaskFlag):
            name = str(flag).strip().lower()
            try:
                flag = MaskFlag(name)
            except ValueError:
                try:
                    flag = MaskFlag[name.upper()]
                except KeyError:
                    raise ValidationError(f"Unknown permission flag: {name}") from None
        if flag not in cls.flags():
            raise ValidationError(f"{flag} is not a flag of {cls.__name__}")
        return flag

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build from a wire dict. Missing flags read as False."""
        return cls(**{f.value: bool(data.get(f.value) or False) for f in cls.flags()})

    @classmethod
    def none(cls) -> Self:
        return cls(**{f.value: False for f in cls.flags()})

    def get(self, flag: MaskFlag | str) -> bool:
        return getattr(self, self.coerce_flag(flag).value)

    def set(self, flag: MaskFlag | str, value: bool) -> MaskChange:
        """Return the mask with one flag changed, applying the hierarchy.

        Raises HierarchyViolation when enabling a gated flag while the gate is off.
        """
        flag = self.coerce_flag(flag)
        value = bool(value)
        if value and flag in self.gated and not self.get(self.gate):
            raise HierarchyViolation(flag.value, self.gate.value)
        if flag == self.gate and not value:
            cleared = tuple(f for f in self.gated if self.get(f))
            changes = {f.value: False for f in self.gated}
            changes[flag.value] = False
            return MaskChange(replace(self, **changes), cleared)
        return MaskChange(replace(self, **{flag.value: value}))

    def is_consistent(self) -> bool:
        return self.get(self.gate) or not any(self.get(f) for f in self.gated)

    def normalized(self) -> MaskChange:
        """Clear gated flags left on without their gate (repairs remote data)."""
        if self.is_consistent():
            return MaskChange(self)
        cleared = tuple(f for f in self.gated if self.get(f))
        return MaskChange(replace(self, **{f.value: False for f in cleared}), cleared)

    def to_dict(self) -> dict[str, bool]:
        return {f.value: self.get(f) for f in self.flags()}

    def granted_flags(self) -> tuple[MaskFlag, ...]:
        return tuple(f for f in self.flags() if self.get(f))


@dataclass(frozen=True)
class PermissionMask(HierarchicalMask):
    """Create/read/update/delete entitlement on a table."""

    gate: ClassVar[MaskFlag] = MaskFlag.READ
    gated: ClassVar[tuple[MaskFlag, ...]] = (MaskFlag.UPDATE, MaskFlag.DELETE)

    can_create: bool = True
    can_read: bool = True
    can_update: bool = True
    can_delete: bool = True


@dataclass(frozen=True)
class FieldMask(HierarchicalMask):
    """View/edit entitlement on a single field of a granted table."""

    gate: ClassVar[MaskFlag] = MaskFlag.VIEW
    gated: ClassVar[tuple[MaskFlag, ...]] = (MaskFlag.EDIT,)

    can_view: bool = True
    can_edit: bool = False
