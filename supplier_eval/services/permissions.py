"""Capability flags supplied by the RBAC layer.

The controller never evaluates roles itself; it only consumes these booleans.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Permissions:
    """What the acting principal may do with supplier evaluations."""

    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    @property
    def view_only(self) -> bool:
        """View access without any write capability."""
        return self.can_view and not (self.can_create or self.can_edit or self.can_delete)

    @classmethod
    def full(cls) -> "Permissions":
        return cls(can_view=True, can_create=True, can_edit=True, can_delete=True)

    @classmethod
    def from_codes(cls, codes: set[str], area: str = "proveedores") -> "Permissions":
        """Build flags from permission codes such as 'proveedores:edit'."""
        return cls(
            can_view=f"{area}:view" in codes,
            can_create=f"{area}:create" in codes,
            can_edit=f"{area}:edit" in codes,
            can_delete=f"{area}:delete" in codes,
        )
