"""Permission codes known to the CMS and their display names.

Steps refer to permissions by either form, e.g. ``"CMS_ACCESS_CMSMain"`` or
``"Access to 'Pages' section"``; ``PermissionCatalogue.match`` resolves both.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@dc.dataclass(frozen=True, slots=True)
class PermissionDetails:
    """Display metadata for one permission code."""

    code: str
    name: str
    category: str = "CMS Access"


DEFAULT_PERMISSIONS: tuple[PermissionDetails, ...] = (
    PermissionDetails(
        "ADMIN", "Full administrative rights", "Roles and access permissions"
    ),
    PermissionDetails("CMS_ACCESS_LeftAndMain", "Access to all CMS sections"),
    PermissionDetails("CMS_ACCESS_CMSMain", "Access to 'Pages' section"),
    PermissionDetails("CMS_ACCESS_AssetAdmin", "Access to 'Files' section"),
    PermissionDetails("CMS_ACCESS_SecurityAdmin", "Access to 'Security' section"),
    PermissionDetails("CMS_ACCESS_ReportAdmin", "Access to 'Reports' section"),
    PermissionDetails("SITETREE_VIEW_ALL", "View any page", "Content permissions"),
    PermissionDetails("SITETREE_EDIT_ALL", "Edit any page", "Content permissions"),
    PermissionDetails(
        "SITETREE_REORGANISE",
        "Change site structure",
        "Content permissions",
    ),
    PermissionDetails(
        "EDIT_PERMISSIONS",
        "Manage access rights for groups",
        "Roles and access permissions",
    ),
)


class PermissionCatalogue:
    """Lookup of permission codes by code or display name."""

    def __init__(
        self, permissions: cabc.Iterable[PermissionDetails] = DEFAULT_PERMISSIONS
    ) -> None:
        """Index the supplied permission details by code."""
        self._by_code = {details.code: details for details in permissions}

    def __contains__(self, code: object) -> bool:
        """Return True when ``code`` is a registered permission code."""
        return code in self._by_code

    def __iter__(self) -> cabc.Iterator[PermissionDetails]:
        """Iterate over permission details in registration order."""
        return iter(self._by_code.values())

    def register(self, details: PermissionDetails) -> None:
        """Add or replace a permission code."""
        self._by_code[details.code] = details

    def match(self, text: str) -> list[str]:
        """Return every code whose code or display name equals ``text``."""
        return [
            details.code
            for details in self._by_code.values()
            if text in (details.code, details.name)
        ]
