"""Extension kinds and child type resolution.

Folders, items and versions carry an ``extension.type`` attribute naming the
sub-schema they follow. Children must be created with the same kind as the
folder they live in, otherwise the Data Management API rejects the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExtensionKind(Enum):
    """Sub-schema family of a Data Management resource."""

    BIM360 = "bim360"
    CORE = "core"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChildTypes:
    """Extension types to use for resources created inside a folder."""

    kind: ExtensionKind
    folder_type: str
    item_type: str
    version_type: str


_CHILD_TYPES: dict[ExtensionKind, ChildTypes] = {
    ExtensionKind.BIM360: ChildTypes(
        kind=ExtensionKind.BIM360,
        folder_type="folders:autodesk.bim360:Folder",
        item_type="items:autodesk.bim360:File",
        version_type="versions:autodesk.bim360:File",
    ),
    ExtensionKind.CORE: ChildTypes(
        kind=ExtensionKind.CORE,
        folder_type="folders:autodesk.core:Folder",
        item_type="items:autodesk.core:File",
        version_type="versions:autodesk.core:File",
    ),
}

DEFAULT_KIND = ExtensionKind.BIM360


def classify(extension_type: str | None) -> ExtensionKind:
    """Map an extension type string to its kind.

    bim360 is checked first: ACC folders are typed ``folders:autodesk.bim360:Folder``
    and must never fall through to the core kind.
    """
    if not extension_type:
        return ExtensionKind.UNKNOWN
    if "bim360" in extension_type:
        return ExtensionKind.BIM360
    if "core" in extension_type:
        return ExtensionKind.CORE
    return ExtensionKind.UNKNOWN


def parse_kind(value: str | None) -> ExtensionKind:
    """Parse a configured kind name ("bim360" or "core")."""
    if not value:
        return DEFAULT_KIND
    try:
        kind = ExtensionKind(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown extension kind: {value!r}") from None
    if kind is ExtensionKind.UNKNOWN:
        raise ValueError("The default extension kind must be 'bim360' or 'core'")
    return kind


def resolve_child_types(
    parent_extension_type: str | None,
    default: ExtensionKind = DEFAULT_KIND,
) -> ChildTypes:
    """Return the folder/item/version types for children of a folder.

    Args:
        parent_extension_type: The parent folder's ``extension.type``, if any
        default: Kind used when the parent's type is absent or unrecognized

    Returns:
        ChildTypes matching the parent's kind
    """
    if default is ExtensionKind.UNKNOWN:
        raise ValueError("default kind must be BIM360 or CORE")
    kind = classify(parent_extension_type)
    if kind is ExtensionKind.UNKNOWN:
        kind = default
    return _CHILD_TYPES[kind]
