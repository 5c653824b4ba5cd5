"""
DocxCleaner Reference Rewriter Module

OOXML has no single index of "everything that points at part X". References
live in the .rels parts (relative Target paths) and in [Content_Types].xml
(absolute PartName values). This module keeps them in step when a part is
renamed or removed.

The set of relationship parts to touch is always supplied by the caller.
"""

import posixpath
from dataclasses import dataclass
from typing import Callable, Iterable, Optional
from urllib.parse import unquote

from errors import MalformedPartError
from package_store import PartStore
from xml_editor import XmlFragment, XmlPartEditor, namespaces_for

CONTENT_TYPES = "[Content_Types].xml"

REL_NS = namespaces_for("rel")
CT_NS = namespaces_for("ct")


def references_folder(target: str, folder: str) -> bool:
    """True if a Target/PartName points somewhere below folder/ (e.g. '../customXml/item1.xml')."""
    segments = [s for s in target.replace("\\", "/").split("/") if s not in ("", ".", "..")]
    return folder in segments[:-1]


def source_dir_of(rels_path: str) -> str:
    """Directory relative targets resolve against: 'word/_rels/document.xml.rels' -> 'word'."""
    rels_dir = posixpath.dirname(rels_path)
    if posixpath.basename(rels_dir) != "_rels":
        return rels_dir
    return posixpath.dirname(rels_dir)


def resolve_target(rels_path: str, target: str) -> str:
    target = unquote(target.split("#", 1)[0])
    if target.startswith("/"):
        return posixpath.normpath(target.lstrip("/"))
    return posixpath.normpath(posixpath.join(source_dir_of(rels_path), target))


class ReferenceRewriter:
    """Updates relationship and content-type declarations."""

    def __init__(self, store: PartStore, editor: Optional[XmlPartEditor] = None):
        self.store = store
        self.editor = editor or XmlPartEditor(store)

    def retarget(self, rels_paths: Iterable[str], old_name: str, new_name: str) -> int:
        """
        Point every relationship that names old_name at new_name instead.

        Matching is a substring test on the base name of each internal
        Target, so 'media/image1.png' matches old_name 'image1.png'. Only the
        base name is rewritten; the directory part of the Target is kept.

        Returns:
            Number of relationship targets updated across all parts.
        """
        updated = 0

        def rewrite(fragment: XmlFragment) -> bool:
            nonlocal updated
            count = 0
            for rel in fragment.select("//rel:Relationship[@Target]"):
                if rel.get("TargetMode") == "External":
                    continue
                target = rel.get("Target")
                head, sep, base = target.rpartition("/")
                if old_name in base:
                    rel.set("Target", head + sep + base.replace(old_name, new_name))
                    count += 1
            updated += count
            return count > 0

        for rels_path in rels_paths:
            self.editor.edit(rels_path, REL_NS, rewrite)

        return updated

    def retarget_override(self, old_path: str, new_path: str, content_type: Optional[str] = None) -> bool:
        """Rename an Override PartName (and optionally its ContentType)."""
        old_part_name = "/" + old_path.lstrip("/")
        new_part_name = "/" + new_path.lstrip("/")

        def rewrite(fragment: XmlFragment) -> bool:
            changed = False
            for override in fragment.select("//ct:Override[@PartName]"):
                if unquote(override.get("PartName")) == old_part_name:
                    override.set("PartName", new_part_name)
                    if content_type:
                        override.set("ContentType", content_type)
                    changed = True
            return changed

        return self.editor.edit(CONTENT_TYPES, CT_NS, rewrite)

    def remove_relationships(self, rels_path: str, matches: Callable[[str], bool]) -> list[str]:
        """Drop Relationship entries whose Target satisfies matches(). Returns removed targets."""
        removed = []

        def strip(fragment: XmlFragment) -> bool:
            for rel in fragment.select("//rel:Relationship[@Target]"):
                if matches(rel.get("Target")):
                    removed.append(rel.get("Target"))
                    fragment.remove(rel)
            return bool(removed)

        self.editor.edit(rels_path, REL_NS, strip)
        return removed

    def remove_overrides(self, matches: Callable[[str], bool]) -> list[str]:
        """Drop Override declarations whose PartName satisfies matches(). Returns removed names."""
        removed = []

        def strip(fragment: XmlFragment) -> bool:
            for override in fragment.select("//ct:Override[@PartName]"):
                if matches(override.get("PartName")):
                    removed.append(override.get("PartName"))
                    fragment.remove(override)
            return bool(removed)

        self.editor.edit(CONTENT_TYPES, CT_NS, strip)
        return removed

    def remove_folder_relationships(self, rels_path: str, folder: str) -> list[str]:
        return self.remove_relationships(rels_path, lambda target: references_folder(target, folder))

    def remove_folder_overrides(self, folder: str) -> list[str]:
        return self.remove_overrides(lambda part_name: references_folder(part_name, folder))

    def ensure_default(self, extension: str, content_type: str) -> bool:
        """Add <Default Extension=.. ContentType=..> unless the extension is already declared."""
        extension = extension.lstrip(".").lower()

        def add(fragment: XmlFragment) -> bool:
            for default in fragment.select("//ct:Default[@Extension]"):
                if default.get("Extension").lower() == extension:
                    return False
            fragment.append(fragment.root, "ct:Default", {"Extension": extension, "ContentType": content_type})
            return True

        return self.editor.edit(CONTENT_TYPES, CT_NS, add)


# =============================================================================
# Audit
# =============================================================================

@dataclass
class DanglingReference:
    """A declaration naming a part that is not in the package."""
    source: str
    reference: str
    resolved: str


def find_dangling_references(store: PartStore) -> list[DanglingReference]:
    """
    Scan every .rels part and [Content_Types].xml for references to parts
    that do not exist. External relationships are ignored. Parts that do
    not parse are skipped.
    """
    editor = XmlPartEditor(store)
    dangling = []

    for part in store.list_by_pattern("", ".rels"):
        try:
            fragment = editor.parse(part, REL_NS)
        except MalformedPartError:
            continue
        for rel in fragment.select("//rel:Relationship[@Target]"):
            if rel.get("TargetMode") == "External":
                continue
            target = rel.get("Target")
            resolved = resolve_target(part.path, target)
            if not store.exists(resolved):
                dangling.append(DanglingReference(part.path, target, resolved))

    content_types = store.get(CONTENT_TYPES)
    if content_types is not None:
        try:
            fragment = editor.parse(content_types, CT_NS)
        except MalformedPartError:
            return dangling
        for override in fragment.select("//ct:Override[@PartName]"):
            part_name = override.get("PartName")
            resolved = unquote(part_name).lstrip("/")
            if not store.exists(resolved):
                dangling.append(DanglingReference(CONTENT_TYPES, part_name, resolved))

    return dangling
