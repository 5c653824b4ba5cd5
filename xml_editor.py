"""
DocxCleaner XML Part Editor Module

Parses a single part into an isolated lxml tree, hands it to a mutator and
writes it back only if the mutator reports a change. The tree never outlives
the edit() call, so passes cannot see each other's half-edited documents.

Queries are written against the namespace table below, never against the
prefixes a given document happens to use.
"""

from typing import Callable, Optional, Union

from lxml import etree

from errors import MalformedPartError
from package_store import Part, PartStore

# Namespaces
NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "vt": "http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
}

W_NS = NAMESPACES["w"]
W = f"{{{W_NS}}}"


def namespaces_for(*prefixes: str) -> dict[str, str]:
    """Subset of NAMESPACES, e.g. namespaces_for('cp', 'dc')."""
    return {prefix: NAMESPACES[prefix] for prefix in prefixes}


class XmlFragment:
    """Transient parsed view of one XML part."""

    def __init__(self, part_name: str, tree: etree._ElementTree, namespaces: dict[str, str]):
        self.part_name = part_name
        self.tree = tree
        self.namespaces = dict(namespaces)

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()

    def qname(self, name: str) -> str:
        """'w:lang' -> '{http://...}lang' using this fragment's table."""
        if ":" not in name:
            return name
        prefix, local = name.split(":", 1)
        return f"{{{self.namespaces[prefix]}}}{local}"

    def select(self, xpath: str) -> list:
        return self.root.xpath(xpath, namespaces=self.namespaces)

    def select_one(self, xpath: str) -> Optional[etree._Element]:
        found = self.select(xpath)
        return found[0] if found else None

    def append(self, parent: etree._Element, name: str, attrib: Optional[dict] = None) -> etree._Element:
        element = etree.SubElement(parent, self.qname(name))
        for key, value in (attrib or {}).items():
            element.set(self.qname(key), value)
        return element

    def remove(self, element: etree._Element):
        """Detach element, keeping any tail text in place."""
        parent = element.getparent()
        if parent is None:
            return
        if element.tail:
            prev = element.getprevious()
            if prev is not None:
                prev.tail = (prev.tail or "") + element.tail
            else:
                parent.text = (parent.text or "") + element.tail
        parent.remove(element)


Mutator = Callable[[XmlFragment], bool]


class XmlPartEditor:
    """Query-based edits of XML parts held in a PartStore."""

    def __init__(self, store: PartStore):
        self.store = store

    def parse(self, part: Part, namespaces: dict[str, str]) -> XmlFragment:
        parser = etree.XMLParser(remove_blank_text=False, resolve_entities=False)
        try:
            root = etree.fromstring(part.data, parser)
        except etree.XMLSyntaxError as e:
            raise MalformedPartError(part.path, str(e)) from e
        return XmlFragment(part.path, root.getroottree(), namespaces)

    @staticmethod
    def serialize(fragment: XmlFragment) -> bytes:
        return etree.tostring(
            fragment.tree,
            xml_declaration=True,
            encoding="UTF-8",
            standalone=fragment.tree.docinfo.standalone,
        )

    def edit(self, part: Union[Part, str], namespaces: dict[str, str], mutator: Mutator) -> bool:
        """
        Run mutator against one part.

        Args:
            part: Part or part path. A path that is not in the store is
                skipped (returns False).
            namespaces: prefix -> URI table used by the mutator's queries
            mutator: callable taking the XmlFragment, returning True if it
                changed anything

        Returns:
            True if the part was rewritten.
        """
        if isinstance(part, str):
            part = self.store.get(part)
            if part is None:
                return False

        fragment = self.parse(part, namespaces)
        if not mutator(fragment):
            return False

        self.store.replace(part.path, self.serialize(fragment))
        return True
