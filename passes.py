"""
DocxCleaner Transformation Passes

Each pass is a plain function run(store, options, report). Passes share no
state; anything one pass needs from the package it reads back through the
store. PASSES fixes the order they run in.

Passes raise the recoverable errors from errors.py and let the pipeline
record them. Loops over many parts (headers, footers, images) record
per-part failures themselves so one bad part does not stop the rest.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Callable

from errors import MalformedPartError, MissingCapabilityError, UnsupportedOperationError, InvalidConfigurationError
from image_codec import TARGET_CONTENT_TYPE, TARGET_EXTENSION, recompress
from options import CleanerOptions
from package_store import PartStore
from references import CONTENT_TYPES, ReferenceRewriter, references_folder, resolve_target
from xml_editor import W, XmlFragment, XmlPartEditor, namespaces_for

# Part paths
DOCUMENT = "word/document.xml"
SETTINGS = "word/settings.xml"
APP_PROPS = "docProps/app.xml"
CORE_PROPS = "docProps/core.xml"
CUSTOM_PROPS = "docProps/custom.xml"
PACKAGE_RELS = "_rels/.rels"
DOCUMENT_RELS = "word/_rels/document.xml.rels"
MEDIA_PREFIX = "word/media/"
CUSTOM_XML_FOLDER = "customXml"


@dataclass
class PassReport:
    """What one pass did to the package."""
    name: str
    changed_parts: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def status(self) -> str:
        return "ok" if self.success else "failed"

    def changed(self, part_path: str):
        if part_path not in self.changed_parts:
            self.changed_parts.append(part_path)

    def fail(self, message: str):
        self.errors.append(message)


# =============================================================================
# Settings and properties
# =============================================================================

def settings_privacy(store: PartStore, options: CleanerOptions, report: PassReport):
    """
    Mark the document as "remove personal information" and "remove date and
    time on save".

    The two markers are appended every time without looking for existing
    ones, so a second run leaves duplicates. When a replacement settings
    file is configured it is written over word/settings.xml instead.
    """
    if options.settings_file is not None:
        try:
            data = options.settings_file.read_bytes()
        except OSError as e:
            raise InvalidConfigurationError("settings_file", str(options.settings_file)) from e
        store.replace(SETTINGS, data)
        report.notes.append(f"Replaced '{SETTINGS}' with '{options.settings_file}'.")
        report.changed(SETTINGS)
        return

    if not store.exists(SETTINGS):
        return
    report.notes.append(f"Found '{SETTINGS}' file.")

    def add_markers(fragment: XmlFragment) -> bool:
        settings = fragment.select_one("/w:settings")
        if settings is None:
            return False
        fragment.append(settings, "w:removePersonalInformation")
        fragment.append(settings, "w:removeDateAndTime")
        return True

    if XmlPartEditor(store).edit(SETTINGS, namespaces_for("w"), add_markers):
        report.changed(SETTINGS)


def _set_existing(fragment: XmlFragment, xpath: str, value: str) -> bool:
    # Only ever fill in nodes the template already has.
    node = fragment.select_one(xpath)
    if node is None:
        return False
    node.text = value
    return True


def app_properties(store: PartStore, options: CleanerOptions, report: PassReport):
    """Company and title in docProps/app.xml."""
    if not store.exists(APP_PROPS):
        return
    report.notes.append(f"Found '{APP_PROPS}' file.")

    def update(fragment: XmlFragment) -> bool:
        changed = False
        if options.company is not None:
            changed |= _set_existing(fragment, "//ep:Company", options.company)
        if options.title is not None:
            changed |= _set_existing(fragment, "//ep:TitlesOfParts/vt:vector/vt:lpstr", options.title)
        return changed

    if XmlPartEditor(store).edit(APP_PROPS, namespaces_for("ep", "vt"), update):
        report.changed(APP_PROPS)


PRIVATE_CORE_FIELDS = (
    "//cp:lastModifiedBy",
    "//cp:lastPrinted",
    "//dcterms:created",
    "//dcterms:modified",
)


def core_properties(store: PartStore, options: CleanerOptions, report: PassReport):
    """Title and creator in docProps/core.xml; with privacy, blank the who/when fields."""
    if not store.exists(CORE_PROPS):
        return
    report.notes.append(f"Found '{CORE_PROPS}' file.")

    def update(fragment: XmlFragment) -> bool:
        changed = False
        if options.title is not None:
            changed |= _set_existing(fragment, "//dc:title", options.title)
        if options.creator is not None:
            changed |= _set_existing(fragment, "//dc:creator", options.creator)
        if options.privacy:
            for xpath in PRIVATE_CORE_FIELDS:
                changed |= _set_existing(fragment, xpath, "")
        return changed

    if XmlPartEditor(store).edit(CORE_PROPS, namespaces_for("cp", "dc", "dcterms"), update):
        report.changed(CORE_PROPS)


# =============================================================================
# Custom data
# =============================================================================

def custom_xml_relationships(store: PartStore, options: CleanerOptions, report: PassReport):
    """Drop relationships pointing into customXml/ from every .rels part outside it."""
    rewriter = ReferenceRewriter(store)
    for part in store.list_by_pattern("", ".rels"):
        if part.path.startswith(CUSTOM_XML_FOLDER + "/"):
            continue
        for target in rewriter.remove_folder_relationships(part.path, CUSTOM_XML_FOLDER):
            report.notes.append(f"Removed relationship to '{target}' from '{part.path}'.")
            report.changed(part.path)


def custom_xml_folder(store: PartStore, options: CleanerOptions, report: PassReport):
    """Delete every part under customXml/."""
    for path in store.names():
        if path.startswith(CUSTOM_XML_FOLDER + "/"):
            store.delete(path)
            report.notes.append(f"Deleting file '{path}' from the archive.")
            report.changed(path)


def custom_properties(store: PartStore, options: CleanerOptions, report: PassReport):
    """Remove docProps/custom.xml together with its package relationship and override."""
    rewriter = ReferenceRewriter(store)

    if store.delete(CUSTOM_PROPS):
        report.notes.append(f"Deleting file '{CUSTOM_PROPS}' from the archive.")
        report.changed(CUSTOM_PROPS)

    removed = rewriter.remove_relationships(
        PACKAGE_RELS, lambda target: resolve_target(PACKAGE_RELS, target) == CUSTOM_PROPS
    )
    if removed:
        report.changed(PACKAGE_RELS)

    if rewriter.remove_overrides(lambda part_name: part_name.lstrip("/") == CUSTOM_PROPS):
        report.changed(CONTENT_TYPES)


def content_types(store: PartStore, options: CleanerOptions, report: PassReport):
    """Drop Override declarations for parts under customXml/."""
    if not store.exists(CONTENT_TYPES):
        return
    report.notes.append(f"Found '{CONTENT_TYPES}' file.")

    for part_name in ReferenceRewriter(store).remove_folder_overrides(CUSTOM_XML_FOLDER):
        report.notes.append(f"Removed Override for '{part_name}'.")
        report.changed(CONTENT_TYPES)


def styles(store: PartStore, options: CleanerOptions, report: PassReport):
    raise UnsupportedOperationError(f"applying styles from '{options.styles_file}'")


# =============================================================================
# Language
# =============================================================================

def language_parts(store: PartStore) -> list[str]:
    """Document first, then every header, then every footer."""
    paths = [DOCUMENT] if store.exists(DOCUMENT) else []
    paths += [p.path for p in store.list_by_pattern("word/header", ".xml")]
    paths += [p.path for p in store.list_by_pattern("word/footer", ".xml")]
    return paths


def normalize_language(store: PartStore, options: CleanerOptions, report: PassReport):
    """
    Overwrite w:val on every w:lang element, wherever it sits.

    A part counts as changed as soon as it has one w:lang, even if the value
    was already the target language.
    """
    editor = XmlPartEditor(store)
    lang = options.lang

    def set_lang(fragment: XmlFragment) -> bool:
        nodes = fragment.select("//w:lang")
        for node in nodes:
            node.set(f"{W}val", lang)
        if nodes:
            report.notes.append(f"'{fragment.part_name}': {len(nodes)} lang node(s) set to '{lang}'.")
        return bool(nodes)

    for path in language_parts(store):
        try:
            if editor.edit(path, namespaces_for("w"), set_lang):
                report.changed(path)
        except MalformedPartError as e:
            report.fail(str(e))


# =============================================================================
# Images
# =============================================================================

def image_reference_parts(store: PartStore) -> list[str]:
    """Relationship parts that can point at word/media: document, all headers, all footers."""
    paths = [DOCUMENT_RELS] if store.exists(DOCUMENT_RELS) else []
    paths += [p.path for p in store.list_by_pattern("word/_rels/header", ".xml.rels")]
    paths += [p.path for p in store.list_by_pattern("word/_rels/footer", ".xml.rels")]
    return paths


def recompress_images(store: PartStore, options: CleanerOptions, report: PassReport):
    """
    Re-encode every media part as JPEG and rename it to <name>.jpg.

    Steps per image: encode, write the new part, delete the old one, then
    retarget relationships and overrides. Images the codec cannot read are
    left untouched. Two images that differ only by extension end up at the
    same .jpg name; the later one wins.
    """
    rewriter = ReferenceRewriter(store)
    rels_paths = image_reference_parts(store)
    converted = 0

    for part in store.list_by_prefix(MEDIA_PREFIX):
        report.notes.append(f"Compressing image '{part.path}'.")
        try:
            data = recompress(part.data, options.compress_quality, part.path)
        except MissingCapabilityError as e:
            report.fail(str(e))
            continue

        new_path = posixpath.splitext(part.path)[0] + TARGET_EXTENSION
        store.replace(new_path, data)
        report.changed(new_path)
        converted += 1

        if new_path == part.path:
            continue

        store.delete(part.path)
        report.changed(part.path)
        new_name = posixpath.basename(new_path)

        # A malformed referencing part only keeps its own stale target
        for rels_path in rels_paths:
            try:
                if rewriter.retarget([rels_path], part.name, new_name):
                    report.changed(rels_path)
            except MalformedPartError as e:
                report.fail(str(e))

        try:
            if rewriter.retarget_override(part.path, new_path, TARGET_CONTENT_TYPE):
                report.changed(CONTENT_TYPES)
        except MalformedPartError as e:
            report.fail(str(e))

    if converted and rewriter.ensure_default(TARGET_EXTENSION, TARGET_CONTENT_TYPE):
        report.notes.append(f"Registered content type '{TARGET_CONTENT_TYPE}' for '{TARGET_EXTENSION}'.")
        report.changed(CONTENT_TYPES)


# =============================================================================
# Registry
# =============================================================================

@dataclass(frozen=True)
class TransformationPass:
    name: str
    run: Callable[[PartStore, CleanerOptions, PassReport], None]
    enabled: Callable[[CleanerOptions], bool]


PASSES = (
    TransformationPass("settings-privacy", settings_privacy,
                       lambda o: o.privacy or o.settings_file is not None),
    TransformationPass("app-properties", app_properties,
                       lambda o: o.title is not None or o.company is not None),
    TransformationPass("core-properties", core_properties,
                       lambda o: o.title is not None or o.creator is not None or o.privacy),
    TransformationPass("custom-xml-relationships", custom_xml_relationships,
                       lambda o: o.remove_custom_xml),
    TransformationPass("custom-xml-folder", custom_xml_folder,
                       lambda o: o.remove_custom_xml),
    TransformationPass("custom-properties", custom_properties,
                       lambda o: o.remove_custom_properties),
    TransformationPass("styles", styles,
                       lambda o: o.styles_file is not None),
    TransformationPass("content-types", content_types,
                       lambda o: o.remove_custom_xml),
    TransformationPass("language", normalize_language,
                       lambda o: bool(o.lang)),
    TransformationPass("images", recompress_images,
                       lambda o: o.convert_images),
)
