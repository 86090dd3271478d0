#!/usr/bin/env python3
"""
repair.py - Validate a SCORM package and repair what can be repaired

Usage:
    from scormlens.repair import validate_and_repair
    result = validate_and_repair(zip_bytes)

Or via CLI:
    scormlens validate PACKAGE [--repair-output FIXED.zip]

Checks, in order:
- Manifest presence (case-insensitive match is renamed; otherwise a minimal
  SCORM 1.2 manifest is written around the first HTML page)
- Manifest well-formedness (bare '&' and sloppy tag syntax are patched)
- Resource section present
- Resource hrefs resolve (if none does, the first HTML page becomes the
  entry point)
- Common SCORM runtime files present (advisory)
- At least one HTML page in the package

Only the manifest entry is ever rewritten. Running the repairer on its own
output finds nothing left to fix.
"""

import logging
import re
from pathlib import PurePosixPath
from typing import List, Optional

from lxml import etree

from scormlens.archive import (
    ENTRY_READ_ERRORS,
    ScormArchive,
    WorkingCopy,
    decode_text,
    extension_of,
    normalize_href,
)
from scormlens.classifier import CATEGORY_EXTENSIONS
from scormlens.config_utils import AnalyzerConfig
from scormlens.errors import ScormLensError
from scormlens.manifest import first_descendant, iter_local, parse_xml
from scormlens.models import RepairResult

logger = logging.getLogger(__name__)


# Textual patches for malformed manifests
BARE_AMPERSAND = re.compile(r"&(?!amp;|lt;|gt;|quot;|apos;|#\d+;|#x[0-9a-fA-F]+;)")
LOOSE_CLOSING_TAG = re.compile(r"<\s*/\s*([\w:.-]+)\s*>")
LOOSE_SELF_CLOSE = re.compile(r"/\s+>")
CASE_MISMATCHED_PAIR = re.compile(r"<([\w:.-]+)(\s[^<>]*)?>([^<]*)</([\w:.-]+)>")

IMSCP_12 = "http://www.imsproject.org/xsd/imscp_rootv1p1p2"
ADLCP_12 = "http://www.adlnet.org/xsd/adlcp_rootv1p2"
XSI = "http://www.w3.org/2001/XMLSchema-instance"


def patch_manifest_text(text: str) -> str:
    """Escape bare ampersands and normalize tag syntax."""
    text = BARE_AMPERSAND.sub("&amp;", text)
    text = LOOSE_CLOSING_TAG.sub(r"</\1>", text)
    text = LOOSE_SELF_CLOSE.sub("/>", text)

    def fix_case(match):
        opening, closing = match.group(1), match.group(4)
        if opening != closing and opening.lower() == closing.lower():
            return f"<{opening}{match.group(2) or ''}>{match.group(3)}</{opening}>"
        return match.group(0)

    return CASE_MISMATCHED_PAIR.sub(fix_case, text)


def serialize_manifest(root) -> bytes:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def build_basic_manifest(entry: str) -> bytes:
    """Minimal SCORM 1.2 manifest with a single SCO launching entry."""
    nsmap = {None: IMSCP_12, "adlcp": ADLCP_12, "xsi": XSI}

    def el(parent, tag, text=None, **attrs):
        node = etree.SubElement(parent, f"{{{IMSCP_12}}}{tag}", attrs)
        if text is not None:
            node.text = text
        return node

    root = etree.Element(f"{{{IMSCP_12}}}manifest", nsmap=nsmap,
                         identifier="com.scorm.manifesttemplate", version="1.0")
    metadata = el(root, "metadata")
    el(metadata, "schema", "ADL SCORM")
    el(metadata, "schemaversion", "1.2")

    organizations = el(root, "organizations", default="default_org")
    organization = el(organizations, "organization", identifier="default_org")
    el(organization, "title", "SCORM Content")
    item = el(organization, "item", identifier="item_1", identifierref="resource_1")
    el(item, "title", "Main Content")

    resources = el(root, "resources")
    resource = el(resources, "resource", identifier="resource_1", type="webcontent", href=entry)
    resource.set(f"{{{ADLCP_12}}}scormtype", "sco")
    el(resource, "file", href=entry)

    return serialize_manifest(root)


class PackageRepairer:
    """Runs the package checks and collects a RepairResult"""

    def __init__(self, data: bytes, config: Optional[AnalyzerConfig] = None):
        self.data = data
        self.config = config or AnalyzerConfig()
        self.manifest_name = self.config.manifest_name
        self.result = RepairResult()
        self.archive: Optional[ScormArchive] = None
        self.working: Optional[WorkingCopy] = None
        self.root = None
        self.manifest_writable = False
        self.manifest_dirty = False

    # ------------------------------------------------------------------
    # Result bookkeeping
    # ------------------------------------------------------------------

    def _issue(self, message: str):
        logger.info("Issue: %s", message)
        self.result.issues.append(message)

    def _fix(self, message: str):
        logger.info("Fix: %s", message)
        self.result.fixes.append(message)

    def _resolve(self, message: str):
        """Move an issue that a fix covered to resolved_issues."""
        if message in self.result.issues:
            self.result.issues.remove(message)
        self.result.resolved_issues.append(message)

    def _warn(self, message: str):
        logger.info("Warning: %s", message)
        self.result.warnings.append(message)

    @property
    def markup_files(self) -> List[str]:
        return [n for n in self.archive.names if extension_of(n) in CATEGORY_EXTENSIONS["html"]]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self) -> RepairResult:
        try:
            self.archive = ScormArchive(self.data)
        except ScormLensError as e:
            self._issue(e.message)
            return self._finish()

        self.working = self.archive.working_copy()
        try:
            self._check_entries()
            raw = self._check_manifest_presence()
            if raw is not None:
                self._check_well_formed(raw)
            if self.root is not None:
                self._check_resources()
                self._check_entry_points()
            self._check_runtime_files()
            self._check_content()

            if self.manifest_dirty and self.manifest_writable:
                self.working.replace(self.manifest_name, serialize_manifest(self.root))
            if self.result.fixes:
                self._rebuild()
        except Exception as e:
            logger.warning("Validation stopped early: %s", e)
            self._issue(f"Validation failed: {e}")

        return self._finish()

    def _rebuild(self):
        try:
            self.result.repaired_archive = self.working.to_bytes()
        except ENTRY_READ_ERRORS as e:
            self._issue(f"Could not rebuild archive: {e}")

    def _finish(self) -> RepairResult:
        self.result.success = not self.result.issues
        return self.result

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_entries(self):
        for name in self.archive.unreadable_entries():
            self._issue(f"Unreadable entry in package: {name}")

    def _check_manifest_presence(self) -> Optional[bytes]:
        """Manifest bytes, locating or synthesizing the entry if needed."""
        if self.archive.find(self.manifest_name):
            return self.archive.read_bytes(self.manifest_name)

        missing = f"Missing {self.manifest_name}"
        self._issue(missing)

        match = self.archive.find_case_insensitive(self.manifest_name)
        if match:
            self.working.rename(match, self.manifest_name)
            self._fix(f"Found manifest with different case: {match}")
            self._resolve(missing)
            return self.archive.read_bytes(match)

        markup = self.markup_files
        if not markup:
            logger.debug("No HTML page to build a manifest around")
            return None

        manifest = build_basic_manifest(markup[0])
        self.working.replace(self.manifest_name, manifest)
        self._fix("Created basic SCORM 1.2 manifest")
        self._resolve(missing)
        return manifest

    def _check_well_formed(self, raw: bytes):
        try:
            self.root = parse_xml(raw)
            self.manifest_writable = True
            return
        except etree.XMLSyntaxError as e:
            logger.debug("Manifest parse error: %s", e)

        malformed = "Malformed XML in manifest"
        self._issue(malformed)

        patched = patch_manifest_text(decode_text(raw))
        try:
            self.root = parse_xml(patched)
        except etree.XMLSyntaxError as e:
            logger.debug("Manifest still malformed after patching: %s", e)
        else:
            self.manifest_writable = True
            self.manifest_dirty = True
            self._fix("Fixed XML encoding issues in manifest")
            self._resolve(malformed)
            return

        # Keep going with whatever a recovering parse can salvage
        try:
            self.root = parse_xml(raw, recover=True)
        except etree.XMLSyntaxError:
            self.root = None

    def _check_resources(self):
        if first_descendant(self.root, "resource") is None:
            self._warn("No resources defined in manifest")

    def _check_entry_points(self):
        resources = list(iter_local(self.root, "resource"))
        if not resources:
            return

        broken = []
        resolved_any = False
        for resource in resources:
            href = resource.get("href") or ""
            if not href:
                continue
            if self.archive.resolve_href(href):
                resolved_any = True
                continue

            self._issue(f"Entry point not found: {href}")
            alternative = self._stem_match(href)
            if alternative:
                self._warn(f"Possible alternative entry: {alternative}")
            broken.append((resource, href, alternative))

        if resolved_any:
            return

        markup = self.markup_files
        if not markup:
            return
        if not self.manifest_writable:
            logger.debug("Manifest is not well-formed; leaving entry points alone")
            return

        entry = markup[0]
        self._insert_entry_resource(entry)
        for resource, href, alternative in broken:
            resource.set("href", alternative or entry)
            self._resolve(f"Entry point not found: {href}")
        self.manifest_dirty = True
        self._fix(f"Set {entry} as default entry point")

    def _check_runtime_files(self):
        wanted = [f.lower() for f in self.config.runtime_files]
        present = {PurePosixPath(n).name.lower() for n in self.archive.names}
        if wanted and not any(f in present for f in wanted):
            self._warn(f"Missing common SCORM runtime files: {', '.join(self.config.runtime_files)}")

    def _check_content(self):
        if not self.markup_files:
            self._issue("No content files (HTML) found in package")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stem_match(self, href: str) -> Optional[str]:
        stem = PurePosixPath(normalize_href(href)).stem.lower()
        if not stem:
            return None
        for name in self.markup_files:
            candidate = PurePosixPath(name).stem.lower()
            if candidate == stem or stem in candidate:
                return name
        return None

    def _insert_entry_resource(self, entry: str):
        """Insert a webcontent resource for entry as the first resource."""
        root = self.root
        resources = first_descendant(root, "resources")
        namespace = etree.QName(resources if resources is not None else root).namespace

        def tag(name):
            return etree.QName(namespace, name).text if namespace else name

        if resources is None:
            resources = etree.SubElement(root, tag("resources"))

        taken = {r.get("identifier") for r in iter_local(root, "resource")}
        identifier = "resource_1"
        n = 1
        while identifier in taken:
            n += 1
            identifier = f"resource_entry_{n}"

        # Created in place so it picks up the document's namespace prefixes
        resource = etree.SubElement(resources, tag("resource"), identifier=identifier, type="webcontent", href=entry)
        adlcp = next((uri for uri in root.nsmap.values() if uri and "adlcp" in uri), None)
        if adlcp:
            attr = "scormType" if "v1p3" in adlcp else "scormtype"
            resource.set(etree.QName(adlcp, attr).text, "sco")
        etree.SubElement(resource, tag("file"), href=entry)
        resources.insert(0, resource)


def validate_and_repair(data: bytes, config: Optional[AnalyzerConfig] = None) -> RepairResult:
    """
    Validate a SCORM package and repair what can be fixed.

    Never raises; problems are reported on the result.

    Args:
        data: ZIP archive bytes
        config: Analyzer settings (defaults if omitted)

    Returns:
        RepairResult; repaired_archive is set iff a fix was applied
    """
    return PackageRepairer(data, config).run()
