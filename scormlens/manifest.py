"""
manifest.py - SCORM manifest interpreter

Turns imsmanifest.xml into version, metadata, structure forest, resources
and sequencing rules. Matching is done on local names so SCORM 1.2, SCORM
2004 and namespace-less manifests all go through the same code.

XML is parsed with lxml with entity resolution and network access turned
off; a manifest is untrusted input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from lxml import etree

from scormlens.errors import manifest_malformed_error
from scormlens.models import (
    PackageMetadata,
    Resource,
    ScormVersion,
    SequencingRule,
    StructureNode,
)

logger = logging.getLogger(__name__)

XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)


# ============================================================================
# XML helpers
# ============================================================================

def make_parser(recover: bool = False) -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        recover=recover,
    )


def parse_xml(xml: Union[str, bytes], recover: bool = False) -> etree._Element:
    """
    Parse XML text or bytes into a root element.

    Raises:
        etree.XMLSyntaxError: If the document is not well-formed (and
            recover is False), or nothing could be salvaged (recover=True)
    """
    if isinstance(xml, str):
        # lxml refuses str input that still carries an encoding declaration
        xml = XML_DECLARATION.sub("", xml, count=1).strip().encode("utf-8")
    else:
        xml = xml.lstrip(b"\xef\xbb\xbf").strip()

    root = etree.fromstring(xml, make_parser(recover))
    if root is None:
        raise etree.XMLSyntaxError("Document is empty", None, 1, 1)
    return root


def local_name(el) -> str:
    """Tag name without namespace ('' for comments/PIs)."""
    if not isinstance(el.tag, str):
        return ""
    return etree.QName(el).localname


def iter_local(root, *names: str) -> Iterator[etree._Element]:
    """All descendant elements (root included) whose local name is in names."""
    wanted = set(names)
    for el in root.iter(tag=etree.Element):
        if local_name(el) in wanted:
            yield el


def child_elements(el, name: str) -> List[etree._Element]:
    """Direct children with the given local name, in document order."""
    return [c for c in el.iterchildren(tag=etree.Element) if local_name(c) == name]


def first_child(el, name: str) -> Optional[etree._Element]:
    for c in el.iterchildren(tag=etree.Element):
        if local_name(c) == name:
            return c
    return None


def first_descendant(el, *names: str) -> Optional[etree._Element]:
    return next(iter_local(el, *names), None)


def text_of(el) -> str:
    """Stripped text content of an element ('' when missing)."""
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def _langstring(el) -> str:
    """LOM langstring value (first <string>, or the element text)."""
    if el is None:
        return ""
    inner = first_descendant(el, "string", "langstring")
    return text_of(inner if inner is not None else el)


def _ordered_unique(values) -> Tuple[str, ...]:
    seen = {}
    for value in values:
        if value and value not in seen:
            seen[value] = None
    return tuple(seen)


# ============================================================================
# Parsed manifest
# ============================================================================

@dataclass(frozen=True)
class ManifestData:
    """Everything the analyzer needs from imsmanifest.xml"""
    version: ScormVersion
    title: str
    metadata: PackageMetadata
    structure: Tuple[StructureNode, ...]
    resources: Tuple[Resource, ...]
    sequencing_rules: Tuple[SequencingRule, ...]
    document: etree._Element


def detect_version(root) -> ScormVersion:
    """
    Determine the SCORM edition of a manifest.

    schemaversion text wins; the root element namespace is the fallback.
    Unknown is a valid answer, not an error.
    """
    schema = first_descendant(root, "schemaversion")
    for candidate in (text_of(schema), etree.QName(root).namespace or ""):
        if "2004" in candidate:
            return ScormVersion.SCORM_2004
        if "1.2" in candidate:
            return ScormVersion.SCORM_12
    return ScormVersion.UNKNOWN


def parse_metadata(root) -> PackageMetadata:
    """LOM general/educational fields. Absent fields are empty strings."""
    lom = first_descendant(root, "lom")
    if lom is None:
        return PackageMetadata()

    general = first_descendant(lom, "general")
    title = description = ""
    keywords: Tuple[str, ...] = ()
    if general is not None:
        title_el = first_child(general, "title")
        if title_el is not None:
            title = _langstring(title_el)
        desc_el = first_child(general, "description")
        if desc_el is not None:
            description = _langstring(desc_el)
        keywords = _ordered_unique(
            _langstring(kw)
            for kw in child_elements(general, "keyword")
        )

    duration = ""
    educational = first_descendant(lom, "educational")
    if educational is not None:
        learning_time = first_descendant(educational, "typicallearningtime", "typicalLearningTime")
        if learning_time is not None:
            inner = first_descendant(learning_time, "duration", "datetime")
            duration = text_of(inner if inner is not None else learning_time)

    return PackageMetadata(title=title, description=description, keywords=keywords, duration=duration)


def select_organization(root) -> Optional[etree._Element]:
    """The default organization, else the first one."""
    organizations = first_descendant(root, "organizations")
    if organizations is None:
        return None
    orgs = child_elements(organizations, "organization")
    if not orgs:
        return None

    default = organizations.get("default")
    if default:
        for org in orgs:
            if org.get("identifier") == default:
                return org
        logger.debug("Default organization '%s' not found; using first", default)
    return orgs[0]


def build_node(item, depth: int) -> StructureNode:
    title_el = first_child(item, "title")
    children = tuple(build_node(c, depth + 1) for c in child_elements(item, "item"))
    return StructureNode(
        identifier=item.get("identifier") or "",
        title=text_of(title_el),
        depth=depth,
        identifier_ref=item.get("identifierref") or None,
        children=children,
    )


def parse_structure(organization) -> Tuple[StructureNode, ...]:
    if organization is None:
        return ()
    return tuple(build_node(item, 0) for item in child_elements(organization, "item"))


def parse_resources(root) -> Tuple[Resource, ...]:
    resources = []
    for res in iter_local(root, "resource"):
        files = _ordered_unique((f.get("href") or "").strip() for f in child_elements(res, "file"))
        resources.append(Resource(
            identifier=res.get("identifier") or "",
            type=res.get("type") or "",
            href=res.get("href") or "",
            files=files,
        ))
    return tuple(resources)


def parse_sequencing_rules(root) -> Tuple[SequencingRule, ...]:
    """SCORM 2004 pre/post/exit condition rules, in document order."""
    rules = []
    for block in iter_local(root, "sequencingRules"):
        for rule in block.iterchildren(tag=etree.Element):
            kind = local_name(rule)
            if not kind.endswith("Rule"):
                continue
            conditions = []
            for cond in iter_local(rule, "ruleCondition"):
                condition = cond.get("condition") or ""
                if cond.get("operator") == "not":
                    condition = f"not {condition}"
                if condition:
                    conditions.append(condition)
            action_el = first_descendant(rule, "ruleAction")
            action = action_el.get("action", "") if action_el is not None else ""
            rules.append(SequencingRule(kind=kind, conditions=tuple(conditions), action=action))
    return tuple(rules)


def interpret(root) -> ManifestData:
    """Build ManifestData from an already-parsed manifest root."""
    metadata = parse_metadata(root)
    organization = select_organization(root)
    org_title = text_of(first_child(organization, "title")) if organization is not None else ""

    return ManifestData(
        version=detect_version(root),
        title=org_title or metadata.title,
        metadata=metadata,
        structure=parse_structure(organization),
        resources=parse_resources(root),
        sequencing_rules=parse_sequencing_rules(root),
        document=root,
    )


def parse_manifest(xml: Union[str, bytes], manifest_name: str = "imsmanifest.xml") -> ManifestData:
    """
    Interpret manifest XML.

    Raises:
        ManifestMalformed: If the XML is not well-formed
    """
    try:
        root = parse_xml(xml)
    except etree.XMLSyntaxError as e:
        raise manifest_malformed_error(manifest_name, cause=e)
    return interpret(root)
