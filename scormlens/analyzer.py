"""
analyzer.py - Analyze a SCORM package end to end

    analysis = analyze_package(zip_bytes)
    analysis = analyze_file("course.zip")

Fatal problems raise ScormLensError subclasses (ArchiveUnreadable,
ManifestMissing, ManifestMalformed). Anything else odd about the package
lands in PackageAnalysis.warnings. Packages that fail here can usually be
fixed first with scormlens.repair.validate_and_repair.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from scormlens.archive import ENTRY_READ_ERRORS, ScormArchive
from scormlens.assessments import extract_assessments
from scormlens.classifier import caption_files, categorize_files
from scormlens.config_utils import AnalyzerConfig
from scormlens.errors import archive_unreadable_error, manifest_missing_error
from scormlens.manifest import ManifestData, parse_manifest
from scormlens.models import PackageAnalysis

logger = logging.getLogger(__name__)


def resolve_entry_points(archive: ScormArchive, manifest: ManifestData,
                         warnings: List[str]) -> Tuple[str, ...]:
    """Archive paths of resource hrefs that exist, in resource order, de-duplicated."""
    entry_points: List[str] = []
    for resource in manifest.resources:
        if not resource.href:
            continue
        resolved = archive.resolve_href(resource.href)
        if resolved is None:
            warnings.append(f"Resource {resource.identifier or '?'} points to a missing file: {resource.href}")
        elif resolved not in entry_points:
            entry_points.append(resolved)
    return tuple(entry_points)


def structure_warnings(manifest: ManifestData) -> List[str]:
    warnings = []
    if not manifest.structure:
        warnings.append("Manifest organization has no items")

    known = {r.identifier for r in manifest.resources}
    for root in manifest.structure:
        for node in root.walk():
            if node.identifier_ref and node.identifier_ref not in known:
                warnings.append(
                    f"Item {node.identifier or '?'} references unknown resource: {node.identifier_ref}"
                )
    return warnings


def analyze_archive(archive: ScormArchive, config: Optional[AnalyzerConfig] = None) -> PackageAnalysis:
    """
    Analyze an opened archive.

    Raises:
        ArchiveUnreadable: If the manifest entry itself cannot be read
        ManifestMissing: If the manifest entry does not exist
        ManifestMalformed: If the manifest is not well-formed XML
    """
    config = config or AnalyzerConfig()
    manifest_name = config.manifest_name

    if archive.find(manifest_name) is None:
        raise manifest_missing_error(manifest_name, len(archive))

    try:
        raw_manifest = archive.read_bytes(manifest_name)
    except ENTRY_READ_ERRORS as e:
        raise archive_unreadable_error(f"{archive.source} ({manifest_name})", cause=e)
    manifest = parse_manifest(raw_manifest, manifest_name)
    logger.info("Manifest: %s (%s)", manifest.title or "(untitled)", manifest.version.value)

    warnings = structure_warnings(manifest)
    content_files = categorize_files(archive, config, warnings)
    entry_points = resolve_entry_points(archive, manifest, warnings)
    if not entry_points:
        warnings.append("No resource href resolves to a file in the package")

    assessments = extract_assessments(archive, manifest.document, config, warnings)
    if not assessments:
        warnings.append("No assessments found")

    for message in warnings:
        logger.debug("Analysis warning: %s", message)

    return PackageAnalysis(
        version=manifest.version,
        title=manifest.title,
        metadata=manifest.metadata,
        structure=manifest.structure,
        resources=manifest.resources,
        content_files=content_files,
        assessments=assessments,
        entry_points=entry_points,
        sequencing_rules=manifest.sequencing_rules,
        caption_files=caption_files(archive, config),
        warnings=tuple(warnings),
    )


def analyze_package(data: bytes, config: Optional[AnalyzerConfig] = None,
                    source: str = "<bytes>") -> PackageAnalysis:
    """
    Analyze SCORM package bytes.

    Args:
        data: ZIP archive bytes
        config: Analyzer settings (defaults if omitted)
        source: Label used in error messages

    Returns:
        PackageAnalysis

    Raises:
        ArchiveUnreadable: If data is not a readable ZIP archive
        ManifestMissing: If the manifest entry does not exist
        ManifestMalformed: If the manifest is not well-formed XML
    """
    return analyze_archive(ScormArchive(data, source=source), config)


def analyze_file(path: Union[str, Path], config: Optional[AnalyzerConfig] = None) -> PackageAnalysis:
    """Analyze a SCORM package on disk."""
    return analyze_archive(ScormArchive.from_path(path), config)
