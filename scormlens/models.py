"""
models.py - Data classes describing an analyzed SCORM package

Everything here is created fresh per analysis call. Trees are plain owned
tuples; nothing references its parent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class ScormVersion(Enum):
    SCORM_12 = "SCORM-1.2"
    SCORM_2004 = "SCORM-2004"
    UNKNOWN = "Unknown"


class QuestionKind(Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    MULTIPLE_SELECT = "multiple-select"
    TRUE_FALSE = "true-false"
    TEXT_INPUT = "text-input"
    MATCHING = "matching"
    FILL_IN_BLANK = "fill-in-blank"
    ESSAY = "essay"
    UNKNOWN = "unknown"


class ExtractionStrategy(Enum):
    INTERCHANGE_XML = "interchange-xml"
    HTML_HEURISTIC = "html-heuristic"
    SCRIPT_HEURISTIC = "script-heuristic"
    MANIFEST_INTERACTION = "manifest-interaction"


# Content file categories, in classification priority order
CATEGORY_KEYS = ("html", "videos", "audio", "images", "javascript", "css", "other")
MEDIA_CATEGORIES = ("videos", "audio")


# ============================================================================
# Manifest
# ============================================================================

@dataclass(frozen=True)
class PackageMetadata:
    """LOM metadata block from the manifest"""
    title: str = ""
    description: str = ""
    keywords: Tuple[str, ...] = ()
    duration: str = ""


@dataclass(frozen=True)
class StructureNode:
    """One organization item"""
    identifier: str
    title: str
    depth: int
    identifier_ref: Optional[str] = None
    children: Tuple[StructureNode, ...] = ()

    def walk(self) -> Iterator[StructureNode]:
        """Yield this node and its descendants depth-first, in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class Resource:
    """A manifest resource; type and href are never None"""
    identifier: str
    type: str = ""
    href: str = ""
    files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SequencingRule:
    """A SCORM 2004 sequencing rule (pre/post/exit condition rule)"""
    kind: str
    conditions: Tuple[str, ...] = ()
    action: str = ""


# ============================================================================
# Content
# ============================================================================

@dataclass(frozen=True)
class MediaFile:
    """A video or audio entry with its payload read into memory"""
    path: str
    size: int
    mime_type: str
    data: bytes = field(default=b"", repr=False)


# ============================================================================
# Assessments
# ============================================================================

@dataclass(frozen=True)
class Question:
    id: str
    kind: QuestionKind
    text: str
    options: Optional[Tuple[str, ...]] = None
    correct_answer: Any = None
    points: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Assessment:
    source_file: str
    extraction_strategy: ExtractionStrategy
    questions: Tuple[Question, ...] = ()

    @property
    def question_count(self) -> int:
        return len(self.questions)


# ============================================================================
# Results
# ============================================================================

@dataclass(frozen=True)
class PackageAnalysis:
    """Normalized description of one SCORM package"""
    version: ScormVersion
    title: str
    metadata: PackageMetadata
    structure: Tuple[StructureNode, ...]
    resources: Tuple[Resource, ...]
    content_files: Dict[str, Tuple[Any, ...]]
    assessments: Tuple[Assessment, ...]
    entry_points: Tuple[str, ...]
    sequencing_rules: Tuple[SequencingRule, ...] = ()
    caption_files: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    format: str = "SCORM"

    @property
    def launch_target(self) -> Optional[str]:
        return self.entry_points[0] if self.entry_points else None

    def walk_structure(self) -> Iterator[StructureNode]:
        for node in self.structure:
            yield from node.walk()

    @property
    def question_count(self) -> int:
        return sum(a.question_count for a in self.assessments)


@dataclass
class RepairResult:
    """Outcome of validating (and possibly repairing) a package"""
    success: bool = False
    repaired_archive: Optional[bytes] = field(default=None, repr=False)
    issues: List[str] = field(default_factory=list)
    fixes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    resolved_issues: List[str] = field(default_factory=list)

    @property
    def was_repaired(self) -> bool:
        return self.repaired_archive is not None

    def summary(self) -> str:
        if self.success and not self.fixes and not self.warnings:
            return "Package is healthy."

        parts = []
        for label, items in (("issue", self.issues), ("fix", self.fixes), ("warning", self.warnings)):
            n = len(items)
            if n:
                plural = "es" if label == "fix" else "s"
                parts.append(f"{n} {label}{plural if n != 1 else ''}")
        return f"Found {', '.join(parts)}." if parts else "Package is healthy."
