"""
export.py - Write analysis results as JSON or YAML

Media payloads are summarized (path, size, MIME type), never embedded.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from scormlens.models import (
    Assessment,
    MediaFile,
    PackageAnalysis,
    Question,
    RepairResult,
    StructureNode,
)

FORMATS = ("json", "yaml")


def node_to_dict(node: StructureNode) -> Dict[str, Any]:
    return {
        "identifier": node.identifier,
        "identifier_ref": node.identifier_ref,
        "title": node.title,
        "depth": node.depth,
        "children": [node_to_dict(c) for c in node.children],
    }


def question_to_dict(question: Question) -> Dict[str, Any]:
    answer = question.correct_answer
    if isinstance(answer, tuple):
        answer = list(answer)
    return {
        "id": question.id,
        "kind": question.kind.value,
        "text": question.text,
        "options": list(question.options) if question.options is not None else None,
        "correct_answer": answer,
        "points": question.points,
        "metadata": dict(question.metadata),
    }


def assessment_to_dict(assessment: Assessment) -> Dict[str, Any]:
    return {
        "source_file": assessment.source_file,
        "extraction_strategy": assessment.extraction_strategy.value,
        "question_count": assessment.question_count,
        "questions": [question_to_dict(q) for q in assessment.questions],
    }


def _content_entry(entry) -> Any:
    if isinstance(entry, MediaFile):
        return {"path": entry.path, "size": entry.size, "mime_type": entry.mime_type}
    return entry


def analysis_to_dict(analysis: PackageAnalysis) -> Dict[str, Any]:
    """Plain dict/list/str form of an analysis, safe for json or yaml."""
    return {
        "format": analysis.format,
        "version": analysis.version.value,
        "title": analysis.title,
        "metadata": {
            "title": analysis.metadata.title,
            "description": analysis.metadata.description,
            "keywords": list(analysis.metadata.keywords),
            "duration": analysis.metadata.duration,
        },
        "structure": [node_to_dict(n) for n in analysis.structure],
        "resources": [
            {"identifier": r.identifier, "type": r.type, "href": r.href, "files": list(r.files)}
            for r in analysis.resources
        ],
        "content_files": {
            category: [_content_entry(e) for e in entries]
            for category, entries in analysis.content_files.items()
        },
        "assessments": [assessment_to_dict(a) for a in analysis.assessments],
        "entry_points": list(analysis.entry_points),
        "sequencing_rules": [
            {"kind": r.kind, "conditions": list(r.conditions), "action": r.action}
            for r in analysis.sequencing_rules
        ],
        "caption_files": list(analysis.caption_files),
        "warnings": list(analysis.warnings),
    }


def repair_result_to_dict(result: RepairResult) -> Dict[str, Any]:
    return {
        "success": result.success,
        "repaired": result.was_repaired,
        "issues": list(result.issues),
        "resolved_issues": list(result.resolved_issues),
        "fixes": list(result.fixes),
        "warnings": list(result.warnings),
    }


def dumps(data: Dict[str, Any], fmt: str = "json") -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported export format: {fmt} (expected one of {', '.join(FORMATS)})")


def export_analysis(analysis: PackageAnalysis, path: Union[str, Path], fmt: str = "json") -> Path:
    """Write an analysis to path; returns the path written."""
    out = Path(path)
    out.write_text(dumps(analysis_to_dict(analysis), fmt), encoding="utf-8")
    return out


def export_assessment(assessment: Assessment, path: Union[str, Path], fmt: str = "json") -> Path:
    """Write one assessment, stamped with the export time."""
    data = assessment_to_dict(assessment)
    data["exported_at"] = datetime.now(timezone.utc).isoformat()
    out = Path(path)
    out.write_text(dumps(data, fmt), encoding="utf-8")
    return out
