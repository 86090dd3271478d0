"""
assessments.py - Assessment extraction pipeline

Runs every strategy in STRATEGY_ORDER over the archive and groups the
questions found into one Assessment per source file. Strategies are not
exclusive: the same quiz found as QTI and as HTML is reported twice.

Per-file work goes through the configured thread pool; results are
stitched back in archive order so repeated runs are identical.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from lxml import etree

from scormlens.archive import ScormArchive, extension_of
from scormlens.classifier import CATEGORY_EXTENSIONS, run_ordered
from scormlens.config_utils import AnalyzerConfig
from scormlens.extractors import (
    extract_html_questions,
    extract_interaction_questions,
    extract_qti_questions,
    extract_script_questions,
    is_qti_candidate,
)
from scormlens.models import Assessment, ExtractionStrategy, Question

logger = logging.getLogger(__name__)


STRATEGY_ORDER = (
    ExtractionStrategy.INTERCHANGE_XML,
    ExtractionStrategy.HTML_HEURISTIC,
    ExtractionStrategy.SCRIPT_HEURISTIC,
    ExtractionStrategy.MANIFEST_INTERACTION,
)


@dataclass
class ExtractionContext:
    """Inputs shared by all strategies for one run"""
    archive: ScormArchive
    config: AnalyzerConfig
    manifest_document: Optional[etree._Element] = None
    warnings: List[str] = field(default_factory=list)


def unique_ids(questions: Sequence[Question]) -> Tuple[Question, ...]:
    """Suffix repeated question ids (_2, _3, ...) so ids are unique."""
    seen = set()
    result = []
    for question in questions:
        qid = question.id
        if qid in seen:
            n = 2
            while f"{question.id}_{n}" in seen:
                n += 1
            qid = f"{question.id}_{n}"
            question = replace(question, id=qid)
        seen.add(qid)
        result.append(question)
    return tuple(result)


def _scan_files(
    ctx: ExtractionContext,
    names: List[str],
    strategy: ExtractionStrategy,
    extract: Callable[[str], List[Question]],
) -> List[Assessment]:
    """Run extract over names in order; one failing file never stops the rest."""

    def scan(name: str) -> Tuple[Optional[Assessment], Optional[str]]:
        try:
            questions = extract(name)
        except Exception as e:
            message = f"{strategy.value}: could not scan {name}: {e}"
            logger.warning(message)
            return None, message
        if not questions:
            return None, None
        logger.debug("%s: %d question(s) in %s", strategy.value, len(questions), name)
        return Assessment(source_file=name, extraction_strategy=strategy, questions=unique_ids(questions)), None

    assessments = []
    # Warnings are collected after the join so their order is stable too
    for assessment, warning in run_ordered(scan, names, ctx.config.max_workers):
        if warning:
            ctx.warnings.append(warning)
        if assessment is not None:
            assessments.append(assessment)
    return assessments


# ============================================================================
# Strategies
# ============================================================================

def run_interchange_xml(ctx: ExtractionContext) -> List[Assessment]:
    names = [n for n in ctx.archive.names if is_qti_candidate(n, ctx.config.manifest_name)]

    def extract(name: str) -> List[Question]:
        try:
            return extract_qti_questions(ctx.archive.read_bytes(name))
        except etree.XMLSyntaxError:
            # Plenty of packages ship XML that is not QTI at all
            logger.debug("Skipping unparseable XML: %s", name)
            return []

    return _scan_files(ctx, names, ExtractionStrategy.INTERCHANGE_XML, extract)


def run_html_heuristic(ctx: ExtractionContext) -> List[Assessment]:
    names = [n for n in ctx.archive.names if extension_of(n) in CATEGORY_EXTENSIONS["html"]]

    def extract(name: str) -> List[Question]:
        return extract_html_questions(ctx.archive.read_text(name), ctx.config)

    return _scan_files(ctx, names, ExtractionStrategy.HTML_HEURISTIC, extract)


def run_script_heuristic(ctx: ExtractionContext) -> List[Assessment]:
    names = [n for n in ctx.archive.names if extension_of(n) in CATEGORY_EXTENSIONS["javascript"]]

    def extract(name: str) -> List[Question]:
        return extract_script_questions(ctx.archive.read_text(name), name, ctx.config)

    return _scan_files(ctx, names, ExtractionStrategy.SCRIPT_HEURISTIC, extract)


def run_manifest_interaction(ctx: ExtractionContext) -> List[Assessment]:
    if ctx.manifest_document is None:
        return []
    questions = extract_interaction_questions(ctx.manifest_document)
    if not questions:
        return []
    return [Assessment(
        source_file=ctx.config.manifest_name,
        extraction_strategy=ExtractionStrategy.MANIFEST_INTERACTION,
        questions=unique_ids(questions),
    )]


STRATEGIES: Dict[ExtractionStrategy, Callable[[ExtractionContext], List[Assessment]]] = {
    ExtractionStrategy.INTERCHANGE_XML: run_interchange_xml,
    ExtractionStrategy.HTML_HEURISTIC: run_html_heuristic,
    ExtractionStrategy.SCRIPT_HEURISTIC: run_script_heuristic,
    ExtractionStrategy.MANIFEST_INTERACTION: run_manifest_interaction,
}


# ============================================================================
# Public API
# ============================================================================

def extract_assessments(
    archive: ScormArchive,
    manifest_document: Optional[etree._Element] = None,
    config: Optional[AnalyzerConfig] = None,
    warnings: Optional[List[str]] = None,
) -> Tuple[Assessment, ...]:
    """
    Find assessments in a package using every strategy.

    Args:
        archive: Package to scan
        manifest_document: Parsed manifest root, for interaction records
        config: Analyzer settings (defaults if omitted)
        warnings: Optional list that per-file failures are appended to

    Returns:
        Assessments in strategy order, then archive order
    """
    ctx = ExtractionContext(
        archive=archive,
        config=config or AnalyzerConfig(),
        manifest_document=manifest_document,
    )

    assessments: List[Assessment] = []
    for strategy in STRATEGY_ORDER:
        found = STRATEGIES[strategy](ctx)
        if found:
            logger.info("%s: %d assessment(s)", strategy.value, len(found))
        assessments.extend(found)

    if warnings is not None:
        warnings.extend(ctx.warnings)
    return tuple(assessments)
