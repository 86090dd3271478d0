"""
extractors.py - Question extraction strategies

One function per source format. Each takes already-read text (or the
parsed manifest) and returns Question records; choosing files, isolating
failures and grouping into Assessments is done in assessments.py.

    extract_qti_questions          QTI 1.2 / 2.x item XML
    extract_html_questions         class/id heuristics over quiz pages
    extract_script_questions       authoring-tool literals in JavaScript
    extract_interaction_questions  interaction records in the manifest
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from lxml import etree

from scormlens.config_utils import AnalyzerConfig
from scormlens.manifest import (
    first_descendant,
    iter_local,
    local_name,
    parse_xml,
    text_of,
)
from scormlens.models import QuestionKind, Question

logger = logging.getLogger(__name__)


# Declared manifest interaction type -> kind
INTERACTION_KINDS = {
    "choice": QuestionKind.MULTIPLE_CHOICE,
    "multiple_choice": QuestionKind.MULTIPLE_CHOICE,
    "true-false": QuestionKind.TRUE_FALSE,
    "true_false": QuestionKind.TRUE_FALSE,
    "fill-in": QuestionKind.FILL_IN_BLANK,
    "fill_in": QuestionKind.FILL_IN_BLANK,
    "matching": QuestionKind.MATCHING,
    "performance": QuestionKind.ESSAY,
    "essay": QuestionKind.ESSAY,
}


def kind_from_declared(declared: Optional[str]) -> QuestionKind:
    if not declared:
        return QuestionKind.UNKNOWN
    return INTERACTION_KINDS.get(declared.strip().lower(), QuestionKind.UNKNOWN)


def script_kind(declared: Optional[str]) -> QuestionKind:
    """Kind for a type string found in authoring-tool output."""
    if declared:
        try:
            return QuestionKind(declared.strip().lower())
        except ValueError:
            pass
    return kind_from_declared(declared)


def normalize_space(text: str) -> str:
    return " ".join(text.split())


def strip_markup(text: str) -> str:
    """Plain text from a fragment that may hold (escaped) HTML."""
    if "<" not in text:
        return normalize_space(text)
    soup = BeautifulSoup(text, "lxml")
    return normalize_space(soup.get_text(" "))


# ============================================================================
# Interchange XML (QTI)
# ============================================================================

QTI_CHOICE_TAGS = ("simpleChoice", "response_label")

# cc_profile / question_type substrings -> kind, most specific first
QTI_PROFILE_KINDS = (
    ("multiple_answer", QuestionKind.MULTIPLE_SELECT),
    ("multiple_response", QuestionKind.MULTIPLE_SELECT),
    ("multiple_choice", QuestionKind.MULTIPLE_CHOICE),
    ("true_false", QuestionKind.TRUE_FALSE),
    ("short_answer", QuestionKind.FILL_IN_BLANK),
    ("fill_in", QuestionKind.FILL_IN_BLANK),
    ("fib", QuestionKind.FILL_IN_BLANK),
    ("essay", QuestionKind.ESSAY),
    ("matching", QuestionKind.MATCHING),
)


def is_qti_candidate(name: str, manifest_name: str = "imsmanifest.xml") -> bool:
    lowered = name.lower()
    if lowered == manifest_name.lower():
        return False
    return "qti" in lowered or lowered.endswith(".xml")


def _text_without(el, skip: Iterable[str]) -> str:
    """Text of el with the subtrees of any skipped local names left out."""
    skip = set(skip)
    parts = []

    def walk(node):
        if node.text:
            parts.append(node.text)
        for child in node.iterchildren():
            if isinstance(child.tag, str) and local_name(child) not in skip:
                walk(child)
            if child.tail:
                parts.append(child.tail)

    walk(el)
    return "".join(parts)


def _qti_metadata(item) -> Dict[str, str]:
    """qtimetadatafield label -> entry pairs."""
    fields = {}
    for field in iter_local(item, "qtimetadatafield"):
        label = text_of(first_descendant(field, "fieldlabel"))
        if label:
            fields[label.lower()] = text_of(first_descendant(field, "fieldentry"))
    return fields


def _qti_interaction(item):
    for el in item.iter(tag=etree.Element):
        name = local_name(el)
        if name.endswith("Interaction") or name in ("response_lid", "response_str", "response_grp"):
            return el
    return None


def _qti_kind(interaction, metadata: Dict[str, str]) -> QuestionKind:
    kind = QuestionKind.UNKNOWN
    if interaction is not None:
        tag = local_name(interaction).lower()
        if "choice" in tag or tag == "response_lid":
            multiple = (
                interaction.get("maxChoices", "1") != "1"
                or interaction.get("rcardinality", "").lower() == "multiple"
            )
            kind = QuestionKind.MULTIPLE_SELECT if multiple else QuestionKind.MULTIPLE_CHOICE
        elif "text" in tag or tag == "response_str":
            kind = QuestionKind.TEXT_INPUT
        elif "match" in tag or tag == "response_grp":
            kind = QuestionKind.MATCHING

    profile = (metadata.get("cc_profile") or metadata.get("question_type") or "").lower()
    for needle, refined in QTI_PROFILE_KINDS:
        if needle in profile:
            return refined
    return kind


def _qti_correct_answer(item, labels: Dict[str, str]) -> Any:
    # QTI 2.x
    for declaration in iter_local(item, "responseDeclaration"):
        correct = first_descendant(declaration, "correctResponse")
        if correct is not None:
            values = [text_of(v) for v in iter_local(correct, "value") if text_of(v)]
            if values:
                return values[0] if len(values) == 1 else values

    # QTI 1.2: varequal of any condition that awards a positive score
    answers = []
    for condition in iter_local(item, "respcondition"):
        scores = []
        for setvar in iter_local(condition, "setvar"):
            try:
                scores.append(float(text_of(setvar)))
            except ValueError:
                continue
        if not scores or max(scores) <= 0:
            continue
        for varequal in iter_local(condition, "varequal"):
            ident = text_of(varequal)
            if ident:
                answers.append(labels.get(ident, ident))
    if not answers:
        return None
    return answers[0] if len(answers) == 1 else answers


def extract_qti_questions(xml: Union[str, bytes]) -> List[Question]:
    """
    Questions from a QTI document.

    Raises:
        etree.XMLSyntaxError: If the document is not XML
    """
    root = parse_xml(xml)
    questions = []

    for index, item in enumerate(iter_local(root, "assessmentItem", "item")):
        identifier = item.get("identifier") or item.get("ident") or f"qti_{index + 1}"
        title = item.get("title") or ""

        body = first_descendant(item, "itemBody", "presentation")
        text = strip_markup(_text_without(body, QTI_CHOICE_TAGS)) if body is not None else ""
        text = text or normalize_space(title)
        if not text:
            logger.debug("Dropping QTI item %s with no text", identifier)
            continue

        labels = {}
        options = []
        for choice in iter_local(item, *QTI_CHOICE_TAGS):
            label = strip_markup("".join(choice.itertext()))
            if label:
                options.append(label)
                ident = choice.get("identifier") or choice.get("ident")
                if ident:
                    labels[ident] = label

        metadata = _qti_metadata(item)
        points = None
        if metadata.get("cc_weighting"):
            try:
                points = float(metadata["cc_weighting"])
            except ValueError:
                logger.debug("Ignoring non-numeric cc_weighting on %s", identifier)

        questions.append(Question(
            id=identifier,
            kind=_qti_kind(_qti_interaction(item), metadata),
            text=text,
            options=tuple(options) or None,
            correct_answer=_qti_correct_answer(item, labels),
            points=points,
            metadata={"source": "qti", "title": title},
        ))

    return questions


# ============================================================================
# HTML heuristic
# ============================================================================

# Wrappers around a set of questions rather than a question itself
QUESTION_CONTAINER = re.compile(r"questions\b|question[-_]?(list|container|wrapper|group)s?", re.IGNORECASE)

NON_QUESTION_TAGS = {"html", "body", "head", "input", "label", "option", "select",
                     "textarea", "script", "style", "meta", "link", "li"}
HIDDEN_TAGS = {"script", "style", "noscript", "template"}


def html_mentions_quiz(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(k.lower() in lowered for k in keywords)


def _marker_tokens(tag: Tag) -> List[str]:
    tokens = [c.lower() for c in tag.get("class", [])]
    if tag.get("id"):
        tokens.append(tag["id"].lower())
    return tokens


def _is_question_element(tag: Tag) -> bool:
    if tag.name in NON_QUESTION_TAGS:
        return False
    if tag.has_attr("data-question"):
        return True
    tokens = _marker_tokens(tag)
    if any("quiz-item" in t or "assessment-item" in t for t in tokens):
        return True
    return any("question" in t for t in tokens)


def _is_question_container(tag: Tag) -> bool:
    if tag.has_attr("data-question"):
        return False
    return any(QUESTION_CONTAINER.search(t) for t in _marker_tokens(tag))


def visible_text(tag: Tag, exclude: Optional[set] = None) -> str:
    """Rendered text of tag, without script/style/comments or excluded subtrees."""
    exclude = exclude or set()
    parts = []
    for node in tag.descendants:
        if type(node) is not NavigableString:
            continue
        hidden = False
        for parent in node.parents:
            if parent is tag:
                break
            if parent.name in HIDDEN_TAGS or id(parent) in exclude:
                hidden = True
                break
        if not hidden:
            parts.append(str(node))
    return normalize_space(" ".join(parts))


def _input_label(soup: BeautifulSoup, field: Tag) -> str:
    parent_label = field.find_parent("label")
    if parent_label is not None:
        text = visible_text(parent_label)
        if text:
            return text
    if field.get("id"):
        label = soup.find("label", attrs={"for": field["id"]})
        if label is not None:
            text = visible_text(label)
            if text:
                return text
    sibling = field.find_next_sibling()
    if sibling is not None and sibling.name == "label":
        text = visible_text(sibling)
        if text:
            return text
    return field.get("value", "")


def _html_options(soup: BeautifulSoup, question: Tag, claimed: set) -> List[str]:
    """Option labels; every element used is added to claimed."""
    options = []
    choices = [i for i in question.find_all("input")
               if (i.get("type") or "").lower() in ("radio", "checkbox")]
    if choices:
        for field in choices:
            label = _input_label(soup, field)
            parent_label = field.find_parent("label")
            if parent_label is not None:
                claimed.add(id(parent_label))
            if field.get("id"):
                for label_el in question.find_all("label", attrs={"for": field["id"]}):
                    claimed.add(id(label_el))
            if label:
                options.append(label)
        for label_el in question.find_all("label"):
            claimed.add(id(label_el))
        return options

    for tag in question.find_all("li"):
        text = visible_text(tag)
        if text:
            options.append(text)
            claimed.add(id(tag))
    if options:
        return options

    for tag in question.find_all(class_=re.compile(r"option|choice", re.IGNORECASE)):
        text = visible_text(tag)
        if text:
            options.append(text)
            claimed.add(id(tag))
    return options


def _html_correct_answer(question: Tag) -> Any:
    for attr in ("data-correct-answer", "data-answer"):
        if question.get(attr):
            return question[attr]
    marked = question.find(attrs={"data-correct-answer": True})
    if marked is not None and marked["data-correct-answer"]:
        return marked["data-correct-answer"]
    correct = question.find(attrs={"data-correct": re.compile(r"^true$", re.IGNORECASE)})
    if correct is not None:
        return correct.get("value") or visible_text(correct) or None

    checked = [i.get("value", "") for i in question.find_all("input") if i.has_attr("checked")]
    checked = [v for v in checked if v]
    if not checked:
        return None
    return checked[0] if len(checked) == 1 else checked


def _html_kind(question: Tag, options: List[str]) -> QuestionKind:
    types = {(i.get("type") or "text").lower() for i in question.find_all("input")}
    if "radio" in types:
        if sorted(o.strip().lower() for o in options) == ["false", "true"]:
            return QuestionKind.TRUE_FALSE
        return QuestionKind.MULTIPLE_CHOICE
    if "checkbox" in types:
        return QuestionKind.MULTIPLE_SELECT
    if question.find("textarea") is not None or "text" in types:
        return QuestionKind.TEXT_INPUT
    return QuestionKind.UNKNOWN


def _html_points(question: Tag) -> Optional[float]:
    raw = question.get("data-points")
    if raw is None:
        marked = question.find(attrs={"data-points": True})
        raw = marked["data-points"] if marked is not None else None
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def extract_html_questions(html: str, config: Optional[AnalyzerConfig] = None) -> List[Question]:
    """Questions from a page whose markup follows common quiz conventions."""
    config = config or AnalyzerConfig()
    if not html_mentions_quiz(html, config.html_keywords):
        return []

    soup = BeautifulSoup(html, "lxml")
    questions = []
    selected = set()

    for tag in soup.find_all(True):
        if not _is_question_element(tag) or _is_question_container(tag):
            continue
        if any(id(parent) in selected for parent in tag.parents):
            continue

        claimed = set()
        options = _html_options(soup, tag, claimed)
        text = visible_text(tag, exclude=claimed)
        if len(text) < config.min_question_length:
            text = visible_text(tag)
        if len(text) < config.min_question_length:
            continue

        selected.add(id(tag))
        index = len(questions) + 1
        questions.append(Question(
            id=tag.get("id") or f"html_question_{index}",
            kind=_html_kind(tag, options),
            text=text[:config.max_question_length],
            options=tuple(options) or None,
            correct_answer=_html_correct_answer(tag),
            points=_html_points(tag),
            metadata={"source": "html", "element": tag.name, "classes": " ".join(tag.get("class", []))},
        ))

    return questions


# ============================================================================
# Script heuristic
# ============================================================================

ARTICULATE_MARKERS = ("articulate", "storyline")
CAPTIVATE_MARKERS = ("captivate", "cpquizinfostudentname")

ARTICULATE_ARRAY = re.compile(r"questions?\s*[=:]\s*\[([^\]]+)\]", re.IGNORECASE)
ARTICULATE_TEXT = re.compile(r"""text['":\s]+['"]([^'"]+)['"]""", re.IGNORECASE)
ARTICULATE_TYPE = re.compile(r"""type['":\s]+['"]([^'"]+)['"]""", re.IGNORECASE)
CAPTIVATE_LITERAL = re.compile(r"""quiz[A-Z][a-z]+\s*=\s*['"]([^'"]+)['"]""")
GENERIC_LITERALS = (
    re.compile(r"""questions?\s*:\s*['"]([^'"]+)['"]""", re.IGNORECASE),
    re.compile(r"""prompt\s*:\s*['"]([^'"]+)['"]""", re.IGNORECASE),
    re.compile(r"""query\s*:\s*['"]([^'"]+)['"]""", re.IGNORECASE),
)


def extract_script_questions(script: str, filename: str,
                             config: Optional[AnalyzerConfig] = None) -> List[Question]:
    """
    Question-like literals from authoring-tool JavaScript.

    Pattern-based and deliberately greedy: a stray string that happens to
    look like a question will be reported.
    """
    config = config or AnalyzerConfig()
    stem = PurePosixPath(filename).name
    lowered = script.lower()
    questions = []

    if any(marker in lowered for marker in ARTICULATE_MARKERS):
        for match in ARTICULATE_ARRAY.finditer(script):
            for index, obj in enumerate(re.split(r"},\s*{", match.group(1))):
                text_match = ARTICULATE_TEXT.search(obj)
                if not text_match:
                    continue
                type_match = ARTICULATE_TYPE.search(obj)
                declared = type_match.group(1) if type_match else None
                questions.append(Question(
                    id=f"articulate_{stem}_{index}",
                    kind=script_kind(declared),
                    text=text_match.group(1),
                    metadata={"source": "articulate", "filename": filename,
                              "declared_type": declared or ""},
                ))

    if any(marker in lowered for marker in CAPTIVATE_MARKERS):
        for match in CAPTIVATE_LITERAL.finditer(script):
            questions.append(Question(
                id=f"captivate_{stem}_{len(questions)}",
                kind=QuestionKind.UNKNOWN,
                text=match.group(1),
                metadata={"source": "captivate", "filename": filename},
            ))

    for pattern in GENERIC_LITERALS:
        for match in pattern.finditer(script):
            literal = match.group(1)
            if len(literal) > config.script_min_length and "?" in literal:
                questions.append(Question(
                    id=f"js_generic_{stem}_{len(questions)}",
                    kind=QuestionKind.UNKNOWN,
                    text=literal,
                    metadata={"source": "javascript", "filename": filename},
                ))

    return questions


# ============================================================================
# Manifest interactions
# ============================================================================

def extract_interaction_questions(document) -> List[Question]:
    """Questions from interaction records in a parsed manifest."""
    if document is None:
        return []

    questions = []
    for index, interaction in enumerate(iter_local(document, "interaction", "cmi.interactions")):
        declared = interaction.get("type") or ""
        description = text_of(first_descendant(interaction, "description"))
        responses = [text_of(r) for r in iter_local(interaction, "correct_response", "correctResponse")]

        questions.append(Question(
            id=interaction.get("id") or interaction.get("identifier") or f"scorm_interaction_{index + 1}",
            kind=kind_from_declared(declared),
            text=description or f"Interaction {index + 1}",
            correct_answer=responses or None,
            metadata={"source": "scorm_manifest", "interaction_type": declared or "unknown"},
        ))
    return questions
