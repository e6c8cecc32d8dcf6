"""Parse delimited model replies into tutoring, quiz and application records.

All three grammars share one scanning scheme: each line is stripped of code
fences, then checked for a ``<<<kind:label>>>`` section marker, then for
metadata lines of the current section, and otherwise appended to the text of
the current section. Incomplete sub-records are dropped instead of raising;
only an empty result for the question-set and application grammars is
reported, as :class:`NoRecordsFound`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from .models import (
    AnswerOption,
    CodeSnippet,
    Exercise,
    GeneratedApplication,
    Question,
    QuestionKind,
    QuestionSet,
    TutoringModule,
)

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```[\w+#.-]*")
MARKER_RE = re.compile(r"^<<<\s*(?P<kind>[A-Za-z_]+)(?P<rest>.*)$")
OPTION_RE = re.compile(r"^(?:\((?P<paren>[A-Za-z0-9])\)|(?P<bare>[A-Za-z0-9])[.)])\s+(?P<text>\S.*)$")
INLINE_OPTION_SPLIT_RE = re.compile(r"\(([A-Za-z0-9])\)")

SNIPPET_DESCRIPTION_TAG = "# code snippet:"
EXERCISE_DESCRIPTION_TAG = "# exercise description:"

PLACEHOLDER_SNIPPET = CodeSnippet(
    title="No code examples",
    description="",
    code="// No code examples could be extracted from the response.",
)
PLACEHOLDER_EXERCISE = Exercise(
    name="No exercises",
    description="",
    code="// No exercises could be extracted from the response.",
)

APPLICATION_SECTIONS = {
    "application_name",
    "application_description",
    "application_features",
    "code_snippet",
}


class GrammarKind(Enum):
    """Record shape a reply is parsed into."""

    TUTORING = "tutoring"
    QUESTION_SET = "question-set"
    APPLICATION = "application"


class NoRecordsFound(ValueError):
    """Raised when a reply holds no usable record of the expected shape."""


@dataclass(frozen=True)
class Marker:
    """Parsed ``<<<kind N: label>>>`` line."""

    kind: str
    label: str


@dataclass
class _Block:
    """Sub-record being accumulated by the scanner."""

    kind: str
    title: str = ""
    description: str = ""
    lines: list[str] = field(default_factory=list)

    def body(self) -> str:
        return _join_lines(self.lines)


@dataclass
class _StagedQuestion:
    label: str
    text_parts: list[str] = field(default_factory=list)
    kind: QuestionKind | None = None
    options: list[AnswerOption] = field(default_factory=list)


def strip_fences(line: str) -> str:
    """Remove triple-backtick fences (with or without a language tag) from a line."""
    return FENCE_RE.sub("", line)


def parse_marker(line: str) -> Marker | None:
    """Return the section marker on a line, or None when the line is not a marker."""
    match = MARKER_RE.match(line.strip())
    if match is None:
        return None
    rest = match.group("rest").rstrip().rstrip(">")
    _, separator, label = rest.partition(":")
    return Marker(kind=match.group("kind").lower(), label=label.strip(" \t<>") if separator else "")


def parse_tutoring_module(text: str, topic: str = "") -> TutoringModule:
    """Parse a tutoring-module reply.

    Never raises: missing snippets or exercises are replaced by one placeholder
    each, and an empty explanation is kept as is. When ``topic`` is empty the
    first explanation title is used instead.
    """
    explanation_lines: list[str] = []
    explanation_title = ""
    snippets: list[CodeSnippet] = []
    exercises: list[Exercise] = []
    block: _Block | None = None

    for line in _clean_lines(text):
        marker = parse_marker(line)
        if marker is not None:
            _finish_tutoring_block(block, snippets, exercises)
            block = _Block(kind=marker.kind, title=marker.label)
            if marker.kind == "explanation" and not explanation_title:
                explanation_title = marker.label
            continue
        if block is None:
            continue

        lowered = line.strip().lower()
        if lowered.startswith(SNIPPET_DESCRIPTION_TAG):
            if block.kind == "code_snippet":
                block.description = line.strip()[len(SNIPPET_DESCRIPTION_TAG) :].strip()
            continue
        if lowered.startswith(EXERCISE_DESCRIPTION_TAG):
            if block.kind == "exercise":
                block.description = line.strip()[len(EXERCISE_DESCRIPTION_TAG) :].strip()
            continue

        if block.kind == "explanation":
            explanation_lines.append(line)
        elif block.kind in {"code_snippet", "exercise"}:
            block.lines.append(line)

    _finish_tutoring_block(block, snippets, exercises)

    return TutoringModule(
        topic=topic or explanation_title,
        explanation=_join_lines(explanation_lines),
        code_snippets=snippets or [PLACEHOLDER_SNIPPET],
        exercises=exercises or [PLACEHOLDER_EXERCISE],
    )


def _finish_tutoring_block(block: _Block | None, snippets: list[CodeSnippet], exercises: list[Exercise]) -> None:
    if block is None or block.kind not in {"code_snippet", "exercise"}:
        return
    body = block.body()
    if not block.title or not body:
        logger.debug("Dropping incomplete %s block %r", block.kind, block.title)
        return
    if block.kind == "code_snippet":
        snippets.append(CodeSnippet(title=block.title, description=block.description, code=body))
    else:
        exercises.append(Exercise(name=block.title, description=block.description, code=body))


def parse_question_set(text: str, topic: str) -> QuestionSet:
    """Parse a question-set reply; raises NoRecordsFound when no question survives."""
    questions: list[Question] = []
    staged: _StagedQuestion | None = None
    scan: str | None = None

    for raw_line in _clean_lines(text):
        line = raw_line.strip()
        if not line:
            continue
        marker = parse_marker(line)
        if marker is not None:
            _finish_question(staged, questions)
            staged = _StagedQuestion(label=marker.label) if marker.kind == "question" else None
            scan = None
            continue
        if staged is None:
            continue

        if scan is not None:
            if line == "]":
                scan = None
                continue
            closing = line.endswith("]")
            option = _parse_option(line[:-1].rstrip() if closing else line)
            if option is not None and scan == "options":
                staged.options.append(option)
            if closing:
                scan = None
            continue

        upper = line.upper()
        if upper.startswith("[TYPE"):
            value = line[len("[TYPE") :].strip(" :]").lower()
            staged.kind = QuestionKind.MULTIPLE if "multiple" in value else QuestionKind.BINARY
        elif upper.startswith("[OPTIONS"):
            remainder = line[len("[OPTIONS") :]
            staged.options.extend(_parse_inline_options(remainder))
            scan = None if remainder.rstrip().endswith("]") else "options"
        elif upper.startswith("[YESNO"):
            if staged.kind is None:
                staged.kind = QuestionKind.BINARY
            remainder = line[len("[YESNO") :]
            scan = None if remainder.rstrip().endswith("]") else "yesno"
        elif line.startswith("["):
            logger.debug("Ignoring unknown question field %r", line)
        else:
            staged.text_parts.append(line)

    _finish_question(staged, questions)

    if not questions:
        raise NoRecordsFound("No valid questions found in response")
    return QuestionSet(topic=topic, questions=questions)


def _finish_question(staged: _StagedQuestion | None, questions: list[Question]) -> None:
    if staged is None:
        return
    question_text = " ".join(staged.text_parts).strip()
    if not question_text:
        logger.debug("Dropping question %r without text", staged.label)
        return
    kind = staged.kind
    if kind is None:
        kind = QuestionKind.MULTIPLE if staged.options else QuestionKind.BINARY
    if kind is QuestionKind.MULTIPLE and not staged.options:
        logger.debug("Dropping multiple-choice question %r without options", staged.label)
        return
    questions.append(
        Question(
            id=len(questions),
            text=question_text,
            kind=kind,
            options=list(staged.options) if kind is QuestionKind.MULTIPLE else [],
        )
    )


def _parse_option(line: str) -> AnswerOption | None:
    match = OPTION_RE.match(line.strip())
    if match is None:
        return None
    option_id = match.group("paren") or match.group("bare")
    return AnswerOption(id=option_id, text=match.group("text").strip())


def _parse_inline_options(remainder: str) -> list[AnswerOption]:
    """Parse options written on the same line as the ``[OPTIONS`` tag."""
    parts = INLINE_OPTION_SPLIT_RE.split(remainder)
    options: list[AnswerOption] = []
    for index in range(1, len(parts) - 1, 2):
        option_text = parts[index + 1].strip().rstrip("]").strip()
        if option_text:
            options.append(AnswerOption(id=parts[index], text=option_text))
    return options


def parse_application(text: str, topic: str) -> GeneratedApplication:
    """Parse a generated-application reply; raises NoRecordsFound without code snippets."""
    name = ""
    description = ""
    features: list[str] = []
    snippets: list[CodeSnippet] = []
    block: _Block | None = None

    def finish(current: _Block | None) -> None:
        nonlocal name, description, features
        if current is None:
            return
        body = current.body()
        if current.kind == "application_name":
            name = body.strip()
        elif current.kind == "application_description":
            description = body.strip()
        elif current.kind == "application_features":
            features = _parse_features(current.lines)
        elif current.title and body:
            snippets.append(CodeSnippet(title=current.title, description="", code=body))
        else:
            logger.debug("Dropping incomplete application code block %r", current.title)

    for line in _clean_lines(text):
        marker = parse_marker(line)
        if marker is not None:
            finish(block)
            block = _Block(kind=marker.kind, title=marker.label) if marker.kind in APPLICATION_SECTIONS else None
            continue
        if block is not None:
            block.lines.append(line)
    finish(block)

    if not snippets:
        raise NoRecordsFound("No code snippets found in application response")
    return GeneratedApplication(
        name=name or f"Rust {topic} Application",
        description=description,
        features=features,
        code_snippets=snippets,
    )


def _parse_features(lines: list[str]) -> list[str]:
    stripped = [line.strip() for line in lines if line.strip()]
    bullets = [line for line in stripped if line[0] in "-*"]
    if not bullets:
        return stripped
    return [line.lstrip("-*").strip() for line in bullets if line.lstrip("-*").strip()]


def parse_response(
    kind: GrammarKind, text: str, topic: str
) -> TutoringModule | QuestionSet | GeneratedApplication:
    """Parse ``text`` with the grammar named by ``kind``."""
    if kind is GrammarKind.TUTORING:
        return parse_tutoring_module(text, topic)
    if kind is GrammarKind.QUESTION_SET:
        return parse_question_set(text, topic)
    return parse_application(text, topic)


def format_tutoring_module(module: TutoringModule) -> str:
    """Render a tutoring module in its reply grammar."""
    lines = [f"<<<explanation: {module.topic}>>>", module.explanation]
    for index, snippet in enumerate(module.code_snippets, start=1):
        lines.append(f"<<<code_snippet {index}: {snippet.title}>>>")
        if snippet.description:
            lines.append(f"{SNIPPET_DESCRIPTION_TAG} {snippet.description}")
        lines.append(snippet.code)
    for index, exercise in enumerate(module.exercises, start=1):
        lines.append(f"<<<exercise {index}: {exercise.name}>>>")
        if exercise.description:
            lines.append(f"{EXERCISE_DESCRIPTION_TAG} {exercise.description}")
        lines.append(exercise.code)
    return "\n".join(lines) + "\n"


def format_question_set(question_set: QuestionSet) -> str:
    """Render a question set in its reply grammar."""
    lines: list[str] = []
    for index, question in enumerate(question_set.questions, start=1):
        lines.append(f"<<<question:{index}>>>")
        lines.append(question.text)
        lines.append(f"[TYPE: {question.kind.value}]")
        if question.kind is QuestionKind.MULTIPLE:
            lines.append("[OPTIONS")
            lines.extend(f"({option.id}) {option.text}" for option in question.options)
            lines[-1] += "]"
        else:
            lines.extend(["[YESNO", "(Y) Yes", "(N) No]"])
        lines.append("<<<end>>>")
        lines.append("")
    return "\n".join(lines)


def format_application(application: GeneratedApplication) -> str:
    """Render a generated application in its reply grammar."""
    lines = [
        "<<<application_name>>>",
        application.name,
        "<<<end>>>",
        "<<<application_description>>>",
        application.description,
        "<<<end>>>",
        "<<<application_features>>>",
    ]
    lines.extend(f"- {feature}" for feature in application.features)
    lines.append("<<<end>>>")
    for snippet in application.code_snippets:
        lines.extend([f"<<<code_snippet:{snippet.title}>>>", snippet.code, "<<<end>>>"])
    return "\n".join(lines) + "\n"


def _clean_lines(text: str) -> list[str]:
    """Split a reply into lines with fences removed; fence-only lines are dropped."""
    cleaned: list[str] = []
    for raw_line in text.splitlines():
        line = strip_fences(raw_line)
        if not line.strip() and raw_line.strip():
            continue
        cleaned.append(line.rstrip())
    return cleaned


def _join_lines(lines: list[str]) -> str:
    """Join body lines, dropping blank lines at either end."""
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])
