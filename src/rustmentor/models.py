"""Core content models produced by the response parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

BINARY_ANSWERS = {"y": "Yes", "n": "No"}


@dataclass(frozen=True)
class CodeSnippet:
    """One titled code sample."""

    title: str
    description: str
    code: str


@dataclass(frozen=True)
class Exercise:
    """One practice exercise with starter code."""

    name: str
    description: str
    code: str


@dataclass(frozen=True)
class ResourceLink:
    """External learning link shown under a module."""

    title: str
    url: str
    description: str


@dataclass(frozen=True)
class AdditionalResources:
    """Links grouped by source, filtered by the learning-resource toggles."""

    official_docs: list[ResourceLink] = field(default_factory=list)
    community_resources: list[ResourceLink] = field(default_factory=list)
    crates_io: list[ResourceLink] = field(default_factory=list)
    github_repos: list[ResourceLink] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.official_docs or self.community_resources or self.crates_io or self.github_repos)


@dataclass(frozen=True)
class TutoringModule:
    """Explanation, code samples and exercises for one topic."""

    topic: str
    explanation: str
    code_snippets: list[CodeSnippet]
    exercises: list[Exercise]
    resources: AdditionalResources | None = None


class QuestionKind(Enum):
    """Answer shape of a quiz question."""

    BINARY = "binary"
    MULTIPLE = "multiple"

    @property
    def label(self) -> str:
        return "Yes/No" if self is QuestionKind.BINARY else "Multiple Choice"


@dataclass(frozen=True)
class AnswerOption:
    """Labelled choice of a multiple-choice question."""

    id: str
    text: str


@dataclass
class Question:
    """One quiz question and the learner's answer, if any."""

    id: int
    text: str
    kind: QuestionKind
    options: list[AnswerOption] = field(default_factory=list)
    selected_answer: str | None = None

    def answer_for_key(self, key: str) -> str | None:
        """Map a pressed key to a canonical answer, or None when the key is not valid here."""
        lowered = key.lower()
        if self.kind is QuestionKind.BINARY:
            return BINARY_ANSWERS.get(lowered)
        for option in self.options:
            if option.id.lower() == lowered:
                return option.id
        return None

    def selected_option(self) -> AnswerOption | None:
        for option in self.options:
            if option.id == self.selected_answer:
                return option
        return None


@dataclass
class QuestionSet:
    """Ordered questions for one topic with a navigation cursor."""

    topic: str
    questions: list[Question]
    cursor: int = 0

    def current_question(self) -> Question | None:
        if 0 <= self.cursor < len(self.questions):
            return self.questions[self.cursor]
        return None

    def next_question(self) -> Question | None:
        """Move forward one question; stays on the last one."""
        if self.cursor < len(self.questions) - 1:
            self.cursor += 1
            return self.current_question()
        return None

    def previous_question(self) -> Question | None:
        """Move back one question; stays on the first one."""
        if self.cursor > 0:
            self.cursor -= 1
            return self.current_question()
        return None

    def select_answer(self, key: str) -> bool:
        """Record an answer for the current question; invalid keys are ignored."""
        question = self.current_question()
        if question is None:
            return False
        answer = question.answer_for_key(key)
        if answer is None:
            return False
        question.selected_answer = answer
        return True

    def is_complete(self) -> bool:
        return bool(self.questions) and all(question.selected_answer for question in self.questions)

    def progress(self) -> tuple[int, int]:
        answered = sum(1 for question in self.questions if question.selected_answer)
        return (answered, len(self.questions))


@dataclass(frozen=True)
class GeneratedApplication:
    """Mini application generated from quiz answers.

    The first code snippet is the entry point used by the project writer.
    """

    name: str
    description: str
    features: list[str]
    code_snippets: list[CodeSnippet]
