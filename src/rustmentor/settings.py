"""Persistent learner settings stored as a JSON document."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "google/gemma-3n-e4b-it:free"
MODEL_ENV_VAR = "RUST_MENTOR_MODEL"
QUESTION_COUNTS = (3, 5, 7, 10)

E = TypeVar("E", bound=Enum)


class SettingsError(ValueError):
    """Raised when the settings file cannot be understood."""


class CodeComplexity(Enum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"


class ExplanationVerbosity(Enum):
    CONCISE = "Concise"
    MODERATE = "Moderate"
    DETAILED = "Detailed"


class FocusArea(Enum):
    CONCEPTS = "Concepts"
    CODE_EXAMPLES = "Code Examples"
    EXERCISES = "Exercises"
    BALANCED = "Balanced"


class QuestionTypePreference(Enum):
    MIXED = "Mixed"
    BINARY = "Binary"
    MULTIPLE = "Multiple Choice"


class LearningGoal(Enum):
    GENERAL = "General Rust Proficiency"
    WEB_DEVELOPMENT = "Web Development"
    SYSTEMS_PROGRAMMING = "Systems Programming"
    CLI_TOOLS = "Command-Line Tools"
    ASYNC_NETWORKING = "Async Networking"
    EMBEDDED = "Embedded Development"
    GAME_DEVELOPMENT = "Game Development"
    DATA_PROCESSING = "Data Processing"


def cycle(member: E) -> E:
    """Return the enum member after ``member``, wrapping to the first."""
    members = list(type(member))
    return members[(members.index(member) + 1) % len(members)]


@dataclass(frozen=True)
class ResourceToggles:
    """Which kinds of extra links are attached to modules."""

    show_official_docs: bool = True
    show_community_resources: bool = True
    show_crates_io: bool = True
    show_github_repos: bool = True


@dataclass(frozen=True)
class ContentCustomization:
    """Style knobs passed into module prompts."""

    code_complexity: CodeComplexity = CodeComplexity.MODERATE
    explanation_verbosity: ExplanationVerbosity = ExplanationVerbosity.MODERATE
    focus_area: FocusArea = FocusArea.BALANCED


@dataclass(frozen=True)
class QuestionGeneratorSettings:
    """Shape of generated quizzes."""

    num_questions: int = 5
    question_type: QuestionTypePreference = QuestionTypePreference.MIXED


@dataclass(frozen=True)
class Settings:
    """Complete settings document."""

    model: str = DEFAULT_MODEL
    learning_resources: ResourceToggles = field(default_factory=ResourceToggles)
    content_customization: ContentCustomization = field(default_factory=ContentCustomization)
    question_generator: QuestionGeneratorSettings = field(default_factory=QuestionGeneratorSettings)
    learning_goal: LearningGoal = LearningGoal.GENERAL


def default_settings_path() -> Path:
    return Path.home() / ".rust-mentor" / "settings.json"


class SettingsService:
    """Owns the settings document; every mutation is written back to disk."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()
        self._settings = self._load()

    def _load(self) -> Settings:
        if not self.path.exists():
            settings = Settings()
            self._write(settings)
            logger.info("Wrote default settings to %s", self.path)
            return settings
        try:
            raw: object = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SettingsError(f"Settings file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file {self.path} root must be a JSON object.")
        settings = settings_from_dict(raw)
        logger.info("Loaded settings from %s", self.path)
        return settings

    def _write(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings_to_dict(settings), indent=2), encoding="utf-8")

    def _update(self, settings: Settings) -> None:
        self._settings = settings
        self._write(settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def model(self) -> str:
        """Model name, overridable per process with RUST_MENTOR_MODEL."""
        return os.environ.get(MODEL_ENV_VAR) or self._settings.model

    @property
    def learning_resources(self) -> ResourceToggles:
        return self._settings.learning_resources

    @property
    def content_customization(self) -> ContentCustomization:
        return self._settings.content_customization

    @property
    def question_generator(self) -> QuestionGeneratorSettings:
        return self._settings.question_generator

    @property
    def learning_goal(self) -> LearningGoal:
        return self._settings.learning_goal

    def update_model(self, model: str) -> None:
        self._update(replace(self._settings, model=model))

    def _toggle_resource(self, name: str) -> None:
        toggles = self._settings.learning_resources
        updated = replace(toggles, **{name: not getattr(toggles, name)})
        self._update(replace(self._settings, learning_resources=updated))

    def toggle_official_docs(self) -> None:
        self._toggle_resource("show_official_docs")

    def toggle_community_resources(self) -> None:
        self._toggle_resource("show_community_resources")

    def toggle_crates_io(self) -> None:
        self._toggle_resource("show_crates_io")

    def toggle_github_repos(self) -> None:
        self._toggle_resource("show_github_repos")

    def _update_customization(self, **changes: Any) -> None:
        customization = replace(self._settings.content_customization, **changes)
        self._update(replace(self._settings, content_customization=customization))

    def cycle_code_complexity(self) -> None:
        self._update_customization(code_complexity=cycle(self.content_customization.code_complexity))

    def cycle_explanation_verbosity(self) -> None:
        self._update_customization(explanation_verbosity=cycle(self.content_customization.explanation_verbosity))

    def cycle_focus_area(self) -> None:
        self._update_customization(focus_area=cycle(self.content_customization.focus_area))

    def cycle_num_questions(self) -> None:
        current = self.question_generator.num_questions
        index = QUESTION_COUNTS.index(current) if current in QUESTION_COUNTS else -1
        updated = replace(self.question_generator, num_questions=QUESTION_COUNTS[(index + 1) % len(QUESTION_COUNTS)])
        self._update(replace(self._settings, question_generator=updated))

    def cycle_question_type(self) -> None:
        updated = replace(self.question_generator, question_type=cycle(self.question_generator.question_type))
        self._update(replace(self._settings, question_generator=updated))

    def cycle_learning_goal(self) -> None:
        self._update(replace(self._settings, learning_goal=cycle(self.learning_goal)))


def settings_to_dict(settings: Settings) -> dict[str, object]:
    """Serialize settings; enums are stored by value."""
    payload = asdict(settings)
    customization = settings.content_customization
    payload["content_customization"] = {
        "code_complexity": customization.code_complexity.value,
        "explanation_verbosity": customization.explanation_verbosity.value,
        "focus_area": customization.focus_area.value,
    }
    payload["question_generator"] = {
        "num_questions": settings.question_generator.num_questions,
        "question_type": settings.question_generator.question_type.value,
    }
    payload["learning_goal"] = settings.learning_goal.value
    return payload


def settings_from_dict(raw: dict[str, Any]) -> Settings:
    """Build settings from a JSON object, falling back to defaults field by field."""
    defaults = Settings()

    model = raw.get("model")
    if not isinstance(model, str) or not model.strip():
        model = defaults.model

    raw_resources = _section(raw, "learning_resources")
    resources = ResourceToggles(
        **{
            name: _coerce_bool(raw_resources.get(name), getattr(defaults.learning_resources, name))
            for name in asdict(defaults.learning_resources)
        }
    )

    raw_customization = _section(raw, "content_customization")
    customization = ContentCustomization(
        code_complexity=_coerce_enum(
            CodeComplexity, raw_customization.get("code_complexity"), defaults.content_customization.code_complexity
        ),
        explanation_verbosity=_coerce_enum(
            ExplanationVerbosity,
            raw_customization.get("explanation_verbosity"),
            defaults.content_customization.explanation_verbosity,
        ),
        focus_area=_coerce_enum(FocusArea, raw_customization.get("focus_area"), defaults.content_customization.focus_area),
    )

    raw_questions = _section(raw, "question_generator")
    num_questions = raw_questions.get("num_questions")
    if isinstance(num_questions, bool) or not isinstance(num_questions, int) or num_questions < 1:
        num_questions = defaults.question_generator.num_questions
    question_generator = QuestionGeneratorSettings(
        num_questions=num_questions,
        question_type=_coerce_enum(
            QuestionTypePreference, raw_questions.get("question_type"), defaults.question_generator.question_type
        ),
    )

    return Settings(
        model=model.strip(),
        learning_resources=resources,
        content_customization=customization,
        question_generator=question_generator,
        learning_goal=_coerce_enum(LearningGoal, raw.get("learning_goal"), defaults.learning_goal),
    )


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, dict) else {}


def _coerce_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _coerce_enum(enum_type: type[E], value: object, default: E) -> E:
    """Accept an enum value or member name, case-insensitively."""
    if not isinstance(value, str):
        return default
    wanted = value.strip().lower()
    for member in enum_type:
        if wanted in {str(member.value).lower(), member.name.lower()}:
            return member
    return default
