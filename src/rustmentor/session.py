"""Screen state machine driving one tutoring session.

The session never blocks. Generation requests go out through the gateway and
come back as futures; :meth:`TutorSession.tick` drains the one outstanding
future without waiting and turns whatever it holds (text, error, or nothing
because the channel closed) into a renderable record.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Protocol

from . import scaffold
from .gateway import Gateway, try_receive
from .grammar import (
    PLACEHOLDER_EXERCISE,
    PLACEHOLDER_SNIPPET,
    GrammarKind,
    NoRecordsFound,
    parse_application,
    parse_question_set,
    parse_tutoring_module,
)
from .models import GeneratedApplication, QuestionSet, TutoringModule
from .prompts import build_application_prompt, build_module_prompt, build_questions_prompt
from .resources import build_resources
from .settings import SettingsService, cycle
from .topics import MAX_LEVEL, MIN_LEVEL, IndexKind, Topic, TopicError, requires_higher_level

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 5
POPUP_DURATION_SECONDS = 3.0
UP_KEYS = {"up", "k"}
DOWN_KEYS = {"down", "j"}
LEFT_KEYS = {"left", "h"}
RIGHT_KEYS = {"right", "l"}


class State(Enum):
    WELCOME = "welcome"
    INDEX_SELECTION = "index_selection"
    LEVEL_TOO_LOW_POPUP = "level_too_low_popup"
    LOADING = "loading"
    LEARNING = "learning"
    QUESTION_GENERATION = "question_generation"
    QUESTION_ANSWERING = "question_answering"
    APPLICATION_GENERATION = "application_generation"
    APPLICATION_DISPLAY = "application_display"
    SETTINGS = "settings"


PENDING_STATES = {
    State.LOADING: GrammarKind.TUTORING,
    State.QUESTION_GENERATION: GrammarKind.QUESTION_SET,
    State.APPLICATION_GENERATION: GrammarKind.APPLICATION,
}
SETTINGS_HOSTS = {
    State.WELCOME,
    State.INDEX_SELECTION,
    State.LEARNING,
    State.QUESTION_ANSWERING,
    State.APPLICATION_DISPLAY,
}


class SettingsSection(Enum):
    LEARNING_RESOURCES = "Learning Resources"
    CONTENT_CUSTOMIZATION = "Content Customization"
    LEARNING_GOALS = "Learning Goals"
    QUESTION_GENERATOR = "Question Generator"


SETTINGS_OPTION_COUNTS = {
    SettingsSection.LEARNING_RESOURCES: 4,
    SettingsSection.CONTENT_CUSTOMIZATION: 3,
    SettingsSection.LEARNING_GOALS: 1,
    SettingsSection.QUESTION_GENERATOR: 2,
}


class TopicSupplier(Protocol):
    def next_topic(self, level: int, index_kind: IndexKind) -> Topic: ...


@dataclass(frozen=True)
class PendingRequest:
    """The one request a pending state is waiting for."""

    kind: GrammarKind
    epoch: int
    handle: Future[str]
    topic: str
    return_state: State


class TutorSession:
    """Owns screen state, selections, content records and the in-flight request."""

    def __init__(
        self,
        settings: SettingsService,
        gateway: Gateway,
        topics: TopicSupplier,
        *,
        clock: Callable[[], float] = time.monotonic,
        output_dir: Path | None = None,
    ) -> None:
        self.settings = settings
        self._gateway = gateway
        self._topics = topics
        self._clock = clock
        self.output_dir = output_dir or Path(".")

        self.is_running = True
        self.state = State.WELCOME
        self.selected_level = DEFAULT_LEVEL
        self.index_cursor = 0
        self.show_help = False
        self.show_quit_confirmation = False
        self.quit_confirmation_selected = False
        self.scroll_offset = 0
        self.notice = ""

        self.topic: Topic | None = None
        self.current_module: TutoringModule | None = None
        self.question_set: QuestionSet | None = None
        self.generated_application: GeneratedApplication | None = None

        self.settings_section = SettingsSection.LEARNING_RESOURCES
        self.settings_cursor = 0
        self._settings_return = State.WELCOME
        self._popup_started_at: float | None = None
        self._pending: PendingRequest | None = None
        self._epoch = 0

    @property
    def selected_index(self) -> IndexKind:
        return list(IndexKind)[self.index_cursor]

    @property
    def pending(self) -> PendingRequest | None:
        return self._pending

    def is_pending(self) -> bool:
        return self.state in PENDING_STATES

    def close(self) -> None:
        """Drop any outstanding request and stop the gateway."""
        self._pending = None
        self._gateway.shutdown()

    # Input handling

    def handle_key(self, key: str) -> None:
        """Apply one key press; keys are names like ``enter`` or single characters."""
        if self.show_help:
            if key in {"esc", "?"}:
                self.show_help = False
            return

        if self.show_quit_confirmation:
            if key == "enter":
                if self.quit_confirmation_selected:
                    self.is_running = False
                else:
                    self.show_quit_confirmation = False
            elif key in LEFT_KEYS | RIGHT_KEYS:
                self.quit_confirmation_selected = not self.quit_confirmation_selected
            elif key in {"esc", "q"}:
                self.show_quit_confirmation = False
            return

        if key == "q":
            self.show_quit_confirmation = True
            self.quit_confirmation_selected = False
            return
        if key == "?":
            self.show_help = True
            return
        if key == "s" and self.state in SETTINGS_HOSTS:
            self.open_settings()
            return

        self.notice = ""
        handlers = {
            State.WELCOME: self._handle_welcome_key,
            State.INDEX_SELECTION: self._handle_index_key,
            State.LEARNING: self._handle_learning_key,
            State.QUESTION_ANSWERING: self._handle_quiz_key,
            State.APPLICATION_DISPLAY: self._handle_application_key,
            State.SETTINGS: self._handle_settings_key,
        }
        handler = handlers.get(self.state)
        if handler is not None:
            handler(key)
        elif self.is_pending() and key == "esc":
            self.abandon_pending()

    def _handle_welcome_key(self, key: str) -> None:
        if key in DOWN_KEYS:
            self.selected_level = min(self.selected_level + 1, MAX_LEVEL)
        elif key in UP_KEYS:
            self.selected_level = max(self.selected_level - 1, MIN_LEVEL)
        elif key == "enter":
            self.state = State.INDEX_SELECTION

    def _handle_index_key(self, key: str) -> None:
        if key in DOWN_KEYS:
            self.index_cursor = min(self.index_cursor + 1, len(IndexKind) - 1)
        elif key in UP_KEYS:
            self.index_cursor = max(self.index_cursor - 1, 0)
        elif key == "esc":
            self.state = State.WELCOME
        elif key in {"enter", "g"}:
            if requires_higher_level(self.selected_level, self.selected_index):
                self.state = State.LEVEL_TOO_LOW_POPUP
                self._popup_started_at = self._clock()
                return
            self.topic = None
            if key == "enter":
                self.request_module()
            else:
                self.request_questions()

    def _handle_learning_key(self, key: str) -> None:
        if key in UP_KEYS:
            self.scroll_offset = max(self.scroll_offset - 1, 0)
        elif key in DOWN_KEYS:
            self.scroll_offset += 1
        elif key == "n":
            self.topic = None
            self.request_module()
        elif key == "g":
            self.request_questions()
        elif key == "c":
            self.create_module_project()
        elif key == "esc":
            self.state = State.WELCOME

    def _handle_quiz_key(self, key: str) -> None:
        if key == "esc":
            self.state = State.LEARNING if self.current_module is not None else State.INDEX_SELECTION
            return
        question_set = self.question_set
        if question_set is None:
            return
        if key in LEFT_KEYS:
            question_set.previous_question()
        elif key in RIGHT_KEYS:
            question_set.next_question()
        elif key == "enter":
            if question_set.is_complete():
                self.request_application()
            else:
                answered, total = question_set.progress()
                self.notice = f"Answer all questions first ({answered}/{total} answered)."
        elif len(key) == 1:
            question_set.select_answer(key)

    def _handle_application_key(self, key: str) -> None:
        if key in UP_KEYS:
            self.scroll_offset = max(self.scroll_offset - 1, 0)
        elif key in DOWN_KEYS:
            self.scroll_offset += 1
        elif key == "enter":
            self.create_application_project()
        elif key == "esc":
            self.state = State.QUESTION_ANSWERING if self.question_set is not None else State.LEARNING

    # Settings overlay

    def open_settings(self) -> None:
        self._settings_return = self.state
        self.state = State.SETTINGS
        self.settings_cursor = 0

    def _handle_settings_key(self, key: str) -> None:
        if key == "tab":
            self.settings_section = cycle(self.settings_section)
            self.settings_cursor = 0
        elif key in UP_KEYS:
            self.settings_cursor = max(self.settings_cursor - 1, 0)
        elif key in DOWN_KEYS:
            self.settings_cursor = min(self.settings_cursor + 1, SETTINGS_OPTION_COUNTS[self.settings_section] - 1)
        elif key in {"enter", "space"}:
            self._activate_setting()
        elif key == "esc":
            self.state = self._settings_return

    def _activate_setting(self) -> None:
        service = self.settings
        actions = {
            SettingsSection.LEARNING_RESOURCES: [
                service.toggle_official_docs,
                service.toggle_community_resources,
                service.toggle_crates_io,
                service.toggle_github_repos,
            ],
            SettingsSection.CONTENT_CUSTOMIZATION: [
                service.cycle_code_complexity,
                service.cycle_explanation_verbosity,
                service.cycle_focus_area,
            ],
            SettingsSection.LEARNING_GOALS: [service.cycle_learning_goal],
            SettingsSection.QUESTION_GENERATOR: [service.cycle_num_questions, service.cycle_question_type],
        }
        try:
            actions[self.settings_section][self.settings_cursor]()
        except OSError as exc:
            logger.error("Failed to save settings: %s", exc)
            self.notice = f"Could not save settings: {exc}"

    # Requests

    def request_module(self) -> None:
        """Enter LOADING with a fresh module request for the current or a new topic."""
        topic = self.topic or self._pick_topic()
        if topic is None:
            return
        self.topic = topic
        prompt = build_module_prompt(
            topic, self.selected_level, self.settings.content_customization, self.settings.learning_goal
        )
        self._dispatch(State.LOADING, GrammarKind.TUTORING, prompt, topic.topic)

    def request_questions(self) -> None:
        """Enter QUESTION_GENERATION for the current or a new topic."""
        topic = self.topic or self._pick_topic()
        if topic is None:
            return
        self.topic = topic
        prompt = build_questions_prompt(topic.topic, self.settings.learning_goal, self.settings.question_generator)
        self._dispatch(State.QUESTION_GENERATION, GrammarKind.QUESTION_SET, prompt, topic.topic)

    def request_application(self) -> None:
        """Enter APPLICATION_GENERATION from a completed quiz."""
        question_set = self.question_set
        if question_set is None or not question_set.is_complete():
            return
        prompt = build_application_prompt(question_set, self.settings.learning_goal)
        self._dispatch(State.APPLICATION_GENERATION, GrammarKind.APPLICATION, prompt, question_set.topic)

    def _pick_topic(self) -> Topic | None:
        try:
            return self._topics.next_topic(self.selected_level, self.selected_index)
        except TopicError as exc:
            logger.error("Failed to get a topic: %s", exc)
            self._show_module(
                TutoringModule(
                    topic="Error Loading Topic",
                    explanation=(
                        f"There was an error loading a topic for level {self.selected_level}: {exc}\n\n"
                        "Press Esc and select a different level or index."
                    ),
                    code_snippets=[PLACEHOLDER_SNIPPET],
                    exercises=[PLACEHOLDER_EXERCISE],
                )
            )
            return None

    def _dispatch(self, state: State, kind: GrammarKind, prompt: str, topic: str) -> None:
        """Replace any outstanding request with a new one and enter its pending state."""
        self._epoch += 1
        try:
            handle = self._gateway.submit(kind, prompt)
        except RuntimeError as exc:
            logger.error("Could not dispatch %s request: %s", kind.value, exc)
            handle = Future()
            handle.set_exception(exc)
        self._pending = PendingRequest(
            kind=kind, epoch=self._epoch, handle=handle, topic=topic, return_state=self.state
        )
        self.state = state

    def abandon_pending(self) -> None:
        """Leave the pending state; the dropped request's result is never read."""
        pending = self._pending
        if pending is None:
            return
        logger.info("Abandoning %s request (epoch %d)", pending.kind.value, pending.epoch)
        self._pending = None
        self.state = pending.return_state

    # Polling

    def tick(self) -> None:
        """Advance time-based state and drain the outstanding request without blocking."""
        if self.state is State.LEVEL_TOO_LOW_POPUP:
            started = self._popup_started_at
            if started is None or self._clock() - started >= POPUP_DURATION_SECONDS:
                self._popup_started_at = None
                self.state = State.WELCOME
            return
        self._drain()

    def _drain(self) -> None:
        pending = self._pending
        if pending is None:
            return
        if PENDING_STATES.get(self.state) is not pending.kind or pending.epoch != self._epoch:
            logger.debug("Dropping stale %s request (epoch %d)", pending.kind.value, pending.epoch)
            self._pending = None
            return

        reply = try_receive(pending.handle)
        if reply is None:
            return
        self._pending = None

        if reply.closed:
            logger.error("%s request channel closed without a result", pending.kind.value)
            error = None
        elif reply.error is not None:
            logger.error("%s request failed: %s", pending.kind.value, reply.error)
            error = reply.error
        else:
            self._accept(pending, reply.text or "")
            return
        self._show_failure(pending, error)

    def _accept(self, pending: PendingRequest, text: str) -> None:
        if pending.kind is GrammarKind.TUTORING:
            module = parse_tutoring_module(text, pending.topic)
            resources = build_resources(module.topic, self.settings.learning_resources)
            self._show_module(replace(module, resources=resources))
            return
        try:
            if pending.kind is GrammarKind.QUESTION_SET:
                self.question_set = parse_question_set(text, pending.topic)
                self.state = State.QUESTION_ANSWERING
            else:
                self.generated_application = parse_application(text, pending.topic)
                self.scroll_offset = 0
                self.state = State.APPLICATION_DISPLAY
        except NoRecordsFound as exc:
            logger.warning("Could not parse %s reply: %s", pending.kind.value, exc)
            self._show_failure(pending, str(exc))

    def _show_failure(self, pending: PendingRequest, error: str | None) -> None:
        """Turn a failed request into a placeholder record in the state that displays it."""
        if error is None:
            headline = "Communication Error"
            detail = "Communication error: there was an error communicating with the content generation service."
        else:
            headline = ""
            detail = error

        if pending.kind is GrammarKind.APPLICATION:
            self.generated_application = GeneratedApplication(
                name=headline or "Error Generating Application",
                description=(
                    f"There was an error generating the application: {detail}\n\n"
                    "Press Esc to return to your answers, then Enter to try again."
                ),
                features=[],
                code_snippets=[],
            )
            self.scroll_offset = 0
            self.state = State.APPLICATION_DISPLAY
            return

        if pending.kind is GrammarKind.QUESTION_SET:
            title = headline or "Error Generating Questions"
            retry = "Press 'g' to try again or 'n' for a new module."
        else:
            title = headline or "Error Generating Content"
            retry = "Press 'n' to try again or Esc to select a different level."
        self._show_module(
            TutoringModule(
                topic=title,
                explanation=f"There was an error generating content: {detail}\n\n{retry}",
                code_snippets=[PLACEHOLDER_SNIPPET],
                exercises=[PLACEHOLDER_EXERCISE],
            )
        )

    def _show_module(self, module: TutoringModule) -> None:
        self.current_module = module
        self.scroll_offset = 0
        self.state = State.LEARNING

    # Project output

    def create_module_project(self) -> None:
        module = self.current_module
        if module is None:
            return
        try:
            path = scaffold.create_module_project(module, self.selected_level, self.output_dir)
        except OSError as exc:
            logger.error("Failed to create module project: %s", exc)
            self.notice = f"Could not create project: {exc}"
            return
        self.notice = f"Created project at {path}"

    def create_application_project(self) -> None:
        application = self.generated_application
        if application is None:
            return
        try:
            path = scaffold.create_application_project(application, self.output_dir)
        except (OSError, ValueError) as exc:
            logger.error("Failed to create application project: %s", exc)
            self.notice = f"Could not create project: {exc}"
            return
        self.notice = f"Created project at {path}"
