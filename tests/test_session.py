from concurrent.futures import Future
from pathlib import Path

import pytest

from rustmentor.grammar import GrammarKind
from rustmentor.llm import GenerationError
from rustmentor.session import POPUP_DURATION_SECONDS, SettingsSection, State, TutorSession
from rustmentor.settings import FocusArea, SettingsService
from rustmentor.topics import IndexKind, Topic, TopicError

TOPIC = Topic(topic="Understanding Ownership: What Is Ownership?", source="The Rust Book 4.1", min_level=1)

MODULE_TEXT = """<<<explanation: Ownership>>>
Each value has an owner.
<<<code_snippet 1: Move>>>
# code snippet: a move
let a = String::new();
let b = a;
<<<exercise 1: Fix it>>>
# exercise description: make it compile
fn main() {}
"""

QUESTIONS_TEXT = """<<<question:1>>>
Should the program read from stdin?
[TYPE: binary]
[YESNO
(Y) Yes
(N) No]
<<<end>>>
<<<question:2>>>
Where should totals live?
[TYPE: multiple]
[OPTIONS
(1) Vec
(2) HashMap
(3) BTreeMap
(4) Nowhere]
<<<end>>>
"""

APPLICATION_TEXT = """<<<application_name>>>
Inventory Tracker
<<<end>>>
<<<application_description>>>
Keeps counts in a HashMap.
<<<end>>>
<<<application_features>>>
- Reads items from stdin
<<<end>>>
<<<code_snippet:Main Code>>>
fn main() {}
<<<end>>>
"""


class FakeGateway:
    def __init__(self, fail_submit: bool = False) -> None:
        self.fail_submit = fail_submit
        self.requests: list[tuple[GrammarKind, str, Future[str]]] = []
        self.closed = False

    def submit(self, kind: GrammarKind, prompt: str) -> Future[str]:
        if self.fail_submit:
            raise RuntimeError("cannot schedule new futures after shutdown")
        handle: Future[str] = Future()
        self.requests.append((kind, prompt, handle))
        return handle

    def shutdown(self) -> None:
        self.closed = True

    def resolve(self, text: str, index: int = -1) -> None:
        self.requests[index][2].set_result(text)

    def handle(self, index: int = -1) -> Future[str]:
        return self.requests[index][2]


class FixedTopics:
    def __init__(self, error: str | None = None) -> None:
        self.error = error
        self.calls: list[tuple[int, IndexKind]] = []

    def next_topic(self, level: int, index_kind: IndexKind) -> Topic:
        self.calls.append((level, index_kind))
        if self.error is not None:
            raise TopicError(self.error)
        return TOPIC


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _session(
    tmp_path: Path, topics: FixedTopics | None = None, gateway: FakeGateway | None = None
) -> tuple[TutorSession, FakeGateway, FakeClock]:
    gateway = gateway or FakeGateway()
    clock = FakeClock()
    session = TutorSession(
        SettingsService(tmp_path / "settings.json"),
        gateway,
        topics or FixedTopics(),
        clock=clock,
        output_dir=tmp_path / "out",
    )
    return session, gateway, clock


def _press(session: TutorSession, *keys: str) -> None:
    for key in keys:
        session.handle_key(key)


def _start_quiz(session: TutorSession, gateway: FakeGateway) -> None:
    _press(session, "enter", "g")
    gateway.resolve(QUESTIONS_TEXT)
    session.tick()
    assert session.state is State.QUESTION_ANSWERING


def test_level_selection_is_clamped(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path)
    assert session.selected_level == 5
    _press(session, "j")
    assert session.selected_level == 6
    _press(session, *["down"] * 10)
    assert session.selected_level == 10
    _press(session, *["k"] * 20)
    assert session.selected_level == 1


def test_index_cursor_is_clamped(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path)
    _press(session, "enter")
    assert session.state is State.INDEX_SELECTION
    _press(session, *["j"] * 10)
    assert session.selected_index is IndexKind.RANDOM
    _press(session, *["up"] * 10)
    assert session.selected_index is IndexKind.LIBRARY
    _press(session, "esc")
    assert session.state is State.WELCOME


def test_module_request_success(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "j", "j", "enter")
    assert session.state is State.LOADING
    assert gateway.requests[-1][0] is GrammarKind.TUTORING
    assert TOPIC.topic in gateway.requests[-1][1]

    session.tick()
    assert session.state is State.LOADING

    gateway.resolve(MODULE_TEXT)
    session.tick()
    assert session.state is State.LEARNING
    assert session.pending is None
    module = session.current_module
    assert module is not None
    assert module.topic == TOPIC.topic
    assert module.explanation == "Each value has an owner."
    assert [snippet.title for snippet in module.code_snippets] == ["Move"]
    assert module.resources is not None
    assert module.resources.official_docs


def test_module_resources_follow_toggles(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    session.settings.toggle_official_docs()
    session.settings.toggle_community_resources()
    session.settings.toggle_crates_io()
    session.settings.toggle_github_repos()
    _press(session, "enter", "enter")
    gateway.resolve(MODULE_TEXT)
    session.tick()
    assert session.current_module is not None
    assert session.current_module.resources is None


def test_closed_channel_while_loading_shows_communication_error(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "enter")
    assert gateway.handle().cancel()

    session.tick()
    assert session.state is State.LEARNING
    module = session.current_module
    assert module is not None
    assert module.topic == "Communication Error"
    assert module.explanation
    assert "communication error" in module.explanation.lower()
    assert len(module.code_snippets) == 1
    assert len(module.exercises) == 1


def test_error_payload_is_shown_in_placeholder(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "enter")
    gateway.handle().set_exception(GenerationError("OpenRouter returned HTTP 500"))
    session.tick()
    assert session.state is State.LEARNING
    assert session.current_module is not None
    assert session.current_module.topic == "Error Generating Content"
    assert "OpenRouter returned HTTP 500" in session.current_module.explanation


def test_failed_dispatch_becomes_error_placeholder(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path, gateway=FakeGateway(fail_submit=True))
    _press(session, "enter", "enter")
    assert session.state is State.LOADING
    session.tick()
    assert session.state is State.LEARNING
    assert "cannot schedule new futures" in session.current_module.explanation


def test_topic_failure_lands_in_learning_without_request(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path, topics=FixedTopics(error="No suitable topics found for level 5"))
    _press(session, "enter", "enter")
    assert session.state is State.LEARNING
    assert gateway.requests == []
    assert session.current_module is not None
    assert session.current_module.topic == "Error Loading Topic"
    assert "No suitable topics" in session.current_module.explanation


def test_library_index_below_level_three_shows_timed_popup(tmp_path: Path) -> None:
    session, gateway, clock = _session(tmp_path)
    started = clock.now
    _press(session, "k", "k", "k", "enter", "enter")
    assert session.selected_level == 2
    assert session.state is State.LEVEL_TOO_LOW_POPUP
    assert gateway.requests == []

    clock.now = started + POPUP_DURATION_SECONDS - 0.5
    session.tick()
    assert session.state is State.LEVEL_TOO_LOW_POPUP

    clock.now = started + POPUP_DURATION_SECONDS
    session.tick()
    assert session.state is State.WELCOME


def test_abandoned_request_result_is_never_applied(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "enter")
    _press(session, "esc")
    assert session.state is State.INDEX_SELECTION
    assert session.pending is None

    _press(session, "enter")
    assert session.state is State.LOADING
    gateway.resolve("<<<explanation: Old>>>\nstale text\n", index=0)
    session.tick()
    assert session.state is State.LOADING

    gateway.resolve(MODULE_TEXT, index=1)
    session.tick()
    assert session.state is State.LEARNING
    assert session.current_module.explanation == "Each value has an owner."


def test_late_result_of_other_grammar_is_dropped(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "g")
    assert session.state is State.QUESTION_GENERATION
    _press(session, "esc", "enter")
    assert session.state is State.LOADING

    gateway.resolve(QUESTIONS_TEXT, index=0)
    session.tick()
    assert session.state is State.LOADING
    assert session.question_set is None


def test_quiz_flow_to_application(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _start_quiz(session, gateway)
    assert session.question_set is not None
    assert session.question_set.topic == TOPIC.topic

    _press(session, "enter")
    assert session.state is State.QUESTION_ANSWERING
    assert session.notice == "Answer all questions first (0/2 answered)."

    _press(session, "y", "l", "7", "2")
    assert session.question_set.cursor == 1
    assert session.question_set.questions[1].selected_answer == "2"
    _press(session, "enter")
    assert session.state is State.APPLICATION_GENERATION
    kind, prompt, _ = gateway.requests[-1]
    assert kind is GrammarKind.APPLICATION
    assert "Answer: Yes" in prompt
    assert "Answer: 2 (HashMap)" in prompt

    gateway.resolve(APPLICATION_TEXT)
    session.tick()
    assert session.state is State.APPLICATION_DISPLAY
    assert session.generated_application.name == "Inventory Tracker"

    _press(session, "enter")
    assert session.notice.startswith("Created project at")
    assert (tmp_path / "out" / "inventory_tracker" / "src" / "main.rs").exists()

    _press(session, "esc")
    assert session.state is State.QUESTION_ANSWERING
    _press(session, "esc")
    assert session.state is State.INDEX_SELECTION


def test_question_failure_offers_retry(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "g")
    gateway.resolve("Sorry, I cannot help with that.")
    session.tick()
    assert session.state is State.LEARNING
    assert session.current_module.topic == "Error Generating Questions"
    assert "No valid questions" in session.current_module.explanation

    _press(session, "g")
    assert session.state is State.QUESTION_GENERATION
    assert len(gateway.requests) == 2
    assert TOPIC.topic in gateway.requests[-1][1]


def test_application_failure_and_retry(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _start_quiz(session, gateway)
    _press(session, "y", "l", "1", "enter")
    gateway.handle().set_exception(GenerationError("request timed out"))
    session.tick()

    assert session.state is State.APPLICATION_DISPLAY
    application = session.generated_application
    assert application.name == "Error Generating Application"
    assert "request timed out" in application.description

    _press(session, "enter")
    assert session.notice.startswith("Could not create project")

    _press(session, "esc", "enter")
    assert session.state is State.APPLICATION_GENERATION
    assert len(gateway.requests) == 3


def test_learning_keys(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "enter")
    gateway.resolve(MODULE_TEXT)
    session.tick()

    _press(session, "k")
    assert session.scroll_offset == 0
    _press(session, "j", "j")
    assert session.scroll_offset == 2

    _press(session, "c")
    assert session.notice.startswith("Created project at")
    created = list((tmp_path / "out").iterdir())
    assert len(created) == 1
    assert (created[0] / "Cargo.toml").exists()

    _press(session, "n")
    assert session.state is State.LOADING
    assert len(gateway.requests) == 2

    _press(session, "esc")
    assert session.state is State.LEARNING
    _press(session, "esc")
    assert session.state is State.WELCOME


def test_settings_overlay_persists_changes(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path)
    _press(session, "enter", "s")
    assert session.state is State.SETTINGS
    assert session.settings_section is SettingsSection.LEARNING_RESOURCES

    _press(session, "enter")
    assert session.settings.learning_resources.show_official_docs is False

    _press(session, "tab", "j", "j", "j", "space")
    assert session.settings_section is SettingsSection.CONTENT_CUSTOMIZATION
    assert session.settings_cursor == 2
    assert session.settings.content_customization.focus_area is FocusArea.CONCEPTS

    _press(session, "tab", "down")
    assert session.settings_section is SettingsSection.LEARNING_GOALS
    assert session.settings_cursor == 0

    _press(session, "esc")
    assert session.state is State.INDEX_SELECTION

    reloaded = SettingsService(tmp_path / "settings.json")
    assert reloaded.learning_resources.show_official_docs is False
    assert reloaded.content_customization.focus_area is FocusArea.CONCEPTS


def test_settings_not_reachable_while_pending(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path)
    _press(session, "enter", "enter", "s")
    assert session.state is State.LOADING


@pytest.mark.parametrize("confirm_keys, running", [(["l", "enter"], False), (["enter"], True), (["esc"], True)])
def test_quit_confirmation(tmp_path: Path, confirm_keys: list[str], running: bool) -> None:
    session, _, _ = _session(tmp_path)
    _press(session, "q")
    assert session.show_quit_confirmation
    _press(session, *confirm_keys)
    assert session.is_running is running
    if running:
        assert not session.show_quit_confirmation


def test_help_overlay_swallows_keys(tmp_path: Path) -> None:
    session, _, _ = _session(tmp_path)
    _press(session, "?", "j")
    assert session.show_help
    assert session.selected_level == 5
    _press(session, "esc")
    assert not session.show_help


def test_close_stops_gateway(tmp_path: Path) -> None:
    session, gateway, _ = _session(tmp_path)
    _press(session, "enter", "enter")
    session.close()
    assert gateway.closed
    assert session.pending is None
