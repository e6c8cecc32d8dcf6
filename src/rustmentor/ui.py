"""Plain-text screens for the terminal shell."""

from __future__ import annotations

from .models import AdditionalResources, QuestionKind, ResourceLink
from .prompts import level_description
from .session import PENDING_STATES, SettingsSection, State, TutorSession
from .topics import IndexKind, LIBRARY_MIN_LEVEL

VISIBLE_LINES = 30
RULE = "-" * 60

HELP_LINES = [
    "=== Help ===",
    "Global:    q quit, ? help, s settings",
    "Welcome:   up/k down/j change level, Enter choose index",
    "Index:     up/k down/j move, Enter learn, g quiz, Esc back",
    "Learning:  up/k down/j scroll, n new module, g quiz, c create project, Esc back",
    "Quiz:      left/h right/l navigate, y/n or option id to answer, Enter build application",
    "App:       up/k down/j scroll, Enter create project, Esc back to quiz",
    "Settings:  Tab section, up/k down/j move, Enter/Space change, Esc close",
    "Type keys and press Enter; an empty line sends Enter. Named keys: up down left right esc tab space.",
    "Press Esc or ? to close help.",
]

PENDING_MESSAGES = {
    State.LOADING: "Generating your learning module",
    State.QUESTION_GENERATION: "Generating quiz questions",
    State.APPLICATION_GENERATION: "Generating your application",
}


def render(session: TutorSession) -> list[str]:
    """Return the lines of the current screen, overlays last."""
    if session.show_help:
        return list(HELP_LINES)

    screens = {
        State.WELCOME: _welcome,
        State.INDEX_SELECTION: _index_selection,
        State.LEVEL_TOO_LOW_POPUP: _level_popup,
        State.LEARNING: _learning,
        State.QUESTION_ANSWERING: _quiz,
        State.APPLICATION_DISPLAY: _application,
        State.SETTINGS: _settings,
    }
    screen = screens.get(session.state)
    lines = screen(session) if screen is not None else _pending(session)

    if session.notice:
        lines.extend(["", session.notice])
    if session.show_quit_confirmation:
        yes = "[Yes]" if session.quit_confirmation_selected else " Yes "
        no = " No " if session.quit_confirmation_selected else "[No]"
        lines.extend(["", RULE, "Quit rust-mentor?", f"  {yes}   {no}", "(left/right to choose, Enter to confirm)"])
    return lines


def _welcome(session: TutorSession) -> list[str]:
    level = session.selected_level
    return [
        "=== Rust Mentor ===",
        "Learn Rust with generated modules, quizzes and sample applications.",
        "",
        f"Level: {level}/10 ({level_description(level)})",
        "",
        "up/k down/j change level, Enter continue, s settings, ? help, q quit",
    ]


def _index_selection(session: TutorSession) -> list[str]:
    lines = ["=== Choose a topic index ===", f"Level {session.selected_level}", ""]
    for position, kind in enumerate(IndexKind):
        marker = ">" if position == session.index_cursor else " "
        lines.append(f"{marker} {kind.label}")
    lines.extend(["", "Enter learn a module, g jump to a quiz, Esc back"])
    return lines


def _level_popup(session: TutorSession) -> list[str]:
    return [
        RULE,
        "Level too low",
        f"The library index needs level {LIBRARY_MIN_LEVEL} or higher (you chose {session.selected_level}).",
        "Returning to level selection...",
        RULE,
    ]


def _pending(session: TutorSession) -> list[str]:
    message = PENDING_MESSAGES.get(session.state, "Working")
    topic = session.topic.topic if session.topic is not None else ""
    lines = [f"{message}...", ""]
    if topic:
        lines.append(f"Topic: {topic}")
    if session.state in PENDING_STATES:
        lines.append("Esc to cancel")
    return lines


def _scrolled(lines: list[str], offset: int) -> list[str]:
    start = min(offset, max(len(lines) - 1, 0))
    return lines[start : start + VISIBLE_LINES]


def _resource_lines(resources: AdditionalResources) -> list[str]:
    groups: list[tuple[str, list[ResourceLink]]] = [
        ("Official documentation", resources.official_docs),
        ("Community", resources.community_resources),
        ("crates.io", resources.crates_io),
        ("GitHub", resources.github_repos),
    ]
    lines = ["## Additional resources"]
    for heading, links in groups:
        if not links:
            continue
        lines.append(f"{heading}:")
        lines.extend(f"  - {link.title}: {link.url}" for link in links)
    return lines


def _learning(session: TutorSession) -> list[str]:
    module = session.current_module
    if module is None:
        return ["No module loaded.", "Esc back"]

    body = [module.explanation, ""]
    for index, snippet in enumerate(module.code_snippets, start=1):
        body.append(f"## Example {index}: {snippet.title}")
        if snippet.description:
            body.append(snippet.description)
        body.extend([RULE, snippet.code, RULE, ""])
    for index, exercise in enumerate(module.exercises, start=1):
        body.append(f"## Exercise {index}: {exercise.name}")
        if exercise.description:
            body.append(exercise.description)
        body.extend([RULE, exercise.code, RULE, ""])
    if module.resources is not None:
        body.extend(_resource_lines(module.resources))

    text_lines = "\n".join(body).splitlines()
    return [
        f"=== {module.topic} (level {session.selected_level}) ===",
        *_scrolled(text_lines, session.scroll_offset),
        "",
        "up/k down/j scroll, n new module, g quiz, c create project, Esc back",
    ]


def _quiz(session: TutorSession) -> list[str]:
    question_set = session.question_set
    question = question_set.current_question() if question_set is not None else None
    if question_set is None or question is None:
        return ["No questions available.", "Esc back"]

    answered, total = question_set.progress()
    lines = [
        f"=== Quiz: {question_set.topic} ===",
        f"Question {question_set.cursor + 1} of {total} ({answered} answered)",
        "",
        question.text,
        "",
    ]
    if question.kind is QuestionKind.BINARY:
        for key, label in (("Y", "Yes"), ("N", "No")):
            marker = "*" if question.selected_answer == label else " "
            lines.append(f"{marker} ({key}) {label}")
    else:
        for option in question.options:
            marker = "*" if question.selected_answer == option.id else " "
            lines.append(f"{marker} ({option.id}) {option.text}")
    footer = "left/h right/l navigate, Esc back"
    if question_set.is_complete():
        footer = "Enter generate application, " + footer
    lines.extend(["", footer])
    return lines


def _application(session: TutorSession) -> list[str]:
    application = session.generated_application
    if application is None:
        return ["No application generated.", "Esc back"]

    body = [application.description, ""]
    if application.features:
        body.append("## Features")
        body.extend(f"- {feature}" for feature in application.features)
        body.append("")
    for snippet in application.code_snippets:
        body.extend([f"## {snippet.title}", RULE, snippet.code, RULE, ""])
    text_lines = "\n".join(body).splitlines()
    return [
        f"=== {application.name} ===",
        *_scrolled(text_lines, session.scroll_offset),
        "",
        "up/k down/j scroll, Enter create project, Esc back",
    ]


def _on_off(value: bool) -> str:
    return "on" if value else "off"


def _settings(session: TutorSession) -> list[str]:
    service = session.settings
    toggles = service.learning_resources
    custom = service.content_customization
    generator = service.question_generator
    options = {
        SettingsSection.LEARNING_RESOURCES: [
            f"Official documentation: {_on_off(toggles.show_official_docs)}",
            f"Community resources: {_on_off(toggles.show_community_resources)}",
            f"crates.io: {_on_off(toggles.show_crates_io)}",
            f"GitHub repositories: {_on_off(toggles.show_github_repos)}",
        ],
        SettingsSection.CONTENT_CUSTOMIZATION: [
            f"Code complexity: {custom.code_complexity.value}",
            f"Explanation verbosity: {custom.explanation_verbosity.value}",
            f"Focus area: {custom.focus_area.value}",
        ],
        SettingsSection.LEARNING_GOALS: [f"Learning goal: {service.learning_goal.value}"],
        SettingsSection.QUESTION_GENERATOR: [
            f"Number of questions: {generator.num_questions}",
            f"Question type: {generator.question_type.value}",
        ],
    }
    tabs = "  ".join(
        f"[{section.value}]" if section is session.settings_section else section.value for section in SettingsSection
    )
    lines = ["=== Settings ===", f"Model: {service.model}", tabs, ""]
    for position, label in enumerate(options[session.settings_section]):
        marker = ">" if position == session.settings_cursor else " "
        lines.append(f"{marker} {label}")
    lines.extend(["", "Tab section, up/k down/j move, Enter/Space change, Esc close"])
    return lines
