"""Prompt templates for module, quiz and application generation.

Each template spells out the reply grammar that ``rustmentor.grammar`` parses.
"""

from __future__ import annotations

from .models import QuestionKind, QuestionSet
from .settings import (
    CodeComplexity,
    ContentCustomization,
    ExplanationVerbosity,
    FocusArea,
    LearningGoal,
    QuestionGeneratorSettings,
    QuestionTypePreference,
)
from .topics import Topic

LEVEL_DESCRIPTIONS = {
    1: "Absolute Beginner",
    2: "Beginner",
    3: "Early Intermediate",
    4: "Intermediate",
    5: "Solid Intermediate",
    6: "Advanced Intermediate",
    7: "Early Advanced",
    8: "Advanced",
    9: "Very Advanced",
    10: "Expert",
}

PERSONA = "You are RustMentor, an AI assistant specialized in teaching Rust programming."

MODULE_FORMAT = """
Format your response exactly as follows, without JSON and without extra commentary:

<<<explanation: TITLE>>>
Explanation of the topic in markdown prose.
<<<code_snippet 1: TITLE>>>
# code snippet: ONE LINE DESCRIPTION
Rust code for the first example.
<<<code_snippet 2: TITLE>>>
# code snippet: ONE LINE DESCRIPTION
Rust code for the second example.
<<<exercise 1: NAME>>>
# exercise description: ONE LINE DESCRIPTION
Rust starter code with TODO comments for the learner.
<<<exercise 2: NAME>>>
# exercise description: ONE LINE DESCRIPTION
Rust starter code with TODO comments for the learner.
"""

QUESTIONS_FORMAT = """
Format your response as follows:

<<<question:1>>>
QUESTION TEXT
[TYPE: binary]
[YESNO
(Y) Yes
(N) No]
<<<end>>>

<<<question:2>>>
QUESTION TEXT
[TYPE: multiple]
[OPTIONS
(1) Option 1
(2) Option 2
(3) Option 3
(4) Option 4]
<<<end>>>
"""

APPLICATION_FORMAT = """
Format your response as follows:

<<<application_name>>>
NAME OF THE APPLICATION
<<<end>>>

<<<application_description>>>
DESCRIPTION OF THE APPLICATION
<<<end>>>

<<<application_features>>>
- FEATURE 1
- FEATURE 2
<<<end>>>

<<<code_snippet:Main Code>>>
CONTENTS OF src/main.rs
<<<end>>>

<<<code_snippet:Additional Module 1>>>
CODE FOR AN ADDITIONAL MODULE
<<<end>>>

The first code snippet must be the program entry point. You can include more code snippets as needed.
"""

COMPLEXITY_HINTS = {
    CodeComplexity.SIMPLE: "Keep code examples short and focused on a single idea.",
    CodeComplexity.MODERATE: "Use realistic but compact code examples.",
    CodeComplexity.COMPLEX: "Use larger code examples that combine several language features.",
}

VERBOSITY_HINTS = {
    ExplanationVerbosity.CONCISE: "Keep the explanation brief.",
    ExplanationVerbosity.MODERATE: "Explain the topic in a few paragraphs.",
    ExplanationVerbosity.DETAILED: "Explain the topic in depth, including edge cases and common mistakes.",
}

FOCUS_HINTS = {
    FocusArea.CONCEPTS: "Spend most of the module on concepts.",
    FocusArea.CODE_EXAMPLES: "Spend most of the module on code examples.",
    FocusArea.EXERCISES: "Spend most of the module on exercises.",
    FocusArea.BALANCED: "Balance concepts, examples and exercises.",
}


def level_description(level: int) -> str:
    return LEVEL_DESCRIPTIONS.get(level, "Intermediate")


def build_module_prompt(
    topic: Topic, level: int, customization: ContentCustomization, goal: LearningGoal
) -> str:
    """Prompt for one tutoring module."""
    description = level_description(level)
    return (
        f"{PERSONA}\n\n"
        f"Create a learning module about '{topic.topic}' for a {description} level Rust programmer "
        f"whose learning goal is {goal.value}.\n"
        f"The source of this topic is: {topic.source}.\n\n"
        "The learning module should include:\n"
        "1. A clear explanation of the topic\n"
        "2. At least two code examples demonstrating the concept\n"
        "3. Two practice exercises\n\n"
        f"{COMPLEXITY_HINTS[customization.code_complexity]}\n"
        f"{VERBOSITY_HINTS[customization.explanation_verbosity]}\n"
        f"{FOCUS_HINTS[customization.focus_area]}\n"
        f"{MODULE_FORMAT}"
    )


def build_questions_prompt(topic: str, goal: LearningGoal, generator: QuestionGeneratorSettings) -> str:
    """Prompt for a quiz that steers the generated application."""
    if generator.question_type is QuestionTypePreference.BINARY:
        mix = "Generate only binary (yes/no) questions."
    elif generator.question_type is QuestionTypePreference.MULTIPLE:
        mix = "Generate only multiple choice questions with 4 options each."
    else:
        mix = "Generate a mix of binary (yes/no) and multiple choice questions (with 4 options each)."
    return (
        f"{PERSONA}\n\n"
        f"I need you to generate {generator.num_questions} questions about {topic} "
        f"in the context of {goal.value}.\n\n"
        f"{mix}\n"
        "The answers will guide the generation of a sample Rust application related to the topic "
        "and the learning goal, so the questions can cover interesting features and sub-subjects.\n"
        f"{QUESTIONS_FORMAT}"
    )


def build_application_prompt(question_set: QuestionSet, goal: LearningGoal) -> str:
    """Prompt for an application based on answered quiz questions."""
    lines = [
        PERSONA,
        "",
        f"Based on the following questions and answers about {question_set.topic} "
        f"(learning goal: {goal.value}), generate a Rust application that demonstrates the concepts covered.",
        "",
    ]
    for question in question_set.questions:
        lines.append(f"Question: {question.text}")
        option = question.selected_option() if question.kind is QuestionKind.MULTIPLE else None
        if option is not None:
            lines.append(f"Answer: {question.selected_answer} ({option.text})")
        elif question.selected_answer:
            lines.append(f"Answer: {question.selected_answer}")
        lines.append("")
    lines.extend(
        [
            "Generate a Rust application that:",
            "1. Is relevant to the topic and the user's answers",
            "2. Demonstrates the concepts covered in the questions",
            "3. Is functional and can be compiled and run",
            APPLICATION_FORMAT,
        ]
    )
    return "\n".join(lines)
