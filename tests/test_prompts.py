from rustmentor.models import AnswerOption, Question, QuestionKind, QuestionSet
from rustmentor.prompts import (
    build_application_prompt,
    build_module_prompt,
    build_questions_prompt,
    level_description,
)
from rustmentor.settings import (
    ContentCustomization,
    ExplanationVerbosity,
    LearningGoal,
    QuestionGeneratorSettings,
    QuestionTypePreference,
)
from rustmentor.topics import Topic


def test_level_descriptions() -> None:
    assert level_description(1) == "Absolute Beginner"
    assert level_description(10) == "Expert"
    assert level_description(42) == "Intermediate"


def test_module_prompt_describes_topic_level_and_format() -> None:
    topic = Topic(topic="Error Handling: Recoverable Errors", source="The Book Ch 9.2", min_level=3)
    prompt = build_module_prompt(
        topic,
        1,
        ContentCustomization(explanation_verbosity=ExplanationVerbosity.DETAILED),
        LearningGoal.CLI_TOOLS,
    )
    assert "'Error Handling: Recoverable Errors'" in prompt
    assert "Absolute Beginner" in prompt
    assert "The Book Ch 9.2" in prompt
    assert "Command-Line Tools" in prompt
    assert "in depth" in prompt
    assert "<<<exercise 1: NAME>>>" in prompt


def test_questions_prompt_follows_generator_settings() -> None:
    prompt = build_questions_prompt(
        "Traits",
        LearningGoal.GENERAL,
        QuestionGeneratorSettings(num_questions=7, question_type=QuestionTypePreference.BINARY),
    )
    assert "generate 7 questions about Traits" in prompt
    assert "only binary" in prompt
    assert "[TYPE: multiple]" in prompt

    mixed = build_questions_prompt("Traits", LearningGoal.GENERAL, QuestionGeneratorSettings())
    assert "a mix of binary" in mixed


def test_application_prompt_lists_answers() -> None:
    question_set = QuestionSet(
        topic="Iterators",
        questions=[
            Question(id=0, text="Use closures?", kind=QuestionKind.BINARY, selected_answer="Yes"),
            Question(
                id=1,
                text="Which adapter?",
                kind=QuestionKind.MULTIPLE,
                options=[AnswerOption(id="1", text="map"), AnswerOption(id="2", text="filter")],
                selected_answer="2",
            ),
        ],
    )
    prompt = build_application_prompt(question_set, LearningGoal.DATA_PROCESSING)
    assert "Question: Use closures?\nAnswer: Yes" in prompt
    assert "Answer: 2 (filter)" in prompt
    assert "Data Processing" in prompt
    assert "<<<application_name>>>" in prompt
