from rustmentor.models import AnswerOption, Question, QuestionKind, QuestionSet


def _question_set() -> QuestionSet:
    return QuestionSet(
        topic="Lifetimes",
        questions=[
            Question(id=0, text="Use references?", kind=QuestionKind.BINARY),
            Question(
                id=1,
                text="Which lifetime?",
                kind=QuestionKind.MULTIPLE,
                options=[AnswerOption(id="a", text="'static"), AnswerOption(id="b", text="'a")],
            ),
            Question(id=2, text="Return owned data?", kind=QuestionKind.BINARY),
        ],
    )


def test_cursor_stays_in_bounds() -> None:
    question_set = _question_set()
    assert question_set.previous_question() is None
    assert question_set.cursor == 0

    assert question_set.next_question() is question_set.questions[1]
    assert question_set.next_question() is question_set.questions[2]
    assert question_set.next_question() is None
    assert question_set.cursor == 2

    for _ in range(5):
        question_set.previous_question()
    assert question_set.cursor == 0


def test_binary_answers_map_to_yes_and_no() -> None:
    question_set = _question_set()
    assert question_set.select_answer("Y") is True
    assert question_set.questions[0].selected_answer == "Yes"
    assert question_set.select_answer("n") is True
    assert question_set.questions[0].selected_answer == "No"
    assert question_set.select_answer("x") is False
    assert question_set.questions[0].selected_answer == "No"


def test_multiple_choice_answers_match_option_ids_case_insensitively() -> None:
    question_set = _question_set()
    question_set.next_question()
    assert question_set.select_answer("y") is False
    assert question_set.current_question().selected_answer is None
    assert question_set.select_answer("B") is True
    assert question_set.current_question().selected_answer == "b"
    assert question_set.current_question().selected_option() == AnswerOption(id="b", text="'a")


def test_is_complete_requires_every_answer() -> None:
    question_set = _question_set()
    assert not question_set.is_complete()
    question_set.select_answer("y")
    question_set.next_question()
    question_set.select_answer("a")
    assert question_set.progress() == (2, 3)
    assert not question_set.is_complete()
    question_set.next_question()
    question_set.select_answer("n")
    assert question_set.is_complete()
    assert question_set.progress() == (3, 3)


def test_empty_question_set_is_never_complete() -> None:
    question_set = QuestionSet(topic="T", questions=[])
    assert question_set.current_question() is None
    assert question_set.select_answer("y") is False
    assert question_set.next_question() is None
    assert not question_set.is_complete()


def test_question_kind_labels() -> None:
    assert QuestionKind.BINARY.label == "Yes/No"
    assert QuestionKind.MULTIPLE.label == "Multiple Choice"
