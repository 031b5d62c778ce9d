from types import SimpleNamespace

import pytest

from models import db, Option, QuizAttemptAnswer
from classes.attempt_manager import AttemptManager
from classes.grader import Selection
from classes.question_manager import QuestionManager
from utils.errors import Forbidden, InvalidSubmission, ValidationError


def correct_option(question):
    return next(option for option in question.options if option.is_correct)


def wrong_option(question):
    return next(option for option in question.options if not option.is_correct)


class TestUpsertQuestion:

    def test_create_updates_quiz_total(self, make_quiz, single_question):
        quiz = make_quiz(single_question(points=10), single_question(points=5, prompt="Capital of Spain?"))

        assert quiz.total_points == 15
        assert [q.position for q in quiz.questions] == [1, 2]
        assert [o.position for o in quiz.questions[0].options] == [1, 2, 3]

    def test_update_points_and_delete_keep_total_in_sync(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question(points=10), single_question(points=5))
        first, second = quiz.questions

        QuestionManager.upsert_question(quiz, author.id, {"id": first.id, "points": 4})
        assert quiz.total_points == 9

        QuestionManager.delete_question(second, author.id)
        assert quiz.total_points == 4
        assert QuestionManager.current_total(quiz) == 4

    def test_update_without_options_keeps_existing(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]
        option_ids = [o.id for o in question.options]

        QuestionManager.upsert_question(quiz, author.id, {"id": question.id, "prompt": "Capital of France??"})
        assert [o.id for o in question.options] == option_ids
        assert question.prompt == "Capital of France??"

    def test_single_with_two_correct_options_is_rejected(self, make_quiz, author):
        quiz = make_quiz()
        data = {
            "prompt": "Pick one",
            "type": "single",
            "points": 1,
            "options": [{"text": "A", "is_correct": True}, {"text": "B", "is_correct": True}],
        }
        with pytest.raises(ValidationError):
            QuestionManager.upsert_question(quiz, author.id, data)
        assert quiz.questions == []
        assert quiz.total_points == 0

    def test_multiple_needs_a_correct_option(self, make_quiz, author):
        quiz = make_quiz()
        data = {
            "prompt": "Pick some",
            "type": "multiple",
            "options": [{"text": "A"}, {"text": "B"}],
        }
        with pytest.raises(ValidationError):
            QuestionManager.upsert_question(quiz, author.id, data)

    def test_true_false_needs_exactly_two_options(self, make_quiz, author):
        quiz = make_quiz()
        data = {
            "prompt": "The sky is green.",
            "type": "true_false",
            "options": [{"text": "True"}, {"text": "False", "is_correct": True}, {"text": "Maybe"}],
        }
        with pytest.raises(ValidationError):
            QuestionManager.upsert_question(quiz, author.id, data)

    def test_identification_requires_canonical_answer(self, make_quiz, author):
        quiz = make_quiz()
        with pytest.raises(ValidationError):
            QuestionManager.upsert_question(quiz, author.id, {"prompt": "Name it", "type": "identification"})

    def test_identification_rejects_options(self, make_quiz, author):
        quiz = make_quiz()
        data = {
            "prompt": "Name it",
            "type": "identification",
            "correct_answer": "Paris",
            "options": [{"text": "Paris", "is_correct": True}, {"text": "Rome"}],
        }
        with pytest.raises(ValidationError):
            QuestionManager.upsert_question(quiz, author.id, data)

    def test_points_must_be_positive_integer(self, make_quiz, single_question, author):
        quiz = make_quiz()
        for points in (0, -3, "10", True):
            with pytest.raises(ValidationError):
                QuestionManager.upsert_question(quiz, author.id, single_question(points=points))

    def test_non_author_cannot_add_questions(self, make_quiz, single_question, taker):
        quiz = make_quiz()
        with pytest.raises(Forbidden):
            QuestionManager.upsert_question(quiz, taker.id, single_question())


class TestOptionCorrectness:

    def test_marking_single_option_correct_clears_siblings(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]
        old, new = correct_option(question), wrong_option(question)

        QuestionManager.set_option_correctness(new, author.id, True)

        assert new.is_correct is True
        assert old.is_correct is False
        assert sum(1 for o in question.options if o.is_correct) == 1

    def test_any_sequence_of_updates_keeps_at_most_one_correct(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]
        first, second, third = question.options

        for option, flag in [(second, True), (third, True), (third, False), (first, True), (second, True)]:
            QuestionManager.set_option_correctness(option, author.id, flag)
            assert sum(1 for o in question.options if o.is_correct) <= 1

        assert correct_option(question).id == second.id

    def test_clearing_the_only_correct_option_is_allowed(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]

        QuestionManager.set_option_correctness(correct_option(question), author.id, False)
        assert question.correct_option_ids == []

    def test_multiple_allows_several_correct(self, make_quiz, multiple_question, author):
        quiz = make_quiz(multiple_question())
        question = quiz.questions[0]

        QuestionManager.set_option_correctness(wrong_option(question), author.id, True)
        assert all(o.is_correct for o in question.options)

    def test_add_correct_option_to_single_replaces_the_old_one(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]

        option = QuestionManager.add_option(question, author.id, {"text": "Marseille", "is_correct": True})

        assert option.position == 4
        assert question.correct_option_ids == [option.id]

    def test_update_option_enforces_single_correct(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]
        target = wrong_option(question)

        QuestionManager.update_option(target, author.id, {"text": "Lyon!", "is_correct": True})
        assert question.correct_option_ids == [target.id]
        assert target.text == "Lyon!"

    def test_identification_questions_take_no_options(self, make_quiz, identification_question, author):
        quiz = make_quiz(identification_question())
        with pytest.raises(ValidationError):
            QuestionManager.add_option(quiz.questions[0], author.id, {"text": "Paris"})

    def test_non_author_cannot_change_correctness(self, make_quiz, single_question, taker):
        quiz = make_quiz(single_question())
        option = wrong_option(quiz.questions[0])
        with pytest.raises(Forbidden):
            QuestionManager.set_option_correctness(option, taker.id, True)
        assert db.session.get(Option, option.id).is_correct is False

    def test_true_false_cannot_get_a_third_option(self, make_quiz, author):
        quiz = make_quiz({
            "prompt": "The sky is blue.",
            "type": "true_false",
            "options": [{"text": "True", "is_correct": True}, {"text": "False"}],
        })
        question = quiz.questions[0]

        with pytest.raises(ValidationError):
            QuestionManager.add_option(question, author.id, {"text": "Sometimes"})
        assert len(question.options) == 2

    def test_options_cannot_drop_below_two(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]

        QuestionManager.delete_option(question.options[-1], author.id)
        assert len(question.options) == 2

        with pytest.raises(ValidationError):
            QuestionManager.delete_option(question.options[-1], author.id)
        assert len(question.options) == 2

    def test_reorder_options(self, make_quiz, single_question, author):
        quiz = make_quiz(single_question())
        question = quiz.questions[0]
        first, second, third = question.options

        QuestionManager.reorder_options(question, author.id, [third.id, first.id, second.id])
        assert (third.position, first.position, second.position) == (1, 2, 3)


class TestValidateSubmission:

    def test_single_rejects_more_than_one_option(self, make_quiz, single_question):
        question = make_quiz(single_question()).questions[0]
        ids = [o.id for o in question.options][:2]
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection(option_ids=ids))

    def test_single_rejects_empty_selection(self, make_quiz, single_question):
        question = make_quiz(single_question()).questions[0]
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection())

    def test_multiple_rejects_empty_selection(self, make_quiz, multiple_question):
        question = make_quiz(multiple_question()).questions[0]
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection(option_ids=[]))

    def test_foreign_option_is_rejected(self, make_quiz, single_question):
        quiz = make_quiz(single_question(), single_question(prompt="Capital of Italy?"))
        first, second = quiz.questions
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(first, Selection(option_ids=[second.options[0].id]))

    def test_non_integer_ids_are_rejected(self, make_quiz, single_question):
        question = make_quiz(single_question()).questions[0]
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection(option_ids=["1"]))

    def test_identification_needs_text(self, make_quiz, identification_question):
        question = make_quiz(identification_question()).questions[0]
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection(text="   "))

    def test_question_from_another_quiz_is_rejected(self, make_quiz, single_question):
        question = make_quiz(single_question()).questions[0]
        attempt = SimpleNamespace(quiz_id=question.quiz_id + 1)
        with pytest.raises(InvalidSubmission):
            QuestionManager.validate_submission(question, Selection(option_ids=[question.options[0].id]), attempt)

    def test_valid_selection_is_returned(self, make_quiz, multiple_question):
        question = make_quiz(multiple_question()).questions[0]
        selection = Selection(option_ids=question.correct_option_ids)
        assert QuestionManager.validate_submission(question, selection) is selection


class TestDeleteQuestion:

    def test_in_progress_attempts_are_resummed(self, make_quiz, single_question, author, taker):
        quiz = make_quiz(single_question(points=10), single_question(points=5, prompt="Capital of Spain?"))
        first, second = quiz.questions
        attempt = AttemptManager.start_or_resume(taker.id, quiz)
        AttemptManager.record_answer(attempt, taker.id, first, Selection(option_ids=[correct_option(first).id]))
        AttemptManager.record_answer(attempt, taker.id, second, Selection(option_ids=[correct_option(second).id]))
        assert attempt.score == 15

        QuestionManager.delete_question(second, author.id)

        assert attempt.score == 10
        assert len(attempt.answers) == 1
        assert quiz.total_points == 10

    def test_finished_attempts_keep_their_answers(self, make_quiz, single_question, author, taker):
        quiz = make_quiz(single_question(points=10), single_question(points=5, prompt="Capital of Spain?"))
        first, second = quiz.questions
        attempt = AttemptManager.start_or_resume(taker.id, quiz)
        AttemptManager.record_answer(attempt, taker.id, second, Selection(option_ids=[correct_option(second).id]))
        AttemptManager.finalize(attempt, taker.id)

        QuestionManager.delete_question(second, author.id)

        answers = QuizAttemptAnswer.query.filter_by(attempt_id=attempt.id).all()
        assert [answer.question_id for answer in answers] == [None]
        assert attempt.score == sum(answer.points_awarded for answer in answers) == 5
        assert attempt.status == "completed"
        assert quiz.total_points == 10
