from flask import current_app
from sqlalchemy import func

from models import db, Question, Option, QuizAttempt, QuizAttemptAnswer
from models.quiz_questions import QUESTION_TYPES, SINGLE_CORRECT_TYPES
from classes.validators import (
    validate_required, validate_length, validate_choice, validate_int, validate_bool, validate_id_list,
)
from utils.errors import Forbidden, InvalidSubmission, NotFound, ValidationError
from utils.utils import atomic

PROMPT_MAX_LENGTH = 1000
OPTION_MAX_LENGTH = 1000


class QuestionManager:
    """Question and option authoring, plus the correctness rules answers are checked against."""

    @staticmethod
    def ensure_owner(quiz, user_id):
        if not quiz.is_owned_by(user_id):
            raise Forbidden("You do not have permission to modify this quiz.")

    # Submissions
    # --------------------------------------------------------------------------------
    @staticmethod
    def validate_submission(question, selection, attempt=None):
        """Check a selection fits the question's type before it is graded.

        Raises InvalidSubmission; returns the selection unchanged otherwise.
        """
        if attempt is not None and question.quiz_id != attempt.quiz_id:
            raise InvalidSubmission("Question does not belong to this quiz.")

        if question.type == "identification":
            if selection.option_ids:
                raise InvalidSubmission("Identification questions take a text answer, not options.")
            if not isinstance(selection.text, str) or not selection.text.strip():
                raise InvalidSubmission("An answer is required for this question.")
            return selection

        if any(isinstance(option_id, bool) or not isinstance(option_id, int) for option_id in selection.option_ids):
            raise InvalidSubmission("Option ids must be integers.")

        if question.type in SINGLE_CORRECT_TYPES:
            if len(selection.option_ids) != 1:
                raise InvalidSubmission("Exactly one option must be selected for this question.")
        elif not selection.option_ids:
            raise InvalidSubmission("Select at least one option for this question.")

        allowed = {option.id for option in question.options}
        if not set(selection.option_ids) <= allowed:
            raise InvalidSubmission("One or more options do not belong to this question.")
        return selection

    # Correctness and totals
    # --------------------------------------------------------------------------------
    @staticmethod
    def enforce_single_correctness(question, touched_option):
        """Clear every sibling's correct flag when a single-answer option is marked correct."""
        if question.type not in SINGLE_CORRECT_TYPES or not touched_option.is_correct:
            return []

        cleared = []
        for sibling in question.options:
            if sibling is not touched_option and sibling.is_correct:
                sibling.is_correct = False
                cleared.append(sibling)
        db.session.flush()
        return cleared

    @staticmethod
    def current_total(quiz):
        """Sum of the quiz's question points as stored right now."""
        total = (
            db.session.query(func.coalesce(func.sum(Question.points), 0))
            .filter(Question.quiz_id == quiz.id)
            .scalar()
        )
        return int(total)

    @staticmethod
    def recompute_quiz_total(quiz):
        quiz.total_points = QuestionManager.current_total(quiz)
        db.session.flush()
        return quiz.total_points

    # Questions
    # --------------------------------------------------------------------------------
    @staticmethod
    @atomic
    def upsert_question(quiz, user_id, data):
        """Create a question (no ``id`` in data) or update one, then refresh the quiz total.

        ``options`` replaces the existing options when given; leaving it out keeps them.
        """
        QuestionManager.ensure_owner(quiz, user_id)

        question_id = data.get("id")
        if question_id is not None:
            question = Question.query.filter_by(id=question_id, quiz_id=quiz.id).first()
            if not question:
                raise NotFound("Question not found")
        else:
            question = None

        prompt = data.get("prompt", question.prompt if question else None)
        qtype = data.get("type", question.type if question else "single")
        points = data.get("points", question.points if question else 1)
        correct_answer = data.get("correct_answer", question.correct_answer if question else None)
        options_data = data.get("options")

        validate_required("prompt", prompt)
        validate_length("prompt", prompt, PROMPT_MAX_LENGTH)
        validate_choice("type", qtype, QUESTION_TYPES)
        validate_int("points", points, minimum=1, maximum=current_app.config["QUESTION_MAX_POINTS"])
        position = validate_int("position", data.get("position"), minimum=0, nullable=True)

        if qtype == "identification":
            validate_required("correct_answer", correct_answer)
            if not isinstance(correct_answer, str):
                raise ValidationError("correct_answer must be text.")
            if options_data:
                raise ValidationError("Identification questions do not take options.")
            new_options = []
        else:
            correct_answer = None
            if options_data is None:
                if question is None:
                    raise ValidationError("options are required for this question type.")
                new_options = None
                if qtype != question.type:
                    QuestionManager._validate_correct_flags(qtype, [o.is_correct for o in question.options])
            else:
                new_options = QuestionManager._parse_options(options_data)
                QuestionManager._validate_correct_flags(qtype, [o["is_correct"] for o in new_options])

        if question is None:
            if position is None:
                position = QuestionManager._next_question_position(quiz)
            question = Question(quiz=quiz)
            db.session.add(question)
            created = True
        else:
            created = False

        question.prompt = prompt
        question.type = qtype
        question.points = points
        question.correct_answer = correct_answer
        if position is not None:
            question.position = position
        if "explanation" in data:
            question.explanation = data.get("explanation")

        if new_options is not None:
            question.options = [
                Option(
                    text=option["text"],
                    is_correct=option["is_correct"],
                    position=option.get("position", index + 1),
                    explanation=option.get("explanation"),
                )
                for index, option in enumerate(new_options)
            ]

        db.session.flush()
        QuestionManager.recompute_quiz_total(quiz)
        current_app.logger.info(
            "%s question %s on quiz %s (quiz total now %s)",
            "Created" if created else "Updated", question.id, quiz.id, quiz.total_points,
        )
        return question

    @staticmethod
    @atomic
    def delete_question(question, user_id):
        quiz = question.quiz
        QuestionManager.ensure_owner(quiz, user_id)

        # in-progress attempts lose this question's answer and are re-summed;
        # finished attempts keep theirs with question_id nulled
        open_answers = (
            QuizAttemptAnswer.query.join(QuizAttempt, QuizAttemptAnswer.attempt_id == QuizAttempt.id)
            .filter(QuizAttemptAnswer.question_id == question.id, QuizAttempt.status == "in_progress")
            .all()
        )
        affected = list({answer.attempt_id: answer.attempt for answer in open_answers}.values())
        for answer in open_answers:
            db.session.delete(answer)
        db.session.flush()

        question_id = question.id
        quiz.questions.remove(question)
        db.session.flush()

        for attempt in affected:
            attempt.recompute_score()
        QuestionManager.recompute_quiz_total(quiz)
        current_app.logger.info("Deleted question %s from quiz %s", question_id, quiz.id)
        return quiz

    @staticmethod
    @atomic
    def reorder_questions(quiz, user_id, order):
        QuestionManager.ensure_owner(quiz, user_id)
        validate_id_list("order", order)

        by_id = {q.id: q for q in quiz.questions}
        for index, question_id in enumerate(q_id for q_id in order if q_id in by_id):
            by_id[question_id].position = index + 1
        return quiz

    # Options
    # --------------------------------------------------------------------------------
    @staticmethod
    @atomic
    def add_option(question, user_id, data):
        QuestionManager.ensure_owner(question.quiz, user_id)
        QuestionManager._ensure_option_question(question)
        QuestionManager._lock_question(question)
        if question.type == "true_false" and len(question.options) >= 2:
            raise ValidationError("True/false questions need exactly two options.")

        text = data.get("text")
        QuestionManager._validate_option_text(text)
        is_correct = validate_bool("is_correct", data.get("is_correct", False))
        position = validate_int("position", data.get("position"), minimum=0, nullable=True)
        if position is None:
            position = max((o.position for o in question.options), default=0) + 1

        option = Option(
            text=text,
            is_correct=is_correct,
            position=position,
            explanation=data.get("explanation"),
        )
        question.options.append(option)
        db.session.flush()

        QuestionManager.enforce_single_correctness(question, option)
        return option

    @staticmethod
    @atomic
    def update_option(option, user_id, data):
        question = option.question
        QuestionManager.ensure_owner(question.quiz, user_id)
        QuestionManager._lock_question(question)

        if "text" in data:
            QuestionManager._validate_option_text(data.get("text"))
            option.text = data.get("text")
        if data.get("position") is not None:
            option.position = validate_int("position", data.get("position"), minimum=0)
        if "explanation" in data:
            option.explanation = data.get("explanation")
        if "is_correct" in data:
            option.is_correct = validate_bool("is_correct", data.get("is_correct"))
            QuestionManager.enforce_single_correctness(question, option)
        return option

    @staticmethod
    @atomic
    def set_option_correctness(option, user_id, is_correct):
        question = option.question
        QuestionManager.ensure_owner(question.quiz, user_id)
        QuestionManager._ensure_option_question(question)
        QuestionManager._lock_question(question)

        option.is_correct = validate_bool("is_correct", is_correct)
        cleared = QuestionManager.enforce_single_correctness(question, option)
        current_app.logger.debug(
            "Option %s correct=%s, cleared siblings %s", option.id, option.is_correct, [o.id for o in cleared],
        )
        return option

    @staticmethod
    @atomic
    def delete_option(option, user_id):
        question = option.question
        QuestionManager.ensure_owner(question.quiz, user_id)
        QuestionManager._lock_question(question)
        if len(question.options) <= 2:
            raise ValidationError("Questions with options need at least two options.")

        question.options.remove(option)
        return question

    @staticmethod
    @atomic
    def reorder_options(question, user_id, order):
        QuestionManager.ensure_owner(question.quiz, user_id)
        validate_id_list("order", order)

        by_id = {o.id: o for o in question.options}
        for index, option_id in enumerate(o_id for o_id in order if o_id in by_id):
            by_id[option_id].position = index + 1
        return question

    # Helpers
    # --------------------------------------------------------------------------------
    @staticmethod
    def _lock_question(question):
        # serialises concurrent correctness writes on the same question
        Question.query.filter_by(id=question.id).with_for_update().first()

    @staticmethod
    def _ensure_option_question(question):
        if not question.uses_options:
            raise ValidationError("Identification questions do not take options.")

    @staticmethod
    def _validate_option_text(text):
        validate_required("text", text)
        validate_length("text", text, OPTION_MAX_LENGTH)

    @staticmethod
    def _parse_options(options_data):
        if not isinstance(options_data, list):
            raise ValidationError("options must be a list.")

        parsed = []
        for option in options_data:
            if not isinstance(option, dict):
                raise ValidationError("Each option must be an object.")
            QuestionManager._validate_option_text(option.get("text"))
            entry = {
                "text": option["text"],
                "is_correct": validate_bool("is_correct", option.get("is_correct", False)),
                "explanation": option.get("explanation"),
            }
            if option.get("position") is not None:
                entry["position"] = validate_int("position", option.get("position"), minimum=0)
            parsed.append(entry)
        return parsed

    @staticmethod
    def _validate_correct_flags(qtype, flags):
        if len(flags) < 2:
            raise ValidationError("Questions with options need at least two options.")
        if qtype == "true_false" and len(flags) != 2:
            raise ValidationError("True/false questions need exactly two options.")

        correct = sum(1 for flag in flags if flag)
        if qtype in SINGLE_CORRECT_TYPES and correct != 1:
            raise ValidationError("Exactly one option must be marked correct.")
        if qtype == "multiple" and correct < 1:
            raise ValidationError("At least one option must be marked correct.")

    @staticmethod
    def _next_question_position(quiz):
        current = db.session.query(func.max(Question.position)).filter(Question.quiz_id == quiz.id).scalar()
        return (current or 0) + 1
