from flask import Blueprint, jsonify, request

from models import db, Question
from classes.attempt_manager import AttemptManager
from classes.grader import Selection
from classes.quiz_manager import QuizManager
from classes.validators import validate_int
from utils.errors import NotFound
from utils.utils import login_required, current_user_id

# Taking quizzes: attempts and answers
attempt_bp = Blueprint("attempts", __name__)


@attempt_bp.route("/quizzes/<int:quiz_id>/attempts", methods=["POST"])
@login_required
def start_attempt(quiz_id):
    """Start a new attempt, or hand back the one already in progress."""
    user_id = current_user_id()
    quiz = QuizManager.get_quiz(quiz_id)
    attempt = AttemptManager.start_or_resume(user_id, quiz)

    return jsonify({
        "attempt": attempt.to_dict(include_answers=True),
        "quiz": quiz.to_dict(include_questions=True, reveal_answers=quiz.is_owned_by(user_id)),
        "attempts_used": AttemptManager.completed_count(quiz.id, user_id),
        "max_attempts": quiz.max_attempts,
    }), 200


@attempt_bp.route("/quizzes/<int:quiz_id>/attempts", methods=["GET"])
@login_required
def list_attempts(quiz_id):
    user_id = current_user_id()
    quiz = QuizManager.get_quiz(quiz_id)
    pagination = AttemptManager.list_attempts(quiz, user_id, page=request.args.get("page", 1, type=int))

    return jsonify({
        "quiz": {"id": quiz.id, "title": quiz.title, "total_points": quiz.total_points},
        "is_author": quiz.is_owned_by(user_id),
        "attempts": [attempt.to_dict() for attempt in pagination.items],
        "page": pagination.page,
        "pages": pagination.pages,
        "total": pagination.total,
        "stats": AttemptManager.attempt_stats(quiz, user_id),
    }), 200


@attempt_bp.route("/attempts/<int:attempt_id>", methods=["GET"])
@login_required
def get_attempt(attempt_id):
    user_id = current_user_id()
    attempt = AttemptManager.get_attempt(attempt_id)
    AttemptManager.ensure_viewer(attempt, user_id)

    quiz = attempt.quiz
    reveal = quiz.is_owned_by(user_id) or not attempt.is_in_progress
    return jsonify({
        "attempt": attempt.to_dict(include_answers=True),
        "quiz": quiz.to_dict(include_questions=True, reveal_answers=reveal),
        "is_owner": attempt.user_id == user_id,
        "is_author": quiz.is_owned_by(user_id),
    }), 200


@attempt_bp.route("/attempts/<int:attempt_id>/answers", methods=["POST"])
@login_required
def record_answer(attempt_id):
    """Payload: {"question_id": 12, "option_id": 55} | {"option_ids": [...]} | {"answer_text": "..."}"""
    attempt = AttemptManager.get_attempt(attempt_id)
    data = request.get_json(silent=True) or {}

    question_id = validate_int("question_id", data.get("question_id"))
    question = db.session.get(Question, question_id)
    if not question:
        raise NotFound("Question not found")

    answer = AttemptManager.record_answer(attempt, current_user_id(), question, Selection.from_payload(data))
    return jsonify({
        "message": "Answer saved.",
        "answer": answer.to_dict(),
        "score": attempt.score,
    }), 200


@attempt_bp.route("/attempts/<int:attempt_id>/answers/<int:question_id>", methods=["DELETE"])
@login_required
def clear_answer(attempt_id, question_id):
    attempt = AttemptManager.get_attempt(attempt_id)
    question = db.session.get(Question, question_id)
    if not question:
        raise NotFound("Question not found")

    attempt = AttemptManager.clear_answer(attempt, current_user_id(), question)
    return jsonify({"message": "Answer cleared.", "score": attempt.score}), 200


@attempt_bp.route("/attempts/<int:attempt_id>/finalize", methods=["POST"])
@login_required
def finalize_attempt(attempt_id):
    attempt = AttemptManager.get_attempt(attempt_id)
    attempt = AttemptManager.finalize(attempt, current_user_id())
    return jsonify({
        "message": f"Quiz submitted! You scored {attempt.score} out of {attempt.max_score} points.",
        "attempt": attempt.to_dict(include_answers=True),
    }), 200


@attempt_bp.route("/attempts/<int:attempt_id>/abandon", methods=["PATCH"])
@login_required
def abandon_attempt(attempt_id):
    attempt = AttemptManager.get_attempt(attempt_id)
    attempt = AttemptManager.abandon(attempt, current_user_id())
    return jsonify({"message": "Attempt abandoned.", "attempt": attempt.to_dict()}), 200


@attempt_bp.route("/attempts/<int:attempt_id>", methods=["DELETE"])
@login_required
def delete_attempt(attempt_id):
    attempt = AttemptManager.get_attempt(attempt_id)
    AttemptManager.delete_attempt(attempt, current_user_id())
    return jsonify({"message": "Attempt deleted."}), 200


@attempt_bp.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    """Counts, recent activity and the most attempted public quizzes for the acting user."""
    return jsonify(AttemptManager.dashboard(current_user_id())), 200
