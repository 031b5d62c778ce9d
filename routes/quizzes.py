from flask import Blueprint, jsonify, request

from models import db, Question, Option
from classes.quiz_manager import QuizManager
from classes.question_manager import QuestionManager
from classes.attempt_manager import AttemptManager
from utils.errors import NotFound
from utils.utils import login_required, current_user_id

# Authoring blueprint: quizzes, questions and options
quiz_bp = Blueprint("quizzes", __name__)


def get_question(question_id):
    question = db.session.get(Question, question_id)
    if not question:
        raise NotFound("Question not found")
    return question


def get_option(option_id):
    option = db.session.get(Option, option_id)
    if not option:
        raise NotFound("Option not found")
    return option


def page_args():
    return request.args.get("page", 1, type=int), request.args.get("per_page", 12, type=int)


def paginated(pagination, items):
    return {
        "items": items,
        "page": pagination.page,
        "per_page": pagination.per_page,
        "total": pagination.total,
        "pages": pagination.pages,
    }


#                                                         QUIZZES
#_____________________________________________________________________________________________________________
@quiz_bp.route("", methods=["GET"])
@login_required
def list_public_quizzes():
    page, per_page = page_args()
    pagination = QuizManager.list_public(page=page, per_page=per_page)
    return jsonify(paginated(pagination, [quiz.to_dict() for quiz in pagination.items])), 200


@quiz_bp.route("/mine", methods=["GET"])
@login_required
def list_my_quizzes():
    page, per_page = page_args()
    user_id = current_user_id()
    pagination = QuizManager.list_mine(user_id, page=page, per_page=per_page)

    items = []
    for quiz in pagination.items:
        latest = AttemptManager.latest_attempt(quiz.id, user_id)
        items.append({**quiz.to_dict(), "latest_attempt": latest.to_dict() if latest else None})
    return jsonify(paginated(pagination, items)), 200


@quiz_bp.route("/new", methods=["POST"])
@login_required
def create_quiz():
    data = request.get_json(silent=True) or {}
    quiz = QuizManager.create_quiz(current_user_id(), data)
    return jsonify({"message": "Quiz created successfully", "quiz": quiz.to_dict()}), 201


@quiz_bp.route("/<int:quiz_id>", methods=["GET"])
@login_required
def get_quiz(quiz_id):
    user_id = current_user_id()
    quiz = QuizManager.get_visible_quiz(quiz_id, user_id)
    # only the author sees which options are correct
    return jsonify(quiz.to_dict(include_questions=True, reveal_answers=quiz.is_owned_by(user_id))), 200


@quiz_bp.route("/<int:quiz_id>/edit", methods=["PUT"])
@login_required
def edit_quiz(quiz_id):
    quiz = QuizManager.get_quiz(quiz_id)
    data = request.get_json(silent=True) or {}
    quiz = QuizManager.update_quiz(quiz, current_user_id(), data)
    return jsonify({"message": "Quiz updated successfully", "quiz": quiz.to_dict()}), 200


@quiz_bp.route("/<int:quiz_id>/delete", methods=["DELETE"])
@login_required
def delete_quiz(quiz_id):
    quiz = QuizManager.get_quiz(quiz_id)
    QuizManager.delete_quiz(quiz, current_user_id())
    return jsonify({"message": "Quiz deleted successfully"}), 200


#                                                         QUESTIONS
#_____________________________________________________________________________________________________________
@quiz_bp.route("/<int:quiz_id>/questions/new", methods=["POST"])
@login_required
def add_question(quiz_id):
    quiz = QuizManager.get_quiz(quiz_id)
    data = dict(request.get_json(silent=True) or {})
    data.pop("id", None)
    question = QuestionManager.upsert_question(quiz, current_user_id(), data)
    return jsonify({
        "message": "Question added",
        "question": question.to_dict(reveal_answers=True),
        "total_points": quiz.total_points,
    }), 201


@quiz_bp.route("/<int:quiz_id>/questions/<int:question_id>/edit", methods=["PUT"])
@login_required
def edit_question(quiz_id, question_id):
    quiz = QuizManager.get_quiz(quiz_id)
    data = dict(request.get_json(silent=True) or {})
    data["id"] = question_id
    question = QuestionManager.upsert_question(quiz, current_user_id(), data)
    return jsonify({
        "message": "Question updated successfully",
        "question": question.to_dict(reveal_answers=True),
        "total_points": quiz.total_points,
    }), 200


@quiz_bp.route("/<int:quiz_id>/questions/<int:question_id>/delete", methods=["DELETE"])
@login_required
def delete_question(quiz_id, question_id):
    question = get_question(question_id)
    if question.quiz_id != quiz_id:
        raise NotFound("Question not found")
    quiz = QuestionManager.delete_question(question, current_user_id())
    return jsonify({"message": "Question deleted", "total_points": quiz.total_points}), 200


@quiz_bp.route("/<int:quiz_id>/questions/reorder", methods=["PATCH"])
@login_required
def reorder_questions(quiz_id):
    quiz = QuizManager.get_quiz(quiz_id)
    data = request.get_json(silent=True) or {}
    QuestionManager.reorder_questions(quiz, current_user_id(), data.get("order"))
    return jsonify({"message": "Questions reordered"}), 200


#                                                         OPTIONS
#_____________________________________________________________________________________________________________
@quiz_bp.route("/questions/<int:question_id>/options/new", methods=["POST"])
@login_required
def add_option(question_id):
    question = get_question(question_id)
    data = request.get_json(silent=True) or {}
    option = QuestionManager.add_option(question, current_user_id(), data)
    return jsonify({"message": "Option added", "option": option.to_dict(reveal_answers=True)}), 201


@quiz_bp.route("/options/<int:option_id>/edit", methods=["PUT"])
@login_required
def edit_option(option_id):
    option = get_option(option_id)
    data = request.get_json(silent=True) or {}
    option = QuestionManager.update_option(option, current_user_id(), data)
    return jsonify({"message": "Option updated", "option": option.to_dict(reveal_answers=True)}), 200


@quiz_bp.route("/options/<int:option_id>/correctness", methods=["PATCH"])
@login_required
def set_option_correctness(option_id):
    option = get_option(option_id)
    data = request.get_json(silent=True) or {}
    option = QuestionManager.set_option_correctness(option, current_user_id(), data.get("is_correct"))
    question = option.question
    return jsonify({
        "message": "Option updated",
        "options": [o.to_dict(reveal_answers=True) for o in question.options],
    }), 200


@quiz_bp.route("/options/<int:option_id>/delete", methods=["DELETE"])
@login_required
def delete_option(option_id):
    option = get_option(option_id)
    QuestionManager.delete_option(option, current_user_id())
    return jsonify({"message": "Option deleted"}), 200


@quiz_bp.route("/questions/<int:question_id>/options/reorder", methods=["PATCH"])
@login_required
def reorder_options(question_id):
    question = get_question(question_id)
    data = request.get_json(silent=True) or {}
    QuestionManager.reorder_options(question, current_user_id(), data.get("order"))
    return jsonify({"message": "Options reordered"}), 200
