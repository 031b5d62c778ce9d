from flask import current_app

from models import db, Quiz
from models.quizzes import VISIBILITIES
from classes.validators import validate_required, validate_length, validate_choice, validate_int, validate_bool
from utils.errors import Forbidden, NotFound
from utils.helpers import slugify
from utils.utils import atomic


class QuizManager:
    @staticmethod
    def get_quiz(quiz_id):
        quiz = db.session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    @staticmethod
    def get_visible_quiz(quiz_id, user_id):
        """Private quizzes are only visible to their author; unlisted ones to anyone with the id."""
        quiz = QuizManager.get_quiz(quiz_id)
        if quiz.visibility == "private" and not quiz.is_owned_by(user_id):
            raise Forbidden("This quiz is private.")
        return quiz

    @staticmethod
    def unique_slug(title, exclude_id=None):
        base = slugify(title)
        slug = base
        i = 1
        while True:
            query = Quiz.query.filter_by(slug=slug)
            if exclude_id is not None:
                query = query.filter(Quiz.id != exclude_id)
            if not query.first():
                return slug
            slug = f"{base}-{i}"
            i += 1

    @staticmethod
    @atomic
    def create_quiz(user_id, data):
        title = validate_required("title", data.get("title"))
        validate_length("title", title, 255)
        quiz = Quiz(
            user_id=user_id,
            title=title,
            slug=QuizManager.unique_slug(title),
            description=data.get("description"),
            visibility=validate_choice("visibility", data.get("visibility", "public"), VISIBILITIES),
            time_limit_seconds=validate_int("time_limit_seconds", data.get("time_limit_seconds"), minimum=1, nullable=True),
            max_attempts=validate_int("max_attempts", data.get("max_attempts"), minimum=1, nullable=True),
            shuffle_questions=validate_bool("shuffle_questions", data.get("shuffle_questions", True)),
            shuffle_options=validate_bool("shuffle_options", data.get("shuffle_options", True)),
            total_points=0,
        )
        db.session.add(quiz)
        db.session.flush()
        current_app.logger.info("User %s created quiz %s", user_id, quiz.id)
        return quiz

    @staticmethod
    @atomic
    def update_quiz(quiz, user_id, data):
        if not quiz.is_owned_by(user_id):
            raise Forbidden("You do not have permission to modify this quiz.")

        # Update only the provided fields
        if "title" in data:
            title = validate_required("title", data.get("title"))
            validate_length("title", title, 255)
            if title != quiz.title:
                quiz.slug = QuizManager.unique_slug(title, exclude_id=quiz.id)
            quiz.title = title
        if "description" in data:
            quiz.description = data.get("description")
        if "visibility" in data:
            quiz.visibility = validate_choice("visibility", data.get("visibility"), VISIBILITIES)
        if "time_limit_seconds" in data:
            quiz.time_limit_seconds = validate_int(
                "time_limit_seconds", data.get("time_limit_seconds"), minimum=1, nullable=True
            )
        if "max_attempts" in data:
            quiz.max_attempts = validate_int("max_attempts", data.get("max_attempts"), minimum=1, nullable=True)
        for flag in ("shuffle_questions", "shuffle_options"):
            if flag in data:
                setattr(quiz, flag, validate_bool(flag, data.get(flag)))
        return quiz

    @staticmethod
    @atomic
    def delete_quiz(quiz, user_id):
        if not quiz.is_owned_by(user_id):
            raise Forbidden("You do not have permission to delete this quiz.")
        db.session.delete(quiz)
        current_app.logger.info("User %s deleted quiz %s", user_id, quiz.id)

    @staticmethod
    def list_public(page=1, per_page=12):
        return (
            Quiz.query.filter_by(visibility="public")
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

    @staticmethod
    def list_mine(user_id, page=1, per_page=12):
        return (
            Quiz.query.filter_by(user_id=user_id)
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )
