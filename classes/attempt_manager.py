from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db, Quiz, QuizAttempt, QuizAttemptAnswer
from classes.grader import AnswerGrader
from classes.question_manager import QuestionManager
from utils.errors import (
    AlreadyFinalized, AttemptFinalized, AttemptLimitExceeded, Forbidden, NotFound, NotInProgress,
    QuestionMismatch, ValidationError,
)
from utils.helpers import round_half_up, utc_now
from utils.utils import atomic


class AttemptManager:
    """Attempt lifecycle and score bookkeeping.

    in_progress -> completed (finalize) or in_progress -> abandoned (abandon).
    Both end states are terminal. Every write locks the attempt row and
    re-sums the score from the answer rows in the same transaction, so the
    stored score always equals the sum of points awarded.
    """

    @staticmethod
    def get_attempt(attempt_id):
        attempt = db.session.get(QuizAttempt, attempt_id)
        if not attempt:
            raise NotFound("Attempt not found")
        return attempt

    @staticmethod
    def ensure_taker(attempt, user_id):
        if attempt.user_id != user_id:
            raise Forbidden("You do not have permission to modify this attempt.")

    @staticmethod
    def ensure_viewer(attempt, user_id):
        if attempt.user_id != user_id and not attempt.quiz.is_owned_by(user_id):
            raise Forbidden("You do not have permission to view this attempt.")

    @staticmethod
    def in_progress_attempt(quiz_id, user_id):
        return QuizAttempt.query.filter_by(quiz_id=quiz_id, user_id=user_id, status="in_progress").first()

    @staticmethod
    def completed_count(quiz_id, user_id):
        return QuizAttempt.query.filter_by(quiz_id=quiz_id, user_id=user_id, status="completed").count()

    # Lifecycle
    # --------------------------------------------------------------------------------
    @staticmethod
    @atomic
    def start_or_resume(user_id, quiz):
        if quiz.visibility == "private" and not quiz.is_owned_by(user_id):
            raise Forbidden("This quiz is private.")

        # serialises concurrent starts on the same quiz
        Quiz.query.filter_by(id=quiz.id).with_for_update().first()

        existing = AttemptManager.in_progress_attempt(quiz.id, user_id)
        if existing:
            current_app.logger.info("User %s resumed attempt %s on quiz %s", user_id, existing.id, quiz.id)
            return existing

        # abandoned attempts do not count toward the limit
        if quiz.max_attempts is not None and AttemptManager.completed_count(quiz.id, user_id) >= quiz.max_attempts:
            raise AttemptLimitExceeded()

        if not quiz.questions:
            raise ValidationError("This quiz has no questions yet.")

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            user_id=user_id,
            status="in_progress",
            started_at=utc_now(),
            score=0,
            max_score=QuestionManager.current_total(quiz),
        )
        db.session.add(attempt)
        try:
            db.session.flush()
        except IntegrityError:
            # lost the race against another start for the same (quiz, user); nothing else was written
            db.session.rollback()
            existing = AttemptManager.in_progress_attempt(quiz.id, user_id)
            if existing is None:
                raise
            return existing

        current_app.logger.info(
            "User %s started attempt %s on quiz %s (max score %s)", user_id, attempt.id, quiz.id, attempt.max_score,
        )
        return attempt

    @staticmethod
    @atomic
    def record_answer(attempt, user_id, question, selection):
        """Grade a selection and upsert the single answer row for (attempt, question)."""
        attempt = AttemptManager._lock_for_write(attempt, user_id, question)
        QuestionManager.validate_submission(question, selection, attempt)

        result = AnswerGrader.grade(question, selection)

        answer = QuizAttemptAnswer.query.filter_by(attempt_id=attempt.id, question_id=question.id).first()
        if not answer:
            answer = QuizAttemptAnswer(attempt=attempt, question=question)
            db.session.add(answer)

        if question.uses_options:
            chosen = set(selection.option_ids)
            answer.selected_options = [option for option in question.options if option.id in chosen]
            answer.answer_text = None
        else:
            answer.selected_options = []
            answer.answer_text = selection.text
        answer.is_correct = result.is_correct
        answer.points_awarded = result.points_awarded
        db.session.flush()

        attempt.recompute_score()
        current_app.logger.debug(
            "Attempt %s question %s graded correct=%s points=%s (score %s)",
            attempt.id, question.id, result.is_correct, result.points_awarded, attempt.score,
        )
        return answer

    @staticmethod
    @atomic
    def clear_answer(attempt, user_id, question):
        attempt = AttemptManager._lock_for_write(attempt, user_id, question)

        answer = QuizAttemptAnswer.query.filter_by(attempt_id=attempt.id, question_id=question.id).first()
        if answer:
            db.session.delete(answer)
            db.session.flush()

        attempt.recompute_score()
        return attempt

    @staticmethod
    @atomic
    def finalize(attempt, user_id):
        AttemptManager.ensure_taker(attempt, user_id)
        attempt = AttemptManager._lock(attempt)
        if not attempt.is_in_progress:
            raise AlreadyFinalized()

        score = attempt.recompute_score()
        if current_app.config.get("FINALIZE_MAX_SCORE_POLICY", "recompute") == "recompute":
            attempt.max_score = QuestionManager.current_total(attempt.quiz)

        now = utc_now()
        attempt.status = "completed"
        attempt.completed_at = now
        attempt.time_taken_seconds = max(0, int((now - attempt.started_at).total_seconds()))
        attempt.percentage = AttemptManager.percentage(score, attempt.max_score)

        current_app.logger.info(
            "Attempt %s completed: %s/%s (%s%%)", attempt.id, score, attempt.max_score, attempt.percentage,
        )
        return attempt

    @staticmethod
    @atomic
    def abandon(attempt, user_id):
        AttemptManager.ensure_taker(attempt, user_id)
        attempt = AttemptManager._lock(attempt)
        if not attempt.is_in_progress:
            raise NotInProgress()

        attempt.status = "abandoned"
        attempt.completed_at = utc_now()
        current_app.logger.info("Attempt %s abandoned with score %s", attempt.id, attempt.score)
        return attempt

    @staticmethod
    @atomic
    def delete_attempt(attempt, user_id):
        if attempt.user_id != user_id and not attempt.quiz.is_owned_by(user_id):
            raise Forbidden("You do not have permission to delete this attempt.")
        db.session.delete(attempt)
        current_app.logger.info("User %s deleted attempt %s", user_id, attempt.id)

    @staticmethod
    def percentage(score, max_score):
        if not max_score:
            return 0.0
        return round(score / max_score * 100, 1)

    @staticmethod
    def whole_percentage(score, total):
        if not total:
            return 0
        return round_half_up(score / total * 100)

    # History
    # --------------------------------------------------------------------------------
    @staticmethod
    def _history_query(quiz, user_id):
        query = QuizAttempt.query.filter_by(quiz_id=quiz.id)
        # authors see everyone's attempts, takers only their own
        if not quiz.is_owned_by(user_id):
            query = query.filter_by(user_id=user_id)
        return query

    @staticmethod
    def list_attempts(quiz, user_id, page=1, per_page=None):
        per_page = per_page or current_app.config.get("ATTEMPTS_PER_PAGE", 10)
        return (
            AttemptManager._history_query(quiz, user_id)
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

    @staticmethod
    def attempt_stats(quiz, user_id):
        query = AttemptManager._history_query(quiz, user_id)
        best, average = (
            query.filter_by(status="completed")
            .with_entities(func.max(QuizAttempt.score), func.avg(QuizAttempt.score))
            .one()
        )

        stats = {
            "total_attempts": query.count(),
            "completed_attempts": query.filter_by(status="completed").count(),
            "best_score": best,
            "average_score": round(float(average), 2) if average is not None else None,
            "best_percentage": None,
            "average_percentage": None,
        }
        if best is not None and quiz.total_points > 0:
            stats["best_percentage"] = AttemptManager.whole_percentage(best, quiz.total_points)
        if average is not None and quiz.total_points > 0:
            stats["average_percentage"] = AttemptManager.whole_percentage(float(average), quiz.total_points)
        return stats

    @staticmethod
    def latest_attempt(quiz_id, user_id):
        return (
            QuizAttempt.query.filter_by(quiz_id=quiz_id, user_id=user_id)
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
            .first()
        )

    # Dashboard
    # --------------------------------------------------------------------------------
    @staticmethod
    def average_percentage(query):
        """Mean of score / max_score * 100 over completed attempts that had points to earn."""
        value = (
            query.filter(QuizAttempt.status == "completed", QuizAttempt.max_score > 0)
            .with_entities(func.avg(QuizAttempt.score * 100.0 / QuizAttempt.max_score))
            .scalar()
        )
        return float(value) if value is not None else 0.0

    @staticmethod
    def dashboard(user_id, recent=5, popular=3):
        my_attempts = QuizAttempt.query.filter_by(user_id=user_id)

        recent_quizzes = (
            Quiz.query.filter_by(user_id=user_id)
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
            .limit(recent)
            .all()
        )
        recent_attempts = (
            my_attempts.order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
            .limit(recent)
            .all()
        )

        attempts_count = func.count(QuizAttempt.id).label("attempts_count")
        popular_rows = (
            db.session.query(Quiz, attempts_count)
            .join(QuizAttempt, QuizAttempt.quiz_id == Quiz.id)
            .filter(Quiz.visibility == "public")
            .group_by(Quiz.id)
            .order_by(attempts_count.desc(), Quiz.id.desc())
            .limit(popular)
            .all()
        )

        return {
            "stats": {
                "my_quizzes": Quiz.query.filter_by(user_id=user_id).count(),
                "attempts": my_attempts.count(),
                "average_percentage": round(AttemptManager.average_percentage(my_attempts), 1),
            },
            "recent_quizzes": [
                {
                    "id": quiz.id,
                    "title": quiz.title,
                    "visibility": quiz.visibility,
                    "author": {"id": quiz.user_id, "full_name": quiz.author.full_name},
                }
                for quiz in recent_quizzes
            ],
            "recent_attempts": [
                {
                    "id": attempt.id,
                    "quiz_id": attempt.quiz_id,
                    "quiz_title": attempt.quiz.title,
                    "score": attempt.score,
                    "max_score": attempt.max_score,
                    "status": attempt.status,
                }
                for attempt in recent_attempts
            ],
            "popular_quizzes": [
                {
                    "id": quiz.id,
                    "title": quiz.title,
                    "slug": quiz.slug,
                    "attempts_count": count,
                    "average_percentage": round_half_up(
                        AttemptManager.average_percentage(QuizAttempt.query.filter_by(quiz_id=quiz.id))
                    ),
                    "author": {"id": quiz.user_id, "full_name": quiz.author.full_name},
                }
                for quiz, count in popular_rows
            ],
        }

    # Helpers
    # --------------------------------------------------------------------------------
    @staticmethod
    def _lock(attempt):
        return QuizAttempt.query.filter_by(id=attempt.id).with_for_update().populate_existing().one()

    @staticmethod
    def _lock_for_write(attempt, user_id, question):
        """Shared guards for answer writes; returns the locked, refreshed attempt."""
        AttemptManager.ensure_taker(attempt, user_id)
        attempt = AttemptManager._lock(attempt)
        if not attempt.is_in_progress:
            raise AttemptFinalized()
        if question.quiz_id != attempt.quiz_id:
            raise QuestionMismatch()
        return attempt
