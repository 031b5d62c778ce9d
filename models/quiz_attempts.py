from datetime import timedelta
from sqlalchemy import DDL, event, func
from models import db
from models.quiz_attempts_answers import QuizAttemptAnswer
from utils.helpers import utc_now, format_datetime


class QuizAttempt(db.Model):
    __tablename__ = "quiz_attempts"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="in_progress")
    started_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    completed_at = db.Column(db.DateTime, nullable=True)
    score = db.Column(db.Integer, nullable=False, default=0)  # earned points
    max_score = db.Column(db.Integer, nullable=False, default=0)  # snapshot of quiz total at attempt time
    percentage = db.Column(db.Float, nullable=True)
    time_taken_seconds = db.Column(db.Integer, nullable=True)

    quiz = db.relationship("Quiz", back_populates="attempts")
    user = db.relationship("User", back_populates="attempts")
    answers = db.relationship(
        "QuizAttemptAnswer",
        back_populates="attempt",
        lazy=True,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("ix_quiz_attempts_quiz_user", "quiz_id", "user_id"),
    )

    @property
    def is_in_progress(self):
        return self.status == "in_progress"

    def recompute_score(self):
        """Set score to the sum of points awarded across this attempt's answers."""
        total = (
            db.session.query(func.coalesce(func.sum(QuizAttemptAnswer.points_awarded), 0))
            .filter(QuizAttemptAnswer.attempt_id == self.id)
            .scalar()
        )
        self.score = int(total)
        return self.score

    @property
    def deadline_at(self):
        """When the quiz's time limit runs out; None for untimed quizzes."""
        if not self.quiz or not self.quiz.time_limit_seconds or not self.started_at:
            return None
        return self.started_at + timedelta(seconds=self.quiz.time_limit_seconds)

    def to_dict(self, include_answers=False):
        data = {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "user_id": self.user_id,
            "status": self.status,
            "started_at": format_datetime(self.started_at),
            "completed_at": format_datetime(self.completed_at),
            "deadline_at": format_datetime(self.deadline_at),
            "score": self.score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "time_taken_seconds": self.time_taken_seconds,
        }
        if include_answers:
            data["answers"] = [answer.to_dict() for answer in self.answers]
        return data


# One in-progress attempt per (quiz, user). MySQL has no partial indexes, there
# start_or_resume serialises on the quiz row instead.
event.listen(
    QuizAttempt.__table__,
    "after_create",
    DDL(
        "CREATE UNIQUE INDEX uq_quiz_attempts_in_progress "
        "ON quiz_attempts (quiz_id, user_id) WHERE status = 'in_progress'"
    ).execute_if(dialect=("sqlite", "postgresql")),
)
