from models import db
from utils.helpers import utc_now, format_datetime

VISIBILITIES = ("public", "unlisted", "private")


class Quiz(db.Model):
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    visibility = db.Column(db.String(20), nullable=False, default="public")
    time_limit_seconds = db.Column(db.Integer, nullable=True)  # null = no limit
    max_attempts = db.Column(db.Integer, nullable=True)  # null = unlimited
    shuffle_questions = db.Column(db.Boolean, nullable=False, default=True)
    shuffle_options = db.Column(db.Boolean, nullable=False, default=True)
    total_points = db.Column(db.Integer, nullable=False, default=0)  # cached sum of question points
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    author = db.relationship("User", back_populates="quizzes")
    questions = db.relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    attempts = db.relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")

    @property
    def questions_count(self):
        return len(self.questions)

    def is_owned_by(self, user_id):
        return user_id is not None and self.user_id == user_id

    def __repr__(self):
        return f"<Quiz {self.title}>"

    def to_dict(self, include_questions=False, reveal_answers=False):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "visibility": self.visibility,
            "time_limit_seconds": self.time_limit_seconds,
            "max_attempts": self.max_attempts,
            "shuffle_questions": self.shuffle_questions,
            "shuffle_options": self.shuffle_options,
            "total_points": self.total_points,
            "questions_count": self.questions_count,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }
        if include_questions:
            data["questions"] = [q.to_dict(reveal_answers=reveal_answers) for q in self.questions]
        return data
