from models import db
from utils.helpers import utc_now, format_datetime

answer_options = db.Table(
    "answer_options",
    db.Column("answer_id", db.Integer, db.ForeignKey("quiz_attempt_answers.id", ondelete="CASCADE"), primary_key=True),
    db.Column("option_id", db.Integer, db.ForeignKey("options.id", ondelete="CASCADE"), primary_key=True),
)


class QuizAttemptAnswer(db.Model):
    __tablename__ = "quiz_attempt_answers"

    id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(db.Integer, db.ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    # null once the question is deleted; finished attempts keep the answer and its points
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete="SET NULL"), nullable=True, index=True)
    answer_text = db.Column(db.Text, nullable=True)  # identification questions
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    attempt = db.relationship("QuizAttempt", back_populates="answers")
    question = db.relationship("Question", back_populates="answers")
    selected_options = db.relationship("Option", secondary=answer_options, back_populates="answers")

    __table_args__ = (
        db.UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    @property
    def selected_option_ids(self):
        return sorted(option.id for option in self.selected_options)

    def to_dict(self):
        return {
            "id": self.id,
            "attempt_id": self.attempt_id,
            "question_id": self.question_id,
            "selected_option_ids": self.selected_option_ids,
            "answer_text": self.answer_text,
            "is_correct": self.is_correct,
            "points_awarded": self.points_awarded,
            "updated_at": format_datetime(self.updated_at),
        }
