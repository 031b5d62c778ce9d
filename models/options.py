from models import db


class Option(db.Model):
    __tablename__ = "options"

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    text = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    explanation = db.Column(db.Text, nullable=True)

    question = db.relationship("Question", back_populates="options")
    answers = db.relationship("QuizAttemptAnswer", secondary="answer_options", back_populates="selected_options")

    __table_args__ = (
        db.Index("ix_options_question_position", "question_id", "position"),
    )

    def to_dict(self, reveal_answers=False):
        data = {
            "id": self.id,
            "question_id": self.question_id,
            "text": self.text,
            "position": self.position,
        }
        if reveal_answers:
            data["is_correct"] = self.is_correct
            data["explanation"] = self.explanation
        return data
