from models import db

QUESTION_TYPES = ("single", "multiple", "true_false", "identification")
# exactly one correct option
SINGLE_CORRECT_TYPES = ("single", "true_false")
OPTION_TYPES = ("single", "multiple", "true_false")


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="single")
    points = db.Column(db.Integer, nullable=False, default=1)
    position = db.Column(db.Integer, nullable=False, default=0)
    correct_answer = db.Column(db.Text, nullable=True)  # identification only
    explanation = db.Column(db.Text, nullable=True)

    quiz = db.relationship("Quiz", back_populates="questions")
    options = db.relationship(
        "Option",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Option.position",
    )
    answers = db.relationship("QuizAttemptAnswer", back_populates="question")

    @property
    def uses_options(self):
        return self.type in OPTION_TYPES

    @property
    def correct_option_ids(self):
        return sorted(option.id for option in self.options if option.is_correct)

    def __repr__(self):
        return f"<Question {self.id} ({self.type})>"

    def to_dict(self, reveal_answers=False):
        data = {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "prompt": self.prompt,
            "type": self.type,
            "points": self.points,
            "position": self.position,
            "options": [option.to_dict(reveal_answers=reveal_answers) for option in self.options],
        }
        if reveal_answers:
            data["correct_answer"] = self.correct_answer
            data["explanation"] = self.explanation
        return data
