from flask_sqlalchemy import SQLAlchemy

# Initialize SQLAlchemy
db = SQLAlchemy()

# Import models
from models.users import User

from models.quizzes import Quiz
from models.quiz_questions import Question, QUESTION_TYPES, SINGLE_CORRECT_TYPES, OPTION_TYPES
from models.options import Option
from models.quiz_attempts import QuizAttempt
from models.quiz_attempts_answers import QuizAttemptAnswer, answer_options
