import pytest

from app import create_app
from models import db, User
from classes.quiz_manager import QuizManager
from classes.question_manager import QuestionManager
from utils.tokens import get_jwt_token


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(username):
        user = User(username=username, email=f"{username}@example.com", full_name=username.title())
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def author(make_user):
    return make_user("author")


@pytest.fixture
def taker(make_user):
    return make_user("taker")


@pytest.fixture
def make_quiz(author):
    """Build a quiz owned by ``author`` through the managers, one question per payload dict."""
    def _make_quiz(*questions, **fields):
        data = {"title": "Capitals", **fields}
        quiz = QuizManager.create_quiz(author.id, data)
        for question in questions:
            QuestionManager.upsert_question(quiz, author.id, dict(question))
        return quiz
    return _make_quiz


@pytest.fixture
def login(client):
    def _login(user):
        client.set_cookie("access_token", get_jwt_token({"user_id": user.id, "username": user.username}))
        return client
    return _login


@pytest.fixture
def single_question():
    def _single_question(points=10, prompt="Capital of France?"):
        return {
            "prompt": prompt,
            "type": "single",
            "points": points,
            "options": [
                {"text": "Paris", "is_correct": True},
                {"text": "Lyon", "is_correct": False},
                {"text": "Nice", "is_correct": False},
            ],
        }
    return _single_question


@pytest.fixture
def multiple_question():
    def _multiple_question(points=5):
        return {
            "prompt": "Which are primary colours?",
            "type": "multiple",
            "points": points,
            "options": [
                {"text": "Red", "is_correct": True},
                {"text": "Blue", "is_correct": True},
                {"text": "Green", "is_correct": False},
            ],
        }
    return _multiple_question


@pytest.fixture
def identification_question():
    def _identification_question(points=3, answer="Paris"):
        return {
            "prompt": "Name the capital of France.",
            "type": "identification",
            "points": points,
            "correct_answer": answer,
        }
    return _identification_question
