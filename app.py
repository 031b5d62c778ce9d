import logging
import os
from dotenv import load_dotenv
load_dotenv()
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from config import config_dict, ProdConfig
from models import db
from routes.authentication import auth_bp
from routes.quizzes import quiz_bp
from routes.attempts import attempt_bp
from utils.errors import QuizError

migrate = Migrate()


def register_error_handlers(app):
    @app.errorhandler(QuizError)
    def handle_quiz_error(error):
        app.logger.warning("%s: %s", error.code, error.message)
        return jsonify(error.to_dict()), error.status_code


def create_app(config_name=None):
    app = Flask(__name__)

    env = config_name or os.environ.get("FLASK_ENV", "production")
    app.config.from_object(config_dict.get(env, ProdConfig))
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}, supports_credentials=True)

    db.init_app(app)
    migrate.init_app(app, db)
    register_error_handlers(app)

    @app.route('/')
    def home():
        return "Welcome to StudyBuddy!"

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(quiz_bp, url_prefix='/api/quizzes')
    app.register_blueprint(attempt_bp, url_prefix='/api')

    app.logger.info("Environment: %s", env)
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config['DEBUG'])
