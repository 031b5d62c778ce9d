from flask import Blueprint, request, jsonify, make_response, current_app
from models.users import User
from models import db
from classes.validators import validate_required, validate_length
from utils.tokens import get_jwt_token, decode_jwt

auth_bp = Blueprint('auth_bp', __name__)


def set_token_cookie(response, token, max_age):
    response.set_cookie(
        "access_token", token,
        httponly=True,
        secure=not current_app.config.get("TESTING", False),
        samesite="None" if not current_app.config.get("TESTING", False) else "Lax",
        path="/",
        max_age=max_age,
    )
    return response


# Login
@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    username = data.get("username_or_email")
    password = data.get("password")

    user = User.query.filter((User.username == username) | (User.email == username)).first()

    if not user or not password or not user.check_password(password):
        current_app.logger.info("Failed login for %r", username)
        return jsonify({"error": "Invalid credentials"}), 401

    token = get_jwt_token({"user_id": user.id, "username": user.username})

    response = make_response(jsonify({
        "message": "Login successful",
        "user": user.to_dict(),
    }))
    return set_token_cookie(response, token, current_app.config["JWT_EXPIRATION_HOURS"] * 3600)


# Logout
@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = make_response(jsonify({"message": "Logout successful"}))
    return set_token_cookie(response, "", 0)


# Register
@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}

    username = data.get('username')
    email = data.get('email')
    password = data.get('password')
    full_name = data.get('full_name')

    if not username or not email or not password or not full_name:
        return jsonify({"error": "All fields are required"}), 400

    validate_length("username", validate_required("username", username), 50)
    validate_length("email", email, 100)
    validate_length("full_name", full_name, 100)

    existing_user = User.query.filter(
        (User.username == username) | (User.email == email)
    ).first()

    if existing_user:
        return jsonify({"error": "User already exists"}), 409

    new_user = User(
        username=username,
        email=email,
        full_name=full_name,
    )
    new_user.set_password(password)

    db.session.add(new_user)
    db.session.commit()
    current_app.logger.info("Registered user %s", new_user.id)

    return jsonify({"message": "User registered successfully!", "user": new_user.to_dict()}), 201


# Auth Check
@auth_bp.route('/check-auth', methods=['GET'])
def check_auth():
    token = request.cookies.get("access_token")

    if not token:
        return jsonify({"error": "Not authenticated"}), 401

    decoded_token = decode_jwt(token)
    if not decoded_token:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({
        "message": "Authenticated",
        "user": {
            "id": decoded_token.get("user_id"),
            "username": decoded_token.get("username"),
        }
    }), 200
