import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import bcrypt
import jwt
from flask import Blueprint, current_app, jsonify, request

from .errors import AuthenticationError, InvalidInputError
from .schemas import UserCreate, UserLogin, validate_payload
from .storage import get_storage

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def hash_password(password):
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password, hashed):
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def generate_token(user):
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user.id,
        "username": user.username,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRATION_HOURS"]),
        "iat": now,
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm="HS256")


def decode_token(token):
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.error("Token expired")
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        logger.error("Invalid token")
        raise AuthenticationError("Invalid or expired token")


# JWT middleware
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        header = request.headers.get("Authorization")
        if not header:
            logger.error("Token missing in request")
            raise AuthenticationError("Authentication required")
        token = header[7:] if header.startswith("Bearer ") else header
        if not token.strip():
            raise AuthenticationError("Authentication token required")
        payload = decode_token(token.strip())
        user = get_storage().get_user(payload.get("user_id"))
        if not user:
            logger.error("User not found for token")
            raise AuthenticationError("Invalid token")
        return f(user, *args, **kwargs)
    return decorated


def register_user(values):
    """Create a user with a hashed password; raises ConflictError on a taken username."""
    return get_storage().create_user({
        "username": values["username"],
        "password": hash_password(values["password"]),
    })


def login_user(username, password):
    user = get_storage().get_user_by_username(username)
    if not user or not check_password(password, user.password):
        raise AuthenticationError("Invalid username or password")
    return user, generate_token(user)


@auth_bp.route("/register", methods=["POST"])
def register():
    values = validate_payload(UserCreate, request.get_json(silent=True))
    user = register_user(values)
    token = generate_token(user)
    logger.info(f"User registered: {user.username}")
    return jsonify({"user": user.to_dict(), "token": token}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    credentials = validate_payload(UserLogin, request.get_json(silent=True) or {})
    if not credentials.get("username") or not credentials.get("password"):
        raise InvalidInputError("Username and password are required")
    user, token = login_user(credentials["username"], credentials["password"])
    logger.info(f"User logged in: {user.username}")
    return jsonify({"user": user.to_dict(), "token": token}), 200


@auth_bp.route("/me", methods=["GET"])
@token_required
def me(user):
    return jsonify(user.to_dict()), 200
