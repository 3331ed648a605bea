"""Authentication helper utilities used by routes."""
from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, jsonify
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    get_current_user as _jwt_current_user,
    verify_jwt_in_request,
)

from models import db, User
from services.errors import Unauthenticated

jwt = JWTManager()


def _unauthenticated(message: str):
    error = Unauthenticated(message)
    return jsonify(error.to_dict()), error.status_code


@jwt.user_lookup_loader
def _load_user(_jwt_header, jwt_data) -> Optional[User]:
    try:
        user_id = int(jwt_data['sub'])
    except (KeyError, TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


@jwt.unauthorized_loader
def _missing_token(reason):
    return _unauthenticated('Access denied.')


@jwt.invalid_token_loader
def _invalid_token(reason):
    current_app.logger.warning('Rejected token: %s', reason)
    return _unauthenticated('Invalid token.')


@jwt.expired_token_loader
def _expired_token(_jwt_header, _jwt_payload):
    return _unauthenticated('Token expired.')


@jwt.user_lookup_error_loader
def _unknown_user(_jwt_header, jwt_data):
    current_app.logger.warning('Token subject %s no longer exists', jwt_data.get('sub'))
    return _unauthenticated('Invalid token.')


def issue_token(user: User) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            'email': user.email,
            'first_name': user.first_name,
            'last_name': user.last_name,
        },
    )


def get_current_user() -> User:
    return _jwt_current_user()


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        verify_jwt_in_request()
        return view(*args, **kwargs)

    return wrapped
