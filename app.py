from __future__ import annotations

import logging
import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from config import BaseConfig, config_by_name
from models import db
from services.accounts import AccountService
from services.auth import get_current_user, jwt, login_required
from services.errors import ServiceError, ValidationError
from services.lending import LendingService
from services.mail import mailer


def _load_config(app: Flask, config_name: str | None, test_config: dict | None) -> None:
    resolved_name = config_name or os.environ.get('FLASK_CONFIG', 'development')
    config_cls = config_by_name.get(resolved_name, BaseConfig)
    app.config.from_object(config_cls)
    if test_config:
        app.config.update(test_config)
    missing = [key for key in ('SECRET_KEY', 'JWT_SECRET_KEY') if not app.config.get(key)]
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    app.static_folder = app.config.get('ASSETS_FOLDER')


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object.')
    return data


def create_app(config_name: str | None = None, test_config: dict | None = None):
    if isinstance(config_name, dict) and test_config is None:
        test_config = config_name
        config_name = None
    app = Flask(__name__, static_url_path='/assets')
    _load_config(app, config_name, test_config)
    _configure_logging(app)
    db.init_app(app)
    jwt.init_app(app)
    mailer.init_app(app)
    lending_service = LendingService()
    account_service = AccountService()

    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        code = (exc.name or 'error').lower().replace(' ', '_')
        return jsonify({'error': exc.description, 'code': code}), exc.code

    @app.after_request
    def set_response_headers(response):
        response.headers.setdefault('Access-Control-Allow-Origin', app.config.get('CORS_ORIGINS', '*'))
        response.headers.setdefault('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        response.headers.setdefault('Access-Control-Allow-Headers', 'Content-Type, Authorization')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'no-referrer-when-downgrade')
        return response

    @app.route('/auth/signup', methods=['POST'])
    def signup():
        data = _json_body()
        user = account_service.signup(
            first_name=data.get('first_name'),
            last_name=data.get('last_name'),
            email=data.get('email'),
            password=data.get('password'),
        )
        return jsonify({'message': 'User created', 'user': user.to_dict()}), 201

    @app.route('/auth/login', methods=['POST'])
    def login():
        data = _json_body()
        _, token = account_service.login(email=data.get('email'), password=data.get('password'))
        return jsonify({'token': token})

    @app.route('/auth/recover', methods=['POST'])
    def recover():
        data = _json_body()
        account_service.request_password_reset(data.get('email'))
        return jsonify({'message': 'Code sent by email'})

    @app.route('/auth/reset/confirm', methods=['POST'])
    def confirm_reset():
        data = _json_body()
        user_id = account_service.confirm_reset_code(str(data.get('code') or ''))
        return jsonify({'message': 'Code valid', 'userId': user_id})

    @app.route('/auth/reset/update', methods=['POST'])
    def reset_password():
        data = _json_body()
        try:
            user_id = int(data.get('userId'))
        except (TypeError, ValueError):
            raise ValidationError('Invalid information.') from None
        account_service.reset_password(
            user_id=user_id,
            code=str(data.get('code') or ''),
            password=data.get('password'),
        )
        return jsonify({'message': 'Password updated'})

    @app.route('/books', methods=['GET'])
    def list_books():
        return jsonify([book.to_dict() for book in lending_service.list_books()])

    @app.route('/books/<int:book_id>', methods=['GET'])
    def book_detail(book_id: int):
        return jsonify(lending_service.get_book(book_id).to_dict())

    @app.route('/books/<int:book_id>/borrow', methods=['POST'])
    @login_required
    def borrow(book_id: int):
        user = get_current_user()
        result = lending_service.borrow(user_id=user.id, book_id=book_id)
        return jsonify({'message': 'Book borrowed', 'loan': result.loan.to_dict()}), 201

    @app.route('/books/<int:book_id>/return', methods=['DELETE'])
    @login_required
    def do_return(book_id: int):
        user = get_current_user()
        result = lending_service.return_book(user_id=user.id, book_id=book_id)
        return jsonify({'message': 'Book returned', 'book': result.book.to_dict() if result.book else None})

    @app.route('/me', methods=['GET'])
    @login_required
    def me():
        return jsonify(get_current_user().to_dict())

    @app.route('/me/loans', methods=['GET'])
    @login_required
    def my_loans():
        user = get_current_user()
        return jsonify([loan.to_dict() for loan in lending_service.list_loans(user.id)])

    @app.route('/update-profile', methods=['PUT'])
    @login_required
    def update_profile():
        data = _json_body()
        user, token = account_service.update_profile(
            user_id=get_current_user().id,
            first_name=data.get('first_name'),
            last_name=data.get('last_name'),
            email=data.get('email'),
        )
        return jsonify({'message': 'Profile updated', 'token': token, 'user': user.to_dict()})

    @app.route('/update-password', methods=['PUT'])
    @login_required
    def update_password():
        data = _json_body()
        account_service.change_password(
            user_id=get_current_user().id,
            current_password=data.get('currentPass'),
            new_password=data.get('newPass'),
            confirm_password=data.get('confirmPass'),
        )
        return jsonify({'message': 'Password updated'})

    return app


if __name__ == '__main__':
    application = create_app()
    with application.app_context():
        db.create_all()
    application.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
