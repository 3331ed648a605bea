"""Account management: signup, login, password recovery and profile updates."""
from __future__ import annotations

import datetime
import re
import secrets
from typing import Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from models import db, PasswordReset, User, utcnow
from services.auth import issue_token
from services.errors import (
    EmailTaken,
    IncorrectPassword,
    InvalidCredentials,
    InvalidResetCode,
    NotFound,
    StorageError,
    ValidationError,
)
from services.mail import mailer

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
RESET_CODE_LENGTH = 4


def _require_text(value) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError('Expected a text value.')
    return value


def normalize_email(email: Optional[str]) -> str:
    return _require_text(email).strip().lower()


def _clean(value: Optional[str]) -> str:
    return _require_text(value).strip()


class AccountService:
    def _check_password(self, password: Optional[str]) -> None:
        min_length = current_app.config.get('MIN_PASSWORD_LENGTH', 6)
        password = _require_text(password)
        if not password or len(password) < min_length:
            raise ValidationError(f'Password must be at least {min_length} characters long.')

    def _check_email(self, email: str) -> None:
        if not EMAIL_RE.match(email):
            raise ValidationError('Invalid email.')

    def _email_in_use(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        query = User.query.filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        return db.session.query(query.exists()).scalar()

    def _get_user(self, user_id: int) -> User:
        user = db.session.get(User, user_id)
        if not user:
            raise NotFound('User not found.')
        return user

    def _commit(self, action: str, *, email_conflict: bool = False) -> None:
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if email_conflict:
                raise EmailTaken() from None
            current_app.logger.exception('%s failed: %s', action, exc)
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            current_app.logger.exception('%s failed: %s', action, exc)
            db.session.rollback()
            raise StorageError() from exc

    def signup(self, *, first_name: str, last_name: str, email: str, password: str) -> User:
        first_name, last_name, email = _clean(first_name), _clean(last_name), normalize_email(email)
        if not first_name or not last_name or not email or not password:
            raise ValidationError('All fields are required (first name, last name, email, password).')
        self._check_email(email)
        self._check_password(password)
        if self._email_in_use(email):
            raise EmailTaken()
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=generate_password_hash(password),
        )
        db.session.add(user)
        self._commit('Signup', email_conflict=True)
        current_app.logger.info('New user %s signed up', user.id)
        return user

    def login(self, *, email: str, password: str) -> Tuple[User, str]:
        email = normalize_email(email)
        user = User.query.filter_by(email=email).first() if email else None
        if not user or not isinstance(password, str) or not password or not check_password_hash(user.password_hash, password):
            current_app.logger.warning('Failed login for %s', email or '<empty>')
            raise InvalidCredentials()
        current_app.logger.info('User %s logged in', user.id)
        return user, issue_token(user)

    def request_password_reset(self, email: str) -> PasswordReset:
        email = normalize_email(email)
        if not email:
            raise ValidationError('Email is required.')
        user = User.query.filter_by(email=email).first()
        if not user:
            raise NotFound('No user found with this email.')

        PasswordReset.query.filter_by(user_id=user.id).delete()
        ttl = current_app.config.get('RESET_CODE_TTL_MINUTES', 15)
        reset = PasswordReset(
            code=f'{secrets.randbelow(9000) + 1000}',
            user_id=user.id,
            expires_at=utcnow() + datetime.timedelta(minutes=ttl),
        )
        db.session.add(reset)
        self._commit('Password reset request')
        # the code stays valid even if delivery fails; the caller may ask again
        mailer.send_reset_code(user.email, reset.code)
        current_app.logger.info('Password reset code issued for user %s', user.id)
        return reset

    def _find_valid_reset(self, code: Optional[str], user_id: Optional[int] = None) -> PasswordReset:
        if not code or len(code) != RESET_CODE_LENGTH:
            raise ValidationError('Invalid code.')
        query = PasswordReset.query.filter(
            PasswordReset.code == code,
            PasswordReset.expires_at > utcnow(),
        )
        if user_id is not None:
            query = query.filter(PasswordReset.user_id == user_id)
        reset = query.order_by(PasswordReset.created_at.desc()).first()
        if not reset:
            raise InvalidResetCode()
        return reset

    def confirm_reset_code(self, code: Optional[str]) -> int:
        return self._find_valid_reset(_clean(code)).user_id

    def reset_password(self, *, user_id: int, code: Optional[str], password: str) -> User:
        self._check_password(password)
        user = self._get_user(user_id)
        self._find_valid_reset(_clean(code), user_id=user.id)
        user.password_hash = generate_password_hash(password)
        PasswordReset.query.filter_by(user_id=user.id).delete()
        self._commit('Password reset')
        current_app.logger.info('Password reset completed for user %s', user.id)
        return user

    def update_profile(self, *, user_id: int, first_name: str, last_name: str, email: str) -> Tuple[User, str]:
        first_name, last_name, email = _clean(first_name), _clean(last_name), normalize_email(email)
        if not first_name or not last_name or not email:
            raise ValidationError('All fields are required.')
        self._check_email(email)
        user = self._get_user(user_id)
        if self._email_in_use(email, exclude_user_id=user.id):
            raise EmailTaken('This email is already in use.')
        user.first_name = first_name
        user.last_name = last_name
        user.email = email
        self._commit('Profile update', email_conflict=True)
        current_app.logger.info('User %s updated their profile', user.id)
        return user, issue_token(user)

    def change_password(self, *, user_id: int, current_password: str, new_password: str, confirm_password: str) -> User:
        current_password = _require_text(current_password)
        new_password = _require_text(new_password)
        confirm_password = _require_text(confirm_password)
        if not current_password or not new_password or not confirm_password:
            raise ValidationError('All fields are required.')
        if new_password != confirm_password:
            raise ValidationError('Passwords do not match.')
        self._check_password(new_password)
        user = self._get_user(user_id)
        if not check_password_hash(user.password_hash, current_password):
            current_app.logger.warning('User %s gave a wrong current password', user.id)
            raise IncorrectPassword()
        user.password_hash = generate_password_hash(new_password)
        self._commit('Password change')
        current_app.logger.info('User %s changed their password', user.id)
        return user
