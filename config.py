"""Application configuration profiles."""
from __future__ import annotations

import datetime
import os

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(BASE_DIR, '.env'))

DEFAULT_DB_URI = os.environ.get('DATABASE_URL', f"sqlite:///{os.path.join(BASE_DIR, 'lending.db')}")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    SQLALCHEMY_DATABASE_URI = DEFAULT_DB_URI
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get('FLASK_SECRET', 'dev-secret-key')

    JWT_SECRET_KEY = os.environ.get('JWT_SECRET', 'dev-jwt-secret')
    JWT_ACCESS_TOKEN_EXPIRES = datetime.timedelta(days=1)
    JWT_TOKEN_LOCATION = ['headers']
    JWT_HEADER_NAME = 'Authorization'
    JWT_HEADER_TYPE = os.environ.get('JWT_HEADER_TYPE', 'Bearer')

    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', True)
    MAIL_USERNAME = os.environ.get('MAIL_USER')
    MAIL_PASSWORD = os.environ.get('MAIL_PASS')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_FROM') or os.environ.get('MAIL_USER')
    MAIL_TIMEOUT = 10
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)

    RESET_CODE_TTL_MINUTES = int(os.environ.get('RESET_CODE_TTL_MINUTES', 15))
    MIN_PASSWORD_LENGTH = 6

    ASSETS_FOLDER = os.environ.get('ASSETS_FOLDER', os.path.join(BASE_DIR, 'public', 'assets'))

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', True)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'testing-jwt-secret-with-enough-length'
    MAIL_SUPPRESS_SEND = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    # no development fallbacks; create_app refuses to start without them
    SECRET_KEY = os.environ.get('FLASK_SECRET')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET')


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
