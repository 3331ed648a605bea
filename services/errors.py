"""Classified failures raised by the service layer.

Every error carries the HTTP status and a short machine code so the
application can render it without knowing which service raised it.
"""
from __future__ import annotations


class ServiceError(RuntimeError):
    """Base class for failures surfaced to the caller."""

    status_code = 400
    code = 'error'
    default_message = 'Request failed.'

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(ServiceError):
    code = 'invalid'
    default_message = 'Invalid request.'


class NotFound(ServiceError):
    status_code = 404
    code = 'not_found'
    default_message = 'Resource not found.'


class NotAvailable(ServiceError):
    status_code = 409
    code = 'not_available'
    default_message = 'Book not available.'


class NoActiveLoan(ServiceError):
    status_code = 409
    code = 'no_active_loan'
    default_message = 'No active loan found for this book.'


class EmailTaken(ServiceError):
    status_code = 409
    code = 'email_taken'
    default_message = 'Email already in use.'


class InvalidCredentials(ServiceError):
    status_code = 401
    code = 'invalid_credentials'
    default_message = 'Incorrect email or password.'


class InvalidResetCode(ServiceError):
    code = 'invalid_reset_code'
    default_message = 'Reset code expired or invalid.'


class Unauthenticated(ServiceError):
    status_code = 401
    code = 'unauthenticated'
    default_message = 'Authentication required.'


class NotificationError(ServiceError):
    status_code = 502
    code = 'mail_failed'
    default_message = 'Failed to send the email.'


class StorageError(ServiceError):
    status_code = 500
    code = 'server_error'
    default_message = 'Server error, please try again later.'


class IncorrectPassword(InvalidCredentials):
    status_code = 400
    default_message = 'Current password is incorrect.'
