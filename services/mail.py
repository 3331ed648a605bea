"""Outbound email delivery for password reset codes."""
from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import List

from flask import Flask, current_app

from services.errors import NotificationError


class Mailer:
    """Small SMTP sender configured from the Flask app.

    When ``MAIL_SUPPRESS_SEND`` is set, messages are appended to the
    application's ``outbox`` instead of being delivered.
    """

    def __init__(self, app: Flask | None = None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.extensions['mailer'] = self
        app.extensions['mail_outbox'] = []

    @property
    def outbox(self) -> List[EmailMessage]:
        return current_app.extensions['mail_outbox']

    def build_message(self, *, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message['From'] = current_app.config.get('MAIL_DEFAULT_SENDER') or 'no-reply@localhost'
        message['To'] = to
        message['Subject'] = subject
        message.set_content(body)
        return message

    def send(self, *, to: str, subject: str, body: str) -> None:
        config = current_app.config
        message = self.build_message(to=to, subject=subject, body=body)
        if config.get('MAIL_SUPPRESS_SEND'):
            self.outbox.append(message)
            current_app.logger.debug('Mail to %s suppressed: %s', to, subject)
            return
        try:
            with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=config.get('MAIL_TIMEOUT', 10)) as smtp:
                if config.get('MAIL_USE_TLS'):
                    smtp.starttls()
                if config.get('MAIL_USERNAME'):
                    smtp.login(config['MAIL_USERNAME'], config.get('MAIL_PASSWORD') or '')
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            current_app.logger.exception('Mail delivery to %s failed: %s', to, exc)
            raise NotificationError() from exc
        current_app.logger.info('Mail sent to %s: %s', to, subject)

    def send_reset_code(self, email: str, code: str) -> None:
        self.send(
            to=email,
            subject='Password reset code',
            body=f'Your password reset code is: {code}',
        )


mailer = Mailer()
