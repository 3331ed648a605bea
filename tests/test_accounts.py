import datetime
import smtplib

import pytest
from flask_jwt_extended import decode_token
from sqlalchemy.exc import IntegrityError

from conftest import bearer
from models import db, PasswordReset, User, utcnow
from services.mail import mailer


def _signup(client, **overrides):
    payload = {
        'first_name': 'Claire',
        'last_name': 'Dupont',
        'email': 'claire@example.com',
        'password': 'secret123',
    }
    payload.update(overrides)
    return client.post('/auth/signup', json=payload)


def test_signup_and_login(client):
    resp = _signup(client, email='Claire@Example.com ')
    assert resp.status_code == 201
    assert resp.get_json()['user']['email'] == 'claire@example.com'
    user = User.query.filter_by(email='claire@example.com').one()
    assert user.password_hash != 'secret123'

    resp = client.post('/auth/login', json={'email': 'claire@example.com', 'password': 'secret123'})
    assert resp.status_code == 200
    claims = decode_token(resp.get_json()['token'])
    assert claims['sub'] == str(user.id)
    assert claims['email'] == 'claire@example.com'
    assert claims['first_name'] == 'Claire'
    assert claims['last_name'] == 'Dupont'


@pytest.mark.parametrize('overrides', [
    {'first_name': ''},
    {'email': None},
    {'email': 'not-an-email'},
    {'password': '12345'},
    {'first_name': 1},
    {'email': 42},
    {'password': 1234567},
])
def test_signup_validation(client, overrides):
    resp = _signup(client, **overrides)
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid'
    assert User.query.count() == 0


def test_signup_duplicate_email(client, alice):
    resp = _signup(client, email='ALICE@example.com')
    assert resp.status_code == 409
    assert resp.get_json()['code'] == 'email_taken'


def test_login_wrong_password(client, alice):
    resp = client.post('/auth/login', json={'email': 'alice@example.com', 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['code'] == 'invalid_credentials'
    resp = client.post('/auth/login', json={'email': 'ghost@example.com', 'password': 'secret123'})
    assert resp.status_code == 401
    assert client.post('/auth/login').status_code == 401
    resp = client.post('/auth/login', json={'email': 'alice@example.com', 'password': 123456})
    assert resp.status_code == 401
    assert resp.get_json()['code'] == 'invalid_credentials'


def test_password_recovery_round_trip(app, client, alice):
    resp = client.post('/auth/recover', json={'email': 'alice@example.com'})
    assert resp.status_code == 200
    assert len(mailer.outbox) == 1
    message = mailer.outbox[0]
    assert message['To'] == 'alice@example.com'
    code = PasswordReset.query.filter_by(user_id=alice.id).one().code
    assert len(code) == 4
    assert code in message.get_content()

    resp = client.post('/auth/reset/confirm', json={'code': code})
    assert resp.status_code == 200
    assert resp.get_json()['userId'] == alice.id

    resp = client.post('/auth/reset/update', json={'userId': alice.id, 'code': code, 'password': 'brandnew'})
    assert resp.status_code == 200
    assert PasswordReset.query.count() == 0

    resp = client.post('/auth/login', json={'email': 'alice@example.com', 'password': 'brandnew'})
    assert resp.status_code == 200


def test_recover_replaces_previous_code(client, alice):
    client.post('/auth/recover', json={'email': 'alice@example.com'})
    client.post('/auth/recover', json={'email': 'alice@example.com'})
    assert PasswordReset.query.filter_by(user_id=alice.id).count() == 1


def test_recover_unknown_email(client):
    resp = client.post('/auth/recover', json={'email': 'ghost@example.com'})
    assert resp.status_code == 404
    assert client.post('/auth/recover', json={}).status_code == 400


def test_recover_reports_mail_failure(app, client, alice, monkeypatch):
    class BrokenSMTP:
        def __init__(self, *args, **kwargs):
            raise smtplib.SMTPConnectError(421, 'unavailable')

    monkeypatch.setattr(smtplib, 'SMTP', BrokenSMTP)
    app.config['MAIL_SUPPRESS_SEND'] = False
    resp = client.post('/auth/recover', json={'email': 'alice@example.com'})
    assert resp.status_code == 502
    assert resp.get_json()['code'] == 'mail_failed'
    assert PasswordReset.query.filter_by(user_id=alice.id).count() == 1


def test_confirm_rejects_bad_and_expired_codes(client, alice):
    assert client.post('/auth/reset/confirm', json={'code': '12'}).status_code == 400
    reset = PasswordReset(code='1234', user_id=alice.id, expires_at=utcnow() - datetime.timedelta(minutes=1))
    db.session.add(reset)
    db.session.commit()
    resp = client.post('/auth/reset/confirm', json={'code': '1234'})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid_reset_code'


def test_reset_update_requires_matching_code(client, alice, bob):
    reset = PasswordReset(code='4321', user_id=bob.id, expires_at=utcnow() + datetime.timedelta(minutes=5))
    db.session.add(reset)
    db.session.commit()
    resp = client.post('/auth/reset/update', json={'userId': alice.id, 'code': '4321', 'password': 'brandnew'})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid_reset_code'
    assert client.post('/auth/reset/update', json={'userId': 'x', 'password': 'brandnew'}).status_code == 400
    resp = client.post('/auth/reset/update', json={'userId': 999, 'code': '4321', 'password': 'brandnew'})
    assert resp.status_code == 404


def test_update_profile_reissues_token(client, alice):
    resp = client.put('/update-profile', headers=bearer(alice), json={
        'first_name': 'Alicia', 'last_name': 'Martin', 'email': 'alicia@example.com',
    })
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['user']['first_name'] == 'Alicia'
    assert decode_token(data['token'])['email'] == 'alicia@example.com'
    assert db.session.get(User, alice.id).email == 'alicia@example.com'


def test_update_profile_email_conflict(client, alice, bob):
    resp = client.put('/update-profile', headers=bearer(alice), json={
        'first_name': 'Alice', 'last_name': 'Martin', 'email': 'bob@example.com',
    })
    assert resp.status_code == 409
    resp = client.put('/update-profile', headers=bearer(alice), json={'first_name': 'Alice'})
    assert resp.status_code == 400


def test_update_profile_keeps_own_email(client, alice):
    resp = client.put('/update-profile', headers=bearer(alice), json={
        'first_name': 'Alice', 'last_name': 'Moreau', 'email': 'alice@example.com',
    })
    assert resp.status_code == 200


def test_update_password(client, alice):
    url = '/update-password'
    headers = bearer(alice)
    assert client.put(url, headers=headers, json={'currentPass': 'secret123'}).status_code == 400

    resp = client.put(url, headers=headers, json={'currentPass': 'secret123', 'newPass': 'abcdef1', 'confirmPass': 'abcdef2'})
    assert resp.status_code == 400

    resp = client.put(url, headers=headers, json={'currentPass': 'wrong', 'newPass': 'abcdef1', 'confirmPass': 'abcdef1'})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid_credentials'

    resp = client.put(url, headers=headers, json={'currentPass': 'secret123', 'newPass': 'abcdef1', 'confirmPass': 'abcdef1'})
    assert resp.status_code == 200
    resp = client.post('/auth/login', json={'email': 'alice@example.com', 'password': 'abcdef1'})
    assert resp.status_code == 200


def test_update_password_requires_token(client):
    assert client.put('/update-password', json={}).status_code == 401


@pytest.mark.parametrize('payload', [
    {'currentPass': 'secret123', 'newPass': 1234567, 'confirmPass': 1234567},
    {'currentPass': 123, 'newPass': 'abcdef1', 'confirmPass': 'abcdef1'},
])
def test_update_password_rejects_non_text_fields(client, alice, payload):
    resp = client.put('/update-password', headers=bearer(alice), json=payload)
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid'


def test_update_profile_rejects_non_text_fields(client, alice):
    resp = client.put('/update-profile', headers=bearer(alice), json={
        'first_name': ['Alice'], 'last_name': 'Martin', 'email': 'alice@example.com',
    })
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid'


def test_reset_request_storage_failure_is_not_an_email_conflict(client, alice, monkeypatch):
    def broken_commit():
        raise IntegrityError('INSERT INTO password_reset', {}, Exception('FOREIGN KEY constraint failed'))

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    resp = client.post('/auth/recover', json={'email': 'alice@example.com'})
    monkeypatch.undo()
    assert resp.status_code == 500
    assert resp.get_json()['code'] == 'server_error'
    assert PasswordReset.query.count() == 0
    assert mailer.outbox == []
