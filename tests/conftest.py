import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from models import db, Book, Genre, User
from services.auth import issue_token


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email='alice@example.com', password='secret123', first_name='Alice', last_name='Martin'):
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=generate_password_hash(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def make_book(title='Stop Overthinking', genres=()):
    book = Book(title=title, year=2022, author='Nick Trenton', description='Calm your mind.', cover='covers/1.jpg')
    book.genres = [Genre(name=name) for name in genres]
    db.session.add(book)
    db.session.commit()
    return book


def bearer(user):
    return {'Authorization': f'Bearer {issue_token(user)}'}


@pytest.fixture
def alice(app):
    return make_user()


@pytest.fixture
def bob(app):
    return make_user(email='bob@example.com', first_name='Bob', last_name='Durand')


@pytest.fixture
def book(app):
    return make_book(genres=('Personal development', 'Psychology'))
