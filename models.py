import datetime
from datetime import timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Boolean, select, type_coerce
from sqlalchemy.orm import column_property

# SQLAlchemy instance (initialized by app)
db = SQLAlchemy()


def utcnow():
    return datetime.datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


book_genre = db.Table(
    'book_genre',
    db.Column('book_id', db.Integer, db.ForeignKey('book.id', ondelete='CASCADE'), primary_key=True),
    db.Column('genre_id', db.Integer, db.ForeignKey('genre.id', ondelete='CASCADE'), primary_key=True),
)


class Genre(db.Model):
    __tablename__ = 'genre'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


class Book(db.Model):
    __tablename__ = 'book'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    year = db.Column(db.Integer, nullable=True)
    author = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    cover = db.Column(db.String(255), nullable=True)
    genres = db.relationship(
        'Genre',
        secondary=book_genre,
        lazy='selectin',
        order_by='Genre.name',
        backref=db.backref('books', lazy=True),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'year': self.year,
            'author': self.author,
            'description': self.description,
            'cover': self.cover,
            'available': bool(self.available),
            'genres': [genre.name for genre in self.genres],
        }


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'created_at': _isoformat(self.created_at),
        }


class Loan(db.Model):
    __tablename__ = 'loan'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    # one loan per book at any time; the constraint is what serializes concurrent borrows
    book_id = db.Column(db.Integer, db.ForeignKey('book.id', ondelete='CASCADE'), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship('User', backref=db.backref('loans', lazy=True, passive_deletes=True))
    book = db.relationship('Book', backref=db.backref('loan', uselist=False, lazy=True, passive_deletes=True))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'book_id': self.book_id,
            'created_at': _isoformat(self.created_at),
            'book': self.book.to_dict() if self.book else None,
        }


class PasswordReset(db.Model):
    __tablename__ = 'password_reset'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(4), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', backref=db.backref('password_resets', lazy=True, passive_deletes=True))


# Availability is derived from loan existence instead of being stored on the book.
Book.available = column_property(
    type_coerce(
        ~select(Loan.id).where(Loan.book_id == Book.id).correlate_except(Loan).exists(),
        Boolean,
    ),
)
