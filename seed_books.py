#!/usr/bin/env python3
"""
Seed the demo catalogue (books and genres).
Usage:
  python seed_books.py [--db-uri sqlite:///lending.db]

Genres are matched by name and books by title, so running the script twice
does not create duplicates.
"""
import argparse
import sys

from app import create_app
from models import db, Book, Genre

PERSONAL_DEVELOPMENT = 'Personal development'
FINANCE = 'Finance'
PSYCHOLOGY = 'Psychology'
PHILOSOPHY = 'Philosophy'
POLITICS = 'Politics'

GENRES = [PERSONAL_DEVELOPMENT, FINANCE, PSYCHOLOGY, PHILOSOPHY, POLITICS]

BOOKS = [
    {
        'title': 'Stop Overthinking',
        'year': 2022,
        'author': 'Nick Trenton',
        'description': 'A practical guide to reducing stress, calming your mind and taking back control of your thoughts.',
        'cover': 'covers/bookCover1.jpg',
        'genres': [PERSONAL_DEVELOPMENT, PSYCHOLOGY],
    },
    {
        'title': 'The Power of Discipline',
        'year': 2021,
        'author': 'Daniel Walter',
        'description': 'Using self-discipline and mental toughness to reach your goals and change your life.',
        'cover': 'covers/bookCover2.jpg',
        'genres': [PERSONAL_DEVELOPMENT],
    },
    {
        'title': 'The Richest Man in Babylon',
        'year': 1926,
        'author': 'George S. Clason',
        'description': 'Timeless financial advice told through parables set in ancient Babylon.',
        'cover': 'covers/bookCover3.jpg',
        'genres': [FINANCE],
    },
    {
        'title': 'The Technological Republic: Hard Power, Soft Belief, and the Future of the West',
        'year': 2023,
        'author': 'Alexander C. Karp, Nicholas W. Zamiska',
        'description': 'An essay on technological power, political values and democratic resilience in the modern world.',
        'cover': 'covers/bookCover4.jpg',
        'genres': [PHILOSOPHY, POLITICS],
    },
]


def get_or_create_genre(name):
    genre = Genre.query.filter_by(name=name).first()
    if not genre:
        genre = Genre(name=name)
        db.session.add(genre)
    return genre


def seed_books(books=BOOKS):
    """Insert missing genres and books. Returns the number of books created."""
    genres = {name: get_or_create_genre(name) for name in GENRES}
    created = 0
    for item in books:
        if Book.query.filter_by(title=item['title']).first():
            continue
        book = Book(
            title=item['title'],
            year=item['year'],
            author=item['author'],
            description=item['description'],
            cover=item['cover'],
        )
        book.genres = [genres.get(name) or get_or_create_genre(name) for name in item['genres']]
        db.session.add(book)
        created += 1
    db.session.commit()
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description='Seed the demo book catalogue')
    parser.add_argument('--db-uri', help='optional DB URI to override app config')
    args = parser.parse_args(argv)

    config = {}
    if args.db_uri:
        config['SQLALCHEMY_DATABASE_URI'] = args.db_uri

    app = create_app(config)
    with app.app_context():
        db.create_all()
        created = seed_books()
        print(f'Inserted {created} book(s); catalogue now holds {Book.query.count()} book(s)')
    return 0


if __name__ == '__main__':
    sys.exit(main())
