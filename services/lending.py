"""Lending domain service logic."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import List, Optional

from flask import current_app
from sqlalchemy import DateTime, Integer, delete, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from models import db, Book, Loan, utcnow
from services.errors import NoActiveLoan, NotAvailable, NotFound, StorageError

loan_table = Loan.__table__


@dataclass(frozen=True)
class LendingResult:
    book: Book
    loan: Optional[Loan] = None


class LendingService:
    """Borrow/return of single-copy books.

    A book is on loan exactly when a ``Loan`` row references it. Both
    mutations are single statements checked by row count, so the store
    decides the winner when two requests race for the same book.
    """

    @contextmanager
    def _transaction(self):
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def list_books(self) -> List[Book]:
        return Book.query.order_by(Book.id).all()

    def get_book(self, book_id: int) -> Book:
        book = db.session.get(Book, book_id)
        if not book:
            raise NotFound('Book not found.')
        return book

    def borrow(self, *, user_id: int, book_id: int) -> LendingResult:
        try:
            with self._transaction():
                # inserts nothing when the book does not exist
                stmt = insert(loan_table).from_select(
                    ['user_id', 'book_id', 'created_at'],
                    select(
                        literal(user_id, Integer),
                        Book.id,
                        literal(utcnow(), DateTime),
                    ).where(Book.id == book_id),
                )
                result = db.session.execute(stmt)
                if result.rowcount == 0:
                    raise NotAvailable()
                loan = db.session.execute(
                    select(Loan).where(Loan.book_id == book_id)
                ).scalar_one()
        except NotAvailable:
            current_app.logger.warning('Borrow rejected: book %s does not exist (user %s)', book_id, user_id)
            raise
        except IntegrityError:
            current_app.logger.warning('Borrow rejected: book %s already on loan (user %s)', book_id, user_id)
            raise NotAvailable() from None
        except SQLAlchemyError as exc:
            current_app.logger.exception('Borrow transaction failed: %s', exc)
            raise StorageError() from exc
        current_app.logger.info('User %s borrowed book %s', user_id, book_id)
        return LendingResult(book=loan.book, loan=loan)

    def return_book(self, *, user_id: int, book_id: int) -> LendingResult:
        try:
            with self._transaction():
                result = db.session.execute(
                    delete(loan_table).where(
                        loan_table.c.user_id == user_id,
                        loan_table.c.book_id == book_id,
                    )
                )
                if result.rowcount == 0:
                    raise NoActiveLoan()
        except NoActiveLoan:
            current_app.logger.warning('Return rejected: user %s holds no loan for book %s', user_id, book_id)
            raise
        except SQLAlchemyError as exc:
            current_app.logger.exception('Return transaction failed: %s', exc)
            raise StorageError() from exc
        current_app.logger.info('User %s returned book %s', user_id, book_id)
        return LendingResult(book=db.session.get(Book, book_id))

    def list_loans(self, user_id: int) -> List[Loan]:
        return (
            Loan.query.options(joinedload(Loan.book))
            .filter_by(user_id=user_id)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .all()
        )
