from sqlalchemy import func, or_

from library_app.models.book import Book
from library_app.extensions import db


class BookRepo:
    @staticmethod
    def list_active():
        return Book.query.filter_by(is_active=True).order_by(Book.title.asc()).all()

    @staticmethod
    def get(book_id: int):
        return db.session.get(Book, book_id)

    @staticmethod
    def get_by_isbn(isbn: str):
        return Book.query.filter_by(isbn=isbn).first()

    @staticmethod
    def search(text: str, limit: int):
        pattern = f"%{text.lower()}%"
        return (
            Book.query.filter(
                Book.is_active.is_(True),
                or_(
                    func.lower(Book.title).like(pattern),
                    func.lower(Book.author).like(pattern),
                    func.lower(Book.isbn).like(pattern),
                    func.lower(Book.category).like(pattern),
                ),
            )
            .order_by(Book.title.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def create(book: Book):
        db.session.add(book)
        db.session.commit()
        return book

    @staticmethod
    def update():
        db.session.commit()

    @staticmethod
    def delete(book: Book):
        db.session.delete(book)
        db.session.commit()
