from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import click
from werkzeug.security import generate_password_hash

from library_app.extensions import db
from library_app.models import Book, Issue, User
from library_app.services.fines import derive_status
from library_app.utils.clock import utcnow

DEMO_USERS = [
    {"role": "admin", "username": "admin1", "password": "adminpass"},
    {"role": "student", "username": "student1", "password": "studentpass", "email": "student1@library.local"},
    {"role": "teacher", "username": "teacher1", "password": "teacherpass"},
    {"role": "student", "username": "Anamika", "password": "Anamika123", "user_code": "S123"},
    {"role": "assistant", "username": "assistant1", "password": "assistantpass", "user_code": "A001"},
]

DEMO_BOOKS = [
    {"title": "The Midnight Library", "author": "Matt Haig", "isbn": "978-0735211292",
     "category": "Fiction", "total_copies": 3},
    {"title": "Project Hail Mary", "author": "Andy Weir", "isbn": "978-0593135204",
     "category": "Science Fiction", "total_copies": 2},
    {"title": "Klara and the Sun", "author": "Kazuo Ishiguro", "isbn": "978-0593318171",
     "category": "Fiction", "total_copies": 2},
    {"title": "A Brief History of Time", "author": "Stephen Hawking", "isbn": "978-0553380163",
     "category": "Science", "total_copies": 1},
    {"title": "Mrinmoy's History", "author": "Mrinmoy", "isbn": "20015n",
     "category": "History", "total_copies": 1},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "isbn": "978-0061120084",
     "category": "Classic Literature", "total_copies": 2},
]

# (book index, user index, issued days ago, due in days, returned days ago, fine, paid)
DEMO_ISSUES = [
    (0, 1, 20, -6, None, 0, False),
    (1, 3, 18, -4, None, 0, False),
    (3, 2, 10, 4, None, 0, False),
    (5, 1, 25, -11, 5, 12, True),
]


def seed_demo_data() -> dict:
    """Drops every table and loads the demo data set. Returns row counts."""
    db.drop_all()
    db.create_all()

    now = utcnow()
    users = []
    for row in DEMO_USERS:
        user = User(
            username=row["username"],
            password_hash=generate_password_hash(row["password"]),
            role=row["role"],
            email=row.get("email"),
            user_code=row.get("user_code"),
        )
        db.session.add(user)
        users.append(user)

    books = []
    for row in DEMO_BOOKS:
        book = Book(available_copies=row["total_copies"], **row)
        db.session.add(book)
        books.append(book)
    db.session.flush()

    for book_idx, user_idx, issued_ago, due_in, returned_ago, fine, paid in DEMO_ISSUES:
        book = books[book_idx]
        issue = Issue(
            book_id=book.id,
            user_id=users[user_idx].id,
            issue_date=now - timedelta(days=issued_ago),
            due_date=now + timedelta(days=due_in),
            return_date=now - timedelta(days=returned_ago) if returned_ago is not None else None,
            fine_amount=Decimal(fine),
            fine_is_paid=paid,
            fine_paid_date=now - timedelta(days=returned_ago) if paid else None,
        )
        issue.status = derive_status(issue, now)
        if issue.return_date is None:
            book.available_copies -= 1
        db.session.add(issue)

    db.session.commit()
    return {"users": len(users), "books": len(books), "issues": len(DEMO_ISSUES)}


def register_cli(app):
    @app.cli.command("seed")
    def seed_command():
        """Reset the database and load demo users, books and issues."""
        counts = seed_demo_data()
        app.logger.info(f"[seed] {counts}")
        click.echo(f"Seeded {counts['users']} users, {counts['books']} books, {counts['issues']} issues.")

    @app.cli.command("init-db")
    def init_db_command():
        """Create missing tables without touching existing data."""
        db.create_all()
        click.echo("Tables created.")
