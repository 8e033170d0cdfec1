from flask import Blueprint, jsonify

from library_app.controllers.serializers import book_json
from library_app.models.user import STAFF_ROLES
from library_app.services.book_service import BookService
from library_app.utils.decorators import role_required
from library_app.utils.requests import json_body, optional_str, require_str

book_bp = Blueprint("books", __name__)


@book_bp.get("/books")
def list_books():
    books = BookService.list_books()
    return jsonify({"success": True, "books": [book_json(b) for b in books]})


@book_bp.post("/searchbooks")
def search_books():
    data = json_body()
    books = BookService.search_books(optional_str(data, "query"))
    return jsonify({"success": True, "books": [book_json(b) for b in books]})


@book_bp.post("/addbook")
@role_required(*STAFF_ROLES)
def add_book():
    book = BookService.add_book(json_body())
    return jsonify({"success": True, "message": "Book added successfully!", "book": book_json(book)}), 201


@book_bp.post("/updatebook")
@role_required(*STAFF_ROLES)
def update_book():
    data = json_body()
    book = BookService.update_book(require_str(data, "isbn"), data)
    return jsonify({"success": True, "message": "Book updated successfully!", "book": book_json(book)})


@book_bp.post("/removebook")
@role_required(*STAFF_ROLES)
def remove_book():
    data = json_body()
    outcome = BookService.remove_book(require_str(data, "isbn"))
    return jsonify({"success": True, "message": "Book removed successfully!", "outcome": outcome})
