from library_app.services.fines import derive_status
from library_app.utils.clock import utcnow


def book_json(b):
    return {
        "id": b.id,
        "title": b.title,
        "author": b.author,
        "isbn": b.isbn,
        "category": b.category,
        "publisher": b.publisher,
        "publishedYear": b.published_year,
        "totalCopies": b.total_copies,
        "availableCopies": b.available_copies,
        "isActive": bool(b.is_active),
    }


def user_json(u):
    return {
        "id": u.id,
        "username": u.username,
        "role": u.role,
        "userCode": u.user_code,
        "fullName": u.full_name,
        "email": u.email,
    }


def issue_json(i):
    return {
        "id": i.id,
        "bookId": i.book_id,
        "userId": i.user_id,
        "issueDate": i.issue_date.isoformat() if i.issue_date else None,
        "dueDate": i.due_date.isoformat() if i.due_date else None,
        "returnDate": i.return_date.isoformat() if i.return_date else None,
        "status": derive_status(i, utcnow()),
        "fine": {
            "amount": float(i.fine_amount or 0),
            "isPaid": bool(i.fine_is_paid),
            "paidDate": i.fine_paid_date.isoformat() if i.fine_paid_date else None,
        },
        "renewalCount": i.renewal_count,
    }
