from bookstall.shared.domain.catalog.book_store import BookActions, BookStore
from bookstall.shared.domain.catalog.models import Book, BookCategory, NewBook

__all__ = ["BookActions", "BookStore", "Book", "BookCategory", "NewBook"]
