from app.models.book import Book
from app.models.goal import Goal

__all__ = [
    "Book",
    "Goal",
]
