# SQLAlchemy models
from .base import Base, new_id
from .content import (
    Bookmark,
    Category,
    Tag,
    bookmark_tags,
)
from .quiz import (
    Difficulty,
    Question,
    QuestionType,
    QuizAttempt,
    UserAnswer,
)

__all__ = [
    # Base
    "Base",
    "new_id",
    # Content
    "Bookmark",
    "Category",
    "Tag",
    "bookmark_tags",
    # Quiz
    "Difficulty",
    "Question",
    "QuestionType",
    "QuizAttempt",
    "UserAnswer",
]
