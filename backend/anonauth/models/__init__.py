"""ORM models.

Importing this package registers every model on ``Base.metadata``.
"""

from anonauth.models.anonymous_code import AnonymousCode
from anonauth.models.base import Base

__all__ = [
    "AnonymousCode",
    "Base",
]
