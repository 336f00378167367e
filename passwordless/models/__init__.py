"""SQLAlchemy ORM models for passwordless token persistence.

All models are exported from this module for convenient imports:
    from passwordless.models import Base, PasswordlessToken
"""

from passwordless.models.base import Base
from passwordless.models.token_record import PasswordlessToken

__all__ = [
    "Base",
    "PasswordlessToken",
]
