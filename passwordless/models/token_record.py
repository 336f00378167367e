"""Passwordless token model.

Stores one active token per uid. Tokens are kept as SHA-256 hashes, so a
leaked table does not hand out working sign-in links.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.models.base import Base


class PasswordlessToken(Base):
    """One-time sign-in token.

    Attributes:
        uid: Owner of the token. Primary key: one record per uid.
        token_hash: SHA-256 hex digest of the token value.
        expires_at: Token is valid while now < expires_at.
        origin_url: Where to send the user after authentication.
        created_at: When the token was issued.
    """

    __tablename__ = "passwordless_tokens"

    uid: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    origin_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
