"""
SQLAlchemy ORM models for local character storage.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from typing import Optional

from sqlalchemy import Integer, Text, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from charsheet.codec import loads_document
from charsheet.models import AuthIdentity, LocalCharacter


class Base(DeclarativeBase):
    pass


class CharacterORM(Base):
    """SQLAlchemy model for characters table."""

    __tablename__ = "characters"

    local_id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="Unnamed")
    remote_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class CharacterIndexORM(Base):
    """SQLAlchemy model for the ordered index of stored character ids."""

    __tablename__ = "character_index"

    position: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    local_id: Mapped[str] = mapped_column(
        Text, ForeignKey("characters.local_id"), nullable=False, unique=True
    )


class AuthIdentityORM(Base):
    """SQLAlchemy model for the cached login. Holds at most one row."""

    __tablename__ = "auth_identity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[str] = mapped_column(Text, nullable=False, default="")


# Conversion functions


def character_orm_to_dataclass(orm: CharacterORM) -> LocalCharacter:
    """Convert a CharacterORM instance to a LocalCharacter dataclass."""
    return LocalCharacter(
        local_id=orm.local_id,
        name=orm.name,
        data=loads_document(orm.data),
        created_at=orm.created_at or "",
        updated_at=orm.updated_at or "",
        remote_id=orm.remote_id,
    )


def identity_orm_to_dataclass(orm: AuthIdentityORM) -> AuthIdentity:
    """Convert an AuthIdentityORM instance to an AuthIdentity dataclass."""
    return AuthIdentity(
        user_id=orm.user_id,
        username=orm.username or "",
        email=orm.email or "",
        token=orm.token,
        expires_at=orm.expires_at or "",
    )
