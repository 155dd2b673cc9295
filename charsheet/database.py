"""
Database operations for local character storage.

Uses SQLAlchemy ORM for database access. The public API uses the dataclass
models from models.py, with conversion to/from ORM models handled internally.
Documents are stored as serialized JSON; the character_index table keeps the
ordered list of stored ids used for listing.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select

from charsheet.codec import dumps_document
from charsheet.db_engine import get_engine, get_session
from charsheet.models import AuthIdentity, CharacterDocument, LocalCharacter
from charsheet.orm_models import (
    Base,
    AuthIdentityORM,
    CharacterORM,
    CharacterIndexORM,
    character_orm_to_dataclass,
    identity_orm_to_dataclass,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


def save_character(
    local_id: str,
    name: str,
    document: CharacterDocument,
    remote_id: Optional[str] = None,
    created_at: Optional[str] = None,
) -> LocalCharacter:
    """Insert or overwrite a character by local id. Returns the stored record.

    created_at is kept from the existing row when overwriting; for a new row
    it defaults to now.
    """
    now = utc_now()
    data = dumps_document(document)
    with get_session() as session:
        orm = session.get(CharacterORM, local_id)
        if orm is None:
            orm = CharacterORM(
                local_id=local_id,
                name=name,
                remote_id=remote_id,
                data=data,
                created_at=created_at or now,
                updated_at=now,
            )
            session.add(orm)
            # The index row references the character row
            session.flush()
            session.add(CharacterIndexORM(local_id=local_id))
        else:
            orm.name = name
            orm.remote_id = remote_id
            orm.data = data
            orm.updated_at = now
        session.flush()
        return LocalCharacter(
            local_id=orm.local_id,
            name=orm.name,
            data=document,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
            remote_id=orm.remote_id,
        )


def get_character(local_id: str) -> Optional[LocalCharacter]:
    """Get a character by local id."""
    with get_session() as session:
        orm = session.get(CharacterORM, local_id)
        if orm is None:
            return None
        return character_orm_to_dataclass(orm)


def list_character_ids() -> List[str]:
    """Get the stored local ids in creation order."""
    with get_session() as session:
        stmt = select(CharacterIndexORM.local_id).order_by(CharacterIndexORM.position)
        return list(session.execute(stmt).scalars().all())


def list_characters() -> List[LocalCharacter]:
    """Get every stored character, in creation order."""
    with get_session() as session:
        stmt = (
            select(CharacterORM)
            .join(CharacterIndexORM, CharacterIndexORM.local_id == CharacterORM.local_id)
            .order_by(CharacterIndexORM.position)
        )
        orms = session.execute(stmt).scalars().all()
        return [character_orm_to_dataclass(orm) for orm in orms]


def delete_character(local_id: str) -> bool:
    """Delete a character and its index entry. Returns False if it did not exist."""
    with get_session() as session:
        orm = session.get(CharacterORM, local_id)
        if orm is None:
            return False

        stmt = select(CharacterIndexORM).where(CharacterIndexORM.local_id == local_id)
        for entry in session.execute(stmt).scalars().all():
            session.delete(entry)
        session.flush()
        session.delete(orm)
        return True


def save_identity(identity: AuthIdentity):
    """Cache the logged-in identity, replacing any previous one."""
    with get_session() as session:
        orm = session.get(AuthIdentityORM, 1)
        if orm is None:
            orm = AuthIdentityORM(id=1)
            session.add(orm)
        orm.user_id = identity.user_id
        orm.username = identity.username
        orm.email = identity.email
        orm.token = identity.token
        orm.expires_at = identity.expires_at


def get_identity() -> Optional[AuthIdentity]:
    """Get the cached identity, if logged in."""
    with get_session() as session:
        orm = session.get(AuthIdentityORM, 1)
        if orm is None:
            return None
        return identity_orm_to_dataclass(orm)


def clear_identity():
    """Forget the cached identity and token."""
    with get_session() as session:
        orm = session.get(AuthIdentityORM, 1)
        if orm is not None:
            session.delete(orm)
