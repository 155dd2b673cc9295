"""
The character record store.

Holds the one character open for editing and mediates every change to it.
Edits run against a deep copy of the current document, derived fields are
recomputed on the copy, and only then does the copy replace the current
document. Anyone still holding the previous document keeps a consistent
object, and nothing outside the store ever sees a document between an edit
and its recompute.
"""

import copy
import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from charsheet.calculations import recompute
from charsheet.codec import loads_document
from charsheet.models import CharacterDocument, LocalCharacter, RemoteCharacter
from charsheet.persistence import PersistenceGateway
from util.logging_util import setup_logger

logger = setup_logger(__name__)

Mutation = Callable[[CharacterDocument], None]
Listener = Callable[[CharacterDocument], None]

_DOCUMENT_FIELDS = frozenset(f.name for f in dataclasses.fields(CharacterDocument))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CharacterStore:
    def __init__(
        self,
        gateway: PersistenceGateway,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._gateway = gateway
        self._clock = clock
        self._id_factory = id_factory
        self._listeners: List[Listener] = []

        self.local_id: Optional[str] = None
        self.remote_id: Optional[str] = None
        self._document = recompute(CharacterDocument())
        self.dirty = False
        self.last_saved_at: Optional[datetime] = None

    @property
    def document(self) -> CharacterDocument:
        """The current document. Treat it as read-only; edit through apply()."""
        return self._document

    # Lifecycle

    def create_new(self) -> str:
        """Start a fresh character and persist it immediately. Returns its local id."""
        self._gateway.flush()
        local_id = self._id_factory()
        document = recompute(CharacterDocument())
        self._gateway.save_now(local_id, document.display_name, document)

        self.local_id = local_id
        self.remote_id = None
        self._document = document
        self.dirty = False
        self.last_saved_at = self._clock()
        logger.info("Created new character %s", local_id)
        self._notify()
        return local_id

    def load_from_local(self, local_id: str) -> bool:
        """Open a locally stored character. Returns False, changing nothing, if absent."""
        self._gateway.flush()
        record = self._gateway.load(local_id)
        if record is None:
            logger.info("No local character with id %s", local_id)
            return False

        self._open(record.local_id, record.remote_id, record.data)
        return True

    def load_from_remote(self, remote: RemoteCharacter) -> str:
        """Open a remote character as a new local working copy. Returns the new local id.

        The local id is freshly generated and never equals the remote id.
        Raises DocumentFormatError if the remote payload cannot be parsed.
        """
        document = loads_document(remote.data)
        local_id = self._id_factory()
        while local_id == remote.id:
            local_id = self._id_factory()

        self._gateway.flush()
        self._open(local_id, remote.id, document)
        logger.info("Opened remote character %s as local %s", remote.id, local_id)
        return local_id

    def _open(self, local_id: str, remote_id: Optional[str], document: CharacterDocument):
        self.local_id = local_id
        self.remote_id = remote_id
        self._document = recompute(document)
        self.dirty = False
        self.last_saved_at = None
        self._notify()

    # Mutation

    def apply(self, mutation: Mutation) -> CharacterDocument:
        """Run mutation against a copy of the document and make the result current.

        If the mutation raises, the current document is left untouched.
        """
        draft = copy.deepcopy(self._document)
        mutation(draft)
        self._commit(draft)
        return self._document

    def set_field(self, key: str, value: Any) -> CharacterDocument:
        """Replace one top-level document field wholesale."""
        if key not in _DOCUMENT_FIELDS:
            raise KeyError(f"Unknown character field: {key}")
        draft = copy.deepcopy(self._document)
        setattr(draft, key, copy.deepcopy(value))
        self._commit(draft)
        return self._document

    def _commit(self, draft: CharacterDocument):
        recompute(draft)
        self._document = draft
        self.dirty = True
        self._schedule_local_save()
        self._notify()

    def _schedule_local_save(self):
        if self.local_id is None:
            return
        self._gateway.schedule_save(self.local_id, self._snapshot, self._on_local_save)

    def _snapshot(self):
        return self._document.display_name, self._document, self.remote_id

    def _on_local_save(self, record: LocalCharacter):
        self.last_saved_at = self._clock()

    def flush(self) -> None:
        self._gateway.flush()

    # Sync bookkeeping

    def set_remote_id(self, remote_id: str) -> None:
        self.remote_id = remote_id
        if self.local_id is not None:
            self._gateway.save_now(
                self.local_id, self._document.display_name, self._document, remote_id
            )

    def mark_synced(self) -> None:
        """Clear the dirty flag after a confirmed remote save. last_saved_at is local-only."""
        self.dirty = False

    # Observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self._document)
