"""
Local persistence gateway.

Wraps the database layer with the debounced autosave policy and the JSON
export/import file format. The gateway knows nothing about the store: the
store hands it a snapshot callable and the gateway reads it when the write
actually happens.
"""

import json
import re
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from charsheet.codec import document_from_dict, local_character_to_dict
from charsheet.database import (
    delete_character,
    get_character,
    list_characters,
    save_character,
    utc_now,
)
from charsheet.debounce import Debouncer, LoopScheduler, Scheduler
from charsheet.errors import DocumentFormatError, ImportFormatError
from charsheet.models import CharacterDocument, LocalCharacter
from util.constants import AUTOSAVE_DELAY_SECONDS
from util.logging_util import setup_logger

logger = setup_logger(__name__)

# (name, document, remote_id) as of the moment the write runs
Snapshot = Tuple[str, CharacterDocument, Optional[str]]


def export_filename(name: str, suffix: str = ".json") -> str:
    return re.sub(r"\s+", "_", name or "character") + suffix


class PersistenceGateway:
    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        delay: float = AUTOSAVE_DELAY_SECONDS,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._debouncer = Debouncer(delay, scheduler or LoopScheduler())
        self._id_factory = id_factory

    # Local save

    def save_now(
        self,
        local_id: str,
        name: str,
        document: CharacterDocument,
        remote_id: Optional[str] = None,
    ) -> LocalCharacter:
        record = save_character(local_id, name, document, remote_id)
        logger.debug("Saved character %s (%s)", local_id, name)
        return record

    def schedule_save(
        self,
        local_id: str,
        snapshot: Callable[[], Snapshot],
        on_saved: Optional[Callable[[LocalCharacter], None]] = None,
    ) -> None:
        """Request a debounced write for local_id.

        Any write still pending is superseded. snapshot() is called when the
        timer fires, so the stored content is the state current at that time.
        """
        def write():
            name, document, remote_id = snapshot()
            record = self.save_now(local_id, name, document, remote_id)
            if on_saved is not None:
                on_saved(record)

        self._debouncer.schedule(write)

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    def flush(self) -> None:
        """Write any pending debounced save immediately."""
        self._debouncer.flush()

    # Load / list / delete

    def load(self, local_id: str) -> Optional[LocalCharacter]:
        return get_character(local_id)

    def list_characters(self) -> List[LocalCharacter]:
        return list_characters()

    def delete(self, local_id: str) -> bool:
        deleted = delete_character(local_id)
        if deleted:
            logger.info("Deleted local character %s", local_id)
        return deleted

    # Export / import

    def export_json(self, record: LocalCharacter) -> str:
        return json.dumps(local_character_to_dict(record), indent=2)

    def write_export(self, record: LocalCharacter, directory: Path) -> Path:
        path = Path(directory) / export_filename(record.name)
        path.write_text(self.export_json(record))
        logger.info("Exported %s to %s", record.local_id, path)
        return path

    def import_json(self, text: str) -> LocalCharacter:
        """Store an exported character as a new, independent local entry.

        The embedded id is discarded and a fresh local id is assigned, so an
        import never overwrites an existing character. Raises ImportFormatError
        without writing anything if the payload is malformed.
        """
        try:
            parsed = json.loads(text)
        except (TypeError, ValueError) as e:
            raise ImportFormatError(f"Invalid JSON file: {e}") from e
        if not isinstance(parsed, dict) or "data" not in parsed:
            raise ImportFormatError("Invalid character file: missing 'data'")

        try:
            document = document_from_dict(parsed["data"])
        except DocumentFormatError as e:
            raise ImportFormatError(f"Invalid character file: {e}") from e

        name = parsed.get("name")
        if not isinstance(name, str) or not name:
            name = document.display_name
        created_at = parsed.get("createdAt")
        if not isinstance(created_at, str) or not created_at:
            created_at = utc_now()

        local_id = self._id_factory()
        record = save_character(local_id, name, document, created_at=created_at)
        logger.info("Imported character %r as %s", name, local_id)
        return record

    def import_file(self, path: Path) -> LocalCharacter:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"Could not read {path}: {e}") from e
        return self.import_json(text)
