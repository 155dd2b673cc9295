"""
Explicit save to and load from the remote character service.

Remote saves are never debounced and at most one is in flight per CloudSync.
HTTP calls run in worker threads; the store and the local database are only
touched from the event loop thread, before and after each await.
"""

import asyncio
from typing import List

from charsheet.api_client import AuthSession, CharacterApi
from charsheet.codec import dumps_document
from charsheet.errors import AuthExpiredError, RemoteError, SaveInProgressError
from charsheet.models import RemoteCharacter
from charsheet.store import CharacterStore
from util.logging_util import log_remote_failure, setup_logger

logger = setup_logger(__name__)


class CloudSync:
    def __init__(self, api: CharacterApi, auth: AuthSession):
        self.api = api
        self.auth = auth
        self._saving = False

    @property
    def saving(self) -> bool:
        return self._saving

    async def _call(self, action: str, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except AuthExpiredError as e:
            log_remote_failure(logger, action, e)
            self.auth.logout()
            raise
        except RemoteError as e:
            log_remote_failure(logger, action, e)
            raise

    async def save(self, store: CharacterStore) -> RemoteCharacter:
        """Push the store's current document to the remote service.

        Creates a remote record when the store has no remote id yet, otherwise
        updates it. The dirty flag is only cleared if the store still holds the
        exact document that was sent. Raises SaveInProgressError if another save
        has not finished, and RemoteError on failure, leaving the store as it was.
        """
        if self._saving:
            raise SaveInProgressError("A cloud save is already in progress")
        if store.local_id is None:
            raise RemoteError("No character is open", retryable=False)

        self._saving = True
        try:
            local_id = store.local_id
            remote_id = store.remote_id
            document = store.document
            name = document.display_name
            data = dumps_document(document)

            if remote_id is None:
                result = await self._call("create", self.api.create, name, data)
            else:
                result = await self._call("update", self.api.update, remote_id, name=name, data=data)

            if store.local_id != local_id:
                logger.warning(
                    "Character %s was replaced during cloud save; result for %s not applied",
                    local_id, result.id,
                )
                return result

            if remote_id is None:
                store.set_remote_id(result.id)
            if store.document is document:
                store.mark_synced()
            else:
                logger.info("Character %s changed during cloud save; still dirty", local_id)

            logger.info("Saved character %s to cloud as %s", local_id, result.id)
            return result
        finally:
            self._saving = False

    async def list_remote(self) -> List[RemoteCharacter]:
        return await self._call("list", self.api.list)

    async def open_remote(self, store: CharacterStore, remote_id: str) -> str:
        """Fetch a remote character and open it in the store. Returns the new local id."""
        remote = await self._call("get", self.api.get, remote_id)
        return store.load_from_remote(remote)

    async def delete_remote(self, remote_id: str) -> None:
        await self._call("delete", self.api.delete, remote_id)
        logger.info("Deleted remote character %s", remote_id)
