"""
TooslaStorage — local application data mirrored to the remote storage.

Sync logic:

1. ``login()`` exchanges the credentials kept in the vault for an api key.
2. ``sync()`` downloads the remote snapshot only if more recent than the
   last known one; a more recent snapshot replaces the whole local mirror
   (last writer wins, snapshot granularity). If the remote has no snapshot
   yet, the local one is uploaded.
3. Every local mutation is pushed in background; the upload carries
   ``If-Unmodified-Since`` so the server refuses it if it has newer data.

``sync()`` and pushes are serialized by one lock per storage instance.
Background pushes are at-most-once and best-effort: failures are logged
and leave the storage dirty.
"""
import asyncio
import logging
from typing import Optional
from datetime import datetime

from .conf import (
    CREDENTIALS_LABEL,
    LINK_STATUS_LINKED,
    LINK_STATUS_UNLINKED,
    CHANGE_STATUS_CLEAN,
    CHANGE_STATUS_DIRTY,
)
from .config import StorageConfig
from .client import StorageClient
from .exceptions import (
    AuthorizationError,
    TooslaError,
    RemoteError,
)
from .medium import MemoryMedium
from .mirror import LocalMirror
from .vault import PasswordManager
from .utils import check_object

logger = logging.getLogger("toosla.storage")


class TooslaStorage(LocalMirror):
    """Local mirror synchronized with the remote storage."""

    def __init__(
        self,
        passwd: PasswordManager,
        config: Optional[StorageConfig] = None,
        medium: Optional[MemoryMedium] = None,
        client: Optional[StorageClient] = None,
    ):
        check_object("passwd", passwd)
        super().__init__(medium)
        self._passwd = passwd
        self.config = config or (client.config if client else StorageConfig())
        self._client = client or StorageClient(self.config)
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self.account: Optional[str] = None
        self.api_key: Optional[str] = None
        self.link_status: str = LINK_STATUS_UNLINKED
        self.change_status: str = CHANGE_STATUS_CLEAN
        self.last_modified: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f'<TooslaStorage [{self.link_status}, {self.change_status}] '
            f'account={self.account!r}, last_modified={self.last_modified}>'
        )

    async def __aenter__(self) -> "TooslaStorage":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def linked(self) -> bool:
        return self.link_status == LINK_STATUS_LINKED

    @property
    def dirty(self) -> bool:
        return self.change_status == CHANGE_STATUS_DIRTY

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def credentials(self) -> str:
        """Load the remote storage credentials with the session PIN."""
        return self._passwd.load_secret(self._passwd.pin, CREDENTIALS_LABEL)

    def _unlink(self) -> None:
        self.account = None
        self.api_key = None
        self.link_status = LINK_STATUS_UNLINKED

    async def login(self) -> None:
        """Authenticate on the remote storage.

        Only an explicit refusal (401) unlinks the storage; any other
        failure is logged and leaves the link status as it was.
        """
        logger.debug("login")
        try:
            credentials = self.credentials()
        except TooslaError as err:
            logger.info("Unable to read the storage credentials: %s", err)
            return

        try:
            result = await self._client.login(credentials)
        except AuthorizationError:
            self._unlink()
            logger.info(
                "Unable to link the remote storage: the provided "
                "credentials are not authorized"
            )
            return
        except RemoteError as err:
            logger.info(
                "Login failed due to a network or unexpected error, "
                "working offline: %s", err
            )
            return

        self.account = result.account
        self.api_key = result.api_key
        self.link_status = LINK_STATUS_LINKED
        logger.info("TooslaStorage connected with account %s", self.account)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def sync(self) -> None:
        """Reconcile the local mirror with the remote snapshot.

        Raises:
            RemoteError: On any failure; the caller decides whether to
                retry or keep working offline.
        """
        async with self._lock:
            logger.debug("start sync %s", self.last_modified)
            revision = self.revision
            try:
                result = await self._client.read(self.api_key, self.last_modified)
                if result.modified:
                    self.replace(result.content)
                    revision = self.revision
                    self.last_modified = result.last_modified
                    logger.info(
                        "Local storage replaced with the remote snapshot (%s)",
                        self.last_modified
                    )
                elif result.not_modified:
                    logger.debug("local storage up-to-date")
                else:
                    # _push() sets the change status itself
                    logger.debug("remote snapshot not found, save it")
                    await self._push()
                    revision = None
                # mutations made while reading are still waiting for their push
                if revision is not None and self.revision == revision:
                    self.change_status = CHANGE_STATUS_CLEAN
            except RemoteError as err:
                logger.info(
                    "Unable to read the remote storage, working offline: %s", err
                )
                raise
            logger.debug("end sync %s", self.last_modified)

    async def save_local_storage(self) -> None:
        """Upload the local mirror.

        Raises:
            ConflictError: If the remote copy changed after ``last_modified``.
            RemoteError: On any other failure.
        """
        async with self._lock:
            await self._push()

    async def _push(self) -> None:
        revision = self.revision
        try:
            last_modified = await self._client.write(
                self.api_key, self.snapshot(), self.last_modified
            )
        except RemoteError as err:
            logger.info(
                "Unable to save changes to the remote storage, "
                "working offline: %s", err
            )
            raise
        if last_modified is not None:
            self.last_modified = last_modified
        if self.revision == revision:
            self.change_status = CHANGE_STATUS_CLEAN

    async def sync_forever(self, interval: Optional[float] = None) -> None:
        """Run ``sync()`` every ``interval`` seconds until cancelled."""
        interval = interval or self.config.sync_interval
        while True:
            if self.linked:
                try:
                    await self.sync()
                except RemoteError as err:
                    logger.warning("Periodic sync failed: %s", err)
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Background pushes
    # ------------------------------------------------------------------

    def _mutated(self, push: bool = True) -> None:
        super()._mutated(push)
        self.change_status = CHANGE_STATUS_DIRTY
        if push:
            self._schedule_push()

    def _schedule_push(self) -> None:
        if self.api_key is None:
            logger.debug("TooslaStorage not linked, remote push deferred")
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, remote push deferred")
            return
        task = loop.create_task(self.save_local_storage())
        self._pending.add(task)
        task.add_done_callback(self._push_done)

    def _push_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error("Background push failed: %s", err)

    async def wait_pending(self) -> None:
        """Wait for the background pushes scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_pending()
        await self._client.close()
