"""Toosla application registry.

Built once at startup and handed to whatever needs the vault, the
storage or the registered modules.
"""
import logging
from typing import Any, Optional

from .config import StorageConfig
from .exceptions import RemoteError
from .medium import MemoryMedium
from .storage import TooslaStorage
from .vault import PasswordManager
from .version import __version__

logger = logging.getLogger("toosla.storage")


class Toosla:
    """Owns the password manager, the storage and the module controllers."""

    name = "toosla"

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        local: Optional[MemoryMedium] = None,
        session: Optional[MemoryMedium] = None,
    ):
        self.version = __version__
        local = local if local is not None else MemoryMedium()
        self._passwd = PasswordManager(local=local, session=session)
        self._storage = TooslaStorage(self._passwd, config=config, medium=local)
        self._modules: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f'<Toosla v{self.version} modules={list(self._modules.keys())}>'

    @property
    def storage(self) -> TooslaStorage:
        return self._storage

    @property
    def password_manager(self) -> PasswordManager:
        return self._passwd

    # --- modules ---

    def register_module(self, name: str, controller: Any) -> None:
        self._modules[name] = controller

    def modules(self) -> list[tuple[str, Any]]:
        """Registered modules; the toosla entry always comes last."""
        module_list = [
            (name, controller) for name, controller in self._modules.items()
            if name != self.name
        ]
        module_list.append((self.name, self))
        return module_list

    def get_module_controller(self, module: str) -> Any:
        return self._modules.get(module)

    # --- lifecycle ---

    async def start(self) -> str:
        """Link the remote storage and, when linked, bring local data in sync.

        Returns:
            The storage link status.
        """
        await self._storage.login()
        if not self._storage.linked:
            logger.info("TooslaStorage not linked, unable to sync local data")
            return self._storage.link_status
        try:
            await self._storage.sync()
        except RemoteError as err:
            logger.warning("Initial sync failed, working offline: %s", err)
        else:
            logger.info("Local data in sync")
        return self._storage.link_status

    async def close(self) -> None:
        await self._storage.close()
