"""
PasswordManager — PIN protected secrets kept in the local medium.

Provides the public API of the secret vault:
- ``save_secret(pin, label, data)`` — encrypt and persist a secret
- ``load_secret(pin, label)`` — decrypt and return a secret
- ``remove_secret(label)`` / ``includes(label)`` / ``labels(namespace)``
- ``pin`` — the session PIN, with update listeners (unlock/lock signal)
- ``create_pin(pin)`` / ``unlock(pin)`` / ``lock()`` — PIN lifecycle

Security Note:
    Never log PINs, plaintext or ciphertext values. Only log labels.
    The PIN lives in the session medium only; what is persisted is the
    PIN encrypted with itself, used to verify it at unlock time.
"""
import logging
from typing import Any, Callable, Optional

from ..conf import SECRET_KEY_PREFIX, PIN_KEY, PIN_LABEL
from ..exceptions import AuthenticationError, DecryptionError, NotFoundError
from ..medium import MemoryMedium
from ..utils import check_value
from .crypto import SecretRecord

logger = logging.getLogger("toosla.vault")

PinListener = Callable[[Optional[str]], Any]


class PasswordManager:
    """Secret vault bound to a PIN.

    Secrets are stored in the ``local`` medium under ``secret.<label>``,
    each encrypted with AES-GCM under the SHA-256 digest of the PIN. The
    current PIN is kept in the ``session`` medium.
    """

    def __init__(
        self,
        local: Optional[MemoryMedium] = None,
        session: Optional[MemoryMedium] = None,
    ):
        self._local = local if local is not None else MemoryMedium()
        self._session = session if session is not None else MemoryMedium()
        self._pin_update_listeners: list[PinListener] = []

    # ------------------------------------------------------------------
    # PIN channel
    # ------------------------------------------------------------------

    def add_pin_update_listener(self, listener: PinListener) -> None:
        self._pin_update_listeners.append(listener)

    def remove_pin_update_listener(self, listener: PinListener) -> None:
        """Remove a listener by identity; unknown listeners are ignored."""
        for i, registered in enumerate(self._pin_update_listeners):
            if registered is listener:
                del self._pin_update_listeners[i]
                return

    @property
    def pin(self) -> Optional[str]:
        return self._session.get_item(PIN_KEY)

    @pin.setter
    def pin(self, value: Optional[str]) -> None:
        if value is None:
            self._session.remove_item(PIN_KEY)
        else:
            self._session.set_item(PIN_KEY, value)
        for listener in list(self._pin_update_listeners):
            listener(value)

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def _key(self, label: str) -> str:
        return SECRET_KEY_PREFIX + label

    def includes(self, label: str) -> bool:
        """Check whether a secret exists, without decrypting it."""
        return self._local.get_item(self._key(label)) is not None

    def save_secret(self, pin: str, label: str, data: str) -> None:
        """Encrypt and persist a secret, replacing any previous one.

        Args:
            pin: PIN the secret is encrypted with.
            label: Dot separated secret name (e.g. ``zefiro.myaccount``).
            data: Secret value.

        Raises:
            ValidationError: If any argument is missing or blank.
        """
        check_value("pin", pin)
        check_value("secret.label", label)
        check_value("secret.data", data)

        record = SecretRecord.seal(pin, data)
        self._local.set_item(self._key(label), record.dumps())

        logger.debug("Vault set: label=%s", label)

    def load_secret(self, pin: str, label: str) -> str:
        """Decrypt and return a secret.

        Args:
            pin: PIN the secret was encrypted with.
            label: Secret name.

        Returns:
            Decrypted secret.

        Raises:
            ValidationError: If any argument is missing or blank.
            NotFoundError: If no secret is stored under ``label``.
            DecryptionError: If the PIN is wrong or the record corrupted.
        """
        check_value("pin", pin)
        check_value("label", label)

        stored = self._local.get_item(self._key(label))
        if stored is None:
            raise NotFoundError(f"secret '{label}' not found")

        try:
            record = SecretRecord.loads(stored)
        except ValueError as err:
            raise DecryptionError(
                f"unable to load secret '{label}' (malformed record)"
            ) from err
        try:
            return record.open(pin)
        except (AuthenticationError, UnicodeDecodeError) as err:
            raise DecryptionError(
                f"unable to load secret '{label}' (cannot decrypt)"
            ) from err

    def remove_secret(self, label: str) -> None:
        """Delete a secret; no error if absent."""
        check_value("label", label)
        self._local.remove_item(self._key(label))
        logger.debug("Vault delete: label=%s", label)

    def labels(self, namespace: Optional[str] = None) -> list[str]:
        """Return the labels under ``namespace``, with the namespace stripped.

        An empty namespace returns every label. Order is the enumeration
        order of the local medium.
        """
        namespace = (namespace or "").strip()
        if namespace and not namespace.endswith("."):
            namespace += "."
        prefix = self._key(namespace)
        return [
            key[len(prefix):] for key in self._local if key.startswith(prefix)
        ]

    # ------------------------------------------------------------------
    # PIN lifecycle
    # ------------------------------------------------------------------

    def has_pin(self) -> bool:
        """Whether a PIN was ever created on this medium."""
        return self.includes(PIN_LABEL)

    def create_pin(self, pin: str) -> None:
        """Store ``pin`` encrypted with itself and unlock the session."""
        self.save_secret(pin, PIN_LABEL, pin)
        self.pin = pin
        logger.info("Vault PIN created")

    def unlock(self, pin: str) -> None:
        """Verify ``pin`` against the stored one and unlock the session.

        Raises:
            NotFoundError: If no PIN was created yet.
            DecryptionError: If ``pin`` is not the stored PIN.
        """
        try:
            saved = self.load_secret(pin, PIN_LABEL)
        except DecryptionError:
            self.pin = ""
            logger.info("Vault unlock refused: incorrect PIN")
            raise
        if saved != pin:
            self.pin = ""
            logger.info("Vault unlock refused: incorrect PIN")
            raise DecryptionError("incorrect PIN")
        self.pin = pin
        logger.info("Vault unlocked")

    def lock(self) -> None:
        """Forget the session PIN."""
        self.pin = None
        logger.info("Vault locked")
