# Vault - Controller
#
# Single-file encrypted vault:
#   vault file = auth token blob ‖ credentials blob   (see codec.py)
#
# State machine:
#   NO_VAULT --initialize_vault--> UNLOCKED
#   LOCKED   --unlock-----------> UNLOCKED   (auth token check, then full decrypt)
#   UNLOCKED --lock-------------> LOCKED     (master password zeroed, store dropped)
#
# Every public operation runs under one RLock so the auto-lock thread cannot
# interleave with a half-finished add/remove/save.

import atexit
import hmac
import logging
import os
import tempfile
import threading
import weakref
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core import EventSeverity, EventType, get_audit_logger, get_config
from .codec import EncryptedBlob, decode_vault_file, encode_vault_file, serialize
from .credential_store import Credential, CredentialStore
from .encryption import AuthenticatedCipher
from .exceptions import FormatError, VaultError, VaultFatalError, VaultIOError
from .hygiene import erase_in_place, scrubbed, secret_bytes
from .strength import generate_password, validate_password_strength

logger = logging.getLogger(__name__)

AUTH_CHECK_PLAINTEXT = b"VAULT_AUTH_CHECK"


class VaultState(str, Enum):
    NO_VAULT = "no_vault"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class UnlockedSession:
    """
    Secrets held only while the vault is unlocked.

    The master password is kept as a bytearray (UTF-8) so ``destroy()``
    can zero it. Keys are re-derived per encryption because every save
    uses a fresh salt.
    """

    def __init__(self, password: bytearray, auth_token: EncryptedBlob, store: CredentialStore):
        self._password = password
        self.auth_token = auth_token
        self.store = store
        self.unlocked_at = datetime.now(timezone.utc)

    @property
    def password(self) -> bytearray:
        if self._password is None:
            raise VaultError("Session has been destroyed")
        return self._password

    def matches(self, candidate: bytearray) -> bool:
        return hmac.compare_digest(bytes(self.password), bytes(candidate))

    def destroy(self) -> None:
        if self._password is not None:
            erase_in_place(self._password)
            self._password = None
        self.store.clear()


class VaultController:
    """
    Encrypted credential vault backed by a single file.

    Security:
    - Master password verified against an encrypted auth token
      (VAULT_AUTH_CHECK) before the credential blob is touched
    - Whole store re-encrypted with fresh salt/IV on every change
    - Saves are atomic (temp file + rename); a failed save leaves the
      previous vault file intact
    - Master password zeroed on lock, failed unlock and interpreter exit

    Public operations return booleans / None / [] on recoverable failures
    (wrong password, malformed file, I/O error). KDF and RNG failures raise
    VaultFatalError.
    """

    def __init__(
        self,
        vault_path: Optional[Path] = None,
        iterations: Optional[int] = None,
        cipher: Optional[AuthenticatedCipher] = None,
    ):
        """
        Args:
            vault_path: Vault file location (default: configured path)
            iterations: PBKDF2 iterations (default: configured count)
            cipher: Cipher to use; overrides ``iterations``
        """
        config = get_config()
        self.vault_path = Path(vault_path) if vault_path else config.vault_path
        self.cipher = cipher or AuthenticatedCipher(iterations or config.kdf_iterations)

        self._lock = threading.RLock()
        self._session: Optional[UnlockedSession] = None

        self.logger = get_audit_logger()
        _open_controllers.add(self)

    # ── State ───────────────────────────────────────────────────────

    def vault_exists(self) -> bool:
        """True if a non-empty vault file is present."""
        with self._lock:
            try:
                return self.vault_path.is_file() and self.vault_path.stat().st_size > 0
            except OSError:
                return False

    def is_locked(self) -> bool:
        with self._lock:
            return self._session is None

    @property
    def state(self) -> VaultState:
        with self._lock:
            if self._session is not None:
                return VaultState.UNLOCKED
            if self.vault_exists():
                return VaultState.LOCKED
            return VaultState.NO_VAULT

    def status(self) -> Dict[str, Any]:
        """Snapshot for status displays (never includes secrets)."""
        with self._lock:
            session = self._session
            return {
                "vault_path": str(self.vault_path),
                "vault_exists": self.vault_exists(),
                "is_locked": session is None,
                "credential_count": len(session.store) if session else 0,
                "unlocked_at": session.unlocked_at.isoformat() if session else None,
            }

    # ── Lifecycle ───────────────────────────────────────────────────

    def initialize_vault(self, master_password: str) -> bool:
        """
        Create a new vault and leave it unlocked.

        Returns:
            False if a vault file already exists or it cannot be written
        """
        with self._lock:
            if self.vault_exists():
                logger.info("Refusing to initialize: %s already exists", self.vault_path)
                return False

            try:
                password = secret_bytes(master_password)
            except FormatError as e:
                self._log_failure("initialize vault", e)
                return False

            try:
                auth_token = self.cipher.encrypt(AUTH_CHECK_PLAINTEXT, password)
                session = UnlockedSession(password, auth_token, CredentialStore())
                self._persist(session)
            except VaultFatalError as e:
                erase_in_place(password)
                self._log_failure("initialize vault", e)
                raise
            except VaultError as e:
                erase_in_place(password)
                self._log_failure("initialize vault", e)
                return False

            self._replace_session(session)

            self.logger.log_event(
                event_type=EventType.VAULT_CREATED,
                severity=EventSeverity.INFO,
                message="Vault initialized with master password",
                details={"vault_path": str(self.vault_path)},
            )
            return True

    def unlock(self, master_password: str) -> bool:
        """
        Unlock with the master password.

        The auth token is checked first; only then is the credentials blob
        decrypted and decoded. On any failure the vault stays locked and
        the attempted password is zeroed. Calling this while already
        unlocked only reports whether the password matches.
        """
        with self._lock:
            try:
                password = secret_bytes(master_password)
            except FormatError as e:
                self._log_failure("unlock vault", e)
                return False

            if self._session is not None:
                with scrubbed(password):
                    return self._session.matches(password)

            if not self.vault_exists():
                erase_in_place(password)
                return False

            try:
                auth_token, credentials_blob = self._read_vault_file()
                if not self.cipher.verify_password(auth_token, password, AUTH_CHECK_PLAINTEXT):
                    erase_in_place(password)
                    self.logger.log_event(
                        event_type=EventType.VAULT_UNLOCK_FAILED,
                        severity=EventSeverity.ALERT,
                        message="Vault unlock failed: incorrect password",
                    )
                    return False
                store = self._decrypt_store(credentials_blob, auth_token, password)
            except VaultFatalError as e:
                erase_in_place(password)
                self._log_failure("unlock vault", e)
                raise
            except VaultError as e:
                erase_in_place(password)
                self._log_failure("unlock vault", e)
                return False

            self._replace_session(UnlockedSession(password, auth_token, store))

            self.logger.log_event(
                event_type=EventType.VAULT_UNLOCKED,
                severity=EventSeverity.INFO,
                message="Vault unlocked successfully",
                details={"credential_count": len(store)},
            )
            return True

    def lock(self) -> None:
        """Zero the master password and drop the store. Idempotent."""
        with self._lock:
            if self._session is None:
                return
            self._replace_session(None)

            self.logger.log_event(
                event_type=EventType.VAULT_LOCKED,
                severity=EventSeverity.INFO,
                message="Vault locked",
            )

    # ── Persistence ─────────────────────────────────────────────────

    def save(self) -> bool:
        """Re-encrypt the whole store and atomically replace the vault file."""
        with self._lock:
            if self._session is None:
                return False
            try:
                self._persist(self._session)
            except VaultFatalError as e:
                self._log_failure("save vault", e)
                raise
            except VaultError as e:
                self._log_failure("save vault", e)
                return False
            return True

    def load(self) -> bool:
        """
        Read the vault file.

        While locked this only checks the file is present and well formed.
        While unlocked it re-reads the credentials from disk with the
        session password; on failure the in-memory store is left as it was.
        """
        with self._lock:
            try:
                auth_token, credentials_blob = self._read_vault_file()
                if self._session is None:
                    return True
                store = self._decrypt_store(
                    credentials_blob, auth_token, self._session.password
                )
            except VaultFatalError as e:
                self._log_failure("load vault", e)
                raise
            except VaultError as e:
                self._log_failure("load vault", e)
                return False

            self._session.store.clear()
            self._session.store = store
            self._session.auth_token = auth_token
            return True

    # ── Credentials ─────────────────────────────────────────────────

    def add_credential(self, service: str, username: str, password: str) -> bool:
        """Insert or replace a credential and persist immediately."""
        with self._lock:
            if self._session is None or not service:
                return False

            store = self._session.store
            previous = store.get(service)
            store.upsert(service, username, password)

            if not self._save_or_restore(service, previous):
                return False

            self.logger.log_vault_event(
                EventType.VAULT_CREDENTIAL_ADDED,
                f"Credential stored: {service}",
                details={"service": service, "replaced": previous is not None},
            )
            return True

    def get_credential(self, service: str) -> Optional[Credential]:
        with self._lock:
            if self._session is None:
                return None
            credential = self._session.store.get(service)
            if credential is not None:
                self.logger.log_vault_event(
                    EventType.VAULT_CREDENTIAL_ACCESSED,
                    f"Credential accessed: {service}",
                    details={"service": service},
                )
            return credential

    def remove_credential(self, service: str) -> bool:
        """Delete a credential and persist. False if locked or absent."""
        with self._lock:
            if self._session is None:
                return False

            store = self._session.store
            previous = store.get(service)
            if previous is None:
                return False
            store.remove(service)

            if not self._save_or_restore(service, previous):
                return False

            self.logger.log_vault_event(
                EventType.VAULT_CREDENTIAL_REMOVED,
                f"Credential removed: {service}",
                details={"service": service},
            )
            return True

    def get_services(self) -> List[str]:
        """Stored service names, sorted. Empty while locked."""
        with self._lock:
            if self._session is None:
                return []
            return self._session.store.list_services()

    def get_credential_count(self) -> int:
        with self._lock:
            if self._session is None:
                return 0
            return len(self._session.store)

    # ── CLI conveniences ────────────────────────────────────────────

    @staticmethod
    def validate_password_strength(password: str) -> Tuple[int, str]:
        return validate_password_strength(password)

    @staticmethod
    def generate_password(length: int = 16, include_symbols: bool = True) -> str:
        return generate_password(length, include_symbols)

    # ── Internals ───────────────────────────────────────────────────

    def _replace_session(self, session: Optional[UnlockedSession]) -> None:
        if self._session is not None and self._session is not session:
            self._session.destroy()
        self._session = session

    def _save_or_restore(self, service: str, previous: Optional[Credential]) -> bool:
        """Save, or put ``service`` back to ``previous`` if the save fails or raises.

        Keeps memory consistent with what is on disk.
        """
        saved = False
        try:
            saved = self.save()
        finally:
            if not saved:
                store = self._session.store
                if previous is None:
                    store.remove(service)
                else:
                    store.upsert(previous.service, previous.username, previous.password)
        return saved

    def _decrypt_store(
        self,
        credentials_blob: EncryptedBlob,
        auth_token: EncryptedBlob,
        password: bytearray,
    ) -> CredentialStore:
        payload = self.cipher.decrypt(credentials_blob, password)
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise FormatError("Credentials payload is not valid UTF-8") from None

        store = CredentialStore()
        store.decode(text)
        if not hmac.compare_digest(store.auth_data, serialize(auth_token)):
            store.clear()
            raise FormatError("Credentials blob does not belong to this vault's auth token")
        return store

    def _persist(self, session: UnlockedSession) -> None:
        session.store.auth_data = serialize(session.auth_token)
        with scrubbed(secret_bytes(session.store.encode())) as payload:
            credentials_blob = self.cipher.encrypt(payload, session.password)
        self._atomic_write(encode_vault_file(session.auth_token, credentials_blob))

        self.logger.log_vault_event(
            EventType.VAULT_SAVED,
            "Vault saved",
            details={"credential_count": len(session.store)},
        )

    def _read_vault_file(self) -> Tuple[EncryptedBlob, EncryptedBlob]:
        try:
            data = self.vault_path.read_bytes()
        except OSError as e:
            raise VaultIOError(f"Cannot read vault file {self.vault_path}: {e}") from e
        return decode_vault_file(data)

    def _atomic_write(self, data: bytes) -> None:
        """Write to a temp file beside the vault, fsync, then rename over it."""
        directory = self.vault_path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.vault_path.name}.", suffix=".tmp", dir=str(directory)
            )
            try:
                f = os.fdopen(fd, "wb")
            except OSError:
                os.close(fd)
                raise
            with f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.vault_path)
            tmp_path = None
            self._fsync_directory(directory)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise VaultIOError(f"Cannot write vault file {self.vault_path}: {e}") from e

    @staticmethod
    def _fsync_directory(directory: Path) -> None:
        """Flush the rename to disk. Directories cannot be opened on Windows.

        The new file is already in place, so a failure here is only logged.
        """
        if os.name != "posix":
            return
        try:
            dir_fd = os.open(str(directory), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            logger.warning("Could not fsync vault directory %s: %s", directory, e)

    def _log_failure(self, action: str, error: Exception) -> None:
        fatal = isinstance(error, VaultFatalError)
        logger.log(logging.CRITICAL if fatal else logging.WARNING,
                   "Failed to %s: %s", action, error)
        self.logger.log_event(
            event_type=EventType.VAULT_ERROR,
            severity=EventSeverity.CRITICAL if fatal else EventSeverity.INVESTIGATE,
            message=f"Failed to {action}: {type(error).__name__}: {error}",
            details={"error": type(error).__name__},
        )


# ── Teardown ─────────────────────────────────────────────────────────

_open_controllers: "weakref.WeakSet[VaultController]" = weakref.WeakSet()


@atexit.register
def _lock_all_at_exit() -> None:
    """Zero any master password still in memory when the interpreter exits."""
    for controller in list(_open_controllers):
        controller.lock()
