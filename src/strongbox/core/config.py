# Strongbox - Configuration
#
# Settings come from environment variables, optionally seeded from a .env
# file in the working directory:
#
#   STRONGBOX_VAULT_PATH        vault file location
#   STRONGBOX_KDF_ITERATIONS    PBKDF2 iteration count (must match the vault)
#   STRONGBOX_AUTOLOCK_MINUTES  idle minutes before auto-lock (0 disables)
#   STRONGBOX_AUDIT_DIR         directory for daily audit logs

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".strongbox"
DEFAULT_KDF_ITERATIONS = 100_000
DEFAULT_AUTOLOCK_MINUTES = 5


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass
class VaultConfig:
    """Runtime settings for the vault and its collaborators."""

    vault_path: Path = field(default_factory=lambda: DEFAULT_HOME / "vault.dat")
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS
    autolock_minutes: int = DEFAULT_AUTOLOCK_MINUTES
    audit_dir: Path = field(default_factory=lambda: DEFAULT_HOME / "audit_logs")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "VaultConfig":
        """Build a config from the environment (after loading .env).

        Raises:
            ValueError: If a numeric variable is malformed or out of range.
        """
        env_file = dotenv_path or find_dotenv(usecwd=True)
        if env_file:
            load_dotenv(env_file)

        config = cls(
            kdf_iterations=_env_int("STRONGBOX_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS, 1),
            autolock_minutes=_env_int("STRONGBOX_AUTOLOCK_MINUTES", DEFAULT_AUTOLOCK_MINUTES, 0),
        )
        vault_path = os.environ.get("STRONGBOX_VAULT_PATH", "").strip()
        if vault_path:
            config.vault_path = Path(vault_path).expanduser()
        audit_dir = os.environ.get("STRONGBOX_AUDIT_DIR", "").strip()
        if audit_dir:
            config.audit_dir = Path(audit_dir).expanduser()

        logger.debug("Loaded config: vault=%s iterations=%d autolock=%dm",
                     config.vault_path, config.kdf_iterations, config.autolock_minutes)
        return config


# ── Singleton ────────────────────────────────────────────────────────

_config: Optional[VaultConfig] = None


def get_config() -> VaultConfig:
    """Get or create the process-wide VaultConfig."""
    global _config
    if _config is None:
        _config = VaultConfig.from_env()
    return _config


def set_config(config: Optional[VaultConfig]) -> None:
    """Replace the singleton (for testing)."""
    global _config
    _config = config
