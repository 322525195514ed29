# Strongbox - Main Package
#
# Local, single-user encrypted password vault.
# A master password protects (service, username, password) records
# persisted to a single file.

__version__ = "0.1.0"
__author__ = "Strongbox Team"
__description__ = "Local encrypted password vault"

from .core import (
    EventSeverity,
    EventType,
    VaultConfig,
    get_audit_logger,
    get_config,
)

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "VaultConfig",
    "get_audit_logger",
    "get_config",
]
