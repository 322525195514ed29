# Strongbox - Core Module
#
# Shared functionality across Strongbox modules:
# - Audit logging
# - Configuration

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_security_event,
)
from .config import (
    VaultConfig,
    get_config,
    set_config,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "log_security_event",
    # Configuration
    "VaultConfig",
    "get_config",
    "set_config",
]
