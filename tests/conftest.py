"""
Shared pytest fixtures for the Strongbox test suite.

Autouse fixtures below isolate tests from the user's real data:
  - Configuration -> temp vault path, temp audit dir, low KDF iterations
  - Audit logger  -> temp directory (prevents test events in real audit logs)
"""

import pytest

FAST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path):
    """Replace the config singleton with one pointing at tmp_path.

    PBKDF2 at 100k iterations costs tens of milliseconds per call; the
    suite derives hundreds of keys, so tests run with far fewer.
    """
    import strongbox.core.config as config_mod

    old_config = config_mod._config
    config_mod.set_config(config_mod.VaultConfig(
        vault_path=tmp_path / "vault.dat",
        kdf_iterations=FAST_ITERATIONS,
        autolock_minutes=0,
        audit_dir=tmp_path / "audit_logs",
    ))

    yield

    config_mod.set_config(old_config)


@pytest.fixture(autouse=True)
def _isolate_audit_logs(_isolate_config):
    """Reset the global AuditLogger so it writes under the temp config."""
    import strongbox.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "vault.dat"


@pytest.fixture
def controller(vault_path):
    from strongbox.vault import VaultController

    ctrl = VaultController(vault_path=vault_path)
    yield ctrl
    ctrl.lock()
