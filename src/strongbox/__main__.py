# Strongbox - Command-Line Entry Point
#
# Interactive shell over VaultController. Creates the vault on first run,
# otherwise asks for the master password. Auto-locks after the configured
# idle period and always locks on exit.

import argparse
import sys
from getpass import getpass
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from .core import EventSeverity, EventType, get_audit_logger, get_config
from .vault import VaultController, generate_password, validate_password_strength
from .vault.autolock import IdleLocker
from .vault.exceptions import VaultFatalError

MIN_MASTER_SCORE = 70  # "Strong" band

COMMANDS = {
    "add": "Add or replace a service credential",
    "get": "Show the credential for a service",
    "list": "List all saved services",
    "remove": "Remove a service credential",
    "generate": "Generate a secure password",
    "status": "Show vault status",
    "lock": "Lock the vault now",
    "help": "Show this help message",
    "exit": "Lock the vault and exit",
}


class VaultShell:
    """Prompt loop driving a VaultController.

    Input, hidden input and output are injectable so the shell can be
    driven from tests.
    """

    def __init__(
        self,
        controller: VaultController,
        autolock_minutes: int = 0,
        input_fn: Callable[[str], str] = input,
        secret_fn: Callable[[str], str] = getpass,
        output: Callable[[str], None] = print,
    ):
        self.vault = controller
        self.input = input_fn
        self.secret = secret_fn
        self.out = output
        self.locker: Optional[IdleLocker] = None
        if autolock_minutes > 0:
            self.locker = IdleLocker(
                controller,
                timeout_seconds=autolock_minutes * 60,
                on_lock=lambda: self.out("\nVault auto-locked due to inactivity."),
            )

    # ── Authentication ──────────────────────────────────────────────

    def authenticate(self) -> bool:
        if self.vault.vault_exists():
            password = self.secret("Master password: ")
            if self.vault.unlock(password):
                self.out("Vault unlocked.")
                return True
            self.out("Incorrect password.")
            return False
        return self.create_vault()

    def create_vault(self) -> bool:
        self.out(f"No vault found at {self.vault.vault_path}. Creating a new one.")
        password = self.secret("New master password: ")
        score, message = validate_password_strength(password)
        self.out(f"Strength {score}/100 - {message}")
        if score < MIN_MASTER_SCORE:
            self.out("Master password is too weak.")
            return False
        if self.secret("Confirm master password: ") != password:
            self.out("Passwords do not match.")
            return False
        if not self.vault.initialize_vault(password):
            self.out("Failed to create vault.")
            return False
        self.out("Vault created and unlocked.")
        return True

    # ── Commands ────────────────────────────────────────────────────

    def do_add(self) -> None:
        service = self.input("Service: ").strip()
        if not service:
            self.out("Service name cannot be empty.")
            return
        username = self.input("Username: ").strip()
        password = self.secret("Password (leave empty to generate): ")
        if not password:
            password = generate_password()
            self.out("Generated a 16-character password.")
        else:
            score, message = validate_password_strength(password)
            self.out(f"Strength {score}/100 - {message}")
        if self.vault.add_credential(service, username, password):
            self.out(f"Saved credential for '{service}'.")
        else:
            self.out("Failed to save credential.")

    def do_get(self) -> None:
        service = self.input("Service: ").strip()
        credential = self.vault.get_credential(service)
        if credential is None:
            self.out(f"No credential stored for '{service}'.")
            return
        self.out(f"Service:  {credential.service}")
        self.out(f"Username: {credential.username}")
        self.out(f"Password: {credential.password}")

    def do_list(self) -> None:
        services = self.vault.get_services()
        if not services:
            self.out("No credentials stored.")
            return
        self.out(f"{len(services)} service(s):")
        for service in services:
            self.out(f"  - {service}")

    def do_remove(self) -> None:
        service = self.input("Service: ").strip()
        if self.vault.remove_credential(service):
            self.out(f"Removed '{service}'.")
        else:
            self.out(f"No credential removed for '{service}'.")

    def do_generate(self) -> None:
        raw = self.input("Length [16]: ").strip()
        try:
            length = int(raw) if raw else 16
        except ValueError:
            self.out("Length must be a number.")
            return
        if length < 1:
            self.out("Length must be at least 1.")
            return
        symbols = self.input("Include symbols? [Y/n]: ").strip().lower() != "n"
        password = generate_password(length, symbols)
        score, message = validate_password_strength(password)
        self.out(password)
        self.out(f"Strength {score}/100 - {message}")

    def do_status(self) -> None:
        status = self.vault.status()
        self.out(f"Vault file: {status['vault_path']} ({'exists' if status['vault_exists'] else 'missing'})")
        self.out(f"Status: {'locked' if status['is_locked'] else 'unlocked'}")
        self.out(f"Credentials: {status['credential_count']}")
        if self.locker is not None:
            self.out(f"Auto-lock in: {int(self.locker.seconds_remaining())} seconds")

    def do_lock(self) -> None:
        self.vault.lock()
        self.out("Vault locked.")

    def do_help(self) -> None:
        self.out("Commands:")
        for name, description in COMMANDS.items():
            self.out(f"  {name:<9} {description}")

    # ── Loop ────────────────────────────────────────────────────────

    def run(self) -> int:
        if not self.authenticate():
            return 1
        if self.locker is not None:
            self.locker.start()
        self.do_help()

        try:
            while True:
                if self.vault.is_locked():
                    self.out("Vault is locked.")
                    if not self.authenticate():
                        return 1
                try:
                    command = self.input("strongbox> ").strip().lower()
                except EOFError:
                    break
                if self.locker is not None:
                    self.locker.touch()
                if not command:
                    continue
                if command == "exit":
                    break
                if command not in COMMANDS:
                    self.out("Unknown command. Type 'help' for available commands.")
                    continue
                # The idle locker may have fired while waiting at the prompt
                if self.vault.is_locked() and command != "help":
                    self.out("Vault is locked.")
                    if not self.authenticate():
                        return 1
                getattr(self, f"do_{command}")()
        finally:
            if self.locker is not None:
                self.locker.stop()
            self.vault.lock()
            self.out("Vault locked. Goodbye!")
        return 0


def main(argv: Optional[list] = None) -> int:
    """Entry point for the ``strongbox`` command."""
    parser = argparse.ArgumentParser(
        prog="strongbox",
        description="Strongbox - local encrypted password vault",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Vault file (default: STRONGBOX_VAULT_PATH or ~/.strongbox/vault.dat)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Strongbox v{__version__}",
    )
    args = parser.parse_args(argv)

    config = get_config()
    audit = get_audit_logger()
    audit.log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Strongbox starting",
        details={"version": __version__},
    )

    controller = VaultController(vault_path=args.vault or config.vault_path)
    shell = VaultShell(controller, autolock_minutes=config.autolock_minutes)

    try:
        code = shell.run()
    except KeyboardInterrupt:
        controller.lock()
        print("\nVault locked. Goodbye!")
        code = 130
    except VaultFatalError as e:
        controller.lock()
        print(f"\nFatal error: {e}", file=sys.stderr)
        audit.log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"Strongbox aborted: {type(e).__name__}",
        )
        return 2

    audit.log_event(
        event_type=EventType.SYSTEM_STOP,
        severity=EventSeverity.INFO,
        message="Strongbox stopped",
    )
    return code


if __name__ == "__main__":
    sys.exit(main())
