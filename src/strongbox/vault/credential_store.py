# Vault - Credential Store
#
# In-memory mapping service → Credential, plus the text payload that gets
# encrypted into the credentials blob:
#
#   AUTH_DATA_START
#   <byte-count>
#   <space-separated decimal byte values>
#   AUTH_DATA_END
#   CREDENTIALS_START
#   <record-count>
#   SERVICE:<name>
#   USERNAME:<name>
#   PASSWORD:<name>
#   ---
#   CREDENTIALS_END
#
# Field values escape backslash, LF and CR so every field is one line;
# records are read positionally, so values may safely contain "SERVICE:"
# or "---".

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .exceptions import FormatError

AUTH_DATA_START = "AUTH_DATA_START"
AUTH_DATA_END = "AUTH_DATA_END"
CREDENTIALS_START = "CREDENTIALS_START"
CREDENTIALS_END = "CREDENTIALS_END"
SERVICE_PREFIX = "SERVICE:"
USERNAME_PREFIX = "USERNAME:"
PASSWORD_PREFIX = "PASSWORD:"
RECORD_SEPARATOR = "---"

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}


def escape_field(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def unescape_field(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        code = next(chars, None)
        if code not in _UNESCAPES:
            raise FormatError(f"Invalid escape sequence in field: \\{code or ''}")
        out.append(_UNESCAPES[code])
    return "".join(out)


@dataclass(frozen=True)
class Credential:
    """One stored login: service is the unique key."""
    service: str
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(service={self.service!r}, username={self.username!r}, password='***')"


class CredentialStore:
    """
    Service-keyed credential map.

    The store does not validate service names; callers reject empty ones.
    ``auth_data`` carries the serialized auth token blob so the encoded
    payload records which token it was written with.
    """

    def __init__(self):
        self._credentials: Dict[str, Credential] = {}
        self.auth_data: bytes = b""

    def __len__(self) -> int:
        return len(self._credentials)

    def __contains__(self, service: str) -> bool:
        return service in self._credentials

    def upsert(self, service: str, username: str, password: str) -> Credential:
        """Insert or fully replace the record for ``service``."""
        credential = Credential(service, username, password)
        self._credentials[service] = credential
        return credential

    def get(self, service: str) -> Optional[Credential]:
        return self._credentials.get(service)

    def remove(self, service: str) -> bool:
        """Delete ``service``. Returns False if it was not stored."""
        return self._credentials.pop(service, None) is not None

    def list_services(self) -> List[str]:
        """Service names in lexicographic order."""
        return sorted(self._credentials)

    def clear(self) -> None:
        """Drop all records and the auth data."""
        self._credentials.clear()
        self.auth_data = b""

    # ── Payload encoding ────────────────────────────────────────────

    def encode(self) -> str:
        """Render the store (and auth data) as the text payload."""
        lines = [
            AUTH_DATA_START,
            str(len(self.auth_data)),
            " ".join(str(b) for b in self.auth_data),
            AUTH_DATA_END,
            CREDENTIALS_START,
            str(len(self._credentials)),
        ]
        for service in self.list_services():
            cred = self._credentials[service]
            lines.append(SERVICE_PREFIX + escape_field(cred.service))
            lines.append(USERNAME_PREFIX + escape_field(cred.username))
            lines.append(PASSWORD_PREFIX + escape_field(cred.password))
            lines.append(RECORD_SEPARATOR)
        lines.append(CREDENTIALS_END)
        return "\n".join(lines) + "\n"

    def decode(self, payload: str) -> None:
        """
        Replace the store's contents with the records in ``payload``.

        Existing state is cleared first. Lines before each section marker
        are skipped, the auth section may be absent, and the trailing
        CREDENTIALS_END marker is optional.

        Raises:
            FormatError: Unparsable count header, auth byte count mismatch,
                missing CREDENTIALS_START, or a truncated/misordered record.
                The store is left empty.
        """
        self.clear()

        lines = iter(payload.split("\n"))
        auth_data = b""

        for line in lines:
            if line == AUTH_DATA_START:
                auth_data = self._read_auth_section(lines)
                _skip_to(lines, CREDENTIALS_START)
                break
            if line == CREDENTIALS_START:
                break
        else:
            raise FormatError(f"Payload has no {CREDENTIALS_START} marker")

        count = _parse_count(next(lines, None), "credential")
        credentials: Dict[str, Credential] = {}
        for index in range(count):
            service = _read_field(lines, SERVICE_PREFIX, index)
            username = _read_field(lines, USERNAME_PREFIX, index)
            password = _read_field(lines, PASSWORD_PREFIX, index)
            separator = next(lines, None)
            if separator != RECORD_SEPARATOR:
                raise FormatError(f"Record {index}: expected {RECORD_SEPARATOR!r} separator")
            if not service:
                raise FormatError(f"Record {index}: empty service name")
            credentials[service] = Credential(service, username, password)

        self._credentials = credentials
        self.auth_data = auth_data

    @staticmethod
    def _read_auth_section(lines: Iterator[str]) -> bytes:
        size = _parse_count(next(lines, None), "auth byte")
        raw = next(lines, None)
        if raw is None:
            raise FormatError("Auth section ends before its byte values")
        try:
            values = [int(token) for token in raw.split()]
            auth = bytes(values)
        except ValueError:
            raise FormatError("Auth section holds a non-byte value") from None
        if len(auth) != size:
            raise FormatError(f"Auth section declares {size} bytes, found {len(auth)}")
        return auth


def _skip_to(lines: Iterator[str], marker: str) -> None:
    for line in lines:
        if line == marker:
            return
    raise FormatError(f"Payload has no {marker} marker")


def _parse_count(line: Optional[str], what: str) -> int:
    if line is None:
        raise FormatError(f"Missing {what} count header")
    try:
        count = int(line.strip())
    except ValueError:
        raise FormatError(f"Invalid {what} count header: {line!r}") from None
    if count < 0:
        raise FormatError(f"Negative {what} count: {count}")
    return count


def _read_field(lines: Iterator[str], prefix: str, index: int) -> str:
    line = next(lines, None)
    if line is None or not line.startswith(prefix):
        raise FormatError(f"Record {index}: expected {prefix} field")
    return unescape_field(line[len(prefix):])
