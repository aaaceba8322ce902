from dataclasses import dataclass
from datetime import datetime

# Common interpretation of TCC auth_value. Anything else is kept as Other(code).
AUTH_LABELS = {
    0: "Denied",
    1: "Allowed",
    2: "Prompt",
}

# Services that often indicate powerful permissions or data leak vectors
HIGH_IMPACT_SERVICES = frozenset([
    "kTCCServiceAccessibility",
    "kTCCServiceScreenCapture",
    "kTCCServiceSystemPolicyAllFiles",  # Full Disk Access
    "kTCCServiceAppleEvents",
    "kTCCServiceMicrophone",
    "kTCCServiceCamera",
    "kTCCServiceCalendar",
    "kTCCServiceReminders",
    "kTCCServiceContacts",
])

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class AuthState:
    """Decoded auth_value. Unknown codes are preserved, never rejected."""
    code: int

    @property
    def is_known(self):
        return self.code in AUTH_LABELS

    @property
    def label(self):
        if self.is_known:
            return AUTH_LABELS[self.code]
        return f"Other({self.code})"

    def __str__(self):
        return self.label


@dataclass(frozen=True)
class PermissionRecord:
    """One row of the TCC access table, normalized for reporting."""
    service: str
    client: str
    auth_state: AuthState
    prompt_count: int
    last_modified: int
    sandbox_id: str

    @property
    def last_modified_string(self):
        """Local-time rendering of last_modified; falls back to the raw value if out of range."""
        try:
            return datetime.fromtimestamp(self.last_modified).strftime(TIMESTAMP_FORMAT)
        except (OverflowError, OSError, ValueError):
            return str(self.last_modified)


def _as_text(value):
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _as_int(value):
    # Mirrors SQLite's integer accessor: NULL and non-numeric text read as 0
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, float):
            return int(value)
        return int(float(_as_text(value).strip()))
    except (ValueError, OverflowError):
        return 0


def decode_auth_value(code):
    return AuthState(_as_int(code))


def classify_row(row):
    """Map a raw (service, client, auth_value, prompt_count, last_modified, sandbox) row to a record."""
    service, client, auth_value, prompt_count, last_modified, sandbox_id = row
    return PermissionRecord(
        service=_as_text(service),
        client=_as_text(client),
        auth_state=decode_auth_value(auth_value),
        prompt_count=max(_as_int(prompt_count), 0),
        last_modified=_as_int(last_modified),
        sandbox_id=_as_text(sandbox_id),
    )


def is_high_impact(record):
    """Exact-match test against HIGH_IMPACT_SERVICES (case-sensitive, no prefixes)."""
    return record.service in HIGH_IMPACT_SERVICES
