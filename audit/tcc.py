import os
import sqlite3
from contextlib import closing
from pathlib import Path

from audit.tcc_records import classify_row, is_high_impact

DEFAULT_TCC_DB = os.path.expanduser('~/Library/Application Support/com.apple.TCC/TCC.db')
SYSTEM_TCC_DB = '/Library/Application Support/com.apple.TCC/TCC.db'

# This query may need adjusting if Apple changes the schema
TCC_QUERY = """
    SELECT
        service,
        client,
        auth_value,
        prompt_count,
        last_modified,
        indirect_object_identifier
    FROM access;
"""


class TCCReadError(Exception):
    """The TCC database could not be read. str(err) is the one-line diagnostic."""


class StoreUnavailable(TCCReadError):
    """Database missing, unreadable, locked or not a SQLite file."""


class QueryPreparationFailed(TCCReadError):
    """The access table or one of its expected columns is missing."""


def _read_only_uri(db_path):
    # mode=ro never creates the file and never falls back to read-write
    return Path(db_path).absolute().as_uri() + "?mode=ro"


def read_tcc_rows(db_path):
    """Return the raw rows of the access table, in store order."""
    try:
        con = sqlite3.connect(_read_only_uri(db_path), uri=True)
    except sqlite3.Error as e:
        raise StoreUnavailable(f"Unable to open TCC database ({db_path}): {e}") from e
    with closing(con):
        try:
            # Forces the header to be read so corrupt or locked files fail here
            con.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Unable to open TCC database ({db_path}): {e}") from e
        try:
            cursor = con.execute(TCC_QUERY)
        except sqlite3.Error as e:
            raise QueryPreparationFailed(f"SQL prepare failed: {e}") from e
        with closing(cursor):
            try:
                return [tuple(row) for row in cursor]
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Unable to read TCC database ({db_path}): {e}") from e


def parse_tcc_database(db_path):
    """Read and classify the TCC database.

    Returns (records, error). On any read failure records is empty and error
    holds the diagnostic; the caller decides how to report it and what exit
    code to use.
    """
    try:
        rows = read_tcc_rows(db_path)
    except TCCReadError as e:
        return [], str(e)
    return [classify_row(row) for row in rows], None


def check_tcc_permissions(db_path=DEFAULT_TCC_DB):
    """Report which apps are allowed high-impact TCC services (Screen Recording, Accessibility, etc)."""
    if not os.path.exists(db_path):
        return {
            "label": "TCC Privacy Permissions",
            "status": "OK",
            "info": ["TCC.db not found"],
            "tip": ""
        }
    records, error = parse_tcc_database(db_path)
    if error:
        return {"label": "TCC Privacy Permissions", "status": "ERROR", "info": [error], "tip": ""}
    allowed = {}
    for record in records:
        if is_high_impact(record) and record.auth_state.label == "Allowed":
            allowed.setdefault(record.service, []).append(record.client)
    results = [f"{service}: {', '.join(clients)}" for service, clients in sorted(allowed.items())]
    tip = "Tip: Review which apps have sensitive permissions. Remove any you don't recognize in System Settings > Privacy & Security."
    return {
        "label": "TCC Privacy Permissions",
        "status": "ALERT" if results else "OK",
        "info": results if results else ["No apps with sensitive permissions found."],
        "tip": tip
    }
