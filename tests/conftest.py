import sqlite3

import pytest

ACCESS_TABLE = """
    CREATE TABLE access (
        service TEXT,
        client TEXT,
        client_type INTEGER,
        auth_value INTEGER,
        prompt_count INTEGER,
        last_modified INTEGER,
        indirect_object_identifier TEXT
    )
"""


@pytest.fixture
def make_tcc_db(tmp_path):
    """Build a TCC.db with an access table holding the given
    (service, client, auth_value, prompt_count, last_modified, sandbox) rows."""
    def _make(rows, name="TCC.db"):
        db_path = tmp_path / name
        con = sqlite3.connect(db_path)
        try:
            con.execute(ACCESS_TABLE)
            con.executemany(
                "INSERT INTO access (service, client, client_type, auth_value, prompt_count, last_modified, indirect_object_identifier) "
                "VALUES (?, ?, 0, ?, ?, ?, ?)",
                rows,
            )
            con.commit()
        finally:
            con.close()
        return db_path
    return _make
