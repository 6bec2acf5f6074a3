"""Lightweight schema migrations for SQLite databases."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

# Columns added after the first audits table shipped, with their SQLite DDL.
LATER_AUDIT_COLUMNS: dict[str, str] = {
    "associated_type": "VARCHAR(128) NULL",
    "associated_id": "INTEGER NULL",
    "group_tag": "VARCHAR(255) NULL",
    "group_comment": "TEXT NULL",
}


def _sqlite_column_names(connection: Connection, table_name: str) -> set[str]:
    """Return column names for a SQLite table using PRAGMA table_info."""
    rows = connection.execute(text(f"PRAGMA table_info({table_name});")).mappings().all()
    return {str(row["name"]) for row in rows}


def _sqlite_index_names(connection: Connection, table_name: str) -> set[str]:
    """Return index names for a SQLite table using PRAGMA index_list."""
    rows = connection.execute(text(f"PRAGMA index_list({table_name});")).mappings().all()
    return {str(row["name"]) for row in rows}


def ensure_sqlite_schema(engine: Engine) -> None:
    """Apply lightweight schema updates for legacy SQLite databases."""
    if engine.dialect.name != "sqlite":
        return

    with engine.begin() as connection:
        table_rows = connection.execute(text("SELECT name FROM sqlite_master WHERE type='table';")).all()
        table_names: set[str] = {str(row[0]) for row in table_rows}

        if "audits" not in table_names:
            connection.execute(
                text(
                    """
                    CREATE TABLE audits (
                        id INTEGER PRIMARY KEY,
                        auditable_type VARCHAR(128) NOT NULL,
                        auditable_id INTEGER NOT NULL,
                        associated_type VARCHAR(128) NULL,
                        associated_id INTEGER NULL,
                        user_type VARCHAR(128) NULL,
                        user_id INTEGER NULL,
                        username VARCHAR(255) NULL,
                        action VARCHAR(6) NOT NULL,
                        version INTEGER NOT NULL,
                        audited_changes JSON NOT NULL,
                        group_tag VARCHAR(255) NULL,
                        group_comment TEXT NULL,
                        created_at DATETIME NOT NULL
                    )
                    """
                )
            )
            logger.info("[BOOTSTRAP] created audits table")

        audit_columns = _sqlite_column_names(connection, "audits")
        for column_name, ddl in LATER_AUDIT_COLUMNS.items():
            if column_name not in audit_columns:
                connection.execute(text(f"ALTER TABLE audits ADD COLUMN {column_name} {ddl}"))
                logger.info("[BOOTSTRAP] added audits.%s", column_name)

        audit_indexes = _sqlite_index_names(connection, "audits")
        if "uq_audits_auditable_version" not in audit_indexes:
            connection.execute(
                text(
                    """
                    CREATE UNIQUE INDEX uq_audits_auditable_version
                    ON audits (auditable_type, auditable_id, version)
                    """
                )
            )
        if "ix_audits_associated" not in audit_indexes:
            connection.execute(text("CREATE INDEX ix_audits_associated ON audits (associated_type, associated_id)"))
        if "ix_audits_user" not in audit_indexes:
            connection.execute(text("CREATE INDEX ix_audits_user ON audits (user_type, user_id)"))
        if "ix_audits_created_at" not in audit_indexes:
            connection.execute(text("CREATE INDEX ix_audits_created_at ON audits (created_at)"))
