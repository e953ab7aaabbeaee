"""
Module: procurement_kernel.db.triggers
Responsibility: Loading, installing, and verifying database-level
    immutability triggers (Layer 2 of 2).  This is the database complement to
    the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced:
    - approval_events rows: no UPDATE, no DELETE.
    - line_items rows: no UPDATE (deletion only by cascade from the request).

Each dialect has its own directory under sql/.  Files hold one or more
statements separated by ``-- @@`` lines; statements run one at a time
because SQLite cannot execute a batch.

Failure modes:
    - FileNotFoundError if a SQL file is missing.
    - ValueError for a dialect with no trigger set.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

from procurement_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

SQL_DIR = Path(__file__).parent / "sql"

TRIGGER_FILES = [
    "01_approval_event.sql",
    "02_line_item.sql",
]

DROP_FILE = "99_drop_all.sql"

STATEMENT_SEPARATOR = "-- @@"

ALL_TRIGGER_NAMES = [
    "trg_approval_event_immutability_update",
    "trg_approval_event_immutability_delete",
    "trg_line_item_immutability_update",
]


def _dialect_dir(engine: Engine) -> Path:
    directory = SQL_DIR / engine.dialect.name
    if not directory.is_dir():
        raise ValueError(f"No immutability triggers for dialect {engine.dialect.name}")
    return directory


def _split_statements(sql_content: str) -> list[str]:
    """Split a SQL file on separator lines, dropping empty chunks."""
    statements = []
    for chunk in sql_content.split(STATEMENT_SEPARATOR):
        body = chunk.strip()
        if body and not all(
            line.strip().startswith("--") for line in body.splitlines() if line.strip()
        ):
            statements.append(body)
    return statements


def _load_statements(engine: Engine, filename: str) -> list[str]:
    path = _dialect_dir(engine) / filename
    return _split_statements(path.read_text(encoding="utf-8"))


def _execute_files(engine: Engine, filenames: list[str]) -> None:
    with engine.connect() as conn:
        for filename in filenames:
            for statement in _load_statements(engine, filename):
                conn.execute(text(statement))
        conn.commit()


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install the append-only triggers for the engine's dialect.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: All triggers in ALL_TRIGGER_NAMES are installed.
        Installation is idempotent.
    """
    _execute_files(engine, TRIGGER_FILES)
    logger.info(
        "immutability_triggers_installed",
        extra={"dialect": engine.dialect.name, "triggers": ALL_TRIGGER_NAMES},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove the append-only triggers.

    WARNING: Only for dropping the schema.  Never leave a live ledger without
    its triggers.
    """
    _execute_files(engine, [DROP_FILE])


def get_installed_triggers(engine: Engine) -> list[str]:
    """List the immutability triggers currently present in the database."""
    names = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    if engine.dialect.name == "postgresql":
        query = f"SELECT tgname FROM pg_trigger WHERE tgname IN ({names}) ORDER BY tgname"
    else:
        query = (
            "SELECT name FROM sqlite_master "
            f"WHERE type = 'trigger' AND name IN ({names}) ORDER BY name"
        )
    with engine.connect() as conn:
        return [row[0] for row in conn.execute(text(query))]


def triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)


def get_missing_triggers(engine: Engine) -> list[str]:
    """Triggers that should be installed but are not."""
    return sorted(set(ALL_TRIGGER_NAMES) - set(get_installed_triggers(engine)))
