"""Versioned schema installation.

The schema is only (re)created when the recorded version differs from
SCHEMA_VERSION, so calling install() on every startup is cheap.
"""

from typing import Final

from sqlalchemy import inspect, text
from sqlalchemy.future import Engine
from sqlmodel import Session, SQLModel, select

from ...logging_config import get_logger
from .models import SchemaVersion, utcnow

logger: Final = get_logger(__name__)

SCHEMA_VERSION: Final = "3"


def get_installed_version(engine: Engine) -> str | None:
    """Return the recorded schema version, or None on a fresh database."""
    SchemaVersion.__table__.create(engine, checkfirst=True)  # type: ignore[attr-defined]
    with Session(engine) as session:
        record = session.exec(select(SchemaVersion)).first()
        return record.version if record else None


def add_missing_columns(engine: Engine) -> list[str]:
    """Add model columns that existing tables lack.

    New columns are added as nullable since existing rows have no value for
    them. Changed types and removed columns are left as they are.

    Returns:
        The added columns as "table.column"
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    quote = engine.dialect.identifier_preparer.quote
    added: list[str] = []

    with engine.begin() as connection:
        for table in SQLModel.metadata.sorted_tables:
            if table.name not in existing_tables:
                continue
            present = {column["name"] for column in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in present:
                    continue
                column_type = column.type.compile(dialect=engine.dialect)
                connection.execute(
                    text(
                        f"ALTER TABLE {quote(table.name)} "
                        f"ADD COLUMN {quote(column.name)} {column_type}"
                    )
                )
                added.append(f"{table.name}.{column.name}")
                logger.info("Column added", table=table.name, column=column.name)

    return added


def install(engine: Engine) -> bool:
    """Create or upgrade the schema if needed.

    Missing tables are created and missing columns added to existing ones.

    Returns:
        True if the schema was installed or upgraded, False if it was current
    """
    installed = get_installed_version(engine)
    if installed == SCHEMA_VERSION:
        logger.debug("Schema up to date", version=installed)
        return False

    logger.info(
        "Installing database schema", from_version=installed, to_version=SCHEMA_VERSION
    )
    SQLModel.metadata.create_all(engine)
    add_missing_columns(engine)

    with Session(engine) as session:
        record = session.exec(select(SchemaVersion)).first()
        if record is None:
            record = SchemaVersion(version=SCHEMA_VERSION)
        else:
            record.version = SCHEMA_VERSION
            record.installed_at = utcnow()
        session.add(record)
        session.commit()

    logger.info("Database schema installed", version=SCHEMA_VERSION)
    return True
