# File: entigen/introspector.py
"""
entigen - Metadata Introspector
===============================
Produces the five metadata row sets (``MetadataRows``) the assembler
consumes, from one of two sources:

* a live database, reflected in a single inspector pass through
  SQLAlchemy's ``inspect()`` API (tables, columns, primary keys, identity
  flags, foreign keys);
* a YAML / JSON snapshot written earlier by ``dump_metadata_file``, for
  offline and reproducible generation.

Views are not reflected.  Multi-column foreign keys are split into one row
per column pair; foreign keys into another schema are left out, so their
columns stay plain columns.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection, Engine

from entigen.exceptions import ModelIntegrityError
from entigen.models import ColumnRow, ForeignKeyRow, KeyRow, MetadataRows, TableRow
from entigen.utils import dump_document, load_document

logger: logging.Logger = logging.getLogger("entigen.introspector")

# SQL Server's diagram bookkeeping table.
DEFAULT_EXCLUDED_TABLES: Tuple[str, ...] = ("sysdiagrams",)


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def native_type_name(col_type: Any) -> str:
    """Lower-case dialect type name, e.g. ``NVARCHAR(50)`` → ``nvarchar``."""
    visit_name: Optional[str] = getattr(col_type, "__visit_name__", None)
    if visit_name:
        return str(visit_name).lower()
    return str(col_type).split("(")[0].strip().lower()


def _int_attr(col_type: Any, name: str) -> Optional[int]:
    value: Any = getattr(col_type, name, None)
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _is_identity(col: Dict[str, Any]) -> bool:
    return bool(col.get("identity")) or col.get("autoincrement") is True


def _is_sqlite_rowid_alias(dialect: str, columns: List[Dict[str, Any]], pk: List[str]) -> bool:
    """A lone ``INTEGER PRIMARY KEY`` in SQLite aliases the auto-assigned rowid."""
    if dialect != "sqlite" or len(pk) != 1:
        return False
    for col in columns:
        if col["name"] == pk[0]:
            return native_type_name(col["type"]) == "integer"
    return False


def _column_row(table: str, order: int, col: Dict[str, Any]) -> ColumnRow:
    col_type: Any = col["type"]
    computed: Optional[Dict[str, Any]] = col.get("computed")
    default: Any = col.get("default")
    return ColumnRow(
        table=table,
        order=order,
        name=col["name"],
        description=col.get("comment"),
        type=native_type_name(col_type),
        precision=_int_attr(col_type, "precision"),
        scale=_int_attr(col_type, "scale"),
        length=_int_attr(col_type, "length"),
        nullable=bool(col.get("nullable", True)),
        default=str(default) if default is not None else None,
        computed=str(computed["sqltext"]) if computed else None,
    )


# ---------------------------------------------------------------------------
# Reflection
# ---------------------------------------------------------------------------


def introspect(
    bind: Union[str, Engine, Connection],
    schema: Optional[str] = None,
    exclude: Iterable[str] = DEFAULT_EXCLUDED_TABLES,
) -> MetadataRows:
    """
    Reflect one database schema into ``MetadataRows``.

    *bind* is a SQLAlchemy URL, ``Engine`` or ``Connection``.  An engine
    created here from a URL is disposed before returning.
    """
    owned: Optional[Engine] = create_engine(bind) if isinstance(bind, str) else None
    try:
        return _reflect(owned if owned is not None else bind, schema, frozenset(exclude))
    finally:
        if owned is not None:
            owned.dispose()


def _foreign_key_rows(
    table_name: str,
    fk: Dict[str, Any],
    own_schemas: FrozenSet[Optional[str]],
    exclude: FrozenSet[str],
) -> List[ForeignKeyRow]:
    """One row per column pair of a reflected constraint, or none if its target is not reflected."""
    referred: str = fk["referred_table"]
    if referred in exclude:
        return []
    referred_schema: Optional[str] = fk.get("referred_schema")
    if referred_schema is not None and referred_schema not in own_schemas:
        logger.warning(
            "Foreign key [%s].%s references [%s].[%s] in another schema; kept as plain column(s).",
            table_name,
            fk["constrained_columns"],
            referred_schema,
            referred,
        )
        return []
    return [
        ForeignKeyRow(table=table_name, column=local_col, ref_table=referred, ref_column=ref_col)
        for local_col, ref_col in zip(fk["constrained_columns"], fk["referred_columns"])
    ]


def _reflect(
    bind: Union[Engine, Connection],
    schema: Optional[str],
    exclude: FrozenSet[str],
) -> MetadataRows:
    inspector = inspect(bind)
    dialect: str = inspector.dialect.name
    schema_name: Optional[str] = schema or inspector.default_schema_name
    own_schemas: FrozenSet[Optional[str]] = frozenset({schema, schema_name})
    rows: MetadataRows = MetadataRows()

    table_names: List[str] = sorted(
        name for name in inspector.get_table_names(schema=schema) if name not in exclude
    )
    logger.info("Reflecting %d tables (dialect=%s, schema=%s).", len(table_names), dialect, schema_name)

    for table_name in table_names:
        try:
            comment: Optional[str] = inspector.get_table_comment(table_name, schema=schema).get("text")
        except NotImplementedError:
            comment = None
        rows.tables.append(TableRow(schema_name=schema_name, name=table_name, description=comment))

        columns: List[Dict[str, Any]] = inspector.get_columns(table_name, schema=schema)
        pk: List[str] = list(
            inspector.get_pk_constraint(table_name, schema=schema).get("constrained_columns") or []
        )
        rowid_alias: bool = _is_sqlite_rowid_alias(dialect, columns, pk)

        for order, col in enumerate(columns, start=1):
            rows.columns.append(_column_row(table_name, order, col))
            if _is_identity(col) or (rowid_alias and col["name"] == pk[0]):
                rows.identities.append(KeyRow(table=table_name, column=col["name"]))

        for column_name in pk:
            rows.primary_keys.append(KeyRow(table=table_name, column=column_name))

        for fk in inspector.get_foreign_keys(table_name, schema=schema):
            rows.foreign_keys.extend(_foreign_key_rows(table_name, fk, own_schemas, exclude))

    logger.info("Reflection done: %r", rows)
    return rows


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def load_metadata_file(path: Path) -> MetadataRows:
    """
    Load a metadata snapshot (YAML or JSON).

    Raises ``FileNotFoundError`` / ``ValueError`` for unreadable files and
    ``ModelIntegrityError`` when the rows do not have the expected shape.
    """
    data: Any = load_document(Path(path))
    if not isinstance(data, dict):
        raise ModelIntegrityError(
            f"Metadata snapshot {path} must be a mapping of row sets.",
            {"config_key": "<root>"},
        )
    try:
        rows: MetadataRows = MetadataRows.model_validate(data)
    except ValidationError as exc:
        raise ModelIntegrityError(f"Malformed metadata snapshot {path}: {exc}") from exc
    logger.info("Loaded metadata snapshot %s: %r", path, rows)
    return rows


def dump_metadata_file(rows: MetadataRows, path: Path) -> int:
    """Write *rows* as a snapshot that ``load_metadata_file`` reads back."""
    data: Dict[str, Any] = rows.model_dump(by_alias=True, exclude_none=True)
    size: int = dump_document(data, Path(path))
    logger.info("Wrote metadata snapshot %s (%d bytes).", path, size)
    return size


__all__: List[str] = [
    "DEFAULT_EXCLUDED_TABLES",
    "native_type_name",
    "introspect",
    "load_metadata_file",
    "dump_metadata_file",
]
