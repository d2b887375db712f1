# File: entigen/assembler.py
"""
entigen - Raw Model Assembler
=============================
Builds the raw ``SchemaModel`` from the five introspector row sets:

1. tables             → ``TableInfo`` (sorted by name)
2. columns            → ``ColumnInfo`` (sorted by ordinal inside each table)
3. primary-key pairs  → ``ColumnInfo.primary``
4. identity pairs     → ``ColumnInfo.identity``
5. foreign-key edges  → ``many_to_one`` on the referencing column plus a
                         ``one_to_many`` back-reference on the referenced one

The output never depends on row order: tables, columns and back-reference
lists are all sorted.  Any row naming an unknown table or column raises
``ModelIntegrityError`` straight away; there is no partial model.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from entigen.exceptions import ModelIntegrityError
from entigen.models import (
    ColumnInfo,
    ColumnRef,
    ForeignKeyRow,
    KeyRow,
    MetadataRows,
    SchemaModel,
    TableInfo,
)

logger: logging.Logger = logging.getLogger("entigen.assembler")


def assemble_model(rows: MetadataRows) -> SchemaModel:
    """Assemble the raw schema graph from a batch of metadata rows."""
    tables: Dict[str, TableInfo] = {}

    for row in rows.tables:
        if row.name in tables:
            raise ModelIntegrityError(
                f"Duplicate table row for [{row.name}].",
                {"table": row.name},
            )
        tables[row.name] = TableInfo(
            schema_name=row.schema_name,
            name=row.name,
            description=row.description,
        )

    for col in sorted(rows.columns, key=lambda c: (c.table, c.order, c.name)):
        table: TableInfo = _require_table(tables, col.table, "column")
        if table.get_column(col.name) is not None:
            raise ModelIntegrityError(
                f"Duplicate column row [{col.table}].[{col.name}].",
                {"table": col.table, "column": col.name},
            )
        table.columns.append(
            ColumnInfo(
                name=col.name,
                order=col.order,
                description=col.description,
                type=col.type,
                precision=col.precision,
                scale=col.scale,
                length=col.length,
                nullable=col.nullable,
                default=col.default,
                computed=col.computed,
            )
        )

    for key in rows.primary_keys:
        _require_column(tables, key, "primary key").primary = True

    for key in rows.identities:
        _require_column(tables, key, "identity").identity = True

    for fk in sorted(
        rows.foreign_keys,
        key=lambda f: (f.table, f.column.lower(), f.ref_table, f.ref_column.lower()),
    ):
        _link_foreign_key(tables, fk)

    for table in tables.values():
        for column in table.columns:
            column.one_to_many.sort(key=lambda r: (r.table, r.column))

    model: SchemaModel = SchemaModel(tables=[tables[name] for name in sorted(tables)])
    logger.info(
        "Assembled raw model: %d tables, %d columns, %d foreign keys.",
        len(model.tables),
        sum(len(t.columns) for t in model.tables),
        len(rows.foreign_keys),
    )
    return model


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_table(tables: Dict[str, TableInfo], name: str, what: str) -> TableInfo:
    table: Optional[TableInfo] = tables.get(name)
    if table is None:
        raise ModelIntegrityError(
            f"{what.capitalize()} row references unknown table [{name}].",
            {"table": name},
        )
    return table


def _require_column(tables: Dict[str, TableInfo], key: KeyRow, what: str) -> ColumnInfo:
    table: TableInfo = _require_table(tables, key.table, what)
    column: Optional[ColumnInfo] = table.get_column(key.column)
    if column is None:
        raise ModelIntegrityError(
            f"{what.capitalize()} row references unknown column [{key.table}].[{key.column}].",
            {"table": key.table, "column": key.column},
        )
    return column


def _link_foreign_key(tables: Dict[str, TableInfo], fk: ForeignKeyRow) -> None:
    source: ColumnInfo = _require_column(
        tables, KeyRow(table=fk.table, column=fk.column), "foreign key"
    )
    target: ColumnInfo = _require_column(
        tables, KeyRow(table=fk.ref_table, column=fk.ref_column), "foreign key target"
    )

    if source.many_to_one is not None:
        # A column takes part in a single outgoing relation; the first
        # constraint in sorted order wins.
        logger.warning(
            "Column [%s].[%s] already references [%s].[%s]; ignoring second "
            "foreign key to [%s].[%s].",
            fk.table,
            source.name,
            source.many_to_one.table,
            source.many_to_one.column,
            fk.ref_table,
            target.name,
        )
        return

    source.many_to_one = ColumnRef(table=fk.ref_table, column=target.name, entity=fk.ref_table)
    target.one_to_many.append(ColumnRef(table=fk.table, column=source.name, entity=fk.table))


__all__: List[str] = ["assemble_model"]
