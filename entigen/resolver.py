# File: entigen/resolver.py
"""
entigen - Relationship Resolver
===============================
Works on the ``ProjectedModel`` produced by ``entigen.projector`` in two
passes:

1. ``reconstruct_many_to_many`` folds every configured junction table into
   a pair of mirrored many-to-many associations and removes the two
   many-to-one / one-to-many edge pairs it consumed.
2. ``resolve_associations`` names every remaining many-to-one edge and its
   one-to-many back-reference, reserving each name in the owning table's
   namespace as it goes.

Both passes mutate the working copy in place and are safe to run twice.
``resolve`` runs projection and both passes in order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from entigen.exceptions import (
    ConfigShapeError,
    DanglingReferenceError,
    ModelIntegrityError,
    NameCollisionError,
)
from entigen.models import (
    ColumnInfo,
    ColumnRef,
    GeneratorConfig,
    JoinColumnSpec,
    ManyToManyAssociation,
    SchemaModel,
    TableConfig,
    TableInfo,
)
from entigen.projector import ProjectedModel, project_model
from entigen.utils import to_plural

logger: logging.Logger = logging.getLogger("entigen.resolver")


# ---------------------------------------------------------------------------
# Many-to-many reconstruction
# ---------------------------------------------------------------------------


def reconstruct_many_to_many(projected: ProjectedModel) -> int:
    """
    Rebuild many-to-many associations from configured junction tables.

    For ``manyToMany: [[c0, name0], [c1, name1]]`` on a junction table whose
    pivot column ``ci`` references table ``Ti``, ``Ti`` receives a property
    ``namei`` typed as ``T(1-i)[]``.  Side 0 owns the join table.

    Returns the number of associations created.
    """
    created: int = 0
    for table in projected.model.tables:
        if not table.included or table.original_name in projected.reconstructed:
            continue
        table_config: Optional[TableConfig] = projected.table_config(table)
        if table_config is None or table_config.many_to_many is None:
            continue
        created += _fold_junction(projected, table, table_config.many_to_many)
        projected.reconstructed.add(table.original_name)

    if created:
        logger.info("Reconstructed %d many-to-many associations.", created)
    return created


def _fold_junction(
    projected: ProjectedModel,
    junction: TableInfo,
    pivots: List[Tuple[str, str]],
) -> int:
    entity: str = junction.original_name
    if len(pivots) != 2:
        raise ConfigShapeError(
            f"Failed to create ManyToMany relationship on table [{entity}]: exactly "
            f"two pivot entries are required, got {len(pivots)}.",
            {"table": entity, "config_key": f"{entity}.manyToMany"},
        )
    if pivots[0][0].lower() == pivots[1][0].lower():
        raise ConfigShapeError(
            f"Failed to create ManyToMany relationship on table [{entity}]: both "
            f"pivot entries use column [{pivots[0][0]}].",
            {"table": entity, "column": pivots[0][0], "config_key": f"{entity}.manyToMany"},
        )

    pivot_columns: List[ColumnInfo] = [_pivot_column(junction, name) for name, _ in pivots]
    refs: List[ColumnRef] = [c.many_to_one for c in pivot_columns]  # type: ignore[misc]
    targets: List[TableInfo] = [_ref_table(projected, ref, junction) for ref in refs]
    referenced: List[ColumnInfo] = [
        _ref_column(target, ref, junction) for target, ref in zip(targets, refs)
    ]

    created: int = 0
    if all(t.included for t in targets):
        for i in (0, 1):
            other: int = 1 - i
            association: ManyToManyAssociation = ManyToManyAssociation(
                name=entity,
                col_name=pivots[i][1],
                col_type=targets[other].name,
                join_columns=JoinColumnSpec(
                    name=pivot_columns[i].name,
                    referenced_column_name=referenced[i].output_name,
                ),
                inverse_join_columns=JoinColumnSpec(
                    name=pivot_columns[other].name,
                    referenced_column_name=referenced[other].output_name,
                ),
                inverse_name=pivots[other][1],
                owner=i == 0,
            )
            if not projected.names.reserve(targets[i].name, association.col_name):
                raise NameCollisionError(
                    f"ManyToMany property [{targets[i].name}].[{association.col_name}] "
                    f"configured on [{entity}] conflicts with an existing name.",
                    {
                        "table": targets[i].original_name,
                        "column": association.col_name,
                        "config_key": f"{entity}.manyToMany",
                    },
                    side="many_to_many",
                )
            targets[i].many_to_many.append(association)
            created += 1
    else:
        logger.warning(
            "ManyToMany on [%s] skipped: referenced table(s) %s not included.",
            entity,
            [t.original_name for t in targets if not t.included],
        )

    for column, target_column in zip(pivot_columns, referenced):
        target_column.one_to_many = [
            ref for ref in target_column.one_to_many if not ref.links(junction, column.name)
        ]
        column.many_to_one = None

    return created


def _pivot_column(junction: TableInfo, column_name: str) -> ColumnInfo:
    entity: str = junction.original_name
    column: Optional[ColumnInfo] = junction.get_column(column_name)
    if column is None:
        raise DanglingReferenceError(
            f"Failed to create ManyToMany relationship on table [{entity}]: column "
            f"[{column_name}] does not exist.",
            {"table": entity, "column": column_name, "config_key": f"{entity}.manyToMany"},
        )
    if column.many_to_one is None:
        raise DanglingReferenceError(
            f"Failed to create ManyToMany relationship on table [{entity}]: column "
            f"[{column_name}] has no ManyToOne relationship.",
            {"table": entity, "column": column_name, "config_key": f"{entity}.manyToMany"},
        )
    return column


def _ref_table(projected: ProjectedModel, ref: ColumnRef, source: TableInfo) -> TableInfo:
    table: Optional[TableInfo] = projected.target_of(ref)
    if table is None:
        raise ModelIntegrityError(
            f"[{source.original_name}] references missing table [{ref.entity_name}].",
            {"table": source.original_name},
        )
    return table


def _ref_column(table: TableInfo, ref: ColumnRef, source: TableInfo) -> ColumnInfo:
    column: Optional[ColumnInfo] = table.get_column(ref.column)
    if column is None:
        raise ModelIntegrityError(
            f"[{source.original_name}] references missing column "
            f"[{table.original_name}].[{ref.column}].",
            {"table": table.original_name, "column": ref.column},
        )
    return column


# ---------------------------------------------------------------------------
# Association naming
# ---------------------------------------------------------------------------


def resolve_associations(projected: ProjectedModel) -> int:
    """
    Name every unnamed many-to-one edge between two included tables.

    The forward name lands on the referencing table, the reciprocal on the
    referenced one; both edges of the pair store both names.  Returns the
    number of pairs named by this call (0 on a second run).
    """
    named: int = 0
    for table in projected.model.tables:
        if not table.included:
            continue
        table_config: Optional[TableConfig] = projected.table_config(table)
        for column in table.columns:
            mto: Optional[ColumnRef] = column.many_to_one
            if mto is None or mto.name is not None:
                continue
            target: TableInfo = _ref_table(projected, mto, table)
            if not target.included:
                logger.debug(
                    "[%s].[%s] references excluded table [%s]; kept as a plain column.",
                    table.original_name,
                    column.name,
                    target.original_name,
                )
                continue

            back: ColumnRef = _back_reference(target, mto, table, column)
            override: Optional[Tuple[str, str]] = (
                table_config.many_to_one_override(column.name) if table_config else None
            )
            if override is not None:
                forward, reciprocal = _reserve_explicit(projected, table, target, column, override)
            else:
                forward = projected.names.claim_free(table.name, target.name)
                reciprocal = projected.names.claim_free(target.name, to_plural(table.name))

            mto.name = forward
            mto.ref_name = reciprocal
            back.name = reciprocal
            back.ref_name = forward
            named += 1
            logger.debug(
                "Named %s.%s ↔ %s.%s via [%s].[%s].",
                table.name,
                forward,
                target.name,
                reciprocal,
                table.original_name,
                column.name,
            )

    logger.info("Named %d many-to-one / one-to-many pairs.", named)
    return named


def _back_reference(
    target: TableInfo,
    mto: ColumnRef,
    source: TableInfo,
    column: ColumnInfo,
) -> ColumnRef:
    target_column: ColumnInfo = _ref_column(target, mto, source)
    for ref in target_column.one_to_many:
        if ref.links(source, column.name):
            return ref
    raise ModelIntegrityError(
        f"[{target.original_name}].[{target_column.name}] has no back-reference "
        f"from [{source.original_name}].[{column.name}].",
        {"table": source.original_name, "column": column.name},
    )


def _reserve_explicit(
    projected: ProjectedModel,
    table: TableInfo,
    target: TableInfo,
    column: ColumnInfo,
    override: Tuple[str, str],
) -> Tuple[str, str]:
    forward, reciprocal = override
    config_key: str = f"{table.original_name}.manyToOne.{column.name}"
    if not projected.names.reserve(table.name, forward):
        raise NameCollisionError(
            f"The name [{table.name}].[{forward}] configured in manyToOne conflicts "
            f"with an existing name.",
            {"table": table.original_name, "column": column.name, "config_key": config_key},
            side="forward",
        )
    if not projected.names.reserve(target.name, reciprocal):
        raise NameCollisionError(
            f"The name [{target.name}].[{reciprocal}] configured in manyToOne conflicts "
            f"with an existing name.",
            {"table": target.original_name, "column": column.name, "config_key": config_key},
            side="reciprocal",
        )
    return forward, reciprocal


# ---------------------------------------------------------------------------
# Whole resolution
# ---------------------------------------------------------------------------


def resolve(model: SchemaModel, config: GeneratorConfig) -> ProjectedModel:
    """
    Projection, many-to-many reconstruction, then association naming.

    Configuration keys that name missing columns are rejected on the way
    (``DanglingReferenceError``); ``validators.validate_full`` reports the
    same problems up front, together with warnings.
    """
    projected: ProjectedModel = project_model(model, config)
    reconstruct_many_to_many(projected)
    resolve_associations(projected)
    return projected


__all__: List[str] = [
    "reconstruct_many_to_many",
    "resolve_associations",
    "resolve",
]
