# File: entigen/projection.py
"""
entigen - Emission Projection
=============================
Pure read of the resolved working copy: one ``EntityProjection`` per
included table, listing its properties in emission order.

Per column, in ordinal order:

* the key or scalar property (``PRIMARY_GENERATED``, ``PRIMARY`` or
  ``COLUMN``). A non-key column that carries a named many-to-one to an
  included table emits no scalar; its relation stands in for it.
* the ``MANY_TO_ONE`` relation, if any.
* each named ``ONE_TO_MANY`` back-reference whose far table is included.

then every ``MANY_TO_MANY`` association of the table.  A many-to-one to an
excluded table degrades to a plain column.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from entigen.models import (
    ColumnInfo,
    ColumnRef,
    EntityProjection,
    PropertyDecl,
    PropertyRole,
    TableInfo,
)
from entigen.projector import ProjectedModel

logger: logging.Logger = logging.getLogger("entigen.projection")


def _scalar(column: ColumnInfo) -> PropertyDecl:
    if column.is_generated_key:
        role: PropertyRole = PropertyRole.PRIMARY_GENERATED
    elif column.primary:
        role = PropertyRole.PRIMARY
    else:
        role = PropertyRole.COLUMN
    return PropertyDecl(
        role=role,
        name=column.output_name,
        ts_type=column.semantic_type,
        nullable=column.nullable,
        column=column,
    )


def _relation_of(column: ColumnInfo, projected: ProjectedModel) -> Optional[ColumnRef]:
    mto: Optional[ColumnRef] = column.many_to_one
    if mto is None or mto.name is None or not projected.links_included(mto):
        return None
    return mto


def project_entity(table: TableInfo, projected: ProjectedModel) -> EntityProjection:
    """Build the emission projection of one included table."""
    properties: List[PropertyDecl] = []

    for column in table.columns:
        mto: Optional[ColumnRef] = _relation_of(column, projected)

        if column.primary or mto is None:
            properties.append(_scalar(column))

        if mto is not None:
            properties.append(
                PropertyDecl(
                    role=PropertyRole.MANY_TO_ONE,
                    name=mto.name,
                    ts_type=mto.table,
                    nullable=column.nullable,
                    column=column,
                    target=mto.table,
                    inverse=mto.ref_name,
                    join_column=column.name,
                )
            )

        for ref in column.one_to_many:
            if ref.name is None or not projected.links_included(ref):
                continue
            properties.append(
                PropertyDecl(
                    role=PropertyRole.ONE_TO_MANY,
                    name=ref.name,
                    ts_type=f"{ref.table}[]",
                    target=ref.table,
                    inverse=ref.ref_name,
                )
            )

    for association in table.many_to_many:
        properties.append(
            PropertyDecl(
                role=PropertyRole.MANY_TO_MANY,
                name=association.col_name,
                ts_type=f"{association.col_type}[]",
                target=association.col_type,
                inverse=association.inverse_name,
                association=association,
            )
        )

    imports: Set[str] = {p.target for p in properties if p.target and p.target != table.name}

    return EntityProjection(
        entity=table.original_name,
        name=table.name,
        schema_name=table.schema_name,
        description=table.description,
        properties=properties,
        imports=sorted(imports),
    )


def build_projections(projected: ProjectedModel) -> List[EntityProjection]:
    """Projections of every included table, in model order."""
    projections: List[EntityProjection] = [
        project_entity(table, projected) for table in projected.model.included_tables
    ]
    logger.info("Built %d entity projections.", len(projections))
    return projections


__all__: List[str] = ["project_entity", "build_projections"]
