# File: entigen/projector.py
"""
entigen - Rename & Inclusion Projector
======================================
Turns the read-only raw model into the mutable *working copy* used by the
rest of the pipeline:

* each table gets its projected entity name (configured ``name`` or the
  database name) while ``entity`` keeps the original;
* a table is included iff the configuration has an entry for it, even an
  empty one;
* each column gets its projected property name (explicit rename, else
  lower-cased first character when ``lowercase`` is set, else unchanged);
* table renames are pushed into every relationship edge;
* a ``NameRegistry`` is opened for every included table and seeded with
  its projected column names.

The registry is owned here and handed by reference to the many-to-many
reconstructor and the naming resolver, which both reserve names in it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from entigen.exceptions import DanglingReferenceError, NameCollisionError
from entigen.models import ColumnRef, GeneratorConfig, SchemaModel, TableConfig, TableInfo
from entigen.utils import lower_first, suffixed

logger: logging.Logger = logging.getLogger("entigen.projector")


# ---------------------------------------------------------------------------
# Names in use
# ---------------------------------------------------------------------------


class NameRegistry:
    """
    Property names already taken, per projected entity name.

    Only included tables have a namespace.  Keyed by projected name, so it
    answers name questions only; inclusion of an edge target is decided by
    ``ProjectedModel.links_included``.
    """

    __slots__ = ("_names",)

    def __init__(self) -> None:
        self._names: Dict[str, Set[str]] = {}

    def open(self, table_name: str) -> None:
        self._names.setdefault(table_name, set())

    def is_included(self, table_name: str) -> bool:
        return table_name in self._names

    def is_taken(self, table_name: str, name: str) -> bool:
        return name in self._names.get(table_name, ())

    def reserve(self, table_name: str, name: str) -> bool:
        """Mark *name* as used in *table_name*.  Returns False if it already was."""
        names: Set[str] = self._names[table_name]
        if name in names:
            return False
        names.add(name)
        return True

    def claim_free(self, table_name: str, name: str) -> str:
        """Reserve and return the first free name of ``name``, ``name2``, ``name3`` …"""
        n: int = 1
        while self.is_taken(table_name, suffixed(name, n)):
            n += 1
        free: str = suffixed(name, n)
        self.reserve(table_name, free)
        if n > 1:
            logger.debug("Name %r taken in %s; using %r.", name, table_name, free)
        return free

    def names_in(self, table_name: str) -> FrozenSet[str]:
        return frozenset(self._names.get(table_name, ()))

    @property
    def tables(self) -> List[str]:
        return sorted(self._names)

    def __repr__(self) -> str:
        return f"<NameRegistry {len(self._names)} tables>"


@dataclass(slots=True)
class ProjectedModel:
    """Working copy plus the name registry and the configuration it was built from."""

    model: SchemaModel
    names: NameRegistry
    config: GeneratorConfig
    # Original names of junction tables already folded into many-to-many.
    reconstructed: Set[str] = field(default_factory=set)

    def table_config(self, table: TableInfo) -> Optional[TableConfig]:
        return self.config.table_config(table.original_name)

    def is_included(self, original_name: str) -> bool:
        table: Optional[TableInfo] = self.model.get_entity(original_name)
        return table is not None and table.included

    def get_table(self, table_name: str) -> Optional[TableInfo]:
        return self.model.get_table(table_name)

    def target_of(self, ref: ColumnRef) -> Optional[TableInfo]:
        """The far table of *ref*, found by its original name."""
        return self.model.get_entity(ref.entity_name)

    def links_included(self, ref: ColumnRef) -> bool:
        return self.is_included(ref.entity_name)


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def projected_table_name(config: GeneratorConfig, original_name: str) -> str:
    table_config: Optional[TableConfig] = config.table_config(original_name)
    if table_config is not None and table_config.name:
        return table_config.name
    return original_name


def projected_column_name(table_config: Optional[TableConfig], column_name: str) -> str:
    if table_config is None:
        return column_name
    renamed: Optional[str] = table_config.column_rename(column_name)
    if renamed:
        return renamed
    if table_config.lowercase:
        return lower_first(column_name)
    return column_name


def _check_configured_columns(table: TableInfo, table_config: Optional[TableConfig]) -> None:
    if table_config is None:
        return
    entity: str = table.original_name
    sections = (("columns", table_config.columns), ("manyToOne", table_config.many_to_one))
    for section, keys in sections:
        for key in keys:
            if table.get_column(key) is None:
                raise DanglingReferenceError(
                    f"Column [{key}] configured in {section} does not exist in table [{entity}].",
                    {"table": entity, "column": key, "config_key": f"{entity}.{section}"},
                )


def project_model(model: SchemaModel, config: GeneratorConfig) -> ProjectedModel:
    """
    Deep-copy *model* and apply renames and inclusion from *config*.

    Raises ``NameCollisionError`` when two included tables project onto the
    same entity name, or two columns of one included table onto the same
    property name, and ``DanglingReferenceError`` when a ``columns`` or ``manyToOne``
    key of an included table names no column.
    """
    working: SchemaModel = model.model_copy(deep=True)
    names: NameRegistry = NameRegistry()
    renames: Dict[str, str] = {}

    for table in working.tables:
        original: str = table.name
        table_config: Optional[TableConfig] = config.table_config(original)
        projected: str = projected_table_name(config, original)
        renames[original] = projected

        table.entity = original
        table.name = projected
        table.included = table_config is not None
        table.many_to_many = []

        for column in table.columns:
            column.property_name = projected_column_name(table_config, column.name)

        if not table.included:
            continue

        _check_configured_columns(table, table_config)
        if names.is_included(projected):
            raise NameCollisionError(
                f"Tables project onto the same entity name [{projected}] "
                f"(second one is [{original}]).",
                {"table": original, "config_key": f"{original}.name"},
                side="entity",
            )
        names.open(projected)
        for column in table.columns:
            if not names.reserve(projected, column.output_name):
                raise NameCollisionError(
                    f"Two columns of [{original}] project onto the property "
                    f"name [{column.output_name}].",
                    {"table": original, "column": column.name, "config_key": f"{original}.columns"},
                    side="column",
                )

    for table in working.tables:
        for column in table.columns:
            refs: List[ColumnRef] = list(column.one_to_many)
            if column.many_to_one is not None:
                refs.append(column.many_to_one)
            for ref in refs:
                if ref.entity is None:
                    ref.entity = ref.table
                ref.table = renames.get(ref.entity, ref.table)

    logger.info(
        "Projected model: %d of %d tables included.",
        len(names.tables),
        len(working.tables),
    )
    return ProjectedModel(model=working, names=names, config=config)


__all__: List[str] = [
    "NameRegistry",
    "ProjectedModel",
    "project_model",
    "projected_table_name",
    "projected_column_name",
]
