# File: entigen/validators.py
"""
entigen - Configuration & Model Validators
==========================================
Pure-function checks run on the raw ``SchemaModel`` and the
``GeneratorConfig`` *before* resolution starts.

Pydantic already guarantees the configuration's structure (types, aliases,
no unknown keys).  This module adds the **cross-reference** checks that
need the schema: configured tables and columns must exist, many-to-many
pivots must be foreign keys, renames must not collide.

Every finding goes into a ``ValidationResult``; ``raise_for_errors`` turns
the first error into the matching typed exception so the resolver never
sees a configuration it would reject halfway through.

Usage:
    from entigen.validators import validate_full
    result = validate_full(model, config)
    result.raise_for_errors()
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Type

from entigen.column_types import lookup_semantic_type
from entigen.exceptions import (
    ConfigShapeError,
    DanglingReferenceError,
    EntigenError,
    NameCollisionError,
)
from entigen.models import ColumnInfo, GeneratorConfig, SchemaModel, TableConfig, TableInfo
from entigen.projector import projected_column_name, projected_table_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight finding descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# Error code → exception raised by ``ValidationResult.raise_for_errors``.
ERROR_TYPES: Dict[str, Type[EntigenError]] = {
    "MTM_SHAPE": ConfigShapeError,
    "MTM_DUPLICATE_COLUMN": ConfigShapeError,
    "UNKNOWN_TABLE": DanglingReferenceError,
    "UNKNOWN_COLUMN": DanglingReferenceError,
    "MTM_NO_FOREIGN_KEY": DanglingReferenceError,
    "DUPLICATE_ENTITY_NAME": NameCollisionError,
    "DUPLICATE_PROPERTY_NAME": NameCollisionError,
}

_COLLISION_SIDES: Dict[str, str] = {
    "DUPLICATE_ENTITY_NAME": "entity",
    "DUPLICATE_PROPERTY_NAME": "column",
}


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def raise_for_errors(self) -> None:
        """Raise the typed exception matching the first error, if any."""
        for item in self._items:
            if not item.is_error:
                continue
            exc_type: Type[EntigenError] = ERROR_TYPES.get(item.code, EntigenError)
            context: Dict[str, Any] = dict(item.context, code=item.code)
            if exc_type is NameCollisionError:
                raise NameCollisionError(
                    item.message, context, side=_COLLISION_SIDES.get(item.code, "column")
                )
            raise exc_type(item.message, context)

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = {"error": "ERROR", "warning": "WARN "}.get(item.level, "INFO ")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"        {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_table_references(
    model: SchemaModel,
    config: GeneratorConfig,
    strict_tables: bool = False,
) -> ValidationResult:
    """
    Every configured table should exist.  Unknown tables are ignored by the
    projector, so this is a warning unless *strict_tables* is set.
    """
    result: ValidationResult = ValidationResult()
    for name in config.tables:
        if model.get_table(name) is not None:
            continue
        message: str = f"Configuration refers to table [{name}] which is not in the schema."
        ctx: Dict[str, Any] = {"table": name, "config_key": name}
        if strict_tables:
            result.add_error("UNKNOWN_TABLE", message, ctx)
        else:
            result.add_warning("UNKNOWN_TABLE", message, ctx)
    return result


def validate_column_references(model: SchemaModel, config: GeneratorConfig) -> ValidationResult:
    """``columns`` and ``manyToOne`` keys must name existing columns."""
    result: ValidationResult = ValidationResult()
    for name, table_config in config.tables.items():
        table: Optional[TableInfo] = model.get_table(name)
        if table is None:
            continue

        for column_name in table_config.columns:
            if table.get_column(column_name) is None:
                result.add_error(
                    "UNKNOWN_COLUMN",
                    f"Column rename for [{name}].[{column_name}]: no such column.",
                    {"table": name, "column": column_name, "config_key": f"{name}.columns"},
                )

        for column_name in table_config.many_to_one:
            column: Optional[ColumnInfo] = table.get_column(column_name)
            ctx: Dict[str, Any] = {
                "table": name,
                "column": column_name,
                "config_key": f"{name}.manyToOne",
            }
            if column is None:
                result.add_error(
                    "UNKNOWN_COLUMN",
                    f"manyToOne names for [{name}].[{column_name}]: no such column.",
                    ctx,
                )
            elif column.many_to_one is None:
                result.add_warning(
                    "MTO_NO_FOREIGN_KEY",
                    f"manyToOne names for [{name}].[{column_name}] are ignored: the "
                    f"column has no foreign key.",
                    ctx,
                )
    return result


def validate_many_to_many(model: SchemaModel, config: GeneratorConfig) -> ValidationResult:
    """Junction configuration: two distinct pivot columns, both foreign keys."""
    result: ValidationResult = ValidationResult()
    for name, table_config in config.tables.items():
        pivots = table_config.many_to_many
        table: Optional[TableInfo] = model.get_table(name)
        if pivots is None or table is None:
            continue
        ctx: Dict[str, Any] = {"table": name, "config_key": f"{name}.manyToMany"}

        if len(pivots) != 2:
            result.add_error(
                "MTM_SHAPE",
                f"manyToMany on [{name}] needs exactly two entries, got {len(pivots)}.",
                ctx,
            )
            continue
        if pivots[0][0].lower() == pivots[1][0].lower():
            result.add_error(
                "MTM_DUPLICATE_COLUMN",
                f"manyToMany on [{name}] uses column [{pivots[0][0]}] twice.",
                dict(ctx, column=pivots[0][0]),
            )
            continue

        for column_name, _ in pivots:
            column: Optional[ColumnInfo] = table.get_column(column_name)
            if column is None:
                result.add_error(
                    "UNKNOWN_COLUMN",
                    f"manyToMany pivot [{name}].[{column_name}]: no such column.",
                    dict(ctx, column=column_name),
                )
            elif column.many_to_one is None:
                result.add_error(
                    "MTM_NO_FOREIGN_KEY",
                    f"manyToMany pivot [{name}].[{column_name}] has no ManyToOne relationship.",
                    dict(ctx, column=column_name),
                )
    return result


def validate_projected_names(model: SchemaModel, config: GeneratorConfig) -> ValidationResult:
    """Renames must not make two entities, or two properties of one entity, coincide."""
    result: ValidationResult = ValidationResult()
    by_entity: Dict[str, List[str]] = defaultdict(list)

    for table in model.tables:
        table_config: Optional[TableConfig] = config.table_config(table.name)
        if table_config is None:
            continue
        by_entity[projected_table_name(config, table.name)].append(table.name)

        by_property: Dict[str, List[str]] = defaultdict(list)
        for column in table.columns:
            by_property[projected_column_name(table_config, column.name)].append(column.name)
        for prop, columns in by_property.items():
            if len(columns) > 1:
                result.add_error(
                    "DUPLICATE_PROPERTY_NAME",
                    f"Columns {columns} of [{table.name}] all project onto [{prop}].",
                    {"table": table.name, "column": columns[-1], "config_key": f"{table.name}.columns"},
                )

    for entity, tables in by_entity.items():
        if len(tables) > 1:
            result.add_error(
                "DUPLICATE_ENTITY_NAME",
                f"Tables {tables} all project onto entity name [{entity}].",
                {"table": tables[-1], "config_key": f"{tables[-1]}.name"},
            )
    return result


def validate_model(
    model: SchemaModel,
    config: Optional[GeneratorConfig] = None,
) -> ValidationResult:
    """
    Model-level warnings.  With a *config*, only included tables are checked.

    - ``MISSING_PRIMARY_KEY``: TypeORM refuses entities without a primary column.
    - ``UNMAPPED_TYPE``: the property will be typed ``any``.
    """
    result: ValidationResult = ValidationResult()
    for table in model.tables:
        if config is not None and not config.includes(table.name):
            continue
        if not any(c.primary for c in table.columns):
            result.add_warning(
                "MISSING_PRIMARY_KEY",
                f"Table [{table.name}] has no primary key.",
                {"table": table.name},
            )
        for column in table.columns:
            if lookup_semantic_type(column.type) is None:
                result.add_warning(
                    "UNMAPPED_TYPE",
                    f"Column [{table.name}].[{column.name}] has unmapped type "
                    f"[{column.type}]; using 'any'.",
                    {"table": table.name, "column": column.name, "type": column.type},
                )
    return result


# ---------------------------------------------------------------------------
# Aggregate entry points
# ---------------------------------------------------------------------------


def validate_config(
    model: SchemaModel,
    config: GeneratorConfig,
    strict_tables: bool = False,
) -> ValidationResult:
    """Run every configuration cross-reference check against *model*."""
    result: ValidationResult = validate_table_references(model, config, strict_tables)

    validators: List[Callable[[SchemaModel, GeneratorConfig], ValidationResult]] = [
        validate_column_references,
        validate_many_to_many,
        validate_projected_names,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(model, config))

    logger.info("Config validation complete: %s", result.summary())
    return result


def validate_full(
    model: SchemaModel,
    config: GeneratorConfig,
    strict_tables: bool = False,
) -> ValidationResult:
    """
    **Master validation entry point** used by the generator and the CLI.

    Configuration checks first, then model warnings for included tables.
    """
    result: ValidationResult = ValidationResult()
    result.merge(validate_config(model, config, strict_tables))
    result.merge(validate_model(model, config))

    if result.has_errors:
        logger.error("Validation FAILED with %d error(s).", result.error_count)
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "ERROR_TYPES",
    "validate_table_references",
    "validate_column_references",
    "validate_many_to_many",
    "validate_projected_names",
    "validate_model",
    "validate_config",
    "validate_full",
]
