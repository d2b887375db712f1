# File: entigen/templates.py
"""
entigen - TypeORM Template Engine
=================================
Turns ``EntityProjection`` objects into TypeORM entity source files.

Each file contains, in order:
    1. the ``typeorm`` import block (sorted decorator names)
    2. the optional swagger import block
    3. one ``import {X} from './X';`` line per related entity
    4. ``@Entity(...)`` and the class with one decorated property per
       ``PropertyDecl``

**Performance contract:**
    - All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern.
    - Template methods are stateless; the same input renders the same bytes.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from entigen.column_types import DECIMAL_TYPES, UNBOUNDED_TYPES, normalise_type_name
from entigen.models import (
    ColumnInfo,
    EntityProjection,
    GeneratorConfig,
    ManyToManyAssociation,
    PropertyDecl,
    PropertyRole,
)
from entigen.utils import indent_lines, ts_string

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.templates")

TYPEORM_MODULE: str = "typeorm"
SWAGGER_MODULE: str = "@nestjs/swagger/dist/decorators/api-model-property.decorator"

# Scalar role → TypeORM column decorator.
_COLUMN_DECORATORS: Dict[str, str] = {
    PropertyRole.PRIMARY_GENERATED.value: "PrimaryGeneratedColumn",
    PropertyRole.PRIMARY.value: "PrimaryColumn",
    PropertyRole.COLUMN.value: "Column",
}


# ---------------------------------------------------------------------------
# Fragment builders
# ---------------------------------------------------------------------------


def column_options(column: ColumnInfo) -> str:
    """
    Render the ``{name, type, ...}`` options object of a column decorator.

    ``length`` is dropped for unbounded types and non-positive lengths
    (``-1`` is how SQL Server reports ``MAX``).  ``precision`` / ``scale``
    are only emitted for decimal types.
    """
    native: str = normalise_type_name(column.type)
    parts: List[str] = [
        f"name: {ts_string(column.name)}",
        f"type: {ts_string(native)}",
    ]
    if column.length is not None and column.length > 0 and native not in UNBOUNDED_TYPES:
        parts.append(f"length: {column.length}")
    if native in DECIMAL_TYPES:
        if column.precision is not None:
            parts.append(f"precision: {column.precision}")
        if column.scale is not None:
            parts.append(f"scale: {column.scale}")
    if column.nullable:
        parts.append("nullable: true")
    return "{" + ", ".join(parts) + "}"


def _swagger_description(description: str) -> str:
    return "'" + description.replace("'", '"') + "'"


def _join_column_spec(spec_name: str, referenced: str) -> str:
    return f"[{{name: {ts_string(spec_name)}, referencedColumnName: {ts_string(referenced)}}}]"


class TemplateGenerator:
    """
    Stateless TypeORM entity renderer.

    Only the ``swagger`` switch of the configuration affects the output.
    """

    def __init__(self, config: Optional[GeneratorConfig] = None) -> None:
        self._config: GeneratorConfig = config or GeneratorConfig()
        self._swagger: bool = self._config.swagger
        logger.debug("TemplateGenerator initialised (swagger=%s).", self._swagger)

    # ===================================================================
    # Property blocks
    # ===================================================================

    def _swagger_line(
        self,
        prop: PropertyDecl,
        swagger_imports: Set[str],
    ) -> Optional[str]:
        if not self._swagger:
            return None
        decorator: str = "ApiModelPropertyOptional" if prop.nullable else "ApiModelProperty"
        if prop.role == PropertyRole.MANY_TO_ONE:
            argument: str = f"{{type: () => {prop.target}}}"
        elif prop.column is not None and prop.column.description and not prop.is_relation:
            argument = f"{{description: {_swagger_description(prop.column.description)}}}"
        else:
            return None
        swagger_imports.add(decorator)
        return f"@{decorator}({argument})"

    def _property_block(
        self,
        prop: PropertyDecl,
        orm_imports: Set[str],
        swagger_imports: Set[str],
    ) -> List[str]:
        lines: List[str] = []
        swagger: Optional[str] = self._swagger_line(prop, swagger_imports)
        if swagger:
            lines.append(swagger)

        role: str = prop.role.value if isinstance(prop.role, PropertyRole) else prop.role

        if role in _COLUMN_DECORATORS:
            decorator: str = _COLUMN_DECORATORS[role]
            orm_imports.add(decorator)
            lines.append(f"@{decorator}({column_options(prop.column)})")  # type: ignore[arg-type]
        elif role == PropertyRole.MANY_TO_ONE.value:
            orm_imports.update({"ManyToOne", "JoinColumn"})
            lines.append(f"@ManyToOne({self._relation_args(prop)})")
            lines.append(f"@JoinColumn({{name: {ts_string(prop.join_column or '')}}})")
        elif role == PropertyRole.ONE_TO_MANY.value:
            orm_imports.add("OneToMany")
            lines.append(f"@OneToMany({self._relation_args(prop)})")
        elif role == PropertyRole.MANY_TO_MANY.value:
            orm_imports.add("ManyToMany")
            lines.append(f"@ManyToMany({self._relation_args(prop)})")
            association: Optional[ManyToManyAssociation] = prop.association
            if association is not None and association.owner:
                orm_imports.add("JoinTable")
                lines.extend(self._join_table(association))

        lines.append(f"{prop.name}: {prop.ts_type};")
        return lines

    @staticmethod
    def _relation_args(prop: PropertyDecl) -> str:
        if prop.inverse:
            return f"type => {prop.target}, inverse => inverse.{prop.inverse}"
        return f"type => {prop.target}"

    @staticmethod
    def _join_table(association: ManyToManyAssociation) -> List[str]:
        join: str = _join_column_spec(
            association.join_columns.name,
            association.join_columns.referenced_column_name,
        )
        inverse: str = _join_column_spec(
            association.inverse_join_columns.name,
            association.inverse_join_columns.referenced_column_name,
        )
        return [
            "@JoinTable({",
            f"  name: {ts_string(association.name)},",
            f"  joinColumns: {join},",
            f"  inverseJoinColumns: {inverse},",
            "})",
        ]

    # ===================================================================
    # Entity file
    # ===================================================================

    def generate_entity(self, projection: EntityProjection) -> str:
        """Render the complete TypeScript source of one entity."""
        orm_imports: Set[str] = {"Entity"}
        swagger_imports: Set[str] = set()

        body: List[str] = []
        for prop in projection.properties:
            body.append("")
            body.extend(
                indent_lines(self._property_block(prop, orm_imports, swagger_imports))
            )

        lines: List[str] = ["import {"]
        lines.extend(f"  {name}," for name in sorted(orm_imports))
        lines.append(f"}} from {ts_string(TYPEORM_MODULE)};")
        if swagger_imports:
            lines.append("import {")
            lines.extend(f"  {name}," for name in sorted(swagger_imports))
            lines.append(f"}} from {ts_string(SWAGGER_MODULE)};")
        for entity in projection.imports:
            lines.append(f"import {{{entity}}} from './{entity}';")

        lines.append("")
        if projection.schema_name:
            lines.append(
                f"@Entity({ts_string(projection.entity)}, "
                f"{{schema: {ts_string(projection.schema_name)}}})"
            )
        else:
            lines.append(f"@Entity({ts_string(projection.entity)})")
        lines.append(f"export class {projection.name} {{")
        lines.extend(body)
        lines.append("}")
        lines.append("")
        return "\n".join(lines)

    @staticmethod
    def file_name(projection: EntityProjection) -> str:
        return f"{projection.name}.ts"

    def generate_all(self, projections: List[EntityProjection]) -> Dict[str, str]:
        """
        Render every projection.

        Returns a dict of file name → file content, ordered by file name.
        """
        result: Dict[str, str] = {}
        for projection in sorted(projections, key=lambda p: p.name):
            result[self.file_name(projection)] = self.generate_entity(projection)
        logger.info("Rendered %d entity files.", len(result))
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TemplateGenerator",
    "column_options",
    "TYPEORM_MODULE",
    "SWAGGER_MODULE",
]
