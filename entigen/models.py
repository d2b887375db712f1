# File: entigen/models.py
"""
entigen - Core Data Models
==========================
Pydantic V2 models for every structure that crosses a stage boundary:

    Metadata rows → Raw schema graph → Working copy → Emission projection

plus the strongly-typed generator configuration.

Graph edges (``ColumnRef``) address their far end by ``(table, column)``
names, never by object reference, so removing an edge during many-to-many
reconstruction is a plain list removal.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
)

from entigen.column_types import semantic_type
from entigen.exceptions import ConfigShapeError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.models")

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Introspector row shapes
# ---------------------------------------------------------------------------


class TableRow(BaseModel):
    """One row of the table listing."""

    model_config = _SHARED_CONFIG

    schema_name: Optional[str] = Field(default=None, alias="schema")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class ColumnRow(BaseModel):
    """One row of the column listing (ordered by table, then ordinal)."""

    model_config = _SHARED_CONFIG

    table: str = Field(..., min_length=1)
    order: int = Field(default=0, ge=0, description="Ordinal position.")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: str = Field(..., min_length=1, description="Native type name.")
    precision: Optional[int] = None
    scale: Optional[int] = None
    length: Optional[int] = None
    nullable: bool = True
    default: Optional[str] = None
    computed: Optional[str] = None


class KeyRow(BaseModel):
    """A ``(table, column)`` pair: used for primary-key and identity listings."""

    model_config = _SHARED_CONFIG

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)


class ForeignKeyRow(BaseModel):
    """One foreign-key column pair: ``table.column → ref_table.ref_column``."""

    model_config = _SHARED_CONFIG

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    ref_table: str = Field(..., min_length=1, alias="refTable")
    ref_column: str = Field(..., min_length=1, alias="refColumn")


class MetadataRows(BaseModel):
    """The full batch returned by the metadata introspector."""

    model_config = _SHARED_CONFIG

    tables: List[TableRow] = Field(default_factory=list)
    columns: List[ColumnRow] = Field(default_factory=list)
    primary_keys: List[KeyRow] = Field(default_factory=list)
    identities: List[KeyRow] = Field(default_factory=list)
    foreign_keys: List[ForeignKeyRow] = Field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"<MetadataRows {len(self.tables)} tables, {len(self.columns)} columns, "
            f"{len(self.foreign_keys)} FKs>"
        )


# ---------------------------------------------------------------------------
# Schema graph
# ---------------------------------------------------------------------------


class ColumnRef(BaseModel):
    """
    A relationship edge addressed by ``(table, column)``.

    On a column's ``many_to_one`` it points at the referenced column; inside
    ``one_to_many`` it points back at the referencing column.  After the
    naming stage ``name`` is the property exposed from this side and
    ``ref_name`` the reciprocal property on the far side.

    ``table`` follows renames and is what gets emitted; ``entity`` keeps the
    database name and identifies the far table for lookups.
    """

    model_config = _SHARED_CONFIG

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    entity: Optional[str] = Field(default=None, description="Original name of the far table.")
    name: Optional[str] = None
    ref_name: Optional[str] = None

    @property
    def entity_name(self) -> str:
        return self.entity or self.table

    def links(self, table: "TableInfo", column: str) -> bool:
        """True if this edge addresses *column* of *table*, matched by original table name."""
        return self.entity_name == table.original_name and self.column.lower() == column.lower()

    def __repr__(self) -> str:
        named: str = f" as {self.name}/{self.ref_name}" if self.name else ""
        return f"<Ref {self.table}.{self.column}{named}>"


class JoinColumnSpec(BaseModel):
    """Junction-table column and the entity property it references."""

    model_config = _SHARED_CONFIG

    name: str
    referenced_column_name: str = Field(..., alias="referencedColumnName")


class ManyToManyAssociation(BaseModel):
    """A many-to-many property rebuilt from a junction table's two foreign keys."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., description="Original name of the junction table.")
    col_name: str = Field(..., description="Property name on the owning entity.")
    col_type: str = Field(..., description="Projected name of the target entity.")
    join_columns: JoinColumnSpec
    inverse_join_columns: JoinColumnSpec
    inverse_name: Optional[str] = Field(
        default=None, description="Property name of the mirrored association."
    )
    owner: bool = Field(default=True, description="Carries the @JoinTable declaration.")

    def __repr__(self) -> str:
        return f"<ManyToMany {self.col_name}: {self.col_type}[] via {self.name}>"


class ColumnInfo(BaseModel):
    """A single column with its key flags and relationship edges."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    order: int = 0
    description: Optional[str] = None
    type: str = Field(..., min_length=1)
    precision: Optional[int] = None
    scale: Optional[int] = None
    length: Optional[int] = None
    nullable: bool = True
    default: Optional[str] = None
    computed: Optional[str] = None
    primary: bool = False
    identity: bool = False
    many_to_one: Optional[ColumnRef] = None
    one_to_many: List[ColumnRef] = Field(default_factory=list)

    # Set by the projector.
    property_name: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def semantic_type(self) -> str:
        return semantic_type(self.type)

    @property
    def is_generated_key(self) -> bool:
        return self.primary and self.identity

    @property
    def output_name(self) -> str:
        """Projected property name, falling back to the database name."""
        return self.property_name or self.name

    def __repr__(self) -> str:
        flags: str = ""
        if self.primary:
            flags += " PK"
        if self.identity:
            flags += " IDENTITY"
        return f"<Column {self.name} {self.type}{flags}>"


class TableInfo(BaseModel):
    """
    A table and its ordered columns.

    In the raw model ``name`` is the database name.  In the working copy
    ``name`` is the projected entity name, ``entity`` keeps the database
    name and ``included`` tells whether the table is generated.
    """

    model_config = _SHARED_CONFIG

    schema_name: Optional[str] = Field(default=None, alias="schema")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    columns: List[ColumnInfo] = Field(default_factory=list)

    entity: Optional[str] = None
    included: bool = False
    many_to_many: List[ManyToManyAssociation] = Field(default_factory=list)

    @property
    def original_name(self) -> str:
        return self.entity or self.name

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        """Case-insensitive column lookup."""
        wanted: str = name.lower()
        for column in self.columns:
            if column.name.lower() == wanted:
                return column
        return None

    def __repr__(self) -> str:
        return f"<Table {self.name} ({len(self.columns)} cols)>"


class SchemaModel(BaseModel):
    """Ordered collection of tables: the raw model and, after projection, the working copy."""

    model_config = _SHARED_CONFIG

    tables: List[TableInfo] = Field(default_factory=list)

    def get_table(self, name: str) -> Optional[TableInfo]:
        """
        Case-sensitive lookup by (projected) name.

        An included table wins over an excluded one that happens to carry
        the same name.
        """
        fallback: Optional[TableInfo] = None
        for table in self.tables:
            if table.name != name:
                continue
            if table.included:
                return table
            if fallback is None:
                fallback = table
        return fallback

    def get_entity(self, original_name: str) -> Optional[TableInfo]:
        """Lookup by database (original) table name."""
        for table in self.tables:
            if table.original_name == original_name:
                return table
        return None

    @property
    def included_tables(self) -> List[TableInfo]:
        return [t for t in self.tables if t.included]

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def __repr__(self) -> str:
        return f"<SchemaModel {len(self.tables)} tables>"


# ---------------------------------------------------------------------------
# Generator configuration
# ---------------------------------------------------------------------------


class TableConfig(BaseModel):
    """
    Per-table configuration.  Its mere presence includes the table in the
    output; every field is optional.
    """

    model_config = _SHARED_CONFIG

    name: Optional[str] = Field(default=None, min_length=1, description="Entity name override.")
    lowercase: bool = Field(
        default=False, description="Lower-case the first character of column properties."
    )
    columns: Dict[str, str] = Field(
        default_factory=dict, description="Original column name → property name."
    )
    many_to_one: Dict[str, Tuple[str, str]] = Field(
        default_factory=dict,
        alias="manyToOne",
        description="Column → (forward property, reciprocal property).",
    )
    many_to_many: Optional[List[Tuple[str, str]]] = Field(
        default=None,
        alias="manyToMany",
        description="Two (pivot column, remote property) pairs for a junction table.",
    )

    @field_validator("columns")
    @classmethod
    def _non_empty_renames(cls, v: Dict[str, str]) -> Dict[str, str]:
        empty: List[str] = [k for k, name in v.items() if not name]
        if empty:
            raise ValueError(f"Empty property name for column(s): {empty}")
        return v

    def column_rename(self, column_name: str) -> Optional[str]:
        """Configured property name for a column (case-insensitive key match)."""
        return _lookup_ci(self.columns, column_name)

    def many_to_one_override(self, column_name: str) -> Optional[Tuple[str, str]]:
        return _lookup_ci(self.many_to_one, column_name)


class GeneratorConfig(BaseModel):
    """
    Master configuration for one generation run.

    ``tables`` is keyed by *original* table name.  Tables absent from it
    exist in the schema but are not generated.
    """

    model_config = _SHARED_CONFIG

    tables: Dict[str, TableConfig] = Field(default_factory=dict)
    swagger: bool = Field(default=False, description="Emit swagger property decorators.")
    output_dir: Optional[str] = Field(default=None, description="Destination directory.")
    schema_name: Optional[str] = Field(
        default=None, description="Database schema to reflect (dialect default when None)."
    )
    database_url: Optional[str] = Field(default=None, description="SQLAlchemy URL.")
    clean_output: bool = Field(default=False, description="Wipe destination before export.")
    write_manifest: bool = Field(default=True, description="Write entigen-manifest.json.")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GeneratorConfig":
        """
        Build a config from a parsed document.

        Accepts either ``{"tables": {...}, ...}`` or a bare mapping of table
        configurations.  Shape problems surface as ``ConfigShapeError``.
        """
        if not isinstance(data, Mapping):
            raise ConfigShapeError(
                f"Configuration must be a mapping, got {type(data).__name__}.",
                {"config_key": "<root>"},
            )
        payload: Dict[str, Any] = dict(data)
        if "tables" not in payload:
            payload = {"tables": payload}
        if payload["tables"] is None:
            payload["tables"] = {}
        # An empty entry (``tUsers:`` in YAML) still includes the table.
        tables: Any = payload["tables"]
        if isinstance(tables, Mapping):
            payload["tables"] = {k: ({} if v is None else v) for k, v in tables.items()}
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigShapeError(
                f"Invalid generator configuration: {exc}",
                {"config_key": _first_error_location(exc)},
            ) from exc

    def table_config(self, original_name: str) -> Optional[TableConfig]:
        return self.tables.get(original_name)

    def includes(self, original_name: str) -> bool:
        return original_name in self.tables


def _lookup_ci(mapping: Mapping[str, Any], key: str) -> Any:
    if key in mapping:
        return mapping[key]
    wanted: str = key.lower()
    for k, v in mapping.items():
        if k.lower() == wanted:
            return v
    return None


def _first_error_location(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "<root>"
    return ".".join(str(part) for part in errors[0].get("loc", ()))


# ---------------------------------------------------------------------------
# Emission projection
# ---------------------------------------------------------------------------


class PropertyRole(str, Enum):
    """Role of one emitted entity property."""

    PRIMARY_GENERATED = "primary_generated"
    PRIMARY = "primary"
    COLUMN = "column"
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


class PropertyDecl(BaseModel):
    """One property declaration handed to the code emitter."""

    model_config = _SHARED_CONFIG

    role: PropertyRole
    name: str = Field(..., min_length=1)
    ts_type: str = Field(..., min_length=1, description="Semantic (TypeScript) type.")
    nullable: bool = False
    column: Optional[ColumnInfo] = Field(
        default=None, description="Backing column for scalar and many-to-one properties."
    )
    target: Optional[str] = Field(default=None, description="Related entity name.")
    inverse: Optional[str] = Field(default=None, description="Property name on the related entity.")
    join_column: Optional[str] = Field(default=None, description="Database column of a many-to-one.")
    association: Optional[ManyToManyAssociation] = None

    @property
    def is_relation(self) -> bool:
        return self.role in (
            PropertyRole.MANY_TO_ONE,
            PropertyRole.ONE_TO_MANY,
            PropertyRole.MANY_TO_MANY,
        )

    def __repr__(self) -> str:
        return f"<Property {self.name}: {self.ts_type} ({self.role})>"


class EntityProjection(BaseModel):
    """Everything the code emitter needs for one included table."""

    model_config = _SHARED_CONFIG

    entity: str = Field(..., description="Original table name.")
    name: str = Field(..., description="Projected entity (class) name.")
    schema_name: Optional[str] = None
    description: Optional[str] = None
    properties: List[PropertyDecl] = Field(default_factory=list)
    imports: List[str] = Field(default_factory=list, description="Foreign entity names.")

    @property
    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    def properties_of(self, role: PropertyRole) -> List[PropertyDecl]:
        return [p for p in self.properties if p.role == role]

    def get_property(self, name: str) -> Optional[PropertyDecl]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def __repr__(self) -> str:
        return f"<EntityProjection {self.name} ({len(self.properties)} props)>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TableRow",
    "ColumnRow",
    "KeyRow",
    "ForeignKeyRow",
    "MetadataRows",
    "ColumnRef",
    "JoinColumnSpec",
    "ManyToManyAssociation",
    "ColumnInfo",
    "TableInfo",
    "SchemaModel",
    "TableConfig",
    "GeneratorConfig",
    "PropertyRole",
    "PropertyDecl",
    "EntityProjection",
]

logger.debug("entigen.models loaded (%d public symbols).", len(__all__))
