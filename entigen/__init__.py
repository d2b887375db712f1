# File: entigen/__init__.py
"""
entigen - TypeORM Entity Generator
==================================

Turns relational schema metadata (tables, columns, primary keys, identity
flags, foreign keys) into a fully resolved entity graph and renders it as
TypeORM entity classes.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ EntityGenerator│────▶│ TemplateGenerator│
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
          ┌──────────────┬───────┴──────┬──────────────┬────────────┐
          ▼              ▼              ▼              ▼            ▼
    ┌────────────┐ ┌───────────┐ ┌────────────┐ ┌────────────┐ ┌─────────┐
    │introspector│ │ assembler │ │ validators │ │  resolver  │ │exporters│
    └────────────┘ └───────────┘ └────────────┘ └────────────┘ └─────────┘

Usage::

    # As a library
    from entigen import EntityGenerator, GeneratorConfig, introspect
    rows = introspect("sqlite:///app.db")
    config = GeneratorConfig.from_mapping({"tUsers": {"name": "User"}})
    report = EntityGenerator().generate(rows, config, output_dir=Path("out"))

    # From the command line
    entigen -c entigen.yaml -m metadata.yaml -o ./entities -v

Public API:
    - EntityGenerator    : pipeline orchestrator
    - GeneratorConfig    : configuration model
    - assemble_model     : metadata rows → raw schema model
    - resolve            : raw model + config → resolved working copy
    - build_projections  : working copy → emission projections
    - TemplateGenerator  : TypeORM renderer
    - ProjectExporter    : file-system writer
    - validate_full      : configuration validation entry point
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from entigen.exceptions import (
    ConfigShapeError,
    DanglingReferenceError,
    EntigenError,
    ModelIntegrityError,
    NameCollisionError,
)
from entigen.models import (
    ColumnInfo,
    ColumnRef,
    EntityProjection,
    GeneratorConfig,
    ManyToManyAssociation,
    MetadataRows,
    PropertyDecl,
    PropertyRole,
    SchemaModel,
    TableConfig,
    TableInfo,
)
from entigen.assembler import assemble_model
from entigen.projector import NameRegistry, ProjectedModel, project_model
from entigen.resolver import reconstruct_many_to_many, resolve, resolve_associations
from entigen.projection import build_projections, project_entity
from entigen.validators import ValidationResult, validate_full
from entigen.templates import TemplateGenerator
from entigen.exporters import ExportManifest, ExportResult, ProjectExporter
from entigen.introspector import dump_metadata_file, introspect, load_metadata_file
from entigen.generator import EntityGenerator, GenerationReport, load_config_file

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Errors
    "EntigenError",
    "ModelIntegrityError",
    "ConfigShapeError",
    "DanglingReferenceError",
    "NameCollisionError",
    # Models
    "ColumnInfo",
    "ColumnRef",
    "EntityProjection",
    "GeneratorConfig",
    "ManyToManyAssociation",
    "MetadataRows",
    "PropertyDecl",
    "PropertyRole",
    "SchemaModel",
    "TableConfig",
    "TableInfo",
    # Pipeline stages
    "assemble_model",
    "NameRegistry",
    "ProjectedModel",
    "project_model",
    "reconstruct_many_to_many",
    "resolve_associations",
    "resolve",
    "build_projections",
    "project_entity",
    # Validation
    "ValidationResult",
    "validate_full",
    # Emission
    "TemplateGenerator",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    # Metadata sources
    "introspect",
    "load_metadata_file",
    "dump_metadata_file",
    # Orchestrator
    "EntityGenerator",
    "GenerationReport",
    "load_config_file",
]
