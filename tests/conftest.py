"""
tests/conftest.py
Shared fixtures for the entigen test suite.

The reference metadata snapshot and configuration at the project root
(``metadata_example.yaml`` / ``entigen_example.yaml``) are loaded once per
session; every test gets a deep copy it may mutate.  Small ad-hoc schemas
are built with the ``make_rows`` factory.  No mocking libraries are used;
file I/O happens inside pytest's ``tmp_path``.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest
import yaml

from entigen.assembler import assemble_model
from entigen.models import (
    ColumnRow,
    ForeignKeyRow,
    GeneratorConfig,
    KeyRow,
    MetadataRows,
    SchemaModel,
    TableRow,
)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
METADATA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "metadata_example.yaml"
CONFIG_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "entigen_example.yaml"


def _load_yaml(path: pathlib.Path) -> Dict[str, Any]:
    assert path.exists(), f"Reference file not found at {path}."
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


def write_yaml(data: Any, path: pathlib.Path) -> pathlib.Path:
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# Reference snapshot / configuration
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_metadata_dict() -> Dict[str, Any]:
    """The reference metadata snapshot, parsed once per session."""
    return _load_yaml(METADATA_EXAMPLE_PATH)


@pytest.fixture(scope="session")
def raw_config_dict() -> Dict[str, Any]:
    """The reference generator configuration, parsed once per session."""
    return _load_yaml(CONFIG_EXAMPLE_PATH)


@pytest.fixture()
def metadata_dict(raw_metadata_dict: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(raw_metadata_dict)


@pytest.fixture()
def config_dict(raw_config_dict: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(raw_config_dict)


@pytest.fixture()
def metadata_rows(metadata_dict: Dict[str, Any]) -> MetadataRows:
    return MetadataRows.model_validate(metadata_dict)


@pytest.fixture()
def raw_model(metadata_rows: MetadataRows) -> SchemaModel:
    return assemble_model(metadata_rows)


@pytest.fixture()
def example_config(config_dict: Dict[str, Any]) -> GeneratorConfig:
    return GeneratorConfig.from_mapping(config_dict)


@pytest.fixture()
def metadata_yaml_path(metadata_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the snapshot to a temporary YAML file and return its path."""
    return write_yaml(metadata_dict, tmp_path / "metadata.yaml")


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the configuration (without output_dir) to a temporary YAML file."""
    data = dict(config_dict)
    data.pop("output_dir", None)
    return write_yaml(data, tmp_path / "entigen.yaml")


# ---------------------------------------------------------------------------
# Ad-hoc schema factory
# ---------------------------------------------------------------------------

ColumnSpec = Union[str, Tuple[str, str]]


def build_rows(tables: Dict[str, Dict[str, Any]]) -> MetadataRows:
    """
    Build ``MetadataRows`` from a compact description::

        {
            "tUsers": {
                "columns": ["id", ("Login", "nvarchar")],   # type defaults to int
                "pk": ["id"],
                "identity": ["id"],
                "fks": {"roleId": ("tRoles", "id")},
            },
        }

    Primary-key columns are non-nullable, everything else nullable.
    """
    rows: MetadataRows = MetadataRows()
    for table_name, spec in tables.items():
        pk: List[str] = list(spec.get("pk", []))
        rows.tables.append(
            TableRow(
                schema_name=spec.get("schema", "dbo"),
                name=table_name,
                description=spec.get("description"),
            )
        )
        for order, col in enumerate(spec.get("columns", []), start=1):
            name, col_type = (col, "int") if isinstance(col, str) else col
            rows.columns.append(
                ColumnRow(table=table_name, order=order, name=name, type=col_type, nullable=name not in pk)
            )
        rows.primary_keys.extend(KeyRow(table=table_name, column=c) for c in pk)
        rows.identities.extend(KeyRow(table=table_name, column=c) for c in spec.get("identity", []))
        for column, (ref_table, ref_column) in spec.get("fks", {}).items():
            rows.foreign_keys.append(
                ForeignKeyRow(table=table_name, column=column, ref_table=ref_table, ref_column=ref_column)
            )
    return rows


@pytest.fixture()
def make_rows() -> Callable[[Dict[str, Dict[str, Any]]], MetadataRows]:
    return build_rows


@pytest.fixture()
def users_roles_rows() -> MetadataRows:
    """``tUsers(id PK/identity, roleId → tRoles.id)`` and ``tRoles(id PK/identity, name)``."""
    return build_rows(
        {
            "tUsers": {
                "columns": ["id", "roleId"],
                "pk": ["id"],
                "identity": ["id"],
                "fks": {"roleId": ("tRoles", "id")},
            },
            "tRoles": {
                "columns": ["id", ("name", "nvarchar")],
                "pk": ["id"],
                "identity": ["id"],
            },
        }
    )


@pytest.fixture()
def junction_rows() -> MetadataRows:
    """Users, roles and the ``tRoleUsers`` junction table between them."""
    return build_rows(
        {
            "tUsers": {
                "columns": ["id", ("login", "nvarchar")],
                "pk": ["id"],
                "identity": ["id"],
            },
            "tRoles": {
                "columns": ["id", ("name", "nvarchar")],
                "pk": ["id"],
                "identity": ["id"],
            },
            "tRoleUsers": {
                "columns": ["userId", "roleId"],
                "pk": ["userId", "roleId"],
                "fks": {"userId": ("tUsers", "id"), "roleId": ("tRoles", "id")},
            },
        }
    )


@pytest.fixture()
def junction_config() -> GeneratorConfig:
    return GeneratorConfig.from_mapping(
        {
            "tUsers": {"name": "User"},
            "tRoles": {"name": "Role"},
            "tRoleUsers": {"manyToMany": [["userId", "roles"], ["roleId", "users"]]},
        }
    )
