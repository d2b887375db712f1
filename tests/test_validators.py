"""
tests/test_validators.py
Unit tests for entigen.validators.

Tests cover:
- ValidationResult bookkeeping and typed re-raising
- Unknown tables (warning / strict error)
- Unknown columns in renames, manyToOne and manyToMany
- manyToMany shape checks
- Projected name collisions
- Model warnings (missing primary key, unmapped types)
- The aggregate validate_full entry point
"""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from entigen.assembler import assemble_model
from entigen.exceptions import ConfigShapeError, DanglingReferenceError, NameCollisionError
from entigen.models import GeneratorConfig, MetadataRows, SchemaModel
from entigen.validators import (
    ValidationError,
    ValidationResult,
    validate_column_references,
    validate_full,
    validate_config,
    validate_many_to_many,
    validate_model,
    validate_projected_names,
    validate_table_references,
)

RowsFactory = Callable[[Dict[str, Dict[str, Any]]], MetadataRows]


def _config(data: Dict[str, Any]) -> GeneratorConfig:
    return GeneratorConfig.from_mapping(data)


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    """Container behaviour."""

    def test_empty_result_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result)
        assert len(result) == 0
        result.raise_for_errors()

    def test_warnings_do_not_invalidate(self) -> None:
        result = ValidationResult()
        result.add_warning("UNKNOWN_TABLE", "no such table")
        assert result.is_valid
        assert result.warning_count == 1
        result.raise_for_errors()

    def test_errors_counted(self) -> None:
        result = ValidationResult()
        result.add_error("MTM_SHAPE", "bad shape", {"table": "tJ"})
        result.add_warning("MISSING_PRIMARY_KEY", "no pk")
        assert not result
        assert result.error_count == 1
        assert result.codes == ["MTM_SHAPE", "MISSING_PRIMARY_KEY"]
        assert "1 error(s), 1 warning(s)" in result.summary()

    def test_merge(self) -> None:
        a = ValidationResult()
        a.add_error("UNKNOWN_COLUMN", "x")
        b = ValidationResult()
        b.add_warning("UNMAPPED_TYPE", "y")
        a.merge(b)
        assert len(a) == 2

    def test_raise_typed_exception(self) -> None:
        result = ValidationResult()
        result.add_warning("UNMAPPED_TYPE", "warning first")
        result.add_error("UNKNOWN_COLUMN", "missing column", {"table": "tUsers", "column": "Nope"})
        with pytest.raises(DanglingReferenceError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.context == {"table": "tUsers", "column": "Nope", "code": "UNKNOWN_COLUMN"}

    def test_raise_collision_with_side(self) -> None:
        result = ValidationResult()
        result.add_error("DUPLICATE_ENTITY_NAME", "same name")
        with pytest.raises(NameCollisionError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.side == "entity"

    def test_format_report(self) -> None:
        result = ValidationResult()
        result.add_error("MTM_SHAPE", "bad shape", {"table": "tJ"})
        report = result.format_report()
        assert "ERROR [MTM_SHAPE] bad shape" in report
        assert "table: tJ" in report

    def test_error_descriptor(self) -> None:
        item = ValidationError("error", "MTM_SHAPE", "bad")
        assert item.is_error and not item.is_warning
        assert str(item) == "[ERROR] MTM_SHAPE: bad"
        assert item.to_dict()["context"] == {}


# ===========================================================================
# Cross-reference checks
# ===========================================================================


class TestTableReferences:
    """Configured tables must exist."""

    def test_known_tables_pass(self, raw_model: SchemaModel, example_config: GeneratorConfig) -> None:
        assert len(validate_table_references(raw_model, example_config)) == 0

    def test_unknown_table_is_warning(self, raw_model: SchemaModel) -> None:
        result = validate_table_references(raw_model, _config({"tGhosts": {}}))
        assert result.is_valid
        assert result.warnings[0].code == "UNKNOWN_TABLE"

    def test_unknown_table_strict(self, raw_model: SchemaModel) -> None:
        result = validate_table_references(raw_model, _config({"tGhosts": {}}), strict_tables=True)
        assert not result.is_valid
        with pytest.raises(DanglingReferenceError):
            result.raise_for_errors()

    def test_table_names_case_sensitive(self, raw_model: SchemaModel) -> None:
        result = validate_table_references(raw_model, _config({"tusers": {}}))
        assert result.codes == ["UNKNOWN_TABLE"]


class TestColumnReferences:
    """Renames and manyToOne keys must name existing columns."""

    def test_example_passes(self, raw_model: SchemaModel, example_config: GeneratorConfig) -> None:
        assert len(validate_column_references(raw_model, example_config)) == 0

    def test_unknown_rename(self, raw_model: SchemaModel) -> None:
        result = validate_column_references(raw_model, _config({"tUsers": {"columns": {"Phone": "phone"}}}))
        assert result.codes == ["UNKNOWN_COLUMN"]
        assert result.errors[0].context["config_key"] == "tUsers.columns"

    def test_rename_key_case_insensitive(self, raw_model: SchemaModel) -> None:
        result = validate_column_references(raw_model, _config({"tUsers": {"columns": {"LOGIN": "login"}}}))
        assert result.is_valid

    def test_unknown_many_to_one_column(self, raw_model: SchemaModel) -> None:
        config = _config({"tUsers": {"manyToOne": {"groupId": ["group", "members"]}}})
        result = validate_column_references(raw_model, config)
        assert result.codes == ["UNKNOWN_COLUMN"]

    def test_many_to_one_without_foreign_key(self, raw_model: SchemaModel) -> None:
        config = _config({"tUsers": {"manyToOne": {"Email": ["mail", "owners"]}}})
        result = validate_column_references(raw_model, config)
        assert result.is_valid
        assert result.codes == ["MTO_NO_FOREIGN_KEY"]


class TestManyToManyChecks:
    """Junction configuration."""

    def _check(self, raw_model: SchemaModel, pivots: Any):
        return validate_many_to_many(raw_model, _config({"tRoleUsers": {"manyToMany": pivots}}))

    def test_valid_pivots(self, raw_model: SchemaModel) -> None:
        assert len(self._check(raw_model, [["userId", "roles"], ["roleId", "users"]])) == 0

    def test_wrong_count(self, raw_model: SchemaModel) -> None:
        result = self._check(raw_model, [["userId", "roles"]])
        assert result.codes == ["MTM_SHAPE"]
        with pytest.raises(ConfigShapeError):
            result.raise_for_errors()

    def test_duplicate_column(self, raw_model: SchemaModel) -> None:
        result = self._check(raw_model, [["userId", "roles"], ["UserId", "users"]])
        assert result.codes == ["MTM_DUPLICATE_COLUMN"]

    def test_unknown_pivot(self, raw_model: SchemaModel) -> None:
        result = self._check(raw_model, [["userId", "roles"], ["groupId", "users"]])
        assert result.codes == ["UNKNOWN_COLUMN"]

    def test_pivot_without_foreign_key(self, raw_model: SchemaModel) -> None:
        result = self._check(raw_model, [["userId", "roles"], ["id", "users"]])
        assert result.codes == ["MTM_NO_FOREIGN_KEY"]
        with pytest.raises(DanglingReferenceError):
            result.raise_for_errors()


class TestProjectedNames:
    """Renames must keep names distinct."""

    def test_example_passes(self, raw_model: SchemaModel, example_config: GeneratorConfig) -> None:
        assert len(validate_projected_names(raw_model, example_config)) == 0

    def test_duplicate_entity_name(self, raw_model: SchemaModel) -> None:
        result = validate_projected_names(raw_model, _config({"tUsers": {"name": "X"}, "tRoles": {"name": "X"}}))
        assert result.codes == ["DUPLICATE_ENTITY_NAME"]
        with pytest.raises(NameCollisionError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.side == "entity"

    def test_duplicate_property_name(self, raw_model: SchemaModel) -> None:
        result = validate_projected_names(raw_model, _config({"tUsers": {"columns": {"Email": "Login"}}}))
        assert result.codes == ["DUPLICATE_PROPERTY_NAME"]
        with pytest.raises(NameCollisionError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.side == "column"


# ===========================================================================
# Model warnings
# ===========================================================================


class TestValidateModel:
    """Warnings that do not stop generation."""

    def test_example_model_clean(self, raw_model: SchemaModel) -> None:
        assert len(validate_model(raw_model)) == 0

    def test_missing_primary_key(self, make_rows: RowsFactory) -> None:
        model = assemble_model(make_rows({"tLog": {"columns": ["id"]}}))
        result = validate_model(model)
        assert result.codes == ["MISSING_PRIMARY_KEY"]
        assert result.is_valid

    def test_unmapped_type(self, make_rows: RowsFactory) -> None:
        model = assemble_model(make_rows({"tPlaces": {"columns": ["id", ("shape", "geography")], "pk": ["id"]}}))
        result = validate_model(model)
        assert result.codes == ["UNMAPPED_TYPE"]
        assert result.warnings[0].context["type"] == "geography"

    def test_only_included_tables_checked(self, make_rows: RowsFactory) -> None:
        model = assemble_model(make_rows({"tLog": {"columns": ["id"]}, "tUsers": {"columns": ["id"], "pk": ["id"]}}))
        assert len(validate_model(model, _config({"tUsers": {}}))) == 0


class TestValidateFull:
    """Aggregate entry point."""

    def test_example_passes(self, raw_model: SchemaModel, example_config: GeneratorConfig) -> None:
        result = validate_full(raw_model, example_config)
        assert result.is_valid
        assert len(result) == 0

    def test_collects_every_finding(self, raw_model: SchemaModel) -> None:
        config = _config(
            {
                "tGhosts": {},
                "tUsers": {"columns": {"Phone": "phone"}},
                "tRoleUsers": {"manyToMany": [["userId", "roles"]]},
            }
        )
        result = validate_full(raw_model, config)
        assert set(result.codes) == {"UNKNOWN_TABLE", "UNKNOWN_COLUMN", "MTM_SHAPE"}
        assert result.error_count == 2

    def test_strict_tables(self, raw_model: SchemaModel) -> None:
        result = validate_full(raw_model, _config({"tGhosts": {}}), strict_tables=True)
        assert result.has_errors

    def test_config_checks_skip_model_warnings(self, make_rows: RowsFactory) -> None:
        model = assemble_model(make_rows({"tLog": {"columns": ["id"]}}))
        config = _config({"tLog": {}})
        assert len(validate_config(model, config)) == 0
        assert validate_full(model, config).codes == ["MISSING_PRIMARY_KEY"]
