"""
tests/test_cli.py
Tests for the entigen command-line interface.

Tests cover:
- Exit codes for success and for each failure class
- --validate-only, --dry-run, --swagger and --version
- Mapping from the failing pipeline step to an exit code
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Dict, Iterator, List

import pytest
import yaml

from entigen import __version__
from entigen.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
    exit_code_for,
)
from entigen.exceptions import ConfigShapeError, NameCollisionError
from entigen.generator import (
    STEP_EXPORT,
    STEP_LOAD_CONFIG,
    STEP_LOAD_METADATA,
    STEP_RENDER,
    STEP_RESOLVE,
    STEP_VALIDATE,
)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """cli_main attaches a stream handler to the package logger; drop it afterwards."""
    yield
    package_logger = logging.getLogger("entigen")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    logging.disable(logging.NOTSET)


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    return exc_info.value.code


def _write_config(data: Dict[str, Any], path: pathlib.Path) -> str:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return str(path)


# ===========================================================================
# Full generation
# ===========================================================================


class TestGenerationCommand:
    """entigen -c ... -m ... -o ..."""

    def test_success(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "entities"
        code = _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(out)])
        assert code == EXIT_SUCCESS
        assert sorted(p.name for p in out.glob("*.ts")) == ["Role.ts", "RoleUser.ts", "User.ts"]

    def test_summary_printed(
        self,
        config_yaml_path: pathlib.Path,
        metadata_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture,
    ) -> None:
        _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(tmp_path)])
        out = capsys.readouterr().out
        assert "entigen - Generation Report" in out
        assert "SUCCESS" in out

    def test_dry_run(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "entities"
        code = _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(out), "--dry-run"])
        assert code == EXIT_SUCCESS
        assert not out.exists()

    def test_swagger_flag(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        code = _run(
            ["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(tmp_path), "--swagger"]
        )
        assert code == EXIT_SUCCESS
        assert "@ApiModelProperty" in (tmp_path / "Role.ts").read_text(encoding="utf-8")

    def test_dump_metadata(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        snapshot = tmp_path / "copy.json"
        code = _run(
            [
                "-c", str(config_yaml_path),
                "-m", str(metadata_yaml_path),
                "-o", str(tmp_path / "out"),
                "--dump-metadata", str(snapshot),
            ]
        )
        assert code == EXIT_SUCCESS
        assert snapshot.exists()

    def test_verbose_logs_to_stderr(
        self,
        config_yaml_path: pathlib.Path,
        metadata_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture,
    ) -> None:
        _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(tmp_path), "-v"])
        assert "Generation completed successfully." in capsys.readouterr().err

    def test_quiet(
        self,
        config_yaml_path: pathlib.Path,
        metadata_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture,
    ) -> None:
        code = _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(tmp_path), "-q"])
        assert code == EXIT_SUCCESS
        assert capsys.readouterr().err == ""


class TestGenerationFailures:
    """Each failure class has its own exit code."""

    def test_missing_config_file(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        code = _run(["-c", str(tmp_path / "nope.yaml"), "-m", str(metadata_yaml_path), "-o", str(tmp_path)])
        assert code == EXIT_INPUT_ERROR

    def test_missing_metadata_file(self, config_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        code = _run(["-c", str(config_yaml_path), "-m", str(tmp_path / "nope.yaml"), "-o", str(tmp_path)])
        assert code == EXIT_INPUT_ERROR

    def test_no_metadata_source(self, config_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        assert _run(["-c", str(config_yaml_path), "-o", str(tmp_path)]) == EXIT_INPUT_ERROR

    def test_no_output_directory(self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path) -> None:
        assert _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path)]) == EXIT_INPUT_ERROR

    def test_config_shape_error(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config({"tables": {"tUsers": {"nmae": "User"}}}, tmp_path / "bad.yaml")
        code = _run(["-c", config, "-m", str(metadata_yaml_path), "-o", str(tmp_path / "out")])
        assert code == EXIT_VALIDATION_ERROR

    def test_unknown_column(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config({"tables": {"tUsers": {"columns": {"Phone": "phone"}}}}, tmp_path / "c.yaml")
        code = _run(["-c", config, "-m", str(metadata_yaml_path), "-o", str(tmp_path / "out")])
        assert code == EXIT_VALIDATION_ERROR
        assert not (tmp_path / "out").exists()

    def test_strict_tables(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config({"tables": {"tUsers": {}, "tGhosts": {}}}, tmp_path / "c.yaml")
        argv = ["-c", config, "-m", str(metadata_yaml_path), "-o", str(tmp_path / "out")]
        assert _run(argv) == EXIT_SUCCESS
        assert _run(argv + ["--strict-tables"]) == EXIT_VALIDATION_ERROR

    def test_name_collision(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config(
            {"tables": {"tUsers": {"manyToOne": {"roleId": ["Login", "Users"]}}, "tRoles": {}}},
            tmp_path / "c.yaml",
        )
        code = _run(["-c", config, "-m", str(metadata_yaml_path), "-o", str(tmp_path / "out")])
        assert code == EXIT_GENERATION_ERROR

    def test_export_error(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        target = tmp_path / "entities"
        target.write_text("not a directory", encoding="utf-8")
        code = _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-o", str(target)])
        assert code == EXIT_EXPORT_ERROR


# ===========================================================================
# Validate-only mode
# ===========================================================================


class TestValidateOnly:
    """--validate-only prints a report and writes nothing."""

    def test_valid(
        self,
        config_yaml_path: pathlib.Path,
        metadata_yaml_path: pathlib.Path,
        capsys: pytest.CaptureFixture,
    ) -> None:
        code = _run(["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "--validate-only"])
        assert code == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Configuration Validation Report" in out
        assert "All validations passed!" in out

    def test_invalid(
        self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        config = _write_config(
            {"tables": {"tRoleUsers": {"manyToMany": [["userId", "roles"]]}}}, tmp_path / "c.yaml"
        )
        code = _run(["-c", config, "-m", str(metadata_yaml_path), "--validate-only"])
        assert code == EXIT_VALIDATION_ERROR
        assert "MTM_SHAPE" in capsys.readouterr().out

    def test_fail_on_warnings(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config({"tables": {"tGhosts": {}}}, tmp_path / "c.yaml")
        argv = ["-c", config, "-m", str(metadata_yaml_path), "--validate-only"]
        assert _run(argv) == EXIT_SUCCESS
        assert _run(argv + ["--fail-on-warnings"]) == EXIT_VALIDATION_ERROR

    def test_shape_error(self, metadata_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        config = _write_config({"tables": {"tUsers": {"nmae": "User"}}}, tmp_path / "bad.yaml")
        assert _run(["-c", config, "-m", str(metadata_yaml_path), "--validate-only"]) == EXIT_VALIDATION_ERROR

    def test_missing_metadata(self, config_yaml_path: pathlib.Path) -> None:
        assert _run(["-c", str(config_yaml_path), "--validate-only"]) == EXIT_INPUT_ERROR


# ===========================================================================
# Argument handling
# ===========================================================================


class TestArguments:
    """argparse behaviour."""

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        assert _run(["--version"]) == 0
        assert capsys.readouterr().out.strip() == f"entigen v{__version__}"

    def test_config_required(self) -> None:
        assert _run([]) == 2

    def test_metadata_sources_mutually_exclusive(
        self, config_yaml_path: pathlib.Path, metadata_yaml_path: pathlib.Path
    ) -> None:
        argv = ["-c", str(config_yaml_path), "-m", str(metadata_yaml_path), "-d", "sqlite://"]
        assert _run(argv) == 2


class TestExitCodeFor:
    """Failing step → exit code."""

    @pytest.mark.parametrize(
        "step, exc, expected",
        [
            (None, None, EXIT_SUCCESS),
            (STEP_LOAD_CONFIG, FileNotFoundError("x"), EXIT_INPUT_ERROR),
            (STEP_LOAD_CONFIG, ValueError("x"), EXIT_INPUT_ERROR),
            (STEP_LOAD_CONFIG, ConfigShapeError("x"), EXIT_VALIDATION_ERROR),
            (STEP_LOAD_METADATA, ValueError("x"), EXIT_INPUT_ERROR),
            (STEP_VALIDATE, None, EXIT_VALIDATION_ERROR),
            (STEP_RESOLVE, NameCollisionError("x", side="column"), EXIT_GENERATION_ERROR),
            (STEP_RENDER, None, EXIT_GENERATION_ERROR),
            (STEP_EXPORT, None, EXIT_EXPORT_ERROR),
        ],
    )
    def test_mapping(self, step: Any, exc: Any, expected: int) -> None:
        assert exit_code_for(step, exc) == expected
