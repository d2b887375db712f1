# File: entigen/generator.py
"""
entigen - Generation Pipeline (Orchestrator)
============================================

Connects every stage together:

    Config + Metadata → Raw model → Validation → Resolution
        → Emission projection → TypeORM rendering → File export

The ``EntityGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Load the generator configuration (YAML / JSON).
    2. Load metadata rows from a snapshot file or reflect a live database.
    3. Assemble the raw schema model (assembler.py).
    4. Cross-check configuration against the model (validators.py).
    5. Project, rebuild many-to-many, name associations (resolver.py).
    6. Build one emission projection per included table (projection.py).
    7. Render TypeORM sources (templates.py).
    8. Hand off to ``ProjectExporter`` (exporters.py).
    9. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Every stage error is a typed ``EntigenError`` and stops the pipeline
      before anything is written.
    - Export errors are recorded per file in the report.
    - The final report gives a clear pass/fail verdict and names the step
      that failed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from entigen.assembler import assemble_model
from entigen.exceptions import EntigenError
from entigen.exporters import ExportManifest, ExportResult, ProjectExporter
from entigen.introspector import dump_metadata_file, introspect, load_metadata_file
from entigen.models import EntityProjection, GeneratorConfig, MetadataRows, SchemaModel
from entigen.projection import build_projections
from entigen.projector import ProjectedModel
from entigen.resolver import resolve
from entigen.templates import TemplateGenerator
from entigen.utils import Timer, content_totals, load_document
from entigen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.generator")

T = TypeVar("T")

# Step identifiers, also used by the CLI to choose an exit code.
STEP_LOAD_CONFIG: str = "load_config"
STEP_LOAD_METADATA: str = "load_metadata"
STEP_ASSEMBLE: str = "assemble"
STEP_VALIDATE: str = "validate"
STEP_RESOLVE: str = "resolve"
STEP_PROJECT: str = "project"
STEP_RENDER: str = "render"
STEP_EXPORT: str = "export"

_STEP_LABELS: Dict[str, str] = {
    STEP_LOAD_CONFIG: "Load Configuration",
    STEP_LOAD_METADATA: "Load Metadata",
    STEP_ASSEMBLE: "Assemble Raw Model",
    STEP_VALIDATE: "Validate Configuration",
    STEP_RESOLVE: "Resolve Relationships",
    STEP_PROJECT: "Build Projections",
    STEP_RENDER: "Render Entities",
    STEP_EXPORT: "Export to Filesystem",
}


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``EntityGenerator.generate()``.

    ``files`` holds the rendered sources even on a dry run; ``failed_step``
    and ``exception`` tell which stage stopped the pipeline, if any.
    """

    success: bool = False
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    entity_count: int = 0
    entities: List[str] = field(default_factory=list)
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)

    failed_step: Optional[str] = None
    exception: Optional[BaseException] = None

    projections: List[EntityProjection] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        rule: str = "=" * 60
        thin: str = "-" * 60
        status: str = "SUCCESS" if self.success else "FAILED"
        if self.dry_run and self.success:
            status += " (dry run)"
        lines: List[str] = [
            rule,
            "  entigen - Generation Report",
            rule,
            f"  Status:           {status}",
            f"  Output:           {self.output_directory or '-'}",
            f"  Entities:         {self.entity_count}",
            f"  Files generated:  {self.total_files}",
            f"  Total lines:      {self.total_lines:,}",
            f"  Total bytes:      {self.total_bytes:,}",
            f"  Total time:       {self.total_elapsed_seconds:.3f}s",
            thin,
        ]

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<26s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        sections = (
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "!"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(thin)
            lines.append(f"  {title} ({len(items)}):")
            lines.extend(f"    {icon} {item}" for item in items)

        lines.append(rule)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Configuration loader
# ---------------------------------------------------------------------------


def load_config_file(path: Path) -> GeneratorConfig:
    """
    Load a generator configuration file (YAML or JSON).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
        ConfigShapeError: If the document has the wrong shape.
    """
    data: Any = load_document(Path(path))
    config: GeneratorConfig = GeneratorConfig.from_mapping(data if data is not None else {})
    logger.info("Loaded configuration %s: %d table entries.", path, len(config.tables))
    return config


class _StepFailed(Exception):
    """Internal signal: a step failed and the report already says why."""


# ---------------------------------------------------------------------------
# EntityGenerator - Master orchestrator
# ---------------------------------------------------------------------------


class EntityGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = EntityGenerator()

        # From files
        report = generator.generate_from_files(
            config_path=Path("entigen.yaml"),
            metadata_path=Path("metadata.yaml"),
            output_dir=Path("./entities"),
        )

        # From in-memory objects
        report = generator.generate(rows, config, output_dir=Path("./entities"))

        print(report.summary())

    The generator keeps no state between runs.
    """

    def __init__(
        self,
        *,
        strict_tables: bool = False,
        fail_on_warnings: bool = False,
        clean_output: Optional[bool] = None,
        dry_run: bool = False,
    ) -> None:
        """
        Args:
            strict_tables: Treat configuration for unknown tables as an error.
            fail_on_warnings: Treat validation warnings as errors.
            clean_output: Wipe the output directory first (None: use config).
            dry_run: Run everything except the export step.
        """
        self._strict_tables: bool = strict_tables
        self._fail_on_warnings: bool = fail_on_warnings
        self._clean_output: Optional[bool] = clean_output
        self._dry_run: bool = dry_run

        logger.debug(
            "EntityGenerator initialised: strict_tables=%s, fail_on_warnings=%s, "
            "clean=%s, dry_run=%s.",
            strict_tables,
            fail_on_warnings,
            clean_output,
            dry_run,
        )

    # -----------------------------------------------------------------
    # Public: generate from files
    # -----------------------------------------------------------------

    def generate_from_files(
        self,
        config_path: Path,
        output_dir: Optional[Path] = None,
        *,
        metadata_path: Optional[Path] = None,
        database_url: Optional[str] = None,
        schema: Optional[str] = None,
        dump_metadata_path: Optional[Path] = None,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> GenerationReport:
        """
        Full pipeline: load config → load metadata → generate → export.

        Explicit arguments win over the matching configuration values
        (``output_dir``, ``database_url``, ``schema_name``).
        """
        report: GenerationReport = self._new_report(output_dir)
        start: float = time.perf_counter()

        try:
            config: GeneratorConfig = self._step(
                report,
                STEP_LOAD_CONFIG,
                lambda: load_config_file(Path(config_path)),
                lambda c: f"{len(c.tables)} table entries from {Path(config_path).name}",
                catch=(FileNotFoundError, ValueError),
            )
            if config_overrides:
                config = config.model_copy(update=config_overrides)

            target: Optional[Path] = output_dir or (
                Path(config.output_dir) if config.output_dir else None
            )
            if target is None and not self._dry_run:
                self._fail(
                    report,
                    STEP_LOAD_CONFIG,
                    ValueError(
                        "No output directory: pass one explicitly or set output_dir "
                        "in the configuration."
                    ),
                )

            url: Optional[str] = database_url or config.database_url
            schema_name: Optional[str] = schema or config.schema_name
            rows: MetadataRows = self._step(
                report,
                STEP_LOAD_METADATA,
                lambda: self._load_rows(metadata_path, url, schema_name, dump_metadata_path),
                lambda r: f"{len(r.tables)} tables, {len(r.foreign_keys)} foreign keys",
                catch=(FileNotFoundError, ValueError, SQLAlchemyError),
            )
        except _StepFailed:
            return self._finalise_report(report, time.perf_counter() - start)

        return self._run_pipeline(rows, config, target, report, start)

    # -----------------------------------------------------------------
    # Public: generate from in-memory objects
    # -----------------------------------------------------------------

    def generate(
        self,
        rows: MetadataRows,
        config: GeneratorConfig,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """Full pipeline from metadata rows and a parsed configuration."""
        target: Optional[Path] = output_dir or (Path(config.output_dir) if config.output_dir else None)
        report: GenerationReport = self._new_report(target)
        return self._run_pipeline(rows, config, target, report, time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _new_report(self, output_dir: Optional[Path]) -> GenerationReport:
        report: GenerationReport = GenerationReport(dry_run=self._dry_run)
        if output_dir is not None:
            report.output_directory = str(Path(output_dir).resolve())
        return report

    def _run_pipeline(
        self,
        rows: MetadataRows,
        config: GeneratorConfig,
        output_dir: Optional[Path],
        report: GenerationReport,
        start: float,
    ) -> GenerationReport:
        if output_dir is not None and not report.output_directory:
            report.output_directory = str(Path(output_dir).resolve())
        try:
            model: SchemaModel = self._step(
                report,
                STEP_ASSEMBLE,
                lambda: assemble_model(rows),
                lambda m: f"{len(m.tables)} tables",
            )
            self._step_validate(model, config, report)
            projected: ProjectedModel = self._step(
                report,
                STEP_RESOLVE,
                lambda: resolve(model, config),
                lambda p: f"{len(p.names.tables)} entities",
            )
            projections: List[EntityProjection] = self._step(
                report,
                STEP_PROJECT,
                lambda: build_projections(projected),
                lambda ps: f"{len(ps)} projections",
            )
            report.projections = projections
            report.entities = [p.name for p in projections]
            report.entity_count = len(projections)

            files: Dict[str, str] = self._step(
                report,
                STEP_RENDER,
                lambda: TemplateGenerator(config).generate_all(projections),
                lambda fs: f"{len(fs)} files, ~{content_totals(fs)[0]:,} lines",
            )
            report.files = files
            report.total_lines, report.total_bytes = content_totals(files)
            report.total_files = len(files)
        except _StepFailed:
            return self._finalise_report(report, time.perf_counter() - start)

        if self._dry_run:
            logger.info("Dry run: %d files rendered, nothing written.", len(files))
        elif output_dir is None:
            logger.warning("No output directory given; %d files rendered, nothing written.", len(files))
        else:
            self._step_export(files, config, Path(output_dir), report)

        return self._finalise_report(report, time.perf_counter() - start)

    def _step(
        self,
        report: GenerationReport,
        step: str,
        action: Callable[[], T],
        describe: Callable[[T], str],
        catch: tuple = (EntigenError,),
    ) -> T:
        """Run one timed step; record its metric; raise ``_StepFailed`` on error."""
        label: str = _STEP_LABELS[step]
        error: Optional[BaseException] = None
        with Timer(step) as t:
            try:
                value: T = action()
            except catch as exc:
                error = exc

        if error is not None:
            self._fail(report, step, error, t.elapsed)

        report.step_metrics.append(GenerationStepMetric(label, True, t.elapsed, describe(value)))
        logger.info("%s done in %.3fs.", label, t.elapsed)
        return value

    @staticmethod
    def _fail(
        report: GenerationReport,
        step: str,
        error: BaseException,
        elapsed: float = 0.0,
    ) -> None:
        label: str = _STEP_LABELS[step]
        report.generation_errors.append(f"{label}: {error}")
        report.step_metrics.append(GenerationStepMetric(label, False, elapsed, type(error).__name__))
        report.failed_step = step
        report.exception = error
        logger.error("%s failed: %s", label, error)
        raise _StepFailed(step) from error

    def _load_rows(
        self,
        metadata_path: Optional[Path],
        database_url: Optional[str],
        schema: Optional[str],
        dump_metadata_path: Optional[Path],
    ) -> MetadataRows:
        if metadata_path is not None:
            rows: MetadataRows = load_metadata_file(Path(metadata_path))
        elif database_url:
            rows = introspect(database_url, schema=schema)
        else:
            raise ValueError("No metadata source: give a metadata file or a database URL.")
        if dump_metadata_path is not None:
            dump_metadata_file(rows, Path(dump_metadata_path))
        return rows

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        model: SchemaModel,
        config: GeneratorConfig,
        report: GenerationReport,
    ) -> None:
        label: str = _STEP_LABELS[STEP_VALIDATE]
        with Timer(STEP_VALIDATE) as t:
            result: ValidationResult = validate_full(model, config, self._strict_tables)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)
        for warn in result.warnings:
            logger.warning("  ! %s", warn)

        failed: bool = result.has_errors or (self._fail_on_warnings and bool(result.warnings))
        detail: str = (
            f"{result.error_count} error(s), {result.warning_count} warning(s)"
            if len(result)
            else "all checks passed"
        )
        report.step_metrics.append(GenerationStepMetric(label, not failed, t.elapsed, detail))
        if not failed:
            return

        report.failed_step = STEP_VALIDATE
        for err in result.errors:
            logger.error("  ✗ %s", err)
        try:
            result.raise_for_errors()
            raise EntigenError(
                f"{result.warning_count} validation warning(s) treated as errors.",
                {"warnings": [w.code for w in result.warnings]},
            )
        except EntigenError as exc:
            report.exception = exc
            raise _StepFailed(STEP_VALIDATE) from exc

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self,
        files: Dict[str, str],
        config: GeneratorConfig,
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        clean: bool = config.clean_output if self._clean_output is None else self._clean_output
        with Timer(STEP_EXPORT) as t:
            exporter: ProjectExporter = ProjectExporter(
                output_dir,
                clean_before_export=clean,
                atomic_writes=True,
                generate_manifest=config.write_manifest,
            )
            export_result: ExportResult = exporter.export(files)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.manifest = export_result.manifest
        if not export_result.success:
            report.failed_step = STEP_EXPORT

        report.step_metrics.append(
            GenerationStepMetric(
                _STEP_LABELS[STEP_EXPORT],
                export_result.success,
                t.elapsed,
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes",
            )
        )

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(self, report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = report.failed_step is None and not report.export_errors
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EntityGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_config_file",
    "STEP_LOAD_CONFIG",
    "STEP_LOAD_METADATA",
    "STEP_ASSEMBLE",
    "STEP_VALIDATE",
    "STEP_RESOLVE",
    "STEP_PROJECT",
    "STEP_RENDER",
    "STEP_EXPORT",
]
