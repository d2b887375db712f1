# File: entigen/exporters.py
"""
entigen - Entity Exporter (File-System Manager)
===============================================

Responsible for:
    1. Creating the output directory (and optionally wiping it first).
    2. Writing each rendered entity file atomically (temp file + rename).
    3. Producing ``entigen-manifest.json`` with sizes and checksums so two
       runs on the same schema can be compared byte for byte.

A failed write is recorded and the remaining files are still attempted;
every individual file is atomic, so a partial batch never leaves a
truncated entity behind.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from entigen.utils import (
    Timer,
    clean_directory,
    count_lines,
    ensure_directory,
    sha256_hex,
    write_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.exporters")

MANIFEST_FILE: str = "entigen-manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "size_bytes": self.size_bytes,
            "line_count": self.line_count,
            "sha256": self.sha256,
        }


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Manifest of all exported entity files, serialisable to JSON."""

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [f.to_dict() for f in self.files],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``ProjectExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes rendered entity files into one output directory.

    Usage::

        exporter = ProjectExporter(Path("./entities"))
        result = exporter.export({"User.ts": "...", "Role.ts": "..."})
        print(result.manifest.to_json())

    Not thread-safe.  Use one exporter per output directory and per run.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        atomic_writes: bool = True,
        generate_manifest: bool = True,
    ) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._clean_before_export: bool = clean_before_export
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, atomic=%s.",
            self._output_dir,
            self._atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, generated_files: Dict[str, str]) -> ExportResult:
        """
        Write every ``file name → content`` pair under the output directory.

        Returns an ``ExportResult``; ``success`` is False if any file or the
        directory itself could not be written.
        """
        with Timer("export") as timer:
            try:
                if self._clean_before_export:
                    logger.info("Cleaning output directory: %s", self._output_dir)
                    clean_directory(self._output_dir)
                ensure_directory(self._output_dir)
            except OSError as exc:
                self._error(f"Cannot prepare output directory {self._output_dir}: {exc}")
            else:
                self._write_generated_files(generated_files)
                if self._generate_manifest:
                    self._write_manifest_file()

        manifest: ExportManifest = self._build_manifest()
        success: bool = not self._errors

        result: ExportResult = ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

        if success:
            logger.info(
                "Export completed: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )
        return result

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _error(self, message: str) -> None:
        self._errors.append(message)
        logger.error(message)

    def _write_generated_files(self, generated_files: Dict[str, str]) -> None:
        for rel_path, content in generated_files.items():
            try:
                self._file_records.append(self._write_single_file(rel_path, content))
            except OSError as exc:
                self._error(f"Failed to write {rel_path}: {type(exc).__name__}: {exc}")

        logger.info(
            "Wrote %d entity files to %s.",
            len(self._file_records),
            self._output_dir,
        )

    def _write_single_file(self, rel_path: str, content: str) -> FileRecord:
        full_path: Path = self._output_dir / rel_path
        size_bytes: int = write_file(full_path, content, atomic=self._atomic_writes)
        return FileRecord(
            relative_path=rel_path,
            absolute_path=str(full_path),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        from entigen import __version__

        return ExportManifest(
            generator_version=__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        """The manifest describes the entity files only, not itself."""
        manifest: ExportManifest = self._build_manifest()
        try:
            write_file(
                self._output_dir / MANIFEST_FILE,
                manifest.to_json() + "\n",
                atomic=self._atomic_writes,
            )
            logger.debug("Wrote manifest to %s.", self._output_dir / MANIFEST_FILE)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
    "MANIFEST_FILE",
]
