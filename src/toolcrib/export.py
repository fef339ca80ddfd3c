"""
Library export orchestration.

export_library() runs one export as a sequence of stages:

    FETCHING -> RESOLVING -> COMPILING -> VALIDATING -> PACKAGING
             -> PERSISTING -> DONE

Any stage can end the run. Validation problems raise
LibraryValidationError with every message; unexpected faults raise
ExportError naming the stage. Export bookkeeping (export count and
timestamp) is written once, after packaging succeeded, and never on a
failure path.

The core performs no queries of its own: a LibraryRepository supplies the
aggregate and records the bookkeeping.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Union

from .calculator.validation import Severity, ValidationMessage, error
from .errors import (
    ExportError,
    InputError,
    LibraryNotFound,
    LibraryValidationError,
    ToolcribError,
)
from .io.fusion360 import compile_library
from .io.loaders import LibraryAggregate, load_aggregate_json, save_aggregate_json
from .io.package import package_library
from .io.schema import FusionLibrary

logger = logging.getLogger(__name__)

_SAFE_LIBRARY_ID = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")


class ExportStage(Enum):
    FETCHING = "fetching"
    RESOLVING = "resolving"
    COMPILING = "compiling"
    VALIDATING = "validating"
    PACKAGING = "packaging"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportBookkeeping:
    export_count: int
    last_exported_at: datetime


class LibraryRepository(Protocol):
    """Persistence collaborator for exports."""

    def fetch_aggregate(self, library_id: str) -> LibraryAggregate:
        """Return the library with everything it references.

        Raises LibraryNotFound if there is no such library.
        """
        ...

    def record_export(self, library_id: str, exported_at: datetime) -> ExportBookkeeping:
        """Atomically increment the export count and stamp the time."""
        ...


class InMemoryLibraryRepository:
    """Repository over a dict of aggregates, for tests and embedding."""

    def __init__(self, aggregates: Optional[Dict[str, LibraryAggregate]] = None):
        self._aggregates: Dict[str, LibraryAggregate] = dict(aggregates or {})
        self._lock = threading.Lock()

    def add(self, aggregate: LibraryAggregate) -> None:
        with self._lock:
            self._aggregates[aggregate.library.id] = aggregate

    def fetch_aggregate(self, library_id: str) -> LibraryAggregate:
        with self._lock:
            aggregate = self._aggregates.get(library_id)
            if aggregate is None:
                raise LibraryNotFound(f"Library not found: {library_id}")
            return aggregate.model_copy(deep=True)

    def record_export(self, library_id: str, exported_at: datetime) -> ExportBookkeeping:
        with self._lock:
            aggregate = self._aggregates.get(library_id)
            if aggregate is None:
                raise LibraryNotFound(f"Library not found: {library_id}")
            library = aggregate.library
            library.export_count += 1
            library.last_exported_at = exported_at
            return ExportBookkeeping(library.export_count, exported_at)


# Bookkeeping locks shared by every JsonLibraryRepository in this process,
# keyed by resolved file path. Other processes are not serialized.
_file_locks: Dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _file_lock(path: Path) -> threading.Lock:
    key = path.resolve()
    with _file_locks_guard:
        return _file_locks.setdefault(key, threading.Lock())


class JsonLibraryRepository:
    """Repository over a directory of ``<library id>.json`` aggregate files.

    Library ids must be plain file stems; ids with path separators or a
    leading dot are rejected.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, library_id: str) -> Path:
        if not _SAFE_LIBRARY_ID.fullmatch(library_id or ""):
            raise InputError(f"Invalid library id: {library_id!r}")
        return self.directory / f"{library_id}.json"

    def fetch_aggregate(self, library_id: str) -> LibraryAggregate:
        path = self._path(library_id)
        if not path.exists():
            raise LibraryNotFound(f"Library not found: {library_id}")
        return load_aggregate_json(path)

    def record_export(self, library_id: str, exported_at: datetime) -> ExportBookkeeping:
        path = self._path(library_id)
        with _file_lock(path):
            if not path.exists():
                raise LibraryNotFound(f"Library not found: {library_id}")
            aggregate = load_aggregate_json(path)
            aggregate.library.export_count += 1
            aggregate.library.last_exported_at = exported_at
            tmp = path.with_suffix(".json.tmp")
            save_aggregate_json(aggregate, tmp)
            tmp.replace(path)
            return ExportBookkeeping(aggregate.library.export_count, exported_at)


@dataclass
class ExportResult:
    """A successful export."""
    content: bytes
    filename: str
    document: FusionLibrary
    library_name: str = ""
    warnings: List[ValidationMessage] = field(default_factory=list)
    infos: List[ValidationMessage] = field(default_factory=list)
    export_count: int = 0
    exported_at: Optional[datetime] = None
    stages: List[ExportStage] = field(default_factory=list)


def _precheck(aggregate: LibraryAggregate) -> List[ValidationMessage]:
    """Fetch-stage checks that make compiling pointless."""
    messages = []
    if aggregate.machine is None:
        messages.append(error("NO_MACHINE", "Library has no machine assigned",
                              suggestion="Assign a machine to the library"))
    if not aggregate.library.library_tools:
        messages.append(error("LIBRARY_EMPTY", "Library has no tools",
                              suggestion="Add at least one tool before exporting"))
    return messages


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def export_library(
    library_id: str,
    repository: LibraryRepository,
    now: Optional[Callable[[], datetime]] = None,
) -> ExportResult:
    """
    Export one library as a Fusion 360 ``.tools`` file.

    Args:
        library_id: Library to export
        repository: Supplies the aggregate and records bookkeeping
        now: Clock for the export timestamp (default: UTC now)

    Returns:
        ExportResult with the packaged bytes, filename and warnings

    Raises:
        LibraryNotFound: Repository has no such library
        LibraryValidationError: Library cannot be exported; carries every
            violated rule
        ExportError: Unexpected fault in a stage

    Every exception raised here carries ``stages``: the stages entered,
    ending in ExportStage.FAILED.
    """
    clock = now or _utcnow
    stages: List[ExportStage] = []
    stage = ExportStage.FETCHING

    def enter(next_stage: ExportStage) -> ExportStage:
        stages.append(next_stage)
        logger.debug("Export %s: %s", library_id, next_stage.value)
        return next_stage

    try:
        stage = enter(ExportStage.FETCHING)
        aggregate = repository.fetch_aggregate(library_id)
        problems = _precheck(aggregate)
        if problems:
            raise LibraryValidationError(problems)

        stage = enter(ExportStage.RESOLVING)
        library = aggregate.library
        entries = aggregate.entries()
        machine = aggregate.machine
        presets = [p for p in aggregate.presets if p.machine_id == machine.id]

        stage = enter(ExportStage.COMPILING)
        result = compile_library(
            library.name,
            entries,
            machine,
            materials=aggregate.materials,
            presets=presets,
            product_id_source=library.product_id_source,
            material_ids=library.default_material_ids,
        )

        stage = enter(ExportStage.VALIDATING)
        if not result.valid:
            raise LibraryValidationError(result.errors)

        stage = enter(ExportStage.PACKAGING)
        files = package_library(result.document, library.name)

        stage = enter(ExportStage.PERSISTING)
        bookkeeping = repository.record_export(library_id, clock())

        enter(ExportStage.DONE)
    except (LibraryValidationError, LibraryNotFound) as e:
        stages.append(ExportStage.FAILED)
        logger.debug("Export %s failed at %s", library_id, stage.value)
        e.stages = stages
        raise
    except (ToolcribError, OSError, ValueError, ArithmeticError) as e:
        stages.append(ExportStage.FAILED)
        failure = ExportError(f"Export of {library_id} failed while {stage.value}: {e}", stage)
        failure.stages = stages
        raise failure from e

    warnings = [m for m in result.messages if m.severity == Severity.WARNING]
    infos = [m for m in result.messages if m.severity == Severity.INFO]
    logger.info("Exported library %s as %s (%d tools, %d warnings, export #%d)",
                library_id, files.filename, len(result.document.data), len(warnings),
                bookkeeping.export_count)

    return ExportResult(
        content=files.content,
        filename=files.filename,
        library_name=library.name,
        document=result.document,
        warnings=warnings,
        infos=infos,
        export_count=bookkeeping.export_count,
        exported_at=bookkeeping.last_exported_at,
        stages=stages,
    )
