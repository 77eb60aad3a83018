"""D-Bus service for GUI communication.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "as" and "sds" are D-Bus protocol types, not Python syntax.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dbus_next import BusType
from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal

from reclaim.core.engine import ReclaimEngine
from reclaim.core.session import ScanSession
from reclaim.models.category import Category, ScanState
from reclaim.models.scan_result import ScanEntry

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.reclaim"
_OBJECT_PATH = "/io/github/reclaim"
_INTERFACE = "io.github.reclaim.Manager"


def _entry(e: ScanEntry) -> dict:
    return {
        "path": str(e.path),
        "name": e.name,
        "size_bytes": e.size,
        "is_dir": e.is_dir,
        "modified_at": e.modified_at,
        "category": e.category.value,
        "file_type": e.file_type.value,
    }


# noinspection PyPep8Naming
class ReclaimDBusService(ServiceInterface):
    """D-Bus service interface for Reclaim."""

    def __init__(self, engine: ReclaimEngine | None = None) -> None:
        super().__init__(_INTERFACE)
        self._engine = engine or ReclaimEngine()

    def _run(self, session: ScanSession) -> str | None:
        """Run *session* to completion; returns the error of a failed scan."""
        line_id = session.line.id

        def progress(fraction: float, status: str) -> None:
            self.ScanProgress(line_id, fraction, status)

        session.on_progress = progress
        session.start(background=False)
        if session.state is ScanState.FAILED:
            return session.errors[0] if session.errors else "Scan failed"
        return None

    @method()
    def ListCategories(self) -> "s":  # type: ignore[override]
        """List cleanup categories as JSON."""
        enabled = set(self._engine.settings.enabled_categories())
        data = [
            {"id": c.value, "name": c.label, "description": c.description, "enabled": c in enabled}
            for c in Category.cleanable()
        ]
        return json.dumps(data)

    @method()
    def Scan(self, category_ids: "as") -> "s":  # type: ignore[override]
        """Scan cleanup categories, returning results as JSON."""
        try:
            categories = [Category(c) for c in category_ids] if category_ids else None
        except ValueError as e:
            return json.dumps({"error": str(e)})

        session = self._engine.cleaner_session(categories)
        error = self._run(session)
        if error is not None:
            return json.dumps({"error": error})
        data = [
            {
                "category": g.category.value,
                "name": g.category.label,
                "total_bytes": g.total_size,
                "items": [_entry(i.entry) for i in g.items],
            }
            for g in session.results
        ]
        return json.dumps({"results": data, "errors": session.errors})

    @method()
    def FindLargeFiles(self, roots: "as", min_size: "t") -> "s":  # type: ignore[override]
        """Find large files; an empty root list means the home directory, 0 the default size."""
        session = self._engine.large_files_session(list(roots) or None, min_size=min_size or None)
        error = self._run(session)
        if error is not None:
            return json.dumps({"error": error})
        return json.dumps({"files": [_entry(e) for e in session.results], "errors": session.errors})

    @method()
    def FindDuplicates(self, roots: "as") -> "s":  # type: ignore[override]
        """Find duplicate groups; an empty root list means the configured folders."""
        session = self._engine.duplicates_session(list(roots) or None)
        error = self._run(session)
        if error is not None:
            return json.dumps({"error": error})
        data = [
            {
                "fingerprint": g.fingerprint,
                "size_bytes": g.size,
                "file_type": g.file_type.value,
                "duplicate_bytes": g.duplicate_size,
                "files": [{**_entry(f.entry), "is_original": f.is_original} for f in g.files],
            }
            for g in session.results
        ]
        return json.dumps({"groups": data, "errors": session.errors})

    @method()
    def FindLeftovers(self, app_name: "s") -> "s":  # type: ignore[override]
        """Find leftovers of an installed application by name or identifier."""
        wanted = app_name.lower()
        app = next(
            (a for a in self._engine.list_apps() if wanted in (a.name.lower(), a.bundle_identifier.lower())),
            None,
        )
        if app is None:
            return json.dumps({"error": f"Application '{app_name}' not found"})
        leftovers = self._engine.find_leftovers(app)
        data = [{"path": str(i.path), "size_bytes": i.size, "type": i.type.value} for i in leftovers]
        return json.dumps({"app": app.name, "leftovers": data})

    @method()
    def Trash(self, paths: "as") -> "s":  # type: ignore[override]
        """Move paths to the trash."""

        def progress(done: int, total: int) -> None:
            self.DeleteProgress(done, total)

        result = self._engine.delete([Path(p) for p in paths], on_progress=progress)
        return json.dumps(
            {
                "success": result.success,
                "failed": result.failed,
                "errors": result.errors,
                "deleted": [str(p) for p in result.deleted],
            }
        )

    @signal()
    def ScanProgress(self, line_id: str, fraction: float, status: str) -> "sds":  # type: ignore[override]
        return [line_id, fraction, status]

    @signal()
    def DeleteProgress(self, done: int, total: int) -> "ii":  # type: ignore[override]
        return [done, total]


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = ReclaimDBusService()
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    await bus.wait_for_disconnect()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
