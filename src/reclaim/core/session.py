"""Scan session: runs one scan line on a background worker.

Every publication (entry, batch, progress, status, completion) is made
under the session lock after checking the generation's token, and
:meth:`ScanSession.stop` and :meth:`ScanSession.start` take the same lock
to invalidate it. Once either call returns, the invalidated generation
delivers nothing more.

Callbacks run on the worker thread. Callers that own a UI thread must
redispatch to it themselves.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Iterable

from reclaim.core.cancellation import CancellationToken, GenerationSource
from reclaim.core.classifier import ClassificationContext
from reclaim.core.sizes import SizeCache
from reclaim.core.walker import DirectoryWalker, PathAccessChecker
from reclaim.models.category import ScanState
from reclaim.models.scan_line import ScanLine, ScanTarget
from reclaim.models.scan_result import ScanEntry

log = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]  # (fraction, status)
EntryCallback = Callable[[ScanEntry], None]
ResultCallback = Callable[[list[Any]], None]
CompleteCallback = Callable[[ScanState], None]
ContextFactory = Callable[[], ClassificationContext]


class ReclaimError(Exception):
    """Base class for reclaim errors."""


class ScanStartError(ReclaimError):
    """A scan could not start, e.g. the home directory cannot be resolved."""


class ScanSession:
    """Owns the state, results and generation counter of one scan line.

    Sessions are independent: the cleaner, large files, duplicates and
    disk usage lines each get their own instance and may run at the same
    time. Within one session, roots are walked strictly one after another.
    """

    def __init__(
        self,
        line: ScanLine,
        *,
        context: ClassificationContext | ContextFactory | None = None,
        sizes: SizeCache | None = None,
        access: PathAccessChecker | None = None,
        on_progress: ProgressCallback | None = None,
        on_entry: EntryCallback | None = None,
        on_result: ResultCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        self.line = line
        self._context = context
        self._sizes = sizes if sizes is not None else SizeCache()
        self._access = access
        self.on_progress = on_progress
        self.on_entry = on_entry
        self.on_result = on_result
        self.on_complete = on_complete

        self._lock = threading.RLock()
        self._generations = GenerationSource()
        self._token: CancellationToken | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._future: Future | None = None

        self._state = ScanState.IDLE
        self._results: list[Any] = []
        self._errors: list[str] = []
        self._progress = 0.0
        self._status = ""
        self._started_at = 0.0
        self._elapsed = 0.0

    # ── public state ────────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generations.current

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_scanning(self) -> bool:
        return self._state is ScanState.SCANNING

    @property
    def results(self) -> list[Any]:
        """Snapshot of everything published for the current generation."""
        with self._lock:
            return list(self._results)

    @property
    def errors(self) -> list[str]:
        with self._lock:
            return list(self._errors)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def status(self) -> str:
        return self._status

    @property
    def elapsed(self) -> float:
        """Seconds the last scan ran (or has been running)."""
        if self._state is ScanState.SCANNING:
            return time.monotonic() - self._started_at
        return self._elapsed

    # ── control ─────────────────────────────────────────────────────────

    def start(self, background: bool = True) -> int:
        """Start a new scan, invalidating any scan still in flight.

        Args:
            background: Run on the session's worker thread. With False the
                scan runs to completion before this call returns.

        Returns:
            The new generation number.
        """
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            token = self._generations.next()
            self._token = token
            self._state = ScanState.SCANNING
            self._results = []
            self._errors = []
            self._progress = 0.0
            self._status = "Initializing..."
            self._started_at = time.monotonic()

        log.info("Starting %s scan (generation %d)", self.line.id, token.generation)
        if background:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"reclaim-{self.line.id}")
            self._future = self._executor.submit(self._run, token)
        else:
            self._run(token)
        return token.generation

    def stop(self) -> None:
        """Cancel the running scan. Published results are kept.

        Does nothing if no scan is running.
        """
        with self._lock:
            if self._state is not ScanState.SCANNING or self._token is None:
                return
            self._token.cancel()
            self._state = ScanState.CANCELLED
            self._status = ""
            self._elapsed = time.monotonic() - self._started_at
        log.info("Stopped %s scan (generation %d)", self.line.id, self._token.generation)

    def wait(self, timeout: float | None = None) -> ScanState:
        """Block until the background worker finishes its current run."""
        future = self._future
        if future is not None:
            future.result(timeout=timeout)
        return self._state

    def close(self) -> None:
        """Stop any scan and release the worker thread."""
        self.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def remove_paths(self, paths: Iterable[Path | str]) -> None:
        """Drop deleted items (and anything beneath them) from the results."""
        removed = {Path(p) for p in paths}
        if not removed:
            return
        with self._lock:
            self._results = self.line.remove_paths(self._results, removed)

    # ── worker ──────────────────────────────────────────────────────────

    def _run(self, token: CancellationToken) -> None:
        try:
            self._scan(token)
        except ScanStartError as e:
            log.warning("%s scan could not start: %s", self.line.name, e)
            self._fail(token, str(e))
        except Exception as e:
            log.exception("%s scan failed", self.line.name)
            self._fail(token, f"Scan failed: {e}")

    def _scan(self, token: CancellationToken) -> None:
        context = self._resolve_context()
        targets = self.line.targets(context)
        walker = DirectoryWalker(context, sizes=self._sizes, access=self._access)
        check = token.is_current

        total_roots = sum(len(t.roots) for t in targets) or 1
        completed = 0
        collected: list[Any] = []

        for target in targets:
            if not check():
                return
            items: list[Any] = []

            def on_entry(entry: ScanEntry, target: ScanTarget = target, items: list[Any] = items) -> None:
                item = self.line.collect(target, entry)
                if item is None:
                    return
                with self._lock:
                    if not check():
                        return
                    items.append(item)
                    if self.on_entry is not None:
                        self.on_entry(entry)

            for root in target.roots:
                if not check():
                    return

                def on_child(name: str, done: int, count: int, target: ScanTarget = target, base: int = completed) -> None:
                    partial = done / count if count else 1.0
                    self._publish_progress(token, (base + partial) / total_roots, f"{target.label}/{name}")

                self._publish_progress(token, completed / total_roots, target.label)
                options = self.line.walk_options(target, root, context)
                stats = walker.walk(root, check, on_entry, options, on_child=on_child)
                self._record_errors(token, stats.errors)
                if stats.cancelled:
                    return
                completed += 1
                self._publish_progress(token, completed / total_roots, target.label)

            collected.extend(items)
            self._publish(token, self.line.finish_target(target, items))

        if not check():
            return

        def on_finalize(fraction: float, status: str) -> None:
            self._publish_progress(token, 1.0 + min(max(fraction, 0.0), 1.0), status)

        extra = self.line.finalize(
            collected,
            check,
            on_finalize,
            lambda message: self._record_errors(token, [message]),
        )
        if not check():
            return
        self._publish(token, extra)
        self._complete(token)

    def _resolve_context(self) -> ClassificationContext:
        ctx = self._context
        if isinstance(ctx, ClassificationContext):
            return ctx
        try:
            return ctx() if ctx is not None else ClassificationContext.from_environment()
        except (RuntimeError, KeyError, OSError) as e:
            raise ScanStartError(f"Cannot resolve the home directory: {e}") from e

    def _publish_progress(self, token: CancellationToken, raw: float, status: str) -> None:
        """Publish progress; *raw* is 0..1 for walking and 1..2 for finalize."""
        weight = min(max(self.line.finalize_weight, 0.0), 1.0)
        if raw <= 1.0:
            fraction = raw * (1.0 - weight)
        else:
            fraction = (1.0 - weight) + (raw - 1.0) * weight
        with self._lock:
            if not token.is_current():
                return
            fraction = min(1.0, max(self._progress, fraction))
            self._progress = fraction
            self._status = status
            if self.on_progress is not None:
                self.on_progress(fraction, status)

    def _publish(self, token: CancellationToken, batch: list[Any]) -> None:
        if not batch:
            return
        with self._lock:
            if not token.is_current():
                return
            self._results.extend(batch)
            if self.on_result is not None:
                self.on_result(list(batch))

    def _record_errors(self, token: CancellationToken, errors: list[str]) -> None:
        if not errors:
            return
        with self._lock:
            if token.is_current():
                self._errors.extend(errors)

    def _complete(self, token: CancellationToken) -> None:
        with self._lock:
            if not token.is_current() or self._state is not ScanState.SCANNING:
                return
            self._state = ScanState.COMPLETED
            self._progress = 1.0
            self._status = ""
            self._elapsed = time.monotonic() - self._started_at
            log.info(
                "%s scan completed: %d results, %d errors",
                self.line.name,
                len(self._results),
                len(self._errors),
            )
            if self.on_progress is not None:
                self.on_progress(1.0, "")
            if self.on_complete is not None:
                self.on_complete(ScanState.COMPLETED)

    def _fail(self, token: CancellationToken, message: str) -> None:
        with self._lock:
            if not token.is_current():
                return
            token.cancel()
            self._state = ScanState.FAILED
            self._results = []
            self._errors = [message]
            self._status = ""
            self._elapsed = time.monotonic() - self._started_at
            if self.on_complete is not None:
                self.on_complete(ScanState.FAILED)
