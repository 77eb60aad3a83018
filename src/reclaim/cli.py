"""CLI interface for Reclaim."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from reclaim.core.engine import ReclaimEngine
from reclaim.core.leftovers import is_protected_location
from reclaim.core.session import ScanSession
from reclaim.lines.duplicates import DuplicateSort, filter_groups, sort_groups
from reclaim.lines.large_files import LargeFileSort, filter_by_type, sort_large_files
from reclaim.models.apps import AppInfo
from reclaim.models.category import Category, FileType, ScanState
from reclaim.models.clean_result import DeletionResult
from reclaim.models.scan_result import ScanEntry
from reclaim.utils import bytes_to_human, format_elapsed, format_relative_time, parse_size

log = logging.getLogger(__name__)


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_engine() -> ReclaimEngine:
    return ReclaimEngine()


class SizeParam(click.ParamType):
    """Byte size such as ``500K``, ``100M`` or ``2G``."""

    name = "size"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_size(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid size (examples: 500K, 100M, 2G)", param, ctx)


def _run(session: ScanSession, as_json: bool) -> None:
    """Run *session* in the foreground and exit on a fatal error."""
    session.start(background=False)
    if session.state is ScanState.FAILED:
        message = session.errors[0] if session.errors else "Scan failed"
        if as_json:
            click.echo(json.dumps({"status": "failed", "error": message}))
        else:
            click.echo(f"{click.style('✗', fg='red')} {message}", err=True)
        sys.exit(1)


def _entry_json(entry: ScanEntry) -> dict:
    return {
        "path": str(entry.path),
        "name": entry.name,
        "size_bytes": entry.size,
        "is_dir": entry.is_dir,
        "modified_at": entry.modified_at,
        "category": entry.category.value,
        "file_type": entry.file_type.value,
    }


def _deletion_json(result: DeletionResult) -> dict:
    return {
        "success": result.success,
        "failed": result.failed,
        "errors": result.errors,
        "deleted": [str(p) for p in result.deleted],
    }


def _echo_errors(errors: list[str]) -> None:
    if not errors:
        return
    click.echo(f"  {click.style('!', fg='yellow')} {len(errors)} item(s) could not be read (use -vv for details)")
    for error in errors:
        log.debug(error)


def _echo_deletion(result: DeletionResult, freed: int) -> None:
    for error in result.errors:
        click.echo(f"  {click.style('!', fg='yellow')} {error}")
    click.echo(
        f"\nMoved {result.success} item(s) to the trash "
        f"({click.style(bytes_to_human(freed), fg='green', bold=True)}), {result.failed} failed.\n"
    )


def _confirm(prompt: str, yes: bool, as_json: bool) -> bool:
    if yes or as_json:
        return True
    choice = click.prompt(f"{prompt} [y/N]", default="n", show_default=False)
    if choice.lower() in ("y", "yes"):
        return True
    click.echo("Aborted.")
    return False


def _parse_categories(values: tuple[str, ...]) -> list[Category] | None:
    if not values:
        return None
    categories = []
    for value in values:
        try:
            categories.append(Category(value))
        except ValueError:
            raise click.BadParameter(f"unknown category {value!r}", param_hint="CATEGORIES") from None
    return categories


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Reclaim: find caches, large files and duplicates, and move them to the trash."""
    _setup_logging(verbose)


# ── categories ───────────────────────────────────────────────────────────

@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def categories(as_json: bool) -> None:
    """List cleanup categories and the directories they cover."""
    engine = _build_engine()
    context = engine.context
    enabled = set(engine.settings.enabled_categories())

    data = [
        {
            "id": c.value,
            "name": c.label,
            "description": c.description,
            "enabled": c in enabled,
            "roots": [str(r) for r in context.roots_for(c)],
        }
        for c in Category.cleanable()
    ]
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    for item in data:
        tag = "" if item["enabled"] else click.style(" [disabled]", fg="bright_black")
        click.echo(f"  {click.style(item['id'], fg='cyan', bold=True):30s}  {item['name']}{tag}")
        click.echo(f"    {item['description']}")
        for root in item["roots"]:
            click.echo(f"    {click.style(root, fg='bright_black')}")


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("category_ids", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(category_ids: tuple[str, ...], as_json: bool) -> None:
    """Scan cleanup categories (preview only, never deletes)."""
    engine = _build_engine()
    session = engine.cleaner_session(_parse_categories(category_ids))

    if not as_json:
        click.echo(f"\n{click.style('🔍', bold=True)} Scanning...\n")
    _run(session, as_json)
    results = session.results

    if as_json:
        data = [
            {
                "category": group.category.value,
                "name": group.category.label,
                "total_bytes": group.total_size,
                "items": [_entry_json(i.entry) for i in group.items],
            }
            for group in results
        ]
        click.echo(json.dumps({"results": data, "errors": session.errors}, indent=2))
        return

    if not results:
        click.echo("Nothing to clean.")
    for group in results:
        click.echo(
            f"  {click.style('✓', fg='green')} {group.category.label:25s} — "
            f"{click.style(bytes_to_human(group.total_size), fg='green', bold=True)} ({len(group.items):,} items)"
        )
    _echo_errors(session.errors)

    total = sum(g.total_size for g in results)
    click.echo(
        f"\nTotal reclaimable: {click.style(bytes_to_human(total), fg='green', bold=True)} "
        f"(scanned in {format_elapsed(session.elapsed)})\n"
    )


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("category_ids", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be trashed without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(category_ids: tuple[str, ...], yes: bool, dry_run: bool, as_json: bool) -> None:
    """Scan cleanup categories and move their contents to the trash."""
    engine = _build_engine()
    session = engine.cleaner_session(_parse_categories(category_ids))
    _run(session, as_json)

    items = [item for group in session.results for item in group.selected_items]
    if not items:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_clean", "results": []}))
        else:
            click.echo("Nothing to clean.")
        return

    total = sum(i.size for i in items)
    if not as_json:
        for group in session.results:
            click.echo(
                f"  {click.style('✓', fg='green')} {group.category.label:25s} — "
                f"{click.style(bytes_to_human(group.selected_size), fg='green', bold=True)} "
                f"({len(group.selected_items):,} items)"
            )
        click.echo(f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")

    if dry_run:
        if as_json:
            data = [{"path": str(i.path), "size_bytes": i.size} for i in items]
            click.echo(json.dumps({"status": "dry_run", "would_free_bytes": total, "items": data}, indent=2))
        else:
            click.echo("(dry run — nothing was moved to the trash)")
        return

    if not _confirm("Move all to the trash?", yes, as_json):
        return

    sizes = {i.path: i.size for i in items}
    result = engine.delete(list(sizes), sessions=[session])
    freed = sum(sizes[p] for p in result.deleted)

    if as_json:
        click.echo(json.dumps({"status": "cleaned", "freed_bytes": freed, **_deletion_json(result)}, indent=2))
        return
    _echo_deletion(result, freed)


# ── large ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--min-size", "-m", type=SizeParam(), default=None, help="Minimum size (default from settings, 100M)")
@click.option("--sort", "sort_order", type=click.Choice([s.value for s in LargeFileSort]), default="size_desc")
@click.option("--type", "type_filter", type=click.Choice([t.value for t in FileType]), default=None)
@click.option("--limit", "-n", type=int, default=None, help="Show at most N files")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def large(
    paths: tuple[Path, ...],
    min_size: int | None,
    sort_order: str,
    type_filter: str | None,
    limit: int | None,
    as_json: bool,
) -> None:
    """Find large files (in the home directory unless PATHS are given)."""
    engine = _build_engine()
    session = engine.large_files_session(list(paths) or None, min_size=min_size)
    _run(session, as_json)

    entries = filter_by_type(session.results, FileType(type_filter) if type_filter else None)
    entries = sort_large_files(entries, LargeFileSort(sort_order))
    if limit is not None:
        entries = entries[:limit]

    if as_json:
        click.echo(json.dumps({"files": [_entry_json(e) for e in entries], "errors": session.errors}, indent=2))
        return

    if not entries:
        click.echo("No large files found.")
        return
    for entry in entries:
        click.echo(
            f"  {click.style(bytes_to_human(entry.size), fg='green', bold=True):>20s}  "
            f"{entry.path}  {click.style(format_relative_time(entry.modified_at), fg='bright_black')}"
        )
    _echo_errors(session.errors)
    click.echo(f"\n{len(entries)} file(s), {bytes_to_human(sum(e.size for e in entries))}\n")


# ── dupes ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--sort", "sort_order", type=click.Choice([s.value for s in DuplicateSort]), default="size_desc")
@click.option("--type", "type_filter", type=click.Choice([t.value for t in FileType]), default=None)
@click.option("--clean", "do_clean", is_flag=True, help="Move every copy except the original to the trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="With --clean, show what would be trashed")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def dupes(
    paths: tuple[Path, ...],
    sort_order: str,
    type_filter: str | None,
    do_clean: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Find files with identical content (in the user folders unless PATHS are given)."""
    engine = _build_engine()
    session = engine.duplicates_session(list(paths) or None)
    if not as_json:
        click.echo(f"\n{click.style('🔍', bold=True)} Comparing files...\n")
    _run(session, as_json)

    groups = filter_groups(session.results, FileType(type_filter) if type_filter else None)
    groups = sort_groups(groups, DuplicateSort(sort_order))

    if not do_clean:
        if as_json:
            data = [
                {
                    "fingerprint": g.fingerprint,
                    "size_bytes": g.size,
                    "file_type": g.file_type.value,
                    "duplicate_bytes": g.duplicate_size,
                    "files": [{**_entry_json(f.entry), "is_original": f.is_original} for f in g.files],
                }
                for g in groups
            ]
            click.echo(json.dumps({"groups": data, "errors": session.errors}, indent=2))
            return
        _echo_groups(groups)
        _echo_errors(session.errors)
        return

    targets = [f for g in groups for f in g.files if f.selected]
    if not targets:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_clean", "results": []}))
        else:
            click.echo("No duplicates found.")
        return

    total = sum(f.entry.size for f in targets)
    if dry_run:
        if as_json:
            data = [{"path": str(f.path), "size_bytes": f.entry.size} for f in targets]
            click.echo(json.dumps({"status": "dry_run", "would_free_bytes": total, "items": data}, indent=2))
        else:
            _echo_groups(groups)
            click.echo("(dry run — nothing was moved to the trash)")
        return

    if not as_json:
        _echo_groups(groups)
    if not _confirm(f"Move {len(targets)} duplicate(s) to the trash?", yes, as_json):
        return

    sizes = {f.path: f.entry.size for f in targets}
    result = engine.delete(list(sizes), sessions=[session])
    freed = sum(sizes[p] for p in result.deleted)
    if as_json:
        click.echo(json.dumps({"status": "cleaned", "freed_bytes": freed, **_deletion_json(result)}, indent=2))
        return
    _echo_deletion(result, freed)


def _echo_groups(groups: list) -> None:
    if not groups:
        click.echo("No duplicates found.")
        return
    for group in groups:
        click.echo(
            f"  {click.style(group.file_type.label, fg='blue', bold=True)} — {group.file_count} copies of "
            f"{bytes_to_human(group.size)}, {click.style(bytes_to_human(group.duplicate_size), fg='green', bold=True)} reclaimable"
        )
        for f in group.files:
            tag = click.style(" [original]", fg="cyan") if f.is_original else ""
            click.echo(f"    {f.path}{tag}")
    total = sum(g.duplicate_size for g in groups)
    click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")


# ── usage ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", required=False, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def usage(path: Path | None, as_json: bool) -> None:
    """Show what takes up space in a directory (the home directory by default)."""
    engine = _build_engine()
    session = engine.disk_usage_session(path)
    _run(session, as_json)
    entries = session.results

    if as_json:
        click.echo(json.dumps({"entries": [_entry_json(e) for e in entries], "errors": session.errors}, indent=2))
        return

    total = sum(e.size for e in entries)
    for entry in entries:
        share = entry.size / total * 100 if total else 0.0
        name = entry.name + ("/" if entry.is_dir else "")
        click.echo(f"  {bytes_to_human(entry.size):>10s}  {share:5.1f}%  {name}")
    _echo_errors(session.errors)
    click.echo(f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")


# ── apps ─────────────────────────────────────────────────────────────────

@main.group()
def apps() -> None:
    """Installed applications and their leftovers."""


def _find_app(engine: ReclaimEngine, name: str) -> AppInfo:
    wanted = name.lower()
    for app in engine.list_apps():
        if app.name.lower() == wanted or app.bundle_identifier.lower() == wanted:
            return app
    click.echo(f"Application '{name}' not found.", err=True)
    sys.exit(1)


@apps.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def apps_list(as_json: bool) -> None:
    """List installed applications."""
    engine = _build_engine()
    found = engine.list_apps()
    if as_json:
        data = [{"name": a.name, "bundle_identifier": a.bundle_identifier, "path": str(a.path)} for a in found]
        click.echo(json.dumps(data, indent=2))
        return
    for app in found:
        click.echo(f"  {click.style(app.name, fg='cyan', bold=True):40s}  {app.bundle_identifier}")


@apps.command("leftovers")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def apps_leftovers(name: str, as_json: bool) -> None:
    """Show files an application keeps outside its install location."""
    engine = _build_engine()
    app = _find_app(engine, name)
    leftovers = engine.find_leftovers(app)

    if as_json:
        data = [{"path": str(i.path), "size_bytes": i.size, "type": i.type.value} for i in leftovers]
        click.echo(json.dumps({"app": app.name, "leftovers": data}, indent=2))
        return

    if not leftovers:
        click.echo(f"No leftovers found for {app.name}.")
        return
    for item in leftovers:
        click.echo(f"  {bytes_to_human(item.size):>10s}  {item.type.value:13s} {item.path}")
    click.echo(f"\nTotal: {click.style(bytes_to_human(sum(i.size for i in leftovers)), fg='green', bold=True)}\n")


@apps.command("remove")
@click.argument("name")
@click.option("--keep-leftovers", is_flag=True, help="Only trash the application itself")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be trashed without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def apps_remove(name: str, keep_leftovers: bool, yes: bool, dry_run: bool, as_json: bool) -> None:
    """Move an application and its leftovers to the trash."""
    engine = _build_engine()
    app = _find_app(engine, name)
    leftovers = [] if keep_leftovers else engine.find_leftovers(app)

    if dry_run:
        manual = is_protected_location(app.path)
        paths = [str(i.path) for i in leftovers]
        if not manual:
            paths.append(str(app.path))
        if as_json:
            click.echo(
                json.dumps({"status": "dry_run", "items": paths, "requires_manual_removal": manual}, indent=2)
            )
        else:
            for p in paths:
                click.echo(f"  {p}")
            if manual:
                _echo_manual_removal(app)
            click.echo("(dry run — nothing was moved to the trash)")
        return

    if not _confirm(f"Remove {app.name} and {len(leftovers)} leftover(s)?", yes, as_json):
        return

    result = engine.remove_app(app, include_leftovers=not keep_leftovers, leftovers=leftovers)
    if as_json:
        click.echo(
            json.dumps(
                {
                    "status": "removed",
                    "requires_manual_removal": result.requires_manual_removal,
                    **_deletion_json(result.deletion),
                },
                indent=2,
            )
        )
        return

    freed = sum(i.size for i in leftovers if i.path in result.deletion.deleted)
    _echo_deletion(result.deletion, freed)
    if result.requires_manual_removal:
        _echo_manual_removal(app)


def _echo_manual_removal(app: AppInfo) -> None:
    click.echo(
        f"{click.style('!', fg='yellow')} {app.path} is in a system location; "
        "remove it with your package manager or as an administrator."
    )


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from reclaim.dbus_service import start_service

    click.echo("Starting Reclaim D-Bus service...")
    start_service()
