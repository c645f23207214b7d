# -*- coding: utf-8 -*-
"""Command line interface for managing projects, languages and uploads."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from screenstudio.config import load_config
from screenstudio.constants import LANGUAGE_FLAGS, LANGUAGE_NAMES
from screenstudio.core.controller import ProjectController, ProjectOperationError
from screenstudio.core.localization import ConflictChoice, resolve_completeness, resolve_text
from screenstudio.storage.serializer import serialize_state
from screenstudio.utils.file_utils import read_json_file, write_json_file

app = typer.Typer(help="Manage localized screenshot projects")
logger = logging.getLogger(__name__)


@app.callback()
def main_options(
    ctx: typer.Context,
    settings: Path = typer.Option(Path("settings.json"), help="Path to settings.json"),
    verbose: bool = typer.Option(False, help="Verbose output"),
) -> None:
    """Load settings shared by all commands."""
    if verbose:
        logging.basicConfig(level=logging.INFO)
    try:
        ctx.obj = load_config(settings)
    except ValueError as exc:
        typer.echo(f"Invalid settings: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@contextmanager
def _controller(ctx: typer.Context) -> Iterator[ProjectController]:
    controller = ProjectController.from_config(ctx.obj)
    controller.start()
    try:
        yield controller
    except ProjectOperationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        controller.shutdown()


def _warn_if_migration_pending(controller: ProjectController) -> None:
    if controller.migration_pending:
        typer.echo(
            f"Project {controller.active_project_id} uses an older format; "
            "run `migrate` to upgrade it before changes are saved.",
            err=True,
        )


@app.command("projects")
def list_projects(ctx: typer.Context) -> None:
    """List projects; the active one is marked with *."""
    with _controller(ctx) as controller:
        for project in controller.projects:
            marker = "*" if project.id == controller.active_project_id else " "
            typer.echo(f"{marker} {project.id}  {project.name}  ({project.screenshot_count} screenshots)")


@app.command()
def create(ctx: typer.Context, name: str = typer.Argument(..., help="Project name")) -> None:
    """Create a project and make it active."""
    with _controller(ctx) as controller:
        info = controller.create_project(name)
        typer.echo(f"Created project {info.id} ({info.name})")


@app.command()
def rename(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a project."""
    with _controller(ctx) as controller:
        info = controller.rename_project(project_id, name)
        typer.echo(f"Renamed project {info.id} to {info.name}")


@app.command()
def delete(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project id")) -> None:
    """Delete a project (the last remaining project cannot be deleted)."""
    with _controller(ctx) as controller:
        controller.delete_project(project_id)
        typer.echo(f"Deleted project {project_id}")


@app.command()
def switch(ctx: typer.Context, project_id: str = typer.Argument(..., help="Project id")) -> None:
    """Make another project active."""
    with _controller(ctx) as controller:
        controller.switch_project(project_id)
        typer.echo(f"Active project: {project_id}")
        _warn_if_migration_pending(controller)


@app.command()
def show(ctx: typer.Context) -> None:
    """Summarize the active project."""
    with _controller(ctx) as controller:
        state = controller.state
        languages = ", ".join(
            f"{LANGUAGE_FLAGS.get(lang, '')} {lang}".strip() for lang in state.project_languages
        )
        typer.echo(f"Project: {controller.active_project_id}")
        typer.echo(f"Languages: {languages} (current: {state.current_language})")
        typer.echo(f"Output device: {state.output_device}")
        for index, screenshot in enumerate(state.screenshots):
            complete = "complete" if resolve_completeness(screenshot, state.project_languages) else "incomplete"
            headline = resolve_text(screenshot.text, "headline", state.current_language, controller.fallback_language)
            typer.echo(f"  [{index}] {screenshot.name or '(unnamed)'} {screenshot.device_type} {complete} {headline!r}")
        _warn_if_migration_pending(controller)


@app.command("add-language")
def add_language(ctx: typer.Context, lang: str = typer.Argument(..., help="Language code, e.g. de or pt-br")) -> None:
    """Add a language to the active project."""
    with _controller(ctx) as controller:
        if controller.add_language(lang):
            typer.echo(f"Added {LANGUAGE_NAMES.get(lang.lower(), lang)}")
        else:
            typer.echo(f"{lang} is already a project language")
        _warn_if_migration_pending(controller)


@app.command("remove-language")
def remove_language(ctx: typer.Context, lang: str = typer.Argument(..., help="Language code")) -> None:
    """Remove a language from the active project."""
    with _controller(ctx) as controller:
        if not controller.remove_language(lang):
            typer.echo(f"Cannot remove {lang}: a project needs at least one language", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Removed {lang}")
        _warn_if_migration_pending(controller)


@app.command()
def add(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Image files; a _xx suffix selects the language"),
    on_conflict: ConflictChoice = typer.Option(
        None, case_sensitive=False, help="What to do when a language variant already exists"
    ),
) -> None:
    """Upload screenshots into the active project."""

    def _ask(plan) -> ConflictChoice:
        if on_conflict is not None:
            return on_conflict
        answer = typer.prompt(
            f"{plan.filename}: {plan.language} already exists for this screenshot. "
            "replace / create_new / ignore",
            default=ConflictChoice.IGNORE.value,
        )
        try:
            return ConflictChoice(answer.strip().lower())
        except ValueError:
            typer.echo(f"Unknown choice {answer!r}, ignoring {plan.filename}", err=True)
            return ConflictChoice.IGNORE

    with _controller(ctx) as controller:
        payload = []
        for path in files:
            try:
                payload.append((path.name, path.read_bytes()))
            except OSError as exc:
                typer.echo(f"{path}: {exc}", err=True)
        report = controller.upload_files(payload, conflict_resolver=_ask)
        for name in report.created:
            typer.echo(f"New screenshot: {name}")
        for name in report.variants:
            typer.echo(f"Language variant: {name}")
        for name in report.replaced:
            typer.echo(f"Replaced: {name}")
        for name in report.ignored:
            typer.echo(f"Ignored: {name}")
        for name, error in report.errors.items():
            typer.echo(f"Failed: {name}: {error}", err=True)
        _warn_if_migration_pending(controller)


@app.command()
def migrate(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite without asking"),
) -> None:
    """Upgrade the active project's stored record to the current format."""
    with _controller(ctx) as controller:
        if not controller.migration_pending:
            typer.echo("Project is already up to date")
            return
        if not yes and not typer.confirm("The stored project will be rewritten in the new format. Continue?"):
            controller.decline_migration()
            typer.echo("Left the stored project unchanged")
            return
        if controller.confirm_migration():
            typer.echo("Project migrated")
        else:
            typer.echo("Migration could not be written", err=True)
            raise typer.Exit(code=1)


@app.command("export")
def export_project(ctx: typer.Context, output: Path = typer.Argument(..., help="Target JSON file")) -> None:
    """Write the active project record as JSON."""
    with _controller(ctx) as controller:
        record = serialize_state(controller.state, str(controller.active_project_id))
        write_json_file(output, record)
        typer.echo(f"Exported {len(controller.state.screenshots)} screenshots to {output}")


@app.command("import")
def import_project(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Project JSON file"),
    name: str = typer.Option("Imported Project", help="Name of the new project"),
) -> None:
    """Create a new project from an exported (or legacy) record."""
    with _controller(ctx) as controller:
        try:
            record = read_json_file(source)
        except (OSError, ValueError) as exc:
            typer.echo(f"Cannot read {source}: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        info, result = controller.import_project(record, name)
        suffix = " (migrated from an older format)" if result.migrated else ""
        typer.echo(f"Imported {len(result.state.screenshots)} screenshots into {info.id}{suffix}")
