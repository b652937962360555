import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import questionary
import typer
from rich.panel import Panel
from rich.table import Table

from ailog_cli.activity import MAX_ENTRIES, RETENTION_MS, ActivityLog
from ailog_cli.attribution import AttributionCoordinator, AttributionFlag, AttributionState, analyze_staged_changes
from ailog_cli.config import PRESETS, Config, parse_email, reset_git_config, save_to_git
from ailog_cli.detectors.engine import DetectionEngine
from ailog_cli.errors import AilogError, ConfigError, RecorderError
from ailog_cli.git_client import get_repo
from ailog_cli.hooks import hook_status, install_hooks
from ailog_cli.logging_config import setup_logging
from ailog_cli.recorder import CommitRecorder
from ailog_cli.session import SessionStore
from ailog_cli.ui import (
    ask_attribution,
    console,
    render_analysis_details,
    render_attribution_report,
    render_detailed_report,
    render_history,
    render_results,
    render_status,
    render_trend_chart,
)
from ailog_cli.watcher import ActivityWatcher, read_events

logger = logging.getLogger(__name__)

HOOK_LOG_FILENAME = "ailog.log"

app = typer.Typer(help="ailog: AI code attribution for Git commits", add_completion=False)


@app.callback()
def root(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors"),
):
    ctx.obj = {"verbose": verbose, "quiet": quiet}
    setup_logging(verbose=verbose, quiet=quiet)


def _fail(message: str):
    console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


def _require_repo(path: str):
    repo = get_repo(path)
    if repo is None:
        _fail(f"'{path}' is not a valid Git repository.")
    return repo


def _engine_for(repo, config: Config) -> DetectionEngine:
    return DetectionEngine.from_config(
        config,
        activity_log=ActivityLog.for_git_dir(repo.git_dir),
        repo_root=repo.working_tree_dir,
    )


def _hook_logging(ctx: typer.Context, repo):
    opts = ctx.obj or {}
    setup_logging(
        verbose=opts.get("verbose", False),
        quiet=opts.get("quiet", False),
        log_file=os.path.join(repo.git_dir, HOOK_LOG_FILENAME),
    )


# ─── detection ──────────────────────────────────────────────────────────────

@app.command(name="scan")
def scan_cmd(
    path: str = typer.Option(".", help="Path to the Git repository"),
    export_json: bool = typer.Option(False, "--json", help="Export results as JSON"),
):
    """Score the currently staged changes without prompting."""
    repo = _require_repo(path)
    config = Config.load(repo)
    analysis = analyze_staged_changes(repo, _engine_for(repo, config))

    if export_json:
        print(json.dumps({
            "files": analysis.files,
            "has_ai_content": analysis.has_ai_content,
            "results": {f: r.to_dict() for f, r in analysis.results.items()},
        }, indent=2))
        return

    if not analysis.files:
        console.print("[dim]No staged changes.[/dim]")
        return
    render_results(analysis.results)
    if analysis.has_ai_content:
        console.print(f"[bold red]{len(analysis.flagged)} file(s) look AI-generated.[/bold red]")
    else:
        console.print("[green]No AI-generated content detected.[/green]")


@app.command(name="analyze")
def analyze_cmd(
    file: Path = typer.Argument(..., help="File whose full content is scored"),
    export_json: bool = typer.Option(False, "--json", help="Export the result as JSON"),
):
    """Score a single file as if all of it had just been added."""
    try:
        text = file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        _fail(f"cannot read {file}: {e}")

    repo = get_repo(str(file.parent))
    if repo is not None:
        config = Config.load(repo)
        engine = _engine_for(repo, config)
    else:
        config = Config.load()
        engine = DetectionEngine.from_config(config)

    result = engine.detect(text, os.path.abspath(str(file)))
    if export_json:
        print(json.dumps({"file": str(file), **result.to_dict()}, indent=2))
        return
    render_detailed_report(str(file), result)


# ─── hooks ──────────────────────────────────────────────────────────────────

@app.command(name="pre-commit")
def pre_commit_cmd(ctx: typer.Context):
    """Run by the pre-commit hook. Never blocks the commit."""
    repo = get_repo(".")
    if repo is None:
        logger.warning("pre-commit run outside a Git repository, nothing to do")
        return
    _hook_logging(ctx, repo)

    try:
        config = Config.load(repo)
        coordinator = AttributionCoordinator(
            repo, config, SessionStore.for_git_dir(repo.git_dir), engine=_engine_for(repo, config)
        )
        analysis = coordinator.pre_commit(
            ask=ask_attribution,
            show_report=lambda a: render_attribution_report(a, config.attribution_example),
            show_details=render_analysis_details,
            interactive=sys.stdin.isatty(),
        )
    except Exception:
        logger.exception("AI attribution check failed; continuing with the commit")
        return

    if analysis is None:
        console.print("[bold yellow]Manual AI override active: this commit will be marked as AI-generated.[/bold yellow]")
    elif coordinator.state == AttributionState.AWAITING_DECISION:
        console.print(f"[green]✔ AI attribution will be recorded:[/green] {config.attribution_string}")
    elif analysis.has_ai_content:
        console.print("[dim]Committing without AI attribution.[/dim]")


@app.command(name="post-commit")
def post_commit_cmd(ctx: typer.Context):
    """Run by the post-commit hook. Records the commit and its attribution."""
    repo = get_repo(".")
    if repo is None:
        logger.warning("post-commit run outside a Git repository, nothing to do")
        return
    _hook_logging(ctx, repo)

    try:
        config = Config.load(repo)
        coordinator = AttributionCoordinator(
            repo, config, SessionStore.for_git_dir(repo.git_dir), recorder=CommitRecorder(config.db_path)
        )
        outcome = coordinator.post_commit()
    except Exception:
        logger.exception("Recording the commit failed")
        return

    if outcome.commit_hash and outcome.is_ai_generated:
        source = "attribution request" if outcome.flag_present else "manual override"
        console.print(f"[cyan]Commit {outcome.commit_hash[:7]} recorded as AI-generated ({source}).[/cyan]")


@app.command(name="install-hooks")
def install_hooks_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Install the pre-commit and post-commit hooks."""
    repo = _require_repo(path)
    try:
        actions = install_hooks(repo.git_dir)
    except OSError as e:
        _fail(f"could not install hooks: {e}")
    for name, action in actions.items():
        console.print(f"[green]✔[/green] {name}: {action}")


@app.command(name="hook-status")
def hook_status_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Report whether both hooks are installed."""
    repo = _require_repo(path)
    status = hook_status(repo.git_dir)
    for name, ok in status.items():
        mark = "[green]installed[/green]" if ok else "[red]missing[/red]"
        console.print(f"  {name:<12}: {mark}")
    if not all(status.values()):
        console.print("[dim]Run 'ailog install-hooks' to install them.[/dim]")


# ─── activity ───────────────────────────────────────────────────────────────

@app.command(name="log-activity")
def log_activity_cmd(
    file: str = typer.Argument(..., help="File the assistant just touched"),
    command: str = typer.Option("unknown", "--command", "-c", help="Editor command that caused it"),
    path: str = typer.Option(".", help="Path to the Git repository"),
):
    """Append one entry to the activity log."""
    repo = _require_repo(path)
    # Relative paths name files in the repository, as git reports them.
    if not os.path.isabs(file):
        file = os.path.join(repo.working_tree_dir, file)
    entry = ActivityLog.for_git_dir(repo.git_dir).record(file, command)
    if entry is None:
        _fail("could not write the activity log")
    logger.info("Logged %s for %s", command, entry.file)


@app.command(name="watch")
def watch_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Read editor change events (NDJSON) from stdin and log assistant-like activity."""
    repo = _require_repo(path)
    config = Config.load(repo)
    log = ActivityLog.for_git_dir(repo.git_dir)
    try:
        log.trim()
    except OSError as e:
        logger.warning("Activity log cleanup failed: %s", e)

    watcher = ActivityWatcher(log, engine=_engine_for(repo, config), session=SessionStore.for_git_dir(repo.git_dir))
    logged = 0
    try:
        for event in read_events(typer.get_text_stream("stdin")):
            if not os.path.isabs(event.file):
                event.file = os.path.join(repo.working_tree_dir, event.file)
            logged += len(watcher.observe(event))
    except KeyboardInterrupt:
        pass
    logger.info("Watcher stopped, %d activity entries logged", logged)


@app.command(name="cleanup")
def cleanup_cmd(
    path: str = typer.Option(".", help="Path to the Git repository"),
    hours: int = typer.Option(RETENTION_MS // 3_600_000, help="Keep entries younger than this"),
    max_entries: int = typer.Option(MAX_ENTRIES, help="Keep at most this many entries"),
):
    """Trim the activity log."""
    repo = _require_repo(path)
    try:
        kept = ActivityLog.for_git_dir(repo.git_dir).trim(hours * 3_600_000, max_entries)
    except OSError as e:
        _fail(f"could not trim the activity log: {e}")
    console.print(f"Activity log trimmed, {kept} entries kept.")


# ─── session switches ───────────────────────────────────────────────────────

@app.command(name="toggle")
def toggle_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Mark (or unmark) the next commit as AI-generated."""
    repo = _require_repo(path)
    state = SessionStore.for_git_dir(repo.git_dir).toggle()
    if state.mark_next_commit:
        console.print("[bold red]Next commit will be marked as AI-generated.[/bold red]")
    else:
        console.print("[green]Next commit will be treated normally.[/green]")


@app.command(name="realtime")
def realtime_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Enable continuous detection while 'ailog watch' runs."""
    repo = _require_repo(path)
    SessionStore.for_git_dir(repo.git_dir).enable_continuous()
    console.print("[bold green]Continuous detection enabled.[/bold green] Run 'ailog toggle' to turn it off.")


@app.command(name="status")
def status_cmd(path: str = typer.Option(".", help="Path to the Git repository")):
    """Show override, continuous mode, pending flag and hook state."""
    repo = _require_repo(path)
    render_status(
        SessionStore.for_git_dir(repo.git_dir).load(),
        AttributionFlag.for_git_dir(repo.git_dir).exists(),
        hook_status(repo.git_dir),
    )


# ─── configuration ──────────────────────────────────────────────────────────

def _show_config(config: Config):
    table = Table(title="ailog configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)
    console.print(f"[dim]{config.attribution_example}[/dim]")


def _valid_email(value: str):
    try:
        parse_email(value)
    except ConfigError as e:
        return str(e)
    return True


def _interactive_configure(repo, config: Config):
    custom = "Custom..."
    view = "View current configuration"
    choice = questionary.select(
        "Which AI assistant should be credited?",
        choices=[f"{name} <{email}>" for name, email in PRESETS.items()] + [custom, view],
    ).ask()
    if choice is None:
        return
    if choice == view:
        _show_config(config)
        return

    if choice == custom:
        name = questionary.text("Attribution name:", default=config.attribution_name).ask()
        email = questionary.text(
            "Attribution email:",
            default=config.attribution_email,
            validate=_valid_email,
        ).ask()
        if not name or not email:
            return
    else:
        name = choice.rsplit(" <", 1)[0]
        email = PRESETS[name]

    save_to_git(repo, attribution_name=name, attribution_email=email)
    console.print(f"[green]✔ Attribution set to:[/green] Co-authored-by: {name} <{email}>")


@app.command(name="configure")
def configure_cmd(
    path: str = typer.Option(".", help="Path to the Git repository"),
    name: Optional[str] = typer.Option(None, help="Attribution name"),
    email: Optional[str] = typer.Option(None, help="Attribution email"),
    threshold: Optional[int] = typer.Option(None, help="Confidence threshold (0-100)"),
    time_proximity: Optional[bool] = typer.Option(None, "--time-proximity/--no-time-proximity"),
    pattern_matching: Optional[bool] = typer.Option(None, "--pattern-matching/--no-pattern-matching"),
    database: Optional[str] = typer.Option(None, help="Commit database path"),
    show: bool = typer.Option(False, "--show", help="Print the effective configuration"),
    reset: bool = typer.Option(False, "--reset", help="Remove all ailog settings from this repository"),
):
    """Configure attribution and detection settings (stored in git config)."""
    repo = _require_repo(path)

    if reset:
        reset_git_config(repo)
        console.print("[green]✔ Configuration reset to defaults.[/green]")
        return
    if show:
        _show_config(Config.load(repo))
        return

    values = dict(
        attribution_name=name,
        attribution_email=email,
        confidence_threshold=threshold,
        enable_time_proximity=time_proximity,
        enable_pattern_matching=pattern_matching,
        db_path=database,
    )
    try:
        if any(v is not None for v in values.values()):
            save_to_git(repo, **values)
            console.print("[green]✔ Configuration saved.[/green]")
            _show_config(Config.load(repo))
        else:
            _interactive_configure(repo, Config.load(repo))
    except ConfigError as e:
        _fail(str(e))


# ─── history ────────────────────────────────────────────────────────────────

@app.command(name="history")
def history_cmd(
    path: str = typer.Option(".", help="Path to the Git repository"),
    count: int = typer.Option(20, help="Number of commits to show"),
    all_repos: bool = typer.Option(False, "--all", help="Include every recorded repository"),
    export_json: bool = typer.Option(False, "--json", help="Export records as JSON"),
):
    """Show recorded commits and the AI attribution trend."""
    repo = _require_repo(path)
    config = Config.load(repo)
    repo_name = Path(repo.working_tree_dir or repo.git_dir).name
    try:
        records = CommitRecorder(config.db_path).recent(None if all_repos else repo_name, count)
    except RecorderError as e:
        _fail(str(e))

    if export_json:
        print(json.dumps([vars(r) for r in records], indent=2))
        return

    render_history(records, "all repositories" if all_repos else repo_name)
    render_trend_chart(records)


def main():
    try:
        app()
    except AilogError as e:
        console.print(Panel(str(e), title="[bold red]ailog error[/bold red]", border_style="red", expand=False))
        sys.exit(1)


if __name__ == "__main__":
    main()
