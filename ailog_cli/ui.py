import questionary
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
import plotille

from ailog_cli.attribution import CHOICE_DETAILS, CHOICE_NO, CHOICE_YES

console = Console()


def format_score(confidence: int, is_ai: bool) -> str:
    # is_ai already reflects the configured threshold.
    if is_ai:
        color = "red bold"
    elif confidence >= 30:
        color = "yellow"
    else:
        color = "green"
    verdict = "Likely AI" if is_ai else "Likely Human"
    return f"[{color}]{confidence}% ({verdict})[/{color}]"


def format_reasons(reasons: list) -> str:
    if not reasons:
        return "[dim]No strong AI signals detected[/dim]"

    formatted = []
    for r in reasons:
        if "time proximity" in r.lower() or "large code block" in r.lower() or "boilerplate" in r.lower():
            formatted.append(f"[bold red]•[/bold red] {r}")
        else:
            formatted.append(f"[yellow]•[/yellow] {r}")
    return "\n".join(formatted)


def build_results_table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("File", style="dim", overflow="fold")
    table.add_column("Confidence", justify="center", width=22)
    table.add_column("Reasoning")
    return table


def render_results(results: dict, title: str = "Staged Changes AI Analysis"):
    """results: file path -> DetectionResult"""
    if not results:
        console.print("[dim]Nothing to analyze.[/dim]")
        return
    table = build_results_table(title)
    for path, r in results.items():
        table.add_row(path, format_score(r.confidence, r.is_ai_generated), format_reasons(r.reasons))
        table.add_row("", "", "")
    console.print(table)


def render_attribution_report(analysis, attribution_example: str):
    """Summary shown before the attribution question."""
    flagged = analysis.flagged
    lines = []
    for i, (path, r) in enumerate(flagged.items(), start=1):
        lines.append(f"[bold]File {i}:[/bold] {path}")
        lines.append(f"  Confidence : [bold red]{r.confidence}%[/bold red]")
        lines.append(f"  Reasons    : {', '.join(r.reasons)}")
        lines.append("")
    lines.append("[bold cyan]Recommended action[/bold cyan]")
    lines.append("Add AI attribution information to the commit record.")
    lines.append(f"[dim]{attribution_example}[/dim]")

    console.print()
    console.print(Panel(
        "\n".join(lines),
        title="[bold]AI Code Detection Report[/bold]",
        border_style="red",
        expand=False,
        padding=(1, 2),
    ))


def render_detailed_report(path: str, result):
    meta = result.metadata
    verdict = "Likely AI-generated" if result.is_ai_generated else "Likely not AI-generated"
    reasons = "\n".join(f"  • {r}" for r in result.reasons) or "  • none"
    body = (
        f"Confidence       : {result.confidence}%\n"
        f"Detection result : {verdict}\n\n"
        f"Detection reasons:\n{reasons}\n\n"
        f"Detection metadata:\n"
        f"  • Code block size          : {meta.chunk_size} characters\n"
        f"  • Pattern kinds matched    : {meta.pattern_matches}\n"
        f"  • Contains boilerplate     : {'Yes' if meta.has_boilerplate else 'No'}\n"
        f"  • Contains quality comments: {'Yes' if meta.has_quality_comments else 'No'}\n"
        f"  • Time proximity score     : {meta.time_proximity}\n"
        f"  • Language type            : {meta.language_type}\n\n"
        f"[dim]Heuristic result, for reference only.[/dim]"
    )
    console.print(Panel(body, title=f"[bold]{path}[/bold]", border_style="cyan", expand=False))


def render_analysis_details(analysis):
    for path, result in analysis.results.items():
        render_detailed_report(path, result)


def ask_attribution() -> str:
    """Three-way prompt. Ctrl+C or an unanswerable prompt counts as 'no'."""
    choice = questionary.select(
        "Add AI attribution to this commit?",
        choices=[
            questionary.Choice("Yes, credit the AI assistant", value=CHOICE_YES),
            questionary.Choice("No", value=CHOICE_NO),
            questionary.Choice("View details", value=CHOICE_DETAILS),
        ],
        qmark=">",
    ).ask()
    return choice or CHOICE_NO


def build_history_table(repo_name: str) -> Table:
    table = Table(title=f"Recorded Commits: {repo_name}", show_header=True, header_style="bold cyan")
    table.add_column("Commit", style="dim", width=9)
    table.add_column("Branch", width=16)
    table.add_column("Committer", width=20)
    table.add_column("AI", justify="center")
    table.add_column("Volume Δ", justify="right")
    return table


def render_history(records: list, repo_name: str):
    if not records:
        console.print("[dim]No commits recorded yet.[/dim]")
        return
    table = build_history_table(repo_name)
    for rec in records:
        ai = "[bold red]yes[/bold red]" if rec.is_ai_generated else "[green]no[/green]"
        table.add_row(rec.commit_hash[:7], rec.branch, rec.committer, ai, str(rec.code_volume_delta))
    console.print(table)

    ai_count = sum(1 for r in records if r.is_ai_generated)
    console.print(f"\n  AI-attributed commits: [bold]{ai_count}[/bold] of {len(records)}")


def render_trend_chart(records: list):
    if not records or len(records) < 3:
        console.print("[dim]Not enough commits to generate a trend chart (need at least 3).[/dim]")
        return

    console.print("\n[bold cyan]AI Attribution Share Over Time[/bold cyan]")

    # Running share of AI-attributed commits, oldest to newest
    shares = []
    ai_so_far = 0
    for i, rec in enumerate(reversed(records), start=1):
        ai_so_far += 1 if rec.is_ai_generated else 0
        shares.append(ai_so_far / i)
    x_data = list(range(1, len(shares) + 1))

    fig = plotille.Figure()
    fig.width = 60
    fig.height = 15
    fig.set_x_limits(min_=1, max_=len(shares))
    fig.set_y_limits(min_=0.0, max_=1.0)
    fig.y_label = "AI share"
    fig.x_label = "Commits (Oldest -> Newest)"

    final = shares[-1]
    plot_color = 'green' if final < 0.3 else 'yellow' if final < 0.7 else 'red'
    fig.plot(x_data, shares, lc=plot_color)

    print(fig.show())


def render_status(state, flag_present: bool, hooks: dict):
    override = "[bold red]ON[/bold red]" if state.mark_next_commit else "[dim]off[/dim]"
    continuous = "[bold green]ON[/bold green]" if state.continuous_mode else "[dim]off[/dim]"
    flag = "[bold yellow]pending[/bold yellow]" if flag_present else "[dim]none[/dim]"
    hook_lines = "\n".join(
        f"  {name:<12}: {'[green]installed[/green]' if ok else '[red]missing[/red]'}" for name, ok in hooks.items()
    )
    console.print(Panel(
        f"  Mark next commit as AI : {override}\n"
        f"  Continuous detection   : {continuous}\n"
        f"  Attribution flag       : {flag}\n\n"
        f"[bold]Hooks[/bold]\n{hook_lines}",
        title="[bold]ailog status[/bold]",
        expand=False,
    ))
