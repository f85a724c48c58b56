# ABOUTME: Provides a CLI that evaluates a classroom session export and prints its pedagogical report.
# ABOUTME: Renders criterion scores, feedback, the activity timeline, and talk segments as rich tables.

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.session_report.config import EngineConfig, load_engine_config
from src.session_report.loaders import load_bundle
from src.session_report.report import evaluate_session, report_to_json
from src.session_report.schemas import SessionBundle
from src.session_report.segments import build_segments, summarize_talk
from src.session_report.time_normalizer import format_clock, normalize_transcript

console = Console()
app = typer.Typer(help="Evaluate a recorded classroom session and explain what went well and what to change.")


def _load_inputs(bundle_path: Path, config_path: Optional[Path]) -> tuple:
    if not bundle_path.exists():
        console.print(f"[red]Missing session export at {bundle_path}[/red]")
        raise typer.Exit(code=1)
    if config_path is not None and not config_path.exists():
        console.print(f"[red]Missing config at {config_path}[/red]")
        raise typer.Exit(code=1)
    try:
        config = load_engine_config(config_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc
    try:
        bundle = load_bundle(bundle_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="BUNDLE") from exc
    return bundle, config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(name)s: %(message)s")


@app.command()
def evaluate(
    bundle_path: Path = typer.Argument(..., help="Session export JSON (metadata, transcript, chats, activities, polls)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML overrides for thresholds and patterns."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the full report JSON here."),
    verbose: bool = typer.Option(False, "--verbose", help="Log dropped rows and intermediate counts."),
) -> None:
    """
    Score the session and print summary, criteria, and feedback tables.
    """
    _configure_logging(verbose)
    bundle, config = _load_inputs(bundle_path, config_path)
    typer.echo(f"[report] Evaluating {bundle_path}")
    report = evaluate_session(bundle, config)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report_to_json(report), encoding="utf-8")
        typer.echo(f"[report] Wrote report JSON to {output}")

    summary = report.summary
    stats = report.aggregates
    console.rule("[bold blue]Session Report[/bold blue]")
    console.print(f"[bold]Session:[/] {escape(summary.session_name or summary.session_id or '-')}")
    console.print(f"[bold]Topic:[/] {escape(summary.topic)}")
    console.print(f"[bold]Level:[/] {summary.level or '-'}")
    console.print(f"[bold]Teacher:[/] {escape(summary.teacher_name or '-')}")
    console.print(
        f"[bold]Correctness:[/] {stats.overall_correctness_pct}%  "
        f"[bold]Response rate:[/] {stats.response_rate_pct}%  "
        f"[bold]Teacher talk:[/] {stats.teacher_talk_min} min  "
        f"[bold]Students active:[/] {stats.student_active_pct}%"
    )
    console.print()

    criteria_table = Table(show_header=True, header_style="bold magenta")
    criteria_table.add_column("Criterion")
    criteria_table.add_column("Score")
    criteria_table.add_column("Evidence")
    for criterion in report.criteria:
        criteria_table.add_row(criterion.name, f"{criterion.score:.1f}", escape("\n".join(criterion.evidence)))
    console.print(criteria_table)
    console.print(f"[bold]Report score:[/] {report.overall_score:.1f}")

    console.print()
    feedback_table = Table(show_header=True, header_style="bold magenta")
    feedback_table.add_column("")
    feedback_table.add_column("Category")
    feedback_table.add_column("Observation")
    feedback_table.add_column("Recommended")
    for item in report.positive_feedback:
        feedback_table.add_row("[green]+[/green]", item.category.value, escape(item.text), "")
    for item in report.negative_feedback:
        feedback_table.add_row("[red]-[/red]", item.category.value, escape(item.text), item.recommended_value or "")
    console.print(feedback_table)


@app.command()
def timeline(
    bundle_path: Path = typer.Argument(..., help="Session export JSON."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML overrides for thresholds and patterns."),
) -> None:
    """
    Print each activity with the teaching around it and how students did.
    """
    bundle, config = _load_inputs(bundle_path, config_path)
    report = evaluate_session(bundle, config)
    if not report.timeline:
        console.print("[yellow]No timed activities in this session[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Start")
    table.add_column("Activity")
    table.add_column("Taught before")
    table.add_column("Correct")
    table.add_column("Talk during")
    table.add_column("Confusion")
    for entry in report.timeline:
        stat = entry.correctness
        table.add_row(
            entry.start_label,
            f"{entry.activity_type.value} ({entry.activity_id})",
            escape(f"{entry.pre_teaching.topics} ({int(entry.pre_teaching.duration_sec)}s)"),
            f"{stat.percent}% of {stat.answered_count}" if stat.answered_count else "-",
            f"{entry.talk_during_sec}s" if entry.teacher_talk_during else "-",
            "yes" if entry.confusion_detected else "no",
        )
    console.print(table)
    for entry in report.timeline:
        for insight in entry.insights:
            console.print(f"  [{entry.start_label}] {escape(insight.text)}")


@app.command()
def segments(
    bundle_path: Path = typer.Argument(..., help="Session export JSON."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML overrides for thresholds and patterns."),
) -> None:
    """
    Print the teacher's continuous speaking segments, flagging the long ones.
    """
    bundle, config = _load_inputs(bundle_path, config_path)
    _print_segments(bundle, config)


def _print_segments(bundle: SessionBundle, config: EngineConfig) -> None:
    th = config.thresholds
    lines = normalize_transcript(bundle.transcript)
    found = build_segments(lines, th.gap_threshold_sec)
    talk = summarize_talk(lines, found, th.max_continuous_sec)
    typer.echo(f"[segments] {len(found)} segments from {len(lines)} transcript lines")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Seconds")
    table.add_column("Lines")
    for seg in found:
        seconds = f"{seg.duration_sec:.0f}"
        if seg.duration_sec > th.max_continuous_sec:
            seconds = f"[red]{seconds}[/red]"
        table.add_row(format_clock(seg.start_sec), format_clock(seg.end_sec), seconds, str(seg.line_count))
    console.print(table)
    console.print(
        f"[bold]Total talk:[/] {talk.total_talk_sec / 60:.1f} min  "
        f"[bold]Longest:[/] {talk.longest_segment_sec:.0f}s  "
        f"[bold]Over {th.max_continuous_sec:.0f}s:[/] {len(talk.long_segments)}"
    )


if __name__ == "__main__":
    app()
