"""CLI entrypoint: analyse an article URL, manage learned writing style."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from rich.console import Console
from rich.panel import Panel

from config import get_settings
from core import PipelineRunResult
from intelligence.agents import LearningAgent
from intelligence.llm import get_llm
from orchestrator import build_pipeline
from storage import StyleStore
from utils import setup_logger
from utils.exceptions import ArticleAgentError


console = Console()


def _print_result(result: PipelineRunResult) -> None:
    if result.needs_clarification:
        console.print(Panel(result.clarification_question or "", title="[yellow]Clarification needed[/yellow]"))
        if result.clarification_reason:
            console.print(f"  [dim]{result.clarification_reason}[/dim]")
        return

    if not result.success:
        console.print(f"[red]Failed[/red] at [bold]{result.failed_stage or 'pipeline'}[/bold]: {result.error}")
        return

    final = result.final_analysis
    if final is None:
        console.print("[yellow]Pipeline finished without an analysis[/yellow]")
        return

    console.print(Panel(final.translated_summary, title=f"[bold blue]{final.title}[/bold blue]"))
    console.print("\n[bold cyan]Key points[/bold cyan]")
    for point in final.key_points:
        console.print(f"  - {point}")
    if final.critical_analysis.why_important:
        console.print(f"\n[bold cyan]Why it matters[/bold cyan]\n  {final.critical_analysis.why_important}")
    if final.critical_analysis.future_prediction:
        console.print(f"\n[bold cyan]Outlook[/bold cyan]\n  {final.critical_analysis.future_prediction}")
    if final.image_url:
        console.print(f"\n  [dim]Image:[/dim] {final.image_url}")
    if final.audio_url:
        console.print(f"  [dim]Audio:[/dim] {final.audio_url}")
    console.print(
        f"\n  [dim]Stages: {', '.join(final.metadata.agents_used)} | "
        f"{result.duration_ms}ms | mock={final.metadata.mock_mode}[/dim]"
    )


def _learning_agent(mock: bool) -> LearningAgent:
    settings = get_settings()
    return LearningAgent(get_llm(settings, mock=mock or settings.mock_mode), StyleStore(settings.storage.style_path))


def cmd_analyze(args: argparse.Namespace) -> int:
    settings = get_settings()
    pipeline = build_pipeline(settings, mock_mode=True if args.mock else None)
    timeout = args.timeout if args.timeout is not None else settings.pipeline.run_timeout
    result = pipeline.run_with_timeout(args.url, timeout, query=args.query)

    if args.json:
        print(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
    else:
        _print_result(result)
    return 0 if result.success or result.needs_clarification else 1


def cmd_learn(args: argparse.Namespace) -> int:
    samples: List[str] = [Path(path).read_text(encoding="utf-8") for path in args.files]
    agent = _learning_agent(args.mock)
    patterns = agent.learn(samples)
    console.print(f"[green]OK[/green] Learned {len(patterns)} style pattern groups from {len(samples)} samples")
    return 0


def cmd_reset_style(args: argparse.Namespace) -> int:
    _learning_agent(args.mock).reset()
    console.print("[green]OK[/green] Learned style cleared")
    return 0


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Article analysis pipeline CLI")
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse an article URL")
    analyze.add_argument("url")
    analyze.add_argument("--query", default=None, help="Reader request for the interpret stage")
    analyze.add_argument("--mock", action="store_true", help="Run offline with mock providers")
    analyze.add_argument("--json", action="store_true", help="Print the run result as JSON")
    analyze.add_argument("--timeout", type=float, default=None)
    analyze.set_defaults(func=cmd_analyze)

    learn = sub.add_parser("learn", help="Learn writing style from sample files")
    learn.add_argument("files", nargs="+")
    learn.add_argument("--mock", action="store_true")
    learn.set_defaults(func=cmd_learn)

    reset = sub.add_parser("reset-style", help="Forget the learned writing style")
    reset.add_argument("--mock", action="store_true")
    reset.set_defaults(func=cmd_reset_style)

    args = parser.parse_args(argv)
    setup_logger("", level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        return args.func(args)
    except ArticleAgentError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
