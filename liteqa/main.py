"""
Command-line entry point for LiteQA.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from liteqa import __version__
from liteqa.config.settings import RunConfig, get_settings
from liteqa.core.types import Flow, FlowResult, StepStatus, Suite, SuiteResult
from liteqa.monitoring.logger import setup_logging
from liteqa.orchestration.orchestrator import FlowOrchestrator

console = Console()

STATUS_STYLES = {
    StepStatus.PASSED: "green",
    StepStatus.FAILED: "red",
    StepStatus.SKIPPED: "yellow",
    StepStatus.PENDING: "dim",
}


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="liteqa",
        description=f"LiteQA - declarative test flow runner v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a single flow
  liteqa run flows/login.json

  # Run a suite with a visible Firefox window
  liteqa run suites/smoke.json --headed --browser firefox

  # Fail fast on broken selectors
  liteqa run flows/login.json --no-self-heal
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"liteqa {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")
    run_parser = subparsers.add_parser("run", help="Run a flow or suite JSON document")
    run_parser.add_argument(
        "path",
        type=Path,
        help="Path to a flow or suite JSON file",
    )
    run_parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    run_parser.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine (default: from settings)",
    )
    run_parser.add_argument(
        "--timeout",
        type=int,
        help="Default step timeout in milliseconds",
    )
    run_parser.add_argument(
        "--no-self-heal",
        action="store_true",
        help="Disable the self-healing locator cascade",
    )
    run_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    run_parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Log output format (default: from settings)",
    )

    return parser


def load_document(path: Path) -> Union[Flow, Suite]:
    """Load a flow or suite from a JSON file; documents with 'flows' are suites."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict) and "flows" in data:
            return Suite.model_validate(data)
        return Flow.model_validate(data)
    except FileNotFoundError:
        console.print(f"[red]Error: File not found: {path}[/red]")
        sys.exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid JSON in {path}: {e}[/red]")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red]Error: Invalid flow document {path}:[/red]\n{e}")
        sys.exit(1)


def build_run_config(parsed_args: argparse.Namespace) -> RunConfig:
    """Merge settings with command line overrides."""
    return RunConfig.from_settings(
        get_settings(),
        headless=False if parsed_args.headed else None,
        browser=parsed_args.browser,
        default_timeout=parsed_args.timeout,
        self_heal=False if parsed_args.no_self_heal else None,
    )


def render_flow_result(result: FlowResult) -> None:
    """Print one flow's step table and healing suggestions."""
    style = STATUS_STYLES[result.status]
    table = Table(title=f"{result.name} [{style}]{result.status.value}[/{style}]")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Action", style="green")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Error", style="red")

    for i, step_result in enumerate(result.steps, 1):
        step_style = STATUS_STYLES[step_result.status]
        table.add_row(
            str(i),
            step_result.step.action,
            step_result.step.label() or "-",
            f"[{step_style}]{step_result.status.value}[/{step_style}]",
            f"{step_result.duration}ms",
            step_result.error or "",
        )
    console.print(table)

    if result.error:
        console.print(f"[red]Flow error: {result.error}[/red]")

    if result.healed_selectors:
        lines = [
            f"[yellow]{healed.strategy.value}[/yellow] ({healed.confidence:.2f}) {healed.suggestion}"
            for healed in result.healed_selectors
        ]
        console.print(Panel("\n".join(lines), title="Self-healed selectors", border_style="yellow"))


def render_suite_summary(result: SuiteResult) -> None:
    """Print the suite totals."""
    summary = result.summary
    style = STATUS_STYLES[result.status]
    console.print(
        Panel.fit(
            f"Flows: {summary.total}  "
            f"[green]Passed: {summary.passed}[/green]  "
            f"[red]Failed: {summary.failed}[/red]  "
            f"[yellow]Skipped: {summary.skipped}[/yellow]\n"
            f"Duration: {result.duration}ms",
            title=f"[{style}]{result.name}: {result.status.value}[/{style}]",
        )
    )


async def run_document(document: Union[Flow, Suite], config: RunConfig) -> int:
    """Run a loaded flow or suite and print its results."""
    orchestrator = FlowOrchestrator(config=config)

    if isinstance(document, Suite):
        suite_result = await orchestrator.run_suite(document)
    else:
        suite_result = await orchestrator.run_flows(document.name, [document])

    for flow_result in suite_result.flows:
        render_flow_result(flow_result)
    render_suite_summary(suite_result)

    return 0 if suite_result.status == StepStatus.PASSED else 1


async def async_main(args: Optional[list[str]] = None) -> int:
    """Async main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command != "run":
        parser.print_help()
        return 1

    settings = get_settings()
    setup_logging(
        log_level="DEBUG" if parsed_args.verbose else settings.log_level,
        log_format=parsed_args.log_format or settings.log_format,
        log_file=settings.log_file,
    )

    document = load_document(parsed_args.path)
    return await run_document(document, build_run_config(parsed_args))


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for LiteQA.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 when every flow passed, 1 otherwise)
    """
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user[/yellow]")
        return 1
    except Exception as e:
        console.print(f"[red]Fatal error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
