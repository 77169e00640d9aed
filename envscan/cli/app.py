"""
CLI 入口模块 - 使用 Typer 构建命令行界面

扫描流程：
1. 列出源文件
2. 逐个解析、分析
3. 去重排序
4. 输出报告
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from envscan.core.config import ScanConfig
from envscan.core.scanner import collect_source_files, format_env_var, scan_files
from envscan.core.scanner.models import ScanResult
from envscan.reporters import JsonReporter, Reporter

# 创建 Typer 应用实例
app = typer.Typer(
    name="envscan",
    help="envscan: list every process.env variable a JavaScript codebase reads.",
    add_completion=False,
)

# 诊断信息走 stderr，stdout 留给报告
console = Console(stderr=True)

# 输出格式 -> 报告器
REPORTERS: dict[str, type[JsonReporter]] = {
    "json": JsonReporter,
}


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def write_report(result: ScanResult, format: str, output: str, relative_paths: bool) -> None:
    """output 为 stdout、stderr 或文件路径"""
    reporter_cls = REPORTERS[format]
    if output in ("stdout", "stderr"):
        stream = sys.stdout if output == "stdout" else sys.stderr
        reporter: Reporter = reporter_cls(stream, relative_paths)
        reporter.report(result)
        return
    with open(output, "w", encoding="utf-8") as f:
        reporter_cls(f, relative_paths).report(result)


def run_scan(root: Path, config: ScanConfig, progress: bool, verbose: bool) -> ScanResult:
    paths = collect_source_files(root, config)
    if verbose:
        console.print(f"[dim]Found {len(paths)} source files[/dim]")
    if not progress:
        return scan_files(paths, root, config)

    with Progress(
        TextColumn("[bold cyan]Scanning"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("[dim]{task.description}"),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task("", total=len(paths))

        def on_file(file_path: str) -> None:
            bar.update(task, advance=1, description=file_path)

        return scan_files(paths, root, config, on_file=on_file)


@app.command()
def scan(
    target: str = typer.Argument(
        ...,
        help="Root directory to scan",
    ),
    format: str = typer.Option(
        "json",
        "--format",
        "-f",
        help="Output format (only json is supported)",
    ),
    output: str = typer.Option(
        "stdout",
        "--output",
        "-o",
        help="Where to write the report: stdout, stderr or a file path",
    ),
    follow_modules: bool = typer.Option(
        False,
        "--follow-modules",
        help="Read required modules to find exported literal keys",
    ),
    no_ignore: bool = typer.Option(
        False,
        "--no-ignore",
        help="Scan files matched by .gitignore and the default ignore list",
    ),
    absolute_paths: bool = typer.Option(
        False,
        "--absolute-paths",
        help="Report absolute file paths instead of paths relative to the root",
    ),
    debug_dir: Optional[Path] = typer.Option(
        None,
        "--debug-dir",
        help="Dump syntax trees of files with unresolvable declarations here",
    ),
    progress: bool = typer.Option(
        True,
        "--progress/--no-progress",
        help="Show a progress bar on stderr",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output",
    ),
) -> None:
    """
    Scan a directory for process.env reads.

    Examples:
        envscan scan ./my-app
        envscan scan ./my-app -o env.json
        envscan scan ./my-app --follow-modules --no-progress
    """
    setup_logging(verbose)

    if format not in REPORTERS:
        console.print(f"[red]Error:[/red] Unsupported format: {format}")
        raise typer.Exit(2)

    root = Path(target).resolve()
    if not root.exists():
        console.print(f"[red]Error:[/red] Path does not exist: {target}")
        raise typer.Exit(1)
    if not root.is_dir():
        console.print(f"[red]Error:[/red] Path is not a directory: {target}")
        raise typer.Exit(1)

    config = ScanConfig(
        respect_gitignore=not no_ignore,
        follow_modules=follow_modules,
        relative_paths=not absolute_paths,
        debug_dir=debug_dir,
    )

    result = run_scan(root, config, progress and console.is_terminal, verbose)

    if verbose:
        console.print(f"[dim]  - {result.files_scanned} files analyzed[/dim]")
        console.print(f"[dim]  - {len(result.skipped_files)} files skipped[/dim]")
        console.print(f"[dim]  - {len(result.records)} environment variables[/dim]")
        for record in result.records:
            for warning in record.warnings:
                console.print(f"[yellow]Warning:[/yellow] {format_env_var(record, root)}: {warning}")

    try:
        write_report(result, format, output, config.relative_paths)
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write report: {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show the version of envscan."""
    from envscan import __version__
    console.print(f"[bold]envscan[/bold] v{__version__}")


if __name__ == "__main__":
    app()
