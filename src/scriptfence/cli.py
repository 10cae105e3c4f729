"""Typer CLI: init, check, script, blacklist commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scriptfence import __version__

app = typer.Typer(
    name="scriptfence",
    help="Decide where user scripts run and which URLs are blacklisted.",
    no_args_is_help=True,
)
blacklist_app = typer.Typer(help="Show and edit the URL blacklist.", no_args_is_help=True)
app.add_typer(blacklist_app, name="blacklist")
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"scriptfence v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version.", callback=_version_callback, is_eager=True
    ),
) -> None:
    """scriptfence - userscript applicability and blacklist engine."""


def _build_engine(project_dir: Path, tld: bool = True):
    from scriptfence.cache import PatternCache
    from scriptfence.config import OptionStore
    from scriptfence.matcher import MatchEngine
    from scriptfence.suffix import StaticSuffixResolver, TldExtractResolver

    options = OptionStore.load(project_dir)
    if tld:
        suffixes = TldExtractResolver()
        suffixes.load()
    else:
        suffixes = StaticSuffixResolver(ready=False)
    engine = MatchEngine(
        cache=PatternCache(options.get_option("pattern_cache_size")),
        suffixes=suffixes,
        options=options,
        blacklist_max_length=options.get_option("blacklist_cache_max_length"),
    )
    return engine, options


def _blacklist_text(value) -> str:
    # Older option files store the blacklist as a list of lines
    if isinstance(value, list):
        return "\n".join(value)
    return value or ""


def _save_blacklist(project_dir: Path, text: str) -> None:
    from scriptfence.config import ConfigError, OptionStore

    options = OptionStore.load(project_dir)
    try:
        options.set_options({"blacklist": text})
    except ConfigError as exc:
        for e in exc.errors:
            console.print(f"  [red]{escape(e)}[/red]")
        console.print("  [red]Blacklist not saved.[/red]")
        raise typer.Exit(1)
    count = sum(1 for line in text.split("\n") if line.strip() and not line.strip().startswith("#"))
    console.print(f"  [green]Blacklist saved[/green] ({count} rules)")


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing options"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Write default options to .scriptfence/options.json."""
    from scriptfence.config import CONFIG_DIR, CONFIG_FILE, DEFAULT_CONFIG, save_config
    from scriptfence.utils import deep_merge, load_json

    console.print(Panel("[bold]scriptfence init[/bold]", style="blue"))

    config_path = project_dir / CONFIG_DIR / CONFIG_FILE
    if config_path.exists() and not force:
        config = deep_merge(DEFAULT_CONFIG, load_json(config_path))
        console.print("  [yellow]Merged with existing options[/yellow]")
    else:
        config = DEFAULT_CONFIG.copy()
        console.print("  [green]Created default options[/green]")

    save_config(config, project_dir)
    console.print(f"  Options: [cyan]{config_path}[/cyan]")


@app.command()
def check(
    urls: list[str] = typer.Argument(..., help="URLs to test against the blacklist"),
    no_tld: bool = typer.Option(False, "--no-tld", help="Treat .tld in rules as literal text"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Test URLs against the blacklist. Exits 1 if any URL is blocked."""
    from scriptfence.rules import RuleSyntaxError

    engine, _ = _build_engine(project_dir, tld=not no_tld)
    try:
        engine.reset_blacklist()
    except RuleSyntaxError as exc:
        console.print(f"[red]Blacklist error: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    table = Table(title="Blacklist check")
    table.add_column("URL", style="cyan")
    table.add_column("Verdict")
    table.add_column("Rule", style="dim")

    blocked = 0
    for url in urls:
        verdict = engine.test_blacklist(url)
        if verdict:
            blocked += 1
            table.add_row(escape(url), "[red]BLOCKED[/red]", escape(verdict))
        else:
            table.add_row(escape(url), "[green]allowed[/green]", "")

    console.print(table)
    if blocked:
        raise typer.Exit(1)


@app.command()
def script(
    url: str = typer.Argument(..., help="URL to test"),
    script_file: Path = typer.Option(..., "--file", "-f", help="Script rules (.yaml or .json)"),
    no_tld: bool = typer.Option(False, "--no-tld", help="Treat .tld in rules as literal text"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Check whether a script with the given rules runs on URL."""
    from scriptfence.rules import RuleSyntaxError, Script
    from scriptfence.utils import load_document

    try:
        data = load_document(script_file)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read {script_file}: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    engine, _ = _build_engine(project_dir, tld=not no_tld)
    try:
        applies = engine.test_script(url, Script.from_dict(data))
    except RuleSyntaxError as exc:
        console.print(f"[red]Script rule error: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    if applies:
        console.print(f"[green]runs[/green] on {url}")
    else:
        console.print(f"[yellow]does not run[/yellow] on {url}")
        raise typer.Exit(1)


@blacklist_app.command("show")
def blacklist_show(
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """List blacklist rules in evaluation order."""
    from scriptfence.blacklist import iter_lines, parse_line
    from scriptfence.config import load_config
    from scriptfence.rules import WHITELIST_MODES

    config = load_config(project_dir)
    lines = list(iter_lines(config.get("blacklist")))
    if not lines:
        console.print("  Blacklist: [dim]empty[/dim]")
        return

    table = Table(title="Blacklist")
    table.add_column("#", justify="right")
    table.add_column("Effect")
    table.add_column("Mode", style="magenta")
    table.add_column("Rule", style="cyan")
    for i, text in enumerate(lines, 1):
        mode, body = parse_line(text)
        effect = "[green]allow[/green]" if mode in WHITELIST_MODES else "[red]block[/red]"
        table.add_row(str(i), effect, mode or "domain/match", escape(body))
    console.print(table)


@blacklist_app.command("add")
def blacklist_add(
    rule: str = typer.Argument(..., help="Rule line, e.g. '@include http://a.com/*'"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Append a rule to the blacklist."""
    from scriptfence.config import load_config

    current = _blacklist_text(load_config(project_dir).get("blacklist")).rstrip("\n")
    text = f"{current}\n{rule}" if current else rule
    _save_blacklist(project_dir, text)


@blacklist_app.command("set")
def blacklist_set(
    source: Path = typer.Argument(..., help="Text file with one rule per line"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Replace the blacklist with the contents of a file."""
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[red]Cannot read {source}: {escape(str(exc))}[/red]")
        raise typer.Exit(2)
    _save_blacklist(project_dir, text)
