"""Command-line interface for skillpack."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from skillpack import __version__
from skillpack.compose.composer import BudgetUnit, CompositionBudget
from skillpack.config.loader import config_sources, load_config
from skillpack.config.paths import find_project_root
from skillpack.config.schema import Config
from skillpack.core.tokens import MediaType, chars_to_tokens, estimate_file_tokens
from skillpack.engine import ClarificationNeeded, SkillEngine
from skillpack.logging import setup_logging
from skillpack.plugins.manifest import PluginManifestBuilder, discover_groups, load_groups
from skillpack.skills.errors import SkillPackError
from skillpack.skills.schema import SkillPackage

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CLARIFY = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="skillpack",
        description="Resolve, match and compose agent skill packages",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--root",
        dest="roots",
        action="append",
        type=Path,
        default=[],
        help="Skill root directory (repeatable, overrides configured roots)",
    )
    parser.add_argument(
        "--project",
        type=Path,
        help="Project directory holding .skillpack/config.yaml (default: nearest above cwd)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("scan", help="Scan roots and list indexed skills")

    match_parser = subparsers.add_parser("match", help="Rank skills for a request")
    match_parser.add_argument("intent", help="Free-text user request")
    match_parser.add_argument("--lang", help="Declared implementation language")
    match_parser.add_argument("--limit", type=int, default=10, help="Rows to show")

    activate_parser = subparsers.add_parser(
        "activate",
        help="Match a request and print the composed bundle",
    )
    activate_parser.add_argument("intent", help="Free-text user request")
    activate_parser.add_argument("--lang", help="Declared implementation language")
    activate_parser.add_argument(
        "--loaded",
        action="append",
        default=[],
        help="Skill already in context (repeatable)",
    )
    activate_parser.add_argument("--budget", type=int, help="Bundle size limit")
    activate_parser.add_argument(
        "--unit",
        choices=[u.value for u in BudgetUnit],
        help="Budget unit",
    )

    refs_parser = subparsers.add_parser("refs", help="Show references of a skill")
    refs_parser.add_argument("name", help="Skill name")
    refs_parser.add_argument("--depth", type=int, help="Transitive closure depth")

    manifest_parser = subparsers.add_parser("manifest", help="Build the plugin manifest")
    manifest_parser.add_argument(
        "--groups",
        type=Path,
        help="YAML file declaring plugin groups (default: derive from layout)",
    )
    manifest_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write manifest JSON to this file instead of stdout",
    )

    subparsers.add_parser("watch", help="Rescan roots whenever skill files change")
    subparsers.add_parser("config", help="Print the effective configuration as YAML")

    return parser


def _estimated_tokens(package: SkillPackage) -> int:
    """Rough size of everything a package could contribute to a bundle."""
    total = estimate_file_tokens("SKILL.md", package.content)
    for variant in package.language_variants.values():
        total += estimate_file_tokens(f"examples-{variant.language}.md", variant.content)
    for name, ref in package.reference_files.items():
        if ref.content is not None:
            total += estimate_file_tokens(name, ref.content)
    return total


def _cmd_scan(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    snapshot = engine.snapshot

    table = Table(title=f"Skills (generation {snapshot.generation})")
    table.add_column("Name", style="bold")
    table.add_column("Group")
    table.add_column("Languages")
    table.add_column("References")
    table.add_column("Files", justify="right")
    table.add_column("~Tokens", justify="right")

    for package in snapshot.index:
        table.add_row(
            package.name,
            package.group or "-",
            ", ".join(package.languages) or "-",
            ", ".join(snapshot.graph.resolve(package.name)) or "-",
            str(len(package.reference_files)),
            str(_estimated_tokens(package)),
        )
    console.print(table)

    for warning in snapshot.warnings:
        console.print(f"[yellow]warning[/yellow] ({warning.kind}): {warning.message}")
    return EXIT_OK


def _cmd_match(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    candidates = engine.match(parsed.intent, parsed.lang)
    if not candidates:
        console.print("[yellow]No skill matched.[/yellow]")
        return EXIT_CLARIFY

    table = Table(title="Candidates")
    table.add_column("#", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Triggers", justify="right")
    table.add_column("Keywords", justify="right")
    table.add_column("Language")

    for rank, candidate in enumerate(candidates[: parsed.limit], start=1):
        if candidate.language_match is None:
            language = "-"
        else:
            language = "yes" if candidate.language_match else "no"
        table.add_row(
            str(rank),
            candidate.name,
            f"{candidate.score:.2f}",
            str(candidate.trigger_hits),
            str(candidate.keyword_hits),
            language,
        )
    console.print(table)
    return EXIT_OK


def _cmd_activate(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    budget = None
    if parsed.budget is not None or parsed.unit is not None:
        default = engine.composer.default_budget()
        budget = CompositionBudget(
            parsed.budget if parsed.budget is not None else default.limit,
            BudgetUnit(parsed.unit) if parsed.unit else default.unit,
        )

    result = engine.activate(parsed.intent, parsed.lang, parsed.loaded, budget)
    if isinstance(result, ClarificationNeeded):
        err_console.print(f"[yellow]Clarification needed:[/yellow] {result.reason}")
        return EXIT_CLARIFY

    estimate = ""
    if result.budget.unit is BudgetUnit.CHARS:
        estimate = f" (~{chars_to_tokens(result.size, MediaType.MARKDOWN)} tokens)"
    err_console.print(
        f"[bold]{', '.join(result.packages) or '(nothing new)'}[/bold] "
        f"{result.size}/{result.budget.limit} {result.budget.unit.value}{estimate}"
        + (" [red]truncated[/red]" if result.truncated else "")
        + (f" dropped: {', '.join(result.dropped)}" if result.dropped else "")
    )
    sys.stdout.write(result.content)
    if result.content:
        sys.stdout.write("\n")
    return EXIT_OK


def _cmd_refs(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    graph = engine.snapshot.graph
    depth = parsed.depth if parsed.depth is not None else engine.config.references.max_depth

    console.print(f"[bold]{parsed.name}[/bold]")
    console.print(f"  references: {', '.join(graph.resolve(parsed.name)) or '-'}")
    console.print(f"  referenced by: {', '.join(graph.referenced_by(parsed.name)) or '-'}")
    closure = graph.transitive_closure(parsed.name, depth)
    console.print(f"  closure (depth {depth}): {', '.join(closure)}")
    return EXIT_OK


def _cmd_manifest(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    index = engine.snapshot.index
    groups = load_groups(parsed.groups) if parsed.groups else discover_groups(index)
    manifest = PluginManifestBuilder().build(groups, index)

    if parsed.output:
        target = manifest.write(parsed.output)
        err_console.print(f"Wrote {len(manifest)} plugin(s) to {target}")
    else:
        sys.stdout.write(manifest.to_json())
    return EXIT_OK


async def _watch(engine: SkillEngine) -> None:
    from skillpack.watching import SkillTreeWatcher

    watch_config = engine.config.watch
    engine.on_reload(
        lambda s: console.print(f"Generation {s.generation}: {len(s.index)} skill(s)")
    )
    async with SkillTreeWatcher(
        engine,
        poll_interval=watch_config.poll_interval,
        ignore_patterns=watch_config.ignore_patterns,
    ):
        while True:
            await asyncio.sleep(3600)


def _cmd_watch(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    snapshot = engine.snapshot
    console.print(
        f"Watching {', '.join(str(r) for r in engine.roots)} "
        f"({len(snapshot.index)} skill(s)). Press Ctrl+C to stop."
    )
    try:
        asyncio.run(_watch(engine))
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def _cmd_config(engine: SkillEngine, parsed: argparse.Namespace) -> int:
    for source in config_sources(parsed.project):
        err_console.print(f"[dim]loaded {source}[/dim]")
    data = engine.config.to_dict()
    data["index"]["roots"] = [str(r) for r in engine.roots]
    sys.stdout.write(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
    return EXIT_OK


_COMMANDS = {
    "scan": _cmd_scan,
    "match": _cmd_match,
    "activate": _cmd_activate,
    "refs": _cmd_refs,
    "manifest": _cmd_manifest,
    "watch": _cmd_watch,
    "config": _cmd_config,
}


def run_cli(args: Sequence[str], config: Config | None = None) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return EXIT_ERROR

    if parsed.project is None:
        parsed.project = find_project_root(Path.cwd())
    if config is None:
        config = load_config(project_root=str(parsed.project) if parsed.project else None)
    if parsed.verbose:
        # Each -v steps up from the default info level
        config.logging.verbose = min(4, 2 + parsed.verbose)
    setup_logging(config.logging)

    roots = parsed.roots or None
    if roots is None and not config.index.roots:
        roots = [Path.cwd()]

    engine = SkillEngine(config, root_paths=roots)
    try:
        return _COMMANDS[parsed.command](engine, parsed)
    except SkillPackError as e:
        err_console.print(f"[red]error:[/red] {e}")
        return EXIT_ERROR
