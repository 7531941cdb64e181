"""Command-line interface for cd-index."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from cdindex import __version__
from cdindex.config import LOC_MODES, ScanConfig, load_config, normalize_extension
from cdindex.errors import ConfigError, NoProjectError, OutputError
from cdindex.pipeline import run

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_NO_PROJECT = 3
EXIT_WRITE = 4


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cd-index",
        description="Deterministic architectural index of the file tree, entrypoints, "
        "commands, env keys and static call graphs as JSON.",
    )
    parser.add_argument("project_dir", type=Path, help="Path to the repository to index")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output JSON file path (default: stdout)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file (default: cd-index.toml, .cd-index.toml, "
        "[tool.cd-index] in pyproject.toml, or $CD_INDEX_CONFIG)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    tree = parser.add_argument_group("file tree")
    tree.add_argument("--no-tree", action="store_true", help="Skip the file tree section")
    tree.add_argument(
        "--ext",
        nargs="+",
        default=None,
        metavar="EXT",
        help="File extensions to include (replaces the configured list)",
    )
    tree.add_argument(
        "--ignore",
        nargs="+",
        default=None,
        metavar="PAT",
        help="Additional ignore patterns",
    )
    tree.add_argument(
        "--no-gitignore",
        action="store_true",
        help="Do not apply the repository .gitignore",
    )
    tree.add_argument("--loc-mode", choices=LOC_MODES, default=None)

    sections = parser.add_argument_group("sections")
    sections.add_argument(
        "--scan-entrypoints",
        action="store_true",
        dest="entrypoints",
        default=None,
        help="Include the entrypoints section",
    )
    sections.add_argument(
        "--no-entrypoints",
        action="store_false",
        dest="entrypoints",
        help="Skip the entrypoints section",
    )
    sections.add_argument(
        "--scan-commands",
        action="store_true",
        dest="commands",
        default=None,
        help="Include the commands section",
    )
    sections.add_argument(
        "--no-commands",
        action="store_false",
        dest="commands",
        help="Skip the commands section",
    )
    sections.add_argument(
        "--commands-allow-regex",
        default=None,
        metavar="REGEX",
        help="Only keep commands whose name matches REGEX",
    )
    sections.add_argument(
        "--scan-configs",
        action="store_true",
        help="Include the configs section",
    )
    sections.add_argument(
        "--env-prefix",
        action="append",
        default=[],
        metavar="P",
        help="Treat string literals starting with P as env keys (repeatable)",
    )

    callgraph = parser.add_argument_group("call graphs")
    callgraph.add_argument(
        "--callgraph-method",
        action="append",
        default=[],
        metavar="SPEC",
        help="Root method, e.g. pkg.mod.Class.method or pkg.Class.method/2 (repeatable)",
    )
    callgraph.add_argument("--max-call-depth", type=int, default=None, metavar="N")
    callgraph.add_argument("--max-call-nodes", type=int, default=None, metavar="N")
    callgraph.add_argument(
        "--include-external",
        action="store_true",
        default=None,
        help="Record calls into libraries and unresolved calls as leaves",
    )

    parser.add_argument(
        "--compact", action="store_true", help="Write JSON on a single line"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )
    return parser


def apply_overrides(config: ScanConfig, args: argparse.Namespace) -> ScanConfig:
    """Layer command-line flags over *config*."""
    if args.no_tree:
        config.disable("tree")
    if args.ext:
        config.tree.extensions = [normalize_extension(e) for e in args.ext]
    if args.ignore:
        config.tree.ignore.extend(args.ignore)
    if args.no_gitignore:
        config.tree.use_gitignore = False
    if args.loc_mode:
        config.tree.loc_mode = args.loc_mode

    if args.entrypoints is True:
        config.enable("entrypoints")
    elif args.entrypoints is False:
        config.disable("entrypoints")
    if args.commands is True:
        config.enable("commands")
    elif args.commands is False:
        config.disable("commands")
    if args.commands_allow_regex is not None:
        config.commands.allow_regex = args.commands_allow_regex or None
    if args.scan_configs:
        config.enable("configs")
    for prefix in args.env_prefix:
        if prefix not in config.env_prefixes:
            config.env_prefixes.append(prefix)

    if args.callgraph_method:
        config.enable("callgraphs")
        config.add_roots(args.callgraph_method)
    if args.max_call_depth is not None:
        config.callgraph.max_depth = args.max_call_depth
    if args.max_call_nodes is not None:
        config.callgraph.max_nodes = args.max_call_nodes
    if args.include_external:
        config.callgraph.include_external = True

    config.validate()
    return config


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if args.verbose:
        logging.getLogger("cdindex").setLevel(logging.DEBUG)

    project_dir: Path = args.project_dir
    if not project_dir.is_dir():
        logger.error("Not a directory: %s", project_dir)
        return EXIT_CONFIG

    try:
        config = apply_overrides(load_config(project_dir, args.config), args)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_CONFIG

    try:
        run(project_dir, config, output=args.output, compact=args.compact)
    except NoProjectError as e:
        logger.error("%s", e)
        return EXIT_NO_PROJECT
    except OutputError as e:
        logger.error("%s", e)
        return EXIT_WRITE
    return EXIT_OK
