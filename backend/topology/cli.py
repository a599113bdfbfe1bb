"""
Topology Builder CLI - thin entrypoint over the build pipeline.

Commands:
- build: assemble and validate a deployment graph from a JSON config
- rules: list the known compliance rules

Exit Codes:
- 0: Success
- 1: Validation error (any TopologyError)
- 4: System error (config or bootstrap payload unreadable)
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from topology.bootstrap import FileBootstrapSource, load_bootstrap_payload
from topology.compiler import compile_to_mermaid
from topology.compliance import RuleCategory, get_rule_registry
from topology.config import LOG_FORMAT, LOG_LEVEL
from topology.ir.errors import BootstrapError, TopologyError
from topology.pipeline.controller import BuildController, BuildResult
from topology.schemas import BuildConfig

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_SYSTEM = 4


class ConfigLoadError(Exception):
    """Raised when the build config cannot be read or parsed."""
    pass


def load_config(config_path: Path) -> BuildConfig:
    if not config_path.exists():
        raise ConfigLoadError(f"config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"invalid JSON in {config_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"cannot read config {config_path}: {e}") from e
    try:
        return BuildConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(f"invalid config {config_path}: {e}") from e


def format_summary(result: BuildResult) -> str:
    stats = result.graph.stats()
    lines = [
        f"Graph: {stats['nodes']} nodes, {stats['edges']} edges, {stats['listeners']} listeners",
    ]
    for kind in sorted(k for k in stats if k[0].isupper()):
        lines.append(f"  {kind}: {stats[kind]}")
    lines.append("Fronts:")
    for front in result.fronts.values():
        lines.append(f"  {front.id} ({front.variant.value}): {front.state.value}")
    lines.append("Outputs:")
    for name, value in result.output_values().items():
        lines.append(f"  {name} = {value}")
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"  {w}" for w in result.warnings)
    lines.append(result.validation.get_summary())
    return "\n".join(lines)


def cmd_build(args: argparse.Namespace) -> int:
    config_path = Path(args.config)
    try:
        config = load_config(config_path)
        bootstrap = load_bootstrap_payload(
            config, FileBootstrapSource(args.bootstrap_dir or config_path.parent)
        )
    except (ConfigLoadError, BootstrapError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SYSTEM

    try:
        result = BuildController().run(config, bootstrap)
    except TopologyError as e:
        print(f"{e.kind}: {e.message}", file=sys.stderr)
        return EXIT_VALIDATION

    if args.dry_run:
        print(format_summary(result))
        return EXIT_SUCCESS

    if args.format == "mermaid":
        rendered = compile_to_mermaid(result)
    else:
        rendered = json.dumps(result.to_plan(), indent=2)

    if args.output:
        Path(args.output).write_text(rendered + "\n")
        logger.info("wrote %s to %s", args.format, args.output)
    else:
        print(rendered)
    return EXIT_SUCCESS


def cmd_rules(args: argparse.Namespace) -> int:
    registry = get_rule_registry()
    if args.category:
        rules = registry.get_by_category(RuleCategory(args.category))
    else:
        rules = registry.list_all()
    for rule in rules:
        print(f"{rule.id:<22} {rule.category.value:<15} {rule.description}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topology",
        description="Assemble a validated deployment topology graph",
    )
    parser.add_argument("--log-level", default=LOG_LEVEL, help="logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build a topology from a JSON config")
    build.add_argument("--config", required=True, help="Path to the build config JSON")
    build.add_argument("--dry-run", action="store_true", help="Validate only and print a summary")
    build.add_argument("--format", choices=["plan", "mermaid"], default="plan")
    build.add_argument("--output", help="Write the result to this file instead of stdout")
    build.add_argument(
        "--bootstrap-dir",
        help="Directory bootstrap paths are resolved against (default: the config's directory)",
    )
    build.set_defaults(func=cmd_build)

    rules = subparsers.add_parser("rules", help="List known compliance rules")
    rules.add_argument(
        "--category",
        choices=[c.value for c in RuleCategory],
        help="Only list rules of this category",
    )
    rules.set_defaults(func=cmd_rules)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT, stream=sys.stderr)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
