"""Command-line interface for Azure Quick Review scans."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..adapters.credential import CredentialError
from ..adapters.graph_client import GraphQueryError
from ..adapters.http_client import HTTPError, TransportError
from ..context import ContextCancelledError
from ..models.filters import FilterError
from ..models.scan_params import ScanParams
from ..models.stage_config import ALL_STAGES, StageConfigError, StageOptionError
from ..pipeline.executor import ScanValidationError, StageError
from ..plugins.builtin import register_builtin_plugins
from ..plugins.registry import PluginError, get_registry
from ..plugins.yaml_loader import register_yaml_plugins
from ..rules.catalog import RecommendationCatalogError
from ..scanners.registry import list_scanner_info
from ..service import ScanService
from .reporting import JsonReportRenderer

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

FATAL_ERRORS = (
    ContextCancelledError,
    CredentialError,
    FilterError,
    GraphQueryError,
    HTTPError,
    PluginError,
    RecommendationCatalogError,
    ScanValidationError,
    StageConfigError,
    StageError,
    StageOptionError,
    TransportError,
)


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s",
        "--subscription-id",
        dest="subscriptions",
        action="append",
        default=None,
        help="Subscription to scan; repeat for several subscriptions.",
    )
    parser.add_argument(
        "-g",
        "--resource-group",
        dest="resource_groups",
        action="append",
        default=None,
        help="Resource group to scan; requires exactly one subscription.",
    )
    parser.add_argument(
        "-m",
        "--management-group-id",
        dest="management_groups",
        action="append",
        default=None,
        help="Management group whose subscriptions (and descendants) are scanned.",
    )
    parser.add_argument(
        "-e",
        "--filters",
        type=Path,
        default=None,
        help="YAML file with include/exclude filters.",
    )
    parser.add_argument(
        "--no-mask",
        dest="mask",
        action="store_false",
        default=True,
        help="Show full subscription ids in the report.",
    )
    parser.add_argument(
        "--plugin-dir",
        dest="plugin_dirs",
        action="append",
        type=Path,
        default=None,
        help="Directory searched for YAML plugins; defaults to ~/.azqr/plugins and ./plugins.",
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output-name",
        default="",
        help="Base name of the report file; a timestamped name is used when omitted.",
    )
    parser.add_argument("--json", action="store_true", help="Write the report as JSON.")
    parser.add_argument("--stdout", action="store_true", help="Print the JSON report to stdout.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging and stage metrics.")


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(prog="azqr", description="Azure Quick Review")
    subparsers = parser.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser("scan", help="Scan Azure resources against best-practice recommendations.")
    _add_scope_arguments(scan_parser)
    _add_output_arguments(scan_parser)
    scan_parser.add_argument(
        "--service",
        dest="services",
        action="append",
        default=None,
        help="Scanner key to run (see `azqr types`); all scanners run when omitted.",
    )
    scan_parser.add_argument(
        "--stages",
        action="append",
        default=None,
        help=(
            "Comma-separated stages to enable; prefix a stage with '-' to disable it. "
            f"Known stages: {', '.join(ALL_STAGES)}."
        ),
    )
    scan_parser.add_argument(
        "--stage-param",
        dest="stage_params",
        action="append",
        default=None,
        metavar="STAGE.KEY=VALUE",
        help="Stage option, for example cost.previousMonth=true.",
    )
    scan_parser.add_argument(
        "--plugin",
        dest="plugins",
        action="append",
        default=None,
        help="Internal plugin to run after the scan.",
    )
    scan_parser.add_argument(
        "--no-azqr",
        dest="use_azqr_recommendations",
        action="store_false",
        default=True,
        help="Skip the in-process service scanners.",
    )
    scan_parser.add_argument("--cpu-profile", default="", help="Write a cProfile dump to this path.")
    scan_parser.add_argument("--mem-profile", default="", help="Write a tracemalloc snapshot to this path.")
    scan_parser.add_argument("--trace-profile", default="", help=argparse.SUPPRESS)

    plugins_parser = subparsers.add_parser("plugins", help="List or run plugins.")
    plugin_commands = plugins_parser.add_subparsers(dest="plugin_command")
    list_parser = plugin_commands.add_parser("list", help="List registered plugins.")
    list_parser.add_argument("--plugin-dir", dest="plugin_dirs", action="append", type=Path, default=None)
    run_parser = plugin_commands.add_parser("run", help="Run internal plugins without the full scan.")
    run_parser.add_argument("names", nargs="+", help="Internal plugins to run.")
    _add_scope_arguments(run_parser)
    _add_output_arguments(run_parser)

    subparsers.add_parser("types", help="List scanner keys and the resource types they cover.")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)


def create_service(args: argparse.Namespace) -> ScanService:
    renderer = JsonReportRenderer(to_file=args.json, to_stdout=args.stdout)
    return ScanService(renderers=[renderer], plugin_dirs=args.plugin_dirs)


def _fail(exc: BaseException) -> int:
    print(f"Error: {exc}", file=sys.stderr)
    return 2


def _handle_scan(args: argparse.Namespace) -> int:
    try:
        params = ScanParams.with_defaults(
            subscriptions=args.subscriptions,
            resource_groups=args.resource_groups,
            management_groups=args.management_groups,
            services=args.services,
            stages=args.stages,
            stage_params=args.stage_params,
            filter_file=args.filters,
            mask=args.mask,
        )
        params.output_name = args.output_name
        params.json = args.json
        params.stdout = args.stdout
        params.debug = args.debug
        params.use_azqr_recommendations = args.use_azqr_recommendations
        params.enabled_internal_plugins = {name: True for name in args.plugins or []}
        params.cpu_profile = args.cpu_profile
        params.mem_profile = args.mem_profile
        params.trace_profile = args.trace_profile

        create_service(args).scan(params)
    except FATAL_ERRORS as exc:
        return _fail(exc)
    return 0


def _handle_plugin_run(args: argparse.Namespace) -> int:
    try:
        params = ScanParams.for_plugins(
            subscriptions=args.subscriptions,
            resource_groups=args.resource_groups,
            management_groups=args.management_groups,
            plugins=args.names,
            filter_file=args.filters,
            mask=args.mask,
        )
        params.output_name = args.output_name
        params.json = args.json
        params.stdout = args.stdout
        params.debug = args.debug

        create_service(args).scan_plugins(params)
    except FATAL_ERRORS as exc:
        return _fail(exc)
    return 0


def _handle_plugin_list(args: argparse.Namespace) -> int:
    register_builtin_plugins()
    register_yaml_plugins(args.plugin_dirs)
    plugins = get_registry().list()
    if not plugins:
        print("No plugins registered.")
        return 0
    for plugin in plugins:
        metadata = plugin.metadata
        print(f"{metadata.name}\t{metadata.type.value}\t{metadata.version}\t{metadata.description}")
    return 0


def _handle_types() -> int:
    for info in list_scanner_info():
        print(f"{info.key}\t{', '.join(info.resource_types)}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the console script."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "scan":
        configure_logging(args.debug)
        return _handle_scan(args)
    if args.command == "plugins":
        if args.plugin_command == "run":
            configure_logging(args.debug)
            return _handle_plugin_run(args)
        if args.plugin_command == "list":
            return _handle_plugin_list(args)
    if args.command == "types":
        return _handle_types()

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
