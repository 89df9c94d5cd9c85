"""
Command-line interface for dexpi-bridge.

Subcommands:
- export:   graph JSON -> DEXPI 2.0 XML
- import:   DEXPI 2.0 / Proteus 1.x XML -> graph JSON
- validate: structural report for a DEXPI document
"""

import os
import sys
import json
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from dexpi_bridge.converter.bridge import DexpiExporter, DexpiImporter
from dexpi_bridge.converter.errors import FatalParseError
from dexpi_bridge.converter.export.graph_to_document import ConvertOptions
from dexpi_bridge.converter.models.graph import DiagramMode, GraphSnapshot
from dexpi_bridge.services.config_service import AppConfig, ConfigService
from dexpi_bridge.services.logging_service import LoggingService
from dexpi_bridge.utils.env_loader import load_env_automatically
from dexpi_bridge.utils.graph_theory import ProcessGraphAnalyzer, apply_layered_layout
from dexpi_bridge.utils.json_encoder import json_dumps_safe

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_FATAL_PARSE = 2

CONFIG_ENV_VAR = "DEXPI_BRIDGE_CONFIG"
LOG_LEVEL_ENV_VAR = "DEXPI_BRIDGE_LOG_LEVEL"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexpi-bridge",
        description="dexpi-bridge - Convert process diagrams to and from DEXPI XML"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to configuration file (default: ${CONFIG_ENV_VAR} or config.yaml)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write the log to this file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Convert graph JSON to DEXPI 2.0 XML")
    export_parser.add_argument("input", type=str, help="Graph JSON file ({\"nodes\": [...], \"edges\": [...]})")
    export_parser.add_argument("--output", "-o", type=str, default=None, help="Output XML file (default: stdout)")
    export_parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in DiagramMode],
        default=None,
        help="Diagram mode (default: 'mode' key of the input file, else bfd)"
    )
    export_parser.add_argument("--name", type=str, default=None, help="Process model name")
    export_parser.add_argument("--description", type=str, default=None, help="Process model description")

    import_parser = subparsers.add_parser("import", help="Convert DEXPI XML to graph JSON")
    import_parser.add_argument("input", type=str, help="DEXPI 2.0 or Proteus 1.x XML file")
    import_parser.add_argument("--output", "-o", type=str, default=None, help="Output JSON file (default: stdout)")
    import_parser.add_argument(
        "--relayout",
        action="store_true",
        help="Replace imported positions with a layered left-to-right layout"
    )

    validate_parser = subparsers.add_parser("validate", help="Check a DEXPI document")
    validate_parser.add_argument("input", type=str, help="DEXPI 2.0 or Proteus 1.x XML file")

    return parser


def load_config(config_arg: Optional[str]) -> AppConfig:
    """Config from --config, else $DEXPI_BRIDGE_CONFIG, else ./config.yaml."""
    config_path = Path(config_arg or os.getenv(CONFIG_ENV_VAR) or "config.yaml")
    return ConfigService(config_path=config_path).get_config()


def _write_output(text: str, output: Optional[str]) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    logger.info(f"Output written to {output_path}")


def run_export(args: argparse.Namespace, config: AppConfig) -> int:
    with Path(args.input).open("r", encoding="utf-8") as f:
        data = json.load(f)

    snapshot = GraphSnapshot(nodes=data.get("nodes", []), edges=data.get("edges", []))
    mode = DiagramMode(args.mode or data.get("mode") or DiagramMode.BFD.value)

    result = DexpiExporter(config).export(
        snapshot,
        mode,
        ConvertOptions(name=args.name, description=args.description),
    )
    _write_output(result.xml, args.output)

    for warning in result.warnings:
        logger.info(f"Export warning: {warning}")
    logger.info(f"Exported {len(snapshot.nodes)} nodes and {len(snapshot.edges)} edges ({len(result.warnings)} warnings)")
    return EXIT_OK


def run_import(args: argparse.Namespace, config: AppConfig) -> int:
    result = DexpiImporter(config).import_file(Path(args.input))

    if args.relayout:
        analyzer = ProcessGraphAnalyzer.from_snapshot(result.to_snapshot())
        apply_layered_layout(result.nodes, analyzer, config.layout)

    _write_output(json_dumps_safe(result, indent=2), args.output)
    logger.info(f"Imported {len(result.nodes)} nodes and {len(result.edges)} edges ({len(result.warnings)} warnings)")
    return EXIT_OK


def run_validate(args: argparse.Namespace, config: AppConfig) -> int:
    xml = Path(args.input).read_bytes()
    result = DexpiImporter(config).validate(xml)
    _write_output(json_dumps_safe(result, indent=2), None)
    return EXIT_OK if result.valid else EXIT_FAILURE


COMMANDS = {
    "export": run_export,
    "import": run_import,
    "validate": run_validate,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    load_env_automatically()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    if args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = LoggingService.parse_level(os.getenv(LOG_LEVEL_ENV_VAR), logging.INFO)
    LoggingService.setup_logging(
        log_level=log_level,
        log_file=Path(args.log_file) if args.log_file else None
    )

    config = load_config(args.config)

    try:
        return COMMANDS[args.command](args, config)
    except FatalParseError as e:
        logger.debug(f"Fatal parse error: {e}", exc_info=True)
        print(str(e), file=sys.stderr)
        return EXIT_FATAL_PARSE
    except (OSError, ValueError) as e:
        logger.error(f"Error during {args.command}: {e}", exc_info=log_level == logging.DEBUG)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
