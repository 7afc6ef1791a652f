import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.errors import ErrorContext, ParseFailure, get_error_handler
from .core.mappings import create_default_registry
from .core.models import TargetMode
from .core.transform import create_transformer
from .setting import load_settings


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Per-node matcher logs only at DEBUG
    if log_level.upper() != "DEBUG":
        logging.getLogger("ktn_bridge.core.transform.patterns").setLevel(logging.INFO)


logger = logging.getLogger(__name__)


def _write_output(out_dir: Path, source_path: Path, code: str, source_map: Optional[str]) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / source_path.name
    if source_map is not None:
        map_path = target.with_name(target.name + ".map")
        map_path.write_text(source_map, encoding="utf-8")
        code = code.rstrip("\n") + f"\n//# sourceMappingURL={map_path.name}\n"
    target.write_text(code, encoding="utf-8")
    return target


def cmd_transform(args, settings) -> int:
    engine = create_transformer(settings=settings)
    mode = TargetMode.parse(args.mode) if args.mode else settings.transform.target_mode
    want_map = args.source_map or settings.transform.source_map
    error_handler = get_error_handler()
    exit_code = 0

    for name in args.files:
        path = Path(name)
        try:
            source_text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error_handler.handle_error(e, ErrorContext(filename=str(path)))
            exit_code = 1
            continue

        try:
            result = engine.transform(
                source_text, filename=str(path), target_mode=mode, want_source_map=want_map
            )
        except ParseFailure as e:
            logger.error(str(e))
            if e.snippet:
                logger.error("  %s", e.snippet)
            exit_code = 1
            continue

        if args.out_dir:
            target = _write_output(Path(args.out_dir), path, result.code, result.map)
            logger.info("Wrote %s", target)
        else:
            sys.stdout.write(result.code)

        if result.dependency_list:
            logger.info("%s depends on: %s", path, ", ".join(result.dependency_list))

    if args.report:
        engine.recorder.export_debug_info(args.report)

    stats = engine.recorder.get_statistics()
    logger.info(
        "Done: %d file(s), %d/%d event and %d/%d API rewrites succeeded",
        stats.total_transforms,
        stats.successful_event_mappings,
        stats.total_event_mappings,
        stats.successful_api_mappings,
        stats.total_api_mappings,
    )
    return exit_code


def cmd_mappings(args, settings) -> int:
    registry = create_default_registry()
    lines: List[str] = []
    if args.kind in ("events", "all"):
        lines.append("Event mappings:")
        for m in registry.event_mappings():
            selector = f" on {m.web_trigger.selector}" if m.web_trigger.selector else ""
            flag = " (deprecated)" if m.deprecated else ""
            lines.append(f"  {m.web_trigger.event_type}{selector} → {m.platform_event}{flag}")
    if args.kind in ("apis", "all"):
        if lines:
            lines.append("")
        lines.append("API mappings:")
        for m in registry.api_mappings():
            flag = " (deprecated)" if m.deprecated else ""
            lines.append(f"  {m.web_method} {m.path_prefix} → {m.platform_path} [{m.name}]{flag}")
    print("\n".join(lines))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for ktn-bridge."""
    parser = argparse.ArgumentParser(
        prog="ktn-bridge",
        description="ktn-bridge - rewrite web-standard JavaScript into kintone customizations",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a ktn_bridge.yaml config file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    transform_parser = subparsers.add_parser("transform", help="Transform source files")
    transform_parser.add_argument("files", nargs="+", help="JavaScript/TypeScript files")
    transform_parser.add_argument(
        "-o", "--out-dir",
        type=str,
        default=None,
        help="Output directory (default: print to stdout)"
    )
    transform_parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=[m.value for m in TargetMode],
        help="Build target (default from config)"
    )
    transform_parser.add_argument(
        "--source-map",
        action="store_true",
        help="Write a .map file next to each output"
    )
    transform_parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write a diagnostic report to this path"
    )

    mappings_parser = subparsers.add_parser("mappings", help="List registered mappings")
    mappings_parser.add_argument(
        "--kind",
        choices=["events", "apis", "all"],
        default="all",
        help="Which mappings to list"
    )

    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    setup_logging(args.log_level or settings.logging.level)

    if args.command == "transform":
        return cmd_transform(args, settings)
    return cmd_mappings(args, settings)


if __name__ == "__main__":
    sys.exit(main())
