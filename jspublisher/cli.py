"""CLI entrypoints for jspublish commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import CONFIG_FILE_NAME, ConfigError, load_config
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jspublish",
        description="Publish compiled JS modules into debug and release web artifacts.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    publish_parser = subparsers.add_parser(
        "publish",
        help="Stage the debug tree and build the optimized release tree.",
    )
    _add_verbose_option(publish_parser, suppress_default=True)
    publish_parser.add_argument(
        "target",
        help="Path to the application's main source file; its stem is the project name.",
    )
    publish_parser.add_argument(
        "--config",
        default=None,
        help=f"Path to {CONFIG_FILE_NAME} (defaults to the target's directory).",
    )
    publish_parser.add_argument(
        "--output",
        default=None,
        help="Parent directory for the bin/ output folder.",
    )
    publish_parser.add_argument(
        "--closure-lib",
        default=None,
        help="Directory containing closure/goog instead of the bundled loader library.",
    )
    publish_parser.add_argument(
        "--external-js-lib",
        action="append",
        default=None,
        help="Externs file passed to the optimizer (repeatable).",
    )
    publish_parser.add_argument(
        "--strict-publish",
        action="store_true",
        default=None,
        help="Treat optimizer type and visibility warnings as errors.",
    )
    publish_parser.add_argument(
        "--redirect-output",
        default=None,
        help="Send all output here and leave release-tree cleanup to the caller.",
    )
    publish_parser.add_argument(
        "--optimizer",
        default=None,
        help="Optimizer command line, e.g. 'java -jar closure-compiler.jar'.",
    )
    publish_parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing publish runs.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for jspublish commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if getattr(args, "log_file", None) else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "publish":
        target = Path(args.target).expanduser()
        config_path = Path(args.config) if args.config else target.resolve().parent
        try:
            config = load_config(config_path).with_overrides(
                output=args.output,
                closure_lib=args.closure_lib,
                external_js_lib=args.external_js_lib,
                strict_publish=args.strict_publish,
                redirect_output=args.redirect_output,
                optimizer_command=args.optimizer,
            )
            result = Orchestrator().run(target, config)
        except ConfigError as exc:
            parser.exit(2, f"jspublish: configuration error: {exc}\n")
        except Exception as exc:  # pragma: no cover - defensive guard
            parser.exit(1, f"jspublish publish failed: {exc}\nRun with --verbose for more details.\n")
        if not result.success:
            stage = result.failed_stage.value if result.failed_stage else "startup"
            parser.exit(
                1,
                f"jspublish publish failed during {stage}: {result.diagnostic}\n"
                "Run with --verbose for more details.\n",
            )
        print(f"Published {target.stem}: debug={_relativize(result.debug_root)} release={_relativize(result.release_root)}")
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
