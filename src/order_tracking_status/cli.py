# src/order_tracking_status/cli.py
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .api.errors import UpstreamUnavailable
from .config.env import EnvError, get_app_env
from .config.logging_config import ROOT_LOGGER_NAME, get_logger
from .io.paths import derive_output_paths


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains when configured).",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: LOG_LEVEL or INFO",
    )
    p.add_argument(
        "--strict-env",
        action="store_true",
        help="Require TPL_* credentials to be present; otherwise exit 2.",
    )
    p.add_argument(
        "--replay",
        type=Path,
        default=None,
        help="JSON file with recorded /get/orderdetail bodies; replaces the live TPL API.",
    )
    p.add_argument(
        "--orders",
        type=Path,
        default=None,
        help="JSON file with order records; replaces DATABASE_URL.",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="order-tracking-status",
        description="Resolve gift-redemption orders into the customer tracking timeline.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    lookup = sub.add_parser("lookup", help="Resolve one CPF or e-mail and print the JSON response.")
    lookup.add_argument("identifier", help="CPF (digits or masked) or e-mail.")
    lookup.add_argument("--indent", type=int, default=2, help="JSON indent. Default: 2")
    _add_common(lookup)

    report = sub.add_parser("report", help="Resolve every identifier in an .xlsx and write *_processed.xlsx.")
    report.add_argument("input", type=Path, help="Path to input .xlsx file.")
    _add_common(report)

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    _add_common(serve)
    return p


def _run_lookup(args, env_cfg, logger) -> int:
    from .services.factory import build_service

    service = build_service(
        env_cfg, replay_path=args.replay, orders_path=args.orders, logger=logger)
    try:
        result = service.resolve(args.identifier)
    except UpstreamUnavailable as e:
        logger.error("TPL unavailable: %s", e)
        return 3

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=args.indent))
    return 0


def _run_report(args, env_cfg, logger) -> int:
    from .pipelines.report_processor import ReportProcessor
    from .services.factory import build_service

    try:
        processed_path, _ = derive_output_paths(args.input)
    except FileNotFoundError:
        logger.error("Input missing: %s", args.input)
        return 2

    service = build_service(
        env_cfg, replay_path=args.replay, orders_path=args.orders, logger=logger)
    try:
        summary = ReportProcessor(logger, service=service).process(args.input, processed_path)
    except FileNotFoundError as e:
        logger.error("Input missing: %s", e)
        return 2
    except Exception as e:
        logger.exception("Failed to process workbook: %s", e)
        return 1

    logger.info("Results: %s", summary["results"])
    return 0


def _run_serve(args, env_cfg, logger) -> int:
    import uvicorn

    from .services.factory import build_service
    from .web.app import create_app, get_tracking_service

    service = build_service(
        env_cfg, replay_path=args.replay, orders_path=args.orders, logger=logger)
    app = create_app()
    app.dependency_overrides[get_tracking_service] = lambda: service
    logger.info("Serving on http://%s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_file = None
    if args.command == "report":
        try:
            _, log_file = derive_output_paths(args.input)
        except FileNotFoundError:
            print(f"error: input file not found: {args.input}", file=sys.stderr)
            return 2

    logger = get_logger(
        ROOT_LOGGER_NAME,
        level=args.log_level,
        console=not args.no_console,
        log_file=log_file,
    )
    logger.debug("Logger initialized (command=%s).", args.command)

    try:
        env_cfg = get_app_env(strict=args.strict_env)
    except RuntimeError as e:
        logger.error("Environment error: %s", e)
        return 2

    runners = {"lookup": _run_lookup, "report": _run_report, "serve": _run_serve}
    try:
        return runners[args.command](args, env_cfg, logger)
    except EnvError as e:
        logger.error("Environment error: %s", e)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
