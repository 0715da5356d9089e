"""Command line entrypoint.

    swift-exporter [CONFIG] [--listen-address ADDR] [--log-level LEVEL] [--log-file PATH] [--once]

Environment overrides (flags win): SWIFT_EXPORTER_CONFIG,
SWIFT_EXPORTER_LISTEN_ADDRESS, SWIFT_EXPORTER_LOG_LEVEL,
SWIFT_EXPORTER_LOG_FILE, SWIFT_EXPORTER_JSON_LOGS.

Exit status: 0 on clean shutdown, 2 on configuration/startup errors.
"""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from swift_exporter.config.loader import load_config
from swift_exporter.metrics.server import MetricsHTTPServer, parse_listen_address
from swift_exporter.orchestrator.bootstrap import bootstrap
from swift_exporter.utils.env_flags import env_str, is_truthy_env
from swift_exporter.utils.exceptions import ConfigError, MetricRegistrationError
from swift_exporter.utils.logging_utils import setup_logging
from swift_exporter.version import get_version

logger = logging.getLogger(__name__)

EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swift-exporter",
        description="Prometheus exporter for OpenStack Swift storage nodes",
    )
    parser.add_argument("config", nargs="?", default=env_str("SWIFT_EXPORTER_CONFIG"),
                        help="YAML config file (default: built-in defaults, all modules enabled)")
    parser.add_argument("--listen-address", default=env_str("SWIFT_EXPORTER_LISTEN_ADDRESS"),
                        help="host:port to serve /metrics on (default from config, ':53167')")
    parser.add_argument("--log-level", default=env_str("SWIFT_EXPORTER_LOG_LEVEL", "INFO"),
                        help="DEBUG, INFO, WARNING or ERROR (default INFO)")
    parser.add_argument("--log-file", default=env_str("SWIFT_EXPORTER_LOG_FILE"),
                        help="also write logs to this file")
    parser.add_argument("--once", action="store_true",
                        help="run every collection task once, print the exposition and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _handler(signum, _frame):
        logger.info("Received signal %s; shutting down", signal.Signals(signum).name)
        stop_event.set()
    # signal.signal only works from the main thread
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handler)
        signal.signal(signal.SIGINT, _handler)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file, json_console=is_truthy_env("SWIFT_EXPORTER_JSON_LOGS"))
    logger.info("swift_exporter %s starting", get_version())

    try:
        cfg = load_config(args.config)
        if args.listen_address:
            cfg = cfg.with_overrides(listen_address=args.listen_address)
        host, port = parse_listen_address(cfg.listen_address)
        runtime = bootstrap(cfg)
    except (ConfigError, MetricRegistrationError, ValueError) as e:
        logger.error("Startup failed: %s", e)
        return EXIT_CONFIG

    if args.once:
        for task in runtime.scheduler.tasks:
            task.run_once()
        sys.stdout.write(runtime.registry.exposition().decode("utf-8"))
        return 0

    try:
        server = MetricsHTTPServer(runtime.registry, host, port).start()
    except OSError as e:
        logger.error("Cannot listen on %s:%s: %s", host, port, e)
        return EXIT_CONFIG

    stop_event = runtime.scheduler.stop_event
    _install_signal_handlers(stop_event)
    runtime.scheduler.start()
    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt -> graceful shutdown")
    finally:
        runtime.scheduler.stop()
        server.shutdown()
        logger.info("swift_exporter stopped")
    return 0


__all__ = ["main", "build_parser", "EXIT_CONFIG"]
