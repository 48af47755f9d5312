#!/usr/bin/env python3

import argparse
import locale
import logging
import logging.handlers
import sys
import time
from dataclasses import dataclass
from typing import List, Optional

import requests
from prometheus_client import start_http_server

from config import config
from device_family import DeviceFamilyAdapter, get_family_adapter
from metrics_registry import log_metrics_summary
from olt_api import RetryingApiClient
from olt_errors import ApiCallFailed, OltError
from olt_session import Authenticator, SessionManager
from onu_collector import OnuMetricsCollector
from onu_commands import OnuCommandExecutor
from onu_detail import OnuDetailResolver
from onu_table import OnuTableReader
from system_service import SystemService
import report_formatter


def setup_logging():
    """Configure logging for the application."""
    log_level = config.log_level
    log_file = config.log_file
    log_max_bytes = config.log_max_bytes
    log_backup_count = config.log_backup_count

    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=log_max_bytes, backupCount=log_backup_count
    )
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler, console])


def setup_collation():
    """Use the environment's collation order for name sorting"""
    try:
        locale.setlocale(locale.LC_COLLATE, '')
    except locale.Error as e:
        logging.warning(f"Could not set collation locale, using default order: {e}")


@dataclass
class OltServices:
    adapter: DeviceFamilyAdapter
    client: RetryingApiClient
    reader: OnuTableReader
    resolver: OnuDetailResolver
    system: SystemService
    commands: OnuCommandExecutor


def build_services() -> OltServices:
    """Wire the OLT components from the global configuration"""
    password = config.get_olt_password()
    if not password:
        raise ValueError("OLT password not available")

    http = requests.Session()
    authenticator = Authenticator(http, config.olt_url, config.olt_user, password,
                                  timeout=config.api_timeout_seconds, verify=config.verify_tls)
    sessions = SessionManager(authenticator, ttl_seconds=config.token_ttl_seconds)
    client = RetryingApiClient(http, config.olt_url, sessions,
                               max_attempts=config.api_max_attempts,
                               backoff_seconds=config.api_retry_backoff_seconds,
                               timeout=config.api_timeout_seconds, verify=config.verify_tls)

    adapter = get_family_adapter(config.device_family)
    reader = OnuTableReader(client, adapter)
    resolver = OnuDetailResolver(reader, client, adapter)
    system = SystemService(client, config.device_family, reader)
    commands = OnuCommandExecutor(resolver, client, adapter, system)
    return OltServices(adapter, client, reader, resolver, system, commands)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query and manage ONUs on an HSGQ OLT")
    parser.add_argument('--debug', action='store_true', help="enable debug logging")
    sub = parser.add_subparsers(dest='command', required=True)

    onu = sub.add_parser('onu', help="show ONU details")
    onu.add_argument('query', help="serial number, MAC address or ONU name")

    reboot = sub.add_parser('reboot', help="reboot an ONU")
    reboot.add_argument('query')

    rename = sub.add_parser('rename', help="rename an ONU")
    rename.add_argument('query')
    rename.add_argument('new_name', nargs='+')

    showall = sub.add_parser('showall', help="list ONUs")
    showall.add_argument('port', nargs='?', type=int)

    pon = sub.add_parser('pon', help="PON port summary")
    pon.add_argument('port', nargs='?', type=int)

    sub.add_parser('olt', help="OLT system information")
    sub.add_parser('badsignal', help="ONUs with bad receive power")
    sub.add_parser('monitor', help="serve Prometheus metrics")
    return parser


def run_command(args: argparse.Namespace, services: OltServices) -> str:
    """Execute one command and return its text report"""
    if args.command == 'onu':
        record = services.resolver.resolve(args.query)
        if record is None:
            return (f"ONU '{args.query}' not found, use "
                    f"{services.adapter.identifier_label} or ONU name")
        return report_formatter.format_onu_detail(record, services.adapter.family)

    if args.command == 'reboot':
        return report_formatter.format_outcome(services.commands.reboot(args.query))

    if args.command == 'rename':
        outcome = services.commands.rename(args.query, ' '.join(args.new_name))
        return report_formatter.format_outcome(outcome)

    if args.command == 'showall':
        return report_formatter.format_onu_list(services.reader.list_onus(args.port))

    if args.command == 'pon':
        return report_formatter.format_pon_summary(services.system.pon_summary(args.port))

    if args.command == 'olt':
        return report_formatter.format_system_info(services.system.system_info())

    if args.command == 'badsignal':
        threshold = config.bad_signal_threshold_dbm
        return report_formatter.format_bad_signal(services.reader.list_bad_signal(threshold), threshold)

    raise ValueError(f"Unknown command: {args.command}")


def monitor(services: OltServices):
    """Serve ONU metrics and refresh them every collection interval"""
    if config.debug_logging:
        log_metrics_summary()

    # Start Prometheus HTTP server
    start_http_server(config.metrics_port, addr=config.metrics_host)
    logging.info(f"Prometheus metrics server started on {config.metrics_host}:{config.metrics_port}")

    collector = OnuMetricsCollector(services.reader, config.bad_signal_threshold_dbm)
    logging.info(f"Starting collection with interval: {config.collection_interval_seconds}s")

    while True:
        try:
            logging.info("Starting metrics collection cycle...")
            collector.collect_all_metrics()

            # Only log metrics summary in debug mode
            if config.debug_logging:
                log_metrics_summary()

            time.sleep(config.collection_interval_seconds)

        except Exception as e:
            logging.error(f"Error in main collection loop: {e}", exc_info=True)
            time.sleep(60)  # Wait longer on error


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        config.enable_debug_logging()

    setup_logging()
    setup_collation()
    config.log_configuration()
    if not config.validate():
        print("Invalid configuration, see log for details", file=sys.stderr)
        return 2

    services = build_services()

    if args.command == 'monitor':
        monitor(services)
        return 0

    try:
        print(run_command(args, services))
        return 0
    except ApiCallFailed as e:
        logging.error(f"Command {args.command} failed: {e}")
        print(report_formatter.format_unreachable(args.command, e))
        return 1
    except OltError as e:
        logging.error(f"Command {args.command} failed: {e}")
        print(f"ERROR: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
