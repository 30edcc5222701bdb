#!/usr/bin/env python3
"""
Command line entry point: poll a PN532 and print every newly detected tag
"""

import argparse
import logging
import sys
import traceback

from .config import config as config_map, get_config
from .console import (
    print_banner, print_error, print_finished, print_firmware, print_tag_report
)
from .exceptions import BusPermissionError, CommunicationError, Pn532Error
from .logging_setup import configure_logging
from .poller import TagPoller
from .tag_source import create_tag_source

logger = logging.getLogger(__name__)

PERMISSION_HINT = "Try running the application with 'sudo' or ensure the user is in the 'spi' and 'gpio' groups."

# argparse destination -> config key
OVERRIDES = {
    'transport': 'TRANSPORT',
    'spi_bus': 'SPI_BUS',
    'spi_cs': 'SPI_CHIP_SELECT',
    'spi_clock': 'SPI_CLOCK_HZ',
    'cs_pin': 'ADAFRUIT_CS_PIN',
    'serial_port': 'SERIAL_PORT',
    'baudrate': 'SERIAL_BAUDRATE',
    'timeout_ms': 'SCAN_TIMEOUT_MS',
    'interval': 'POLL_INTERVAL',
    'debounce': 'DEBOUNCE_SECONDS',
    'log_file': 'LOG_FILE',
    'host': 'HOST',
    'port': 'PORT',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='PN532 NFC tag reader')
    parser.add_argument('--config', choices=[name for name in config_map if name != 'default'],
                        help='Configuration environment (default: $PN532_ENV)')
    parser.add_argument('--transport', choices=['spi', 'uart', 'adafruit'], help='How to reach the PN532')
    parser.add_argument('--spi-bus', type=int, help='SPI bus index')
    parser.add_argument('--spi-cs', type=int, help='SPI chip select line')
    parser.add_argument('--spi-clock', type=int, help='SPI clock frequency in Hz')
    parser.add_argument('--cs-pin', help='Board chip select pin name for the adafruit transport')
    parser.add_argument('--serial-port', help='Serial device for the uart transport')
    parser.add_argument('--baudrate', type=int, help='Serial baud rate for the uart transport')
    parser.add_argument('--timeout-ms', type=int, help='Scan timeout in milliseconds')
    parser.add_argument('--interval', type=float, help='Pause between scans in seconds')
    parser.add_argument('--debounce', type=float, help='Seconds before the same tag is reported again')
    parser.add_argument('--log-level', help='Logging level (overrides LOG_LEVEL)')
    parser.add_argument('--log-file', help='Also write logs to this file')
    parser.add_argument('--web', action='store_true', help='Serve the live web monitor')
    parser.add_argument('--host', help='Web monitor host address')
    parser.add_argument('--port', type=int, help='Web monitor port number')
    return parser


def resolve_config(args: argparse.Namespace):
    """Return a config class with the command line overrides applied"""
    base = get_config(args.config)
    overrides = {
        key: getattr(args, dest) for dest, key in OVERRIDES.items()
        if getattr(args, dest) is not None
    }
    if not overrides:
        return base
    return type('CommandLineConfig', (base,), overrides)


def run_reader(settings) -> int:
    try:
        source = create_tag_source(settings)
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        return 2
    poller = TagPoller.from_config(source, settings)
    poller.add_listener(print_tag_report)

    print_banner(source.device_name)
    try:
        print_firmware(poller.start())
        poller.poll()
    except KeyboardInterrupt:
        poller.stop()
        source.close()
        print("\n👋 Stopped by user")
    except BusPermissionError as e:
        logger.debug(f"Permission error: {e}")
        print_error("Permission denied to access the PN532 bus device.", PERMISSION_HINT)
        return 1
    except CommunicationError as e:
        print_error(str(e))
        return 1
    except Exception as e:
        print_error(f"An error occurred: {e}", traceback.format_exc())
        return 1
    finally:
        print_finished()
    return 0


def run_web(settings) -> int:
    from . import app as web

    web.app.config.from_object(settings)
    web.service = web.ReaderService(settings)

    print(f"🌐 Web monitor on http://{settings.HOST}:{settings.PORT}")
    try:
        print_firmware(web.service.start())
    except BusPermissionError:
        print_error("Permission denied to access the PN532 bus device.", PERMISSION_HINT)
    except Pn532Error as e:
        print_error(str(e), "Fix the problem and POST /api/start to retry.")
    except Exception as e:
        logger.exception(f"Reader start failed: {e}")
        print_error(f"An error occurred: {e}", "Fix the problem and POST /api/start to retry.")

    try:
        web.socketio.run(web.app, host=settings.HOST, port=settings.PORT,
                         debug=settings.DEBUG, use_reloader=False, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")
    finally:
        web.service.stop()
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_config(args)
    configure_logging(settings, args.log_level)

    if args.web:
        return run_web(settings)
    return run_reader(settings)


if __name__ == '__main__':
    sys.exit(main())
