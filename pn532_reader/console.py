"""
Human-readable operator output
"""

import sys

from .nfc_tag import FirmwareVersion, TagReport


# Color codes for terminal output
class Colors:
    RESET = '\033[0m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'
    BOLD = '\033[1m'


def colorize(text, color):
    """Add color to text"""
    return f"{color}{text}{Colors.RESET}"


def print_banner(device_name, out=None):
    out = out or sys.stdout
    print(f"Initializing PN532 reader on {device_name}...", file=out)


def print_firmware(version: FirmwareVersion, out=None):
    out = out or sys.stdout
    print(f"PN532 Firmware Version: {version}", file=out)
    print("PN532 initialized successfully. Waiting for NFC tags...", file=out)


def print_tag_report(report: TagReport, out=None):
    out = out or sys.stdout
    print(colorize("\n--- Tag Found! ---", Colors.GREEN), file=out)
    print(colorize(f"UID: {report.uid_hex}", Colors.GREEN), file=out)
    if report.tag is not None and report.tag.sel_res is not None:
        print(colorize(f"ATQA: {report.tag.sens_res.hex().upper()}  SAK: 0x{report.tag.sel_res:02X}",
                       Colors.CYAN), file=out)
    print(colorize("------------------", Colors.GREEN), file=out)


def print_error(*lines, out=None):
    out = out or sys.stderr
    for line in lines:
        print(colorize(line, Colors.RED), file=out)


def print_finished(out=None):
    out = out or sys.stdout
    print("Application finished.", file=out)
