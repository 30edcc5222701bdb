"""
Tag polling loop

    INITIALIZING --probe ok--> POLLING --stop()--> TERMINATED
         |                        |                    ^
         +------ interrupted -----+--------------------+
         |                        |
         +------ any fault -------+--> FATAL

The source is closed on every path out of the loop.

Each POLLING cycle is scan -> parse -> debounce -> (report). The cycle itself
never sleeps; run() sleeps poll_interval between cycles and checks the stop
token before every scan.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, List, Optional

from .debounce import DEFAULT_DEBOUNCE_WINDOW, DebounceState, should_report
from .exceptions import TransportFault
from .nfc_tag import FirmwareVersion, TagReport
from .tag_source import TagSource

logger = logging.getLogger(__name__)

DEFAULT_SCAN_TIMEOUT_MS = 200
DEFAULT_POLL_INTERVAL = 0.05  # seconds


class PollerState(Enum):
    INITIALIZING = "initializing"
    POLLING = "polling"
    TERMINATED = "terminated"
    FATAL = "fatal"


class TagPoller:
    """
    Polls a tag source and reports each newly arrived tag once per debounce
    window.

    The clock and sleep functions are injectable so the state machine can be
    driven with a synthetic clock.
    """

    def __init__(self, source: TagSource,
                 scan_timeout_ms: int = DEFAULT_SCAN_TIMEOUT_MS,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 debounce_window: float = DEFAULT_DEBOUNCE_WINDOW,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Optional[Callable[[float], object]] = None):
        """
        Args:
            source: Where tags come from
            scan_timeout_ms: How long one scan may wait for a target
            poll_interval: Pause between cycles in seconds
            debounce_window: Seconds before the same tag is reported again
            clock: Monotonic time source used for debouncing
            sleep: Pause function; defaults to waiting on the stop token so
                stop() cuts the pause short
        """
        self.source = source
        self.scan_timeout_ms = scan_timeout_ms
        self.poll_interval = poll_interval
        self.debounce_window = debounce_window
        self._clock = clock
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._listeners: List[Callable[[TagReport], None]] = []

        self.state = PollerState.INITIALIZING
        self.debounce = DebounceState()
        self.firmware_version: Optional[FirmwareVersion] = None
        self.report_count = 0

    @classmethod
    def from_config(cls, source: TagSource, config, **kwargs) -> 'TagPoller':
        return cls(
            source,
            scan_timeout_ms=config.SCAN_TIMEOUT_MS,
            poll_interval=config.POLL_INTERVAL,
            debounce_window=config.DEBOUNCE_SECONDS,
            **kwargs
        )

    def add_listener(self, callback: Callable[[TagReport], None]) -> None:
        """Register a function called with every TagReport"""
        self._listeners.append(callback)

    def stop(self) -> None:
        """Ask run() to finish after the current cycle"""
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _close_source(self) -> None:
        try:
            self.source.close()
        except TransportFault as e:
            logger.warning(f"Error closing {self.source.device_name}: {e}")

    def start(self) -> FirmwareVersion:
        """Open the source and run the firmware handshake"""
        self.state = PollerState.INITIALIZING
        logger.info(f"Initializing PN532 reader on {self.source.device_name}...")
        try:
            self.source.open()
            self.firmware_version = self.source.probe()
        except Exception:
            self.state = PollerState.FATAL
            self._close_source()
            raise
        except BaseException:
            self.state = PollerState.TERMINATED
            self._close_source()
            raise

        logger.info(f"✅ PN532 firmware version {self.firmware_version}")
        self.state = PollerState.POLLING
        return self.firmware_version

    def run_one_cycle(self) -> Optional[TagReport]:
        """
        Run one scan/parse/debounce step

        Returns:
            The TagReport when a new tag arrived, otherwise None
        """
        if self.state is not PollerState.POLLING:
            raise RuntimeError(f"Poller is not polling (state: {self.state.value})")

        try:
            tag = self.source.read_tag(self.scan_timeout_ms)
            if tag is None:
                return None

            now = self._clock()
            if not should_report(tag.uid, now, self.debounce, self.debounce_window):
                return None

            report = TagReport(uid=tag.uid, detected_at=now, tag=tag)
            self.report_count += 1
            logger.info(f"🏷️  Tag found: {report.uid_hex}")
            for listener in self._listeners:
                listener(report)
            return report
        except Exception:
            self.state = PollerState.FATAL
            raise

    def run(self) -> None:
        """Initialize, then poll until stop() is called or a fault occurs"""
        self.start()
        self.poll()

    def poll(self) -> None:
        """Poll an initialized source until stop() is called or a fault occurs"""
        try:
            while not self._stop_event.is_set():
                self.run_one_cycle()
                self._sleep(self.poll_interval)
        finally:
            if self.state is PollerState.POLLING:
                self.state = PollerState.TERMINATED
            self._close_source()
            logger.info(f"Polling finished ({self.state.value}, {self.report_count} tags reported)")
