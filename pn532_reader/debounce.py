"""
Debouncing of repeated tag detections
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_DEBOUNCE_WINDOW = 2.0  # seconds


@dataclass
class DebounceState:
    """Last reported tag and when it was reported"""
    last_identifier: Optional[bytes] = None
    last_reported_at: float = 0.0


def should_report(current: bytes, now: float, state: DebounceState,
                  window: float = DEFAULT_DEBOUNCE_WINDOW) -> bool:
    """
    Decide whether a detection is a new "tag arrived" event

    A detection is reported when it differs from the last reported tag, or
    when at least `window` seconds have passed since that report. On a
    report the state is updated to (current, now); otherwise it is left
    untouched.
    """
    if state.last_identifier is not None and state.last_identifier == current:
        if now - state.last_reported_at < window:
            return False

    state.last_identifier = bytes(current)
    state.last_reported_at = now
    return True
