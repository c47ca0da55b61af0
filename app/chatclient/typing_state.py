"""
Typing indicators.

A typing signal carries no end event; the indicator for a sender stays on
for a short window after the most recent signal and then lapses.
"""

from __future__ import annotations

import time

from .constants import CLIENT_CONFIG


class TypingIndicator:
    """
    Per-sender typing flags with expiry.

    Usage:
        typing = TypingIndicator()
        typing.signal(partner_id)      # on each "typing" push
        typing.is_typing(partner_id)   # True for the next 2 seconds
        typing.clear(partner_id)       # their message arrived
    """

    def __init__(self, window: float = CLIENT_CONFIG.TYPING_WINDOW_SECONDS):
        self.window = window
        self._last_signal: dict[str, float] = {}

    def signal(self, sender_id) -> None:
        self._last_signal[str(sender_id)] = time.monotonic()

    def is_typing(self, sender_id) -> bool:
        last = self._last_signal.get(str(sender_id))
        if last is None:
            return False
        if time.monotonic() - last >= self.window:
            del self._last_signal[str(sender_id)]
            return False
        return True

    def clear(self, sender_id) -> None:
        self._last_signal.pop(str(sender_id), None)

    def typing_users(self) -> list[str]:
        return [sender for sender in list(self._last_signal) if self.is_typing(sender)]
