"""Simulated e-mail notifications appended to a mailbox file."""
from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime
from pathlib import Path
from typing import Callable, Optional

SEPARATOR = "-----"


def format_message(address: str, subject: str, body: str, *, moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    lines = [
        f"To: {address}",
        f"Subject: {subject}",
        f"Date: {format_datetime(moment)}",
        "",
        body,
        SEPARATOR,
    ]
    return "\n".join(lines) + "\n"


class Notifier:
    """Append formatted messages to *sink* when an address is configured."""

    def __init__(
        self,
        address: Optional[str],
        sink: Path,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._address = address or None
        self._sink = Path(sink)
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._address is not None

    def send(self, subject: str, body: str) -> bool:
        if self._address is None:
            return False
        message = format_message(self._address, subject, body, moment=self._clock())
        self._sink.parent.mkdir(parents=True, exist_ok=True)
        with self._sink.open("a", encoding="utf-8") as handle:
            handle.write(message)
        return True


__all__ = ["Notifier", "SEPARATOR", "format_message"]
