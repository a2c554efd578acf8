import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from library_console.config import settings

# scheduler(delay, callback) -> handle with .cancel(), same shape as loop.call_later
Scheduler = Callable[[float, Callable[[], None]], Any]


class MessageKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Message:
    kind: MessageKind
    text: str

    @property
    def is_error(self) -> bool:
        return self.kind is MessageKind.ERROR


def _loop_scheduler(delay: float, callback: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, callback)


class DismissTimer:
    """Single pending auto-dismiss per screen.

    Restarting cancels the previous handle, so only the timer of the message
    currently on screen can clear it.
    """

    def __init__(self, dismiss_after: Optional[float] = None, scheduler: Optional[Scheduler] = None) -> None:
        self.dismiss_after = settings.message_timeout if dismiss_after is None else dismiss_after
        self._scheduler = scheduler or _loop_scheduler
        self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def restart(self, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler(self.dismiss_after, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
