import logging
from dataclasses import replace
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from library_console.screens.messages import DismissTimer, Message, MessageKind, Scheduler

logger = logging.getLogger(__name__)

Confirm = Callable[[str], Awaitable[bool]]
S = TypeVar("S")


async def always_confirm(prompt: str) -> bool:
    return True


def with_message(state: S, message: Message) -> S:
    return replace(state, message=message)


def without_message(state: S) -> S:
    return replace(state, message=None)


class ScreenController(Generic[S]):
    """Owns one screen's state record and its status message timer."""

    def __init__(self, initial: S, confirm: Optional[Confirm] = None,
                 scheduler: Optional[Scheduler] = None, dismiss_after: Optional[float] = None) -> None:
        self.state: S = initial
        self._confirm = confirm or always_confirm
        self._timer = DismissTimer(dismiss_after=dismiss_after, scheduler=scheduler)

    @property
    def message(self) -> Optional[Message]:
        return self.state.message

    def show_message(self, kind: MessageKind, text: str) -> None:
        self.state = with_message(self.state, Message(kind, text))
        self._timer.restart(self.dismiss_message)

    def dismiss_message(self) -> None:
        self._timer.cancel()
        self.state = without_message(self.state)

    def _success(self, text: str) -> None:
        self.show_message(MessageKind.SUCCESS, text)

    def _error(self, text: str) -> None:
        self.show_message(MessageKind.ERROR, text)

    async def _ask(self, prompt: str) -> bool:
        confirmed = await self._confirm(prompt)
        if not confirmed:
            logger.info("Action cancelled by user: %s", prompt)
        return confirmed
