"""
Typist simulator for the live typing engine.

Streams realistic keystroke events for a target snippet through an
asyncio.Queue. A SessionConsumer on the other end applies them to an
InputController, which is how end-to-end behaviour is exercised without a
browser.

Usage:
    queue = asyncio.Queue()
    controller = InputController(TargetText.from_snippet(code))
    await asyncio.gather(
        TypistSimulator(queue).simulate_typing(code),
        SessionConsumer(queue, controller).run(),
    )
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional

from .clock import Clock, SYSTEM_CLOCK
from .config import INDENT_CHARS
from .events import EventType, KeystrokeEvent
from .input_controller import InputController

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

TYPO_CHARS = "asdfghjklqwertyuiopzxcvbnm"


class TypistSimulator:
    """
    Simulates a person typing a snippet.

    Features:
    - Gaussian-distributed typing delays
    - Typo simulation with backspace correction
    - Enter for line breaks (the controller copies the indentation)
    - Tab for indentation at the very start of the snippet

    Args:
        queue: asyncio.Queue to push KeystrokeEvent objects
        mean_delay_ms: Average delay between keystrokes
        std_delay_ms: Standard deviation of delay
        typo_rate: Probability of typo per letter (0.0-1.0)
        clock: Clock used for event timestamps
        sleep: Coroutine taking seconds; swap it to drive a FakeClock
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        mean_delay_ms: float = 150.0,
        std_delay_ms: float = 50.0,
        typo_rate: float = 0.02,
        clock: Clock = SYSTEM_CLOCK,
        sleep: Optional[Sleep] = None,
        rng: Optional[random.Random] = None,
    ):
        self.queue = queue
        self.mean_delay_ms = mean_delay_ms
        self.std_delay_ms = std_delay_ms
        self.typo_rate = typo_rate
        self.clock = clock
        self.sleep = sleep or asyncio.sleep
        self.rng = rng or random.Random()

        self.total_events = 0
        self._start_ms = 0.0
        self._running = False

    async def _emit(self, event_type: EventType, char: Optional[str] = None):
        event = KeystrokeEvent(
            event_type=event_type,
            char=char,
            timestamp_ms=self.clock.monotonic_ms() - self._start_ms,
        )
        self.total_events += 1
        await self.queue.put(event)
        return event

    async def _pause(self, delay_ms: float):
        await self.sleep(delay_ms / 1000.0)

    def _get_typing_delay(self) -> float:
        return max(20, self.rng.gauss(self.mean_delay_ms, self.std_delay_ms))

    async def simulate_typing(self, text: str):
        """Type text from start to finish, then emit END."""
        self._running = True
        self._start_ms = self.clock.monotonic_ms()

        i = 0
        while i < len(text) and self._running:
            char = text[i]
            await self._pause(self._get_typing_delay())

            if char == "\n":
                # Enter brings the next line's indentation with it
                await self._emit(EventType.ENTER)
                i += 1
                while i < len(text) and text[i] in INDENT_CHARS:
                    i += 1
                continue

            if i == 0 and text.startswith("  "):
                await self._emit(EventType.TAB)
                i += 2
                continue

            if char.isalpha() and self.rng.random() < self.typo_rate:
                typo = self.rng.choice([c for c in TYPO_CHARS if c != char.lower()])
                await self._emit(EventType.CHAR_ADD, typo)
                await self._pause(self.rng.uniform(50, 150))
                await self._emit(EventType.CHAR_DELETE)
                await self._pause(self.rng.uniform(30, 80))

            await self._emit(EventType.CHAR_ADD, char)
            i += 1

        await self._emit(EventType.END)
        self._running = False

    def stop(self):
        """Stop the simulation."""
        self._running = False


class EventConsumer:
    """
    Base class for consuming keystroke events.

    Subclass this and implement handle_event() for custom processing.
    """

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue
        self._running = False

    async def handle_event(self, event: KeystrokeEvent):
        raise NotImplementedError

    async def run(self):
        """Consume events from the queue until END event."""
        self._running = True
        while self._running:
            event = await self.queue.get()
            await self.handle_event(event)
            self.queue.task_done()

            if event.event_type == EventType.END:
                self._running = False

    def stop(self):
        self._running = False


class SessionConsumer(EventConsumer):
    """Applies events to an InputController and keeps a log of them."""

    def __init__(self, queue: asyncio.Queue, controller: InputController):
        super().__init__(queue)
        self.controller = controller
        self.events: List[KeystrokeEvent] = []
        self.rejected: List[KeystrokeEvent] = []

    async def handle_event(self, event: KeystrokeEvent):
        self.events.append(event)
        if event.event_type == EventType.END:
            return
        if not self.controller.handle(event):
            self.rejected.append(event)
            logger.debug(f"[{event.timestamp_ms:8.1f}ms] rejected {event}")
