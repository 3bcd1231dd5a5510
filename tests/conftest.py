from __future__ import annotations

from typing import Callable, Optional

import pytest


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual clock standing in for ``loop.call_later``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if timer.due <= self.now and not timer.cancelled and not timer.fired:
                timer.fired = True
                timer.callback()


class ScriptedUpstream:
    """Upstream that replays fixed fragments and optionally fails afterwards."""

    def __init__(self, fragments: Optional[list[str]] = None, error: Optional[Exception] = None) -> None:
        self.fragments = list(fragments or [])
        self.error = error
        self.calls: list[tuple[list, str]] = []
        self.yielded = 0
        self.closed = False

    async def stream(self, messages, model):
        self.calls.append((list(messages), model))
        try:
            for fragment in self.fragments:
                self.yielded += 1
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def upstream() -> ScriptedUpstream:
    return ScriptedUpstream(["Hel", "lo"])
