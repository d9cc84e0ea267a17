"""Shared fixtures for the launcher tests.

``manual_loop`` is a real asyncio selector loop whose clock only moves when
a test advances it, so settle delays can be asserted without sleeping.
"""

import asyncio
import inspect
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(inspect.getfile(inspect.currentframe())).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


class ManualClockLoop(asyncio.SelectorEventLoop):
    """Event loop driven step by step from synchronous tests."""

    def __init__(self):
        super().__init__()
        self.now = 0.0

    def time(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def run_pending(self, passes: int = 10) -> None:
        """Run everything that is due, including callbacks those schedule."""
        for _ in range(passes):
            self.call_soon(self.stop)
            self.run_forever()


@pytest.fixture()
def manual_loop():
    loop = ManualClockLoop()
    yield loop
    loop.close()
