"""Drive one acquisition run from an opened device to formatted output."""
from __future__ import annotations

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence, TextIO

from .constants import DEFAULT_QUEUE_SIZE
from .hardware.device import Device
from .inputs.base import InputFileDevice
from .outputs.formatters import OutputFormatter
from .packets import Packet
from .pipeline import build_pipeline
from .session import Session

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot stop request shared between a run loop and an interrupt handler.

    The first :meth:`request` sets the token and invokes the bound stop
    callback; the callback is then dropped so later requests do nothing.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._once = threading.Lock()
        self._callback: Optional[Callable[[], object]] = None

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    def bind(self, callback: Callable[[], object]) -> None:
        """Attach the stop callback; a stop requested earlier fires it at once."""

        self._callback = callback
        if self._event.is_set():
            pending, self._callback = self._callback, None
            if pending is not None:
                pending()

    def request(self) -> bool:
        """Return ``True`` if this call was the one that triggered the stop."""

        # Never released: only the first caller gets through.
        if not self._once.acquire(blocking=False):
            return False
        self._event.set()
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()
        return True


@contextmanager
def interrupt_handler(token: CancellationToken, signum: int = signal.SIGINT) -> Iterator[CancellationToken]:
    """Route *signum* to ``token.request()`` and restore the previous handler on exit."""

    def _handler(received: int, frame) -> None:
        if token.request():
            logger.info("Received signal %s, stopping capture", signal.Signals(received).name)
        else:
            logger.debug("Stop already requested, ignoring signal %s", signal.Signals(received).name)

    previous = signal.signal(signum, _handler)
    try:
        yield token
    finally:
        signal.signal(signum, previous)


class StreamDriver:
    """Binds one formatter to one device and runs the capture to completion.

    The device is closed when :meth:`run` returns or raises.
    """

    def __init__(
        self,
        device: Device,
        formatter: OutputFormatter,
        out: Optional[TextIO] = None,
        *,
        continuous: bool = False,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        token: Optional[CancellationToken] = None,
        handle_signals: bool = True,
    ) -> None:
        self.device = device
        self.formatter = formatter
        self.out = out or sys.stdout
        self.continuous = continuous
        self.queue_size = queue_size
        self.token = token or CancellationToken()
        self.handle_signals = handle_signals

    def run(self, stages: Optional[Sequence[str]] = None) -> None:
        try:
            if stages is not None:
                self._run_pipeline(stages)
            elif isinstance(self.device, InputFileDevice):
                self._run_file(self.device)
            else:
                self._run_live()
        finally:
            self.device.close()

    def write(self, device: Device, packet: Packet) -> None:
        text = self.formatter.receive(packet)
        if text:
            self.out.write(text)
            self.out.flush()

    def _session(self) -> Session:
        session = Session(queue_size=self.queue_size)
        session.add_device(self.device)
        session.add_callback(self.write)
        return session

    def _run_file(self, device: InputFileDevice) -> None:
        session = self._session()
        session.start(synchronous=True)
        try:
            device.load()
        finally:
            session.stop()

    def _run_live(self) -> None:
        session = self._session()
        session.start()
        try:
            if self.continuous:
                self.token.bind(session.stop)
                with self._interruptible():
                    session.run()
            else:
                session.run()
        finally:
            session.stop()

    def _run_pipeline(self, stages: Sequence[str]) -> None:
        pipeline = build_pipeline(stages, self.device, self.formatter, self.out, self.queue_size)
        if self.continuous:
            self.token.bind(pipeline.stop)
            with self._interruptible():
                pipeline.run()
        else:
            pipeline.run()

    @contextmanager
    def _interruptible(self) -> Iterator[None]:
        if not self.handle_signals or threading.current_thread() is not threading.main_thread():
            yield
            return
        with interrupt_handler(self.token):
            yield


__all__ = ["CancellationToken", "StreamDriver", "interrupt_handler"]
