"""Linear pipeline of typed stages driven by a cooperative event loop."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Full, Queue
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from .constants import DEFAULT_QUEUE_SIZE
from .errors import AcquisitionError, DeviceRuntimeError
from .hardware.device import Device
from .inputs.base import InputFileDevice
from .outputs.formatters import OutputFormatter
from .packets import Packet, PacketType
from .resolver import LEGACY_OUTPUT_STAGE, SOURCE_STAGE, TEXT_SINK_STAGE

logger = logging.getLogger(__name__)

PACKETS = "packet"
TEXT = "text"
POLL_INTERVAL_S = 0.1


class State(Enum):
    NULL = "null"
    IDLE = "idle"
    PLAYING = "playing"


class MessageType(Enum):
    EOS = "eos"
    ERROR = "error"


@dataclass(slots=True)
class Message:
    type: MessageType
    source: str
    error: Optional[BaseException] = None


class Bus:
    """Thread-safe message queue watched by :meth:`Pipeline.run`."""

    def __init__(self) -> None:
        self._messages: "Queue[Message]" = Queue()

    def post(self, message: Message) -> None:
        logger.debug("Bus message %s from %s", message.type.value, message.source)
        self._messages.put(message)

    def poll(self) -> Optional[Message]:
        try:
            return self._messages.get_nowait()
        except Empty:
            return None


class Stage:
    """A pipeline element consuming ``accepts`` items and producing ``produces`` items."""

    name = ""
    accepts: Optional[str] = None
    produces: Optional[str] = None

    def __init__(self) -> None:
        self.state = State.NULL
        self.bus: Optional[Bus] = None
        self.downstream: Optional["Stage"] = None

    def link(self, other: "Stage") -> None:
        if self.produces is None or self.produces != other.accepts:
            raise AcquisitionError(
                f"Cannot link stage '{self.name}' ({self.produces or 'nothing'}) "
                f"to '{other.name}' ({other.accepts or 'nothing'})"
            )
        self.downstream = other

    def set_state(self, state: State) -> None:
        self.state = state

    def push(self, item: object) -> None:
        raise NotImplementedError

    def iterate(self) -> None:
        """Do one unit of source work; only the first stage is iterated."""

    def stop(self) -> None:
        """Request end of stream."""

    def post(self, type_: MessageType, error: Optional[BaseException] = None) -> None:
        if self.bus is not None:
            self.bus.post(Message(type_, self.name, error))

    def _send(self, item: object) -> None:
        if self.downstream is not None:
            self.downstream.push(item)


class SourceStage(Stage):
    """Pulls packets from a device and posts ``EOS`` after its ``END`` packet.

    File-backed devices are fed one chunk per iteration on the loop thread.
    Devices acquiring on their own thread fill a bounded queue which each
    iteration drains.
    """

    name = SOURCE_STAGE
    produces = PACKETS

    def __init__(self, device: Device, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        super().__init__()
        self.device = device
        self._queue: "Queue[Packet]" = Queue(maxsize=max(queue_size, 1))
        self._threaded = not isinstance(device, InputFileDevice)
        self._stopping = threading.Event()
        self._ended = False

    def set_state(self, state: State) -> None:
        previous, self.state = self.state, state
        if state is State.PLAYING and previous is not State.PLAYING:
            self._stopping.clear()
            self._ended = False
            emit = self._enqueue if self._threaded else self._deliver
            self.device.start_acquisition(emit, self._fail)
        elif previous is State.PLAYING and state is not State.PLAYING:
            self.stop()

    def stop(self) -> None:
        if self._stopping.is_set():
            return
        self._stopping.set()
        self.device.stop_acquisition()

    def push(self, item: object) -> None:
        raise AcquisitionError("The source stage does not accept input")

    def iterate(self) -> None:
        if self._ended:
            return
        if not self._threaded:
            assert isinstance(self.device, InputFileDevice)
            self.device.feed_next()
            return
        try:
            packet = self._queue.get(timeout=POLL_INTERVAL_S)
        except Empty:
            return
        self._deliver(packet)
        while not self._ended:
            try:
                packet = self._queue.get_nowait()
            except Empty:
                return
            self._deliver(packet)

    def _deliver(self, packet: Packet) -> None:
        self._send(packet)
        if packet.type is PacketType.END:
            self._ended = True
            self.post(MessageType.EOS)

    def _enqueue(self, packet: Packet) -> None:
        while True:
            try:
                self._queue.put(packet, timeout=POLL_INTERVAL_S)
                return
            except Full:
                if self._stopping.is_set() and self.state is not State.PLAYING:
                    return

    def _fail(self, error: BaseException) -> None:
        self.post(MessageType.ERROR, error)


class LegacyOutputStage(Stage):
    """Adapts an :class:`OutputFormatter` so it can sit inside a pipeline."""

    name = LEGACY_OUTPUT_STAGE
    accepts = PACKETS
    produces = TEXT

    def __init__(self, formatter: OutputFormatter) -> None:
        super().__init__()
        self.formatter = formatter

    def push(self, item: object) -> None:
        assert isinstance(item, Packet)
        text = self.formatter.receive(item)
        if text:
            self._send(text)


class TextSinkStage(Stage):
    name = TEXT_SINK_STAGE
    accepts = TEXT

    def __init__(self, out: TextIO) -> None:
        super().__init__()
        self.out = out

    def push(self, item: object) -> None:
        self.out.write(str(item))
        self.out.flush()


class Pipeline:
    """Ordered stages sharing one bus, run until a stage posts ``EOS``."""

    def __init__(self, stages: Sequence[Stage] = ()) -> None:
        self.bus = Bus()
        self.state = State.NULL
        self._stages: List[Stage] = []
        for stage in stages:
            self.add(stage)
        self.link()

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    def add(self, stage: Stage) -> None:
        stage.bus = self.bus
        self._stages.append(stage)

    def link(self) -> None:
        for upstream, downstream in zip(self._stages, self._stages[1:]):
            upstream.link(downstream)

    def set_state(self, state: State) -> None:
        # Sinks change state before the stages that feed them.
        for stage in reversed(self._stages):
            stage.set_state(state)
        logger.debug("Pipeline state %s -> %s", self.state.value, state.value)
        self.state = state

    def stop(self) -> None:
        if self._stages:
            self._stages[0].stop()

    def run(self) -> None:
        """Play the pipeline until end of stream, then return it to ``IDLE``."""

        if not self._stages:
            raise AcquisitionError("Pipeline has no stages")
        source = self._stages[0]
        self.set_state(State.PLAYING)
        try:
            while True:
                message = self.bus.poll()
                if message is None:
                    try:
                        source.iterate()
                    except Exception as exc:  # pylint: disable=broad-except
                        source.post(MessageType.ERROR, exc)
                    continue
                if message.type is MessageType.EOS:
                    logger.debug("End of stream from %s", message.source)
                    return
                raise DeviceRuntimeError(
                    f"Pipeline stage '{message.source}' failed: {message.error}"
                ) from message.error
        finally:
            self.set_state(State.IDLE)


StageFactory = Callable[[Device, OutputFormatter, TextIO, int], Stage]

STAGE_FACTORIES: Dict[str, StageFactory] = {
    SOURCE_STAGE: lambda device, formatter, out, queue_size: SourceStage(device, queue_size),
    LEGACY_OUTPUT_STAGE: lambda device, formatter, out, queue_size: LegacyOutputStage(formatter),
    TEXT_SINK_STAGE: lambda device, formatter, out, queue_size: TextSinkStage(out),
}


def build_pipeline(
    names: Sequence[str],
    device: Device,
    formatter: OutputFormatter,
    out: TextIO,
    queue_size: int = DEFAULT_QUEUE_SIZE,
) -> Pipeline:
    stages: List[Stage] = []
    for name in names:
        try:
            factory = STAGE_FACTORIES[name]
        except KeyError:
            available = ", ".join(sorted(STAGE_FACTORIES))
            raise AcquisitionError(f"Pipeline stage '{name}' not found. Available stages: {available}") from None
        stages.append(factory(device, formatter, out, queue_size))
    return Pipeline(stages)


__all__ = [
    "Bus",
    "LegacyOutputStage",
    "Message",
    "MessageType",
    "Pipeline",
    "SourceStage",
    "Stage",
    "State",
    "TextSinkStage",
    "build_pipeline",
]
