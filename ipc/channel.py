from __future__ import annotations

"""System-wide broadcast bus used to notify the helper process.

The launcher binds a ZeroMQ ``PUB`` socket on a loopback endpoint; the helper
(and any diagnostic monitor) connects a ``SUB`` socket to it.  Each message
travels as a two-frame multipart ``[topic, envelope]`` so subscribers can
filter on the topic frame without decoding the JSON.  Delivery is
fire-and-forget: no acknowledgement, no retry, and a subscriber that is not
connected yet simply misses the message.

Receiving is optional.  The first :meth:`ActivationChannel.subscribe` call
connects a :mod:`zmq.asyncio` ``SUB`` socket and starts a reader task on the
owning process's event loop, so handlers always run on that loop.
"""

import asyncio
import logging
import threading
from typing import Callable, Dict, List, Optional

import zmq
import zmq.asyncio

from .messages import TOPICS, Message, MessageDecodeError, decode, encode

__all__ = ["ActivationChannel", "Subscription", "DEFAULT_ENDPOINT"]

DEFAULT_ENDPOINT = "tcp://127.0.0.1:47811"

Handler = Callable[[Message], None]


class Subscription:  # pylint: disable=too-few-public-methods
    """Handle returned by :meth:`ActivationChannel.subscribe`."""

    def __init__(self, channel: "ActivationChannel", topic: str, handler: Handler) -> None:
        self.topic = topic
        self.handler = handler
        self._channel = channel

    def cancel(self) -> None:
        """Stop receiving messages for this subscription (idempotent)."""
        self._channel.unsubscribe(self)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Subscription topic={self.topic!r} handler={self.handler!r}>"


class ActivationChannel:
    """Publish / subscribe over a ZeroMQ PUB/SUB pair.

    Parameters
    ----------
    endpoint
        Address the publisher binds and subscribers connect to.
    loop
        Event loop running the reader task.  Defaults to the loop running
        when :meth:`subscribe` is first called.
    context
        ZeroMQ context; the process-wide instance when omitted.  Tests pass
        their own to use ``inproc://`` endpoints.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        context: Optional[zmq.Context] = None,
    ) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._endpoint = endpoint
        self._loop = loop
        self._context = context or zmq.Context.instance()

        self._lock = threading.Lock()
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._pub_socket: Optional[zmq.Socket] = None
        self._sub_socket: Optional[zmq.asyncio.Socket] = None
        self._reader: Optional[asyncio.Task] = None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(self, message: Message) -> bool:
        """Broadcast *message*.

        Returns *True* when the frames were queued on the PUB socket.  Bind
        and send failures are logged and reported as *False*; the message is
        simply lost.
        """
        data = encode(message)
        try:
            with self._lock:
                if self._pub_socket is None:
                    self._pub_socket = self._make_pub_socket()
                sock = self._pub_socket
            sock.send_multipart([message.TOPIC.encode("utf-8"), data], flags=zmq.NOBLOCK)
        except zmq.ZMQError as exc:
            self._log.warning("Failed to publish %s: %s", message.TOPIC, exc)
            return False

        self._log.debug("Published %s (%d bytes)", message.TOPIC, len(data))
        return True

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------
    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        """Invoke *handler* on the event loop for every message on *topic*."""
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic!r}")

        subscription = Subscription(self, topic, handler)
        with self._lock:
            first_for_topic = topic not in self._subscriptions
            self._subscriptions.setdefault(topic, []).append(subscription)
        if self._sub_socket is None:
            self._start_reader()
        if first_for_topic and self._sub_socket is not None:
            self._sub_socket.setsockopt(zmq.SUBSCRIBE, topic.encode("utf-8"))
        self._log.debug("Subscribed to %s", topic)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._subscriptions.get(subscription.topic, [])
            if subscription in handlers:
                handlers.remove(subscription)
            last_for_topic = not handlers and subscription.topic in self._subscriptions
            if not handlers:
                self._subscriptions.pop(subscription.topic, None)
        if last_for_topic and self._sub_socket is not None and not self._sub_socket.closed:
            self._sub_socket.setsockopt(zmq.UNSUBSCRIBE, subscription.topic.encode("utf-8"))

    def close(self) -> None:
        """Cancel the reader task and close both sockets (idempotent)."""
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None

        with self._lock:
            self._subscriptions.clear()
            for sock in (self._pub_socket, self._sub_socket):
                if sock is not None:
                    sock.close(linger=0)
            self._pub_socket = None
            self._sub_socket = None

    # ------------------------------------------------------------------
    # Implementation details
    # ------------------------------------------------------------------
    def _make_pub_socket(self) -> zmq.Socket:
        sock = self._context.socket(zmq.PUB)
        try:
            sock.bind(self._endpoint)
        except zmq.ZMQError:
            sock.close(linger=0)
            raise
        self._log.info("Activation channel publishing on %s", self._endpoint)
        return sock

    def _make_sub_socket(self) -> zmq.asyncio.Socket:
        async_context = zmq.asyncio.Context.shadow(self._context.underlying)
        sock = async_context.socket(zmq.SUB)
        sock.connect(self._endpoint)
        return sock

    def _start_reader(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        try:
            sock = self._make_sub_socket()
        except zmq.ZMQError as exc:
            self._log.warning("Activation channel receiver unavailable: %s", exc)
            return

        self._sub_socket = sock
        self._reader = loop.create_task(self._read_loop(sock))

    async def _read_loop(self, sock: zmq.asyncio.Socket) -> None:
        while True:
            try:
                frames = await sock.recv_multipart()
            except zmq.ZMQError as exc:
                # Socket closed underneath us during shutdown.
                self._log.debug("Activation channel reader stopped: %s", exc)
                break
            if len(frames) != 2:
                self._log.debug("Dropping message with %d frames", len(frames))
                continue
            self._dispatch(frames[1])

    def _dispatch(self, data: bytes) -> None:
        try:
            message = decode(data)
        except MessageDecodeError as exc:
            self._log.debug("Dropping malformed message: %s", exc)
            return

        with self._lock:
            handlers = [sub.handler for sub in self._subscriptions.get(message.TOPIC, [])]

        for handler in handlers:
            try:
                handler(message)
            except Exception:  # pylint: disable=broad-except
                # One failing handler must not stop the reader task.
                self._log.exception("Handler for %s raised", message.TOPIC)
