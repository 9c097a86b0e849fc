"""Client session.

A :class:`Session` holds a single ZeroMQ DEALER connection to the messaging
server. Requests are issued with :func:`Session.request`, which blocks for
the acknowledgement and, by default, for the reply. Events pushed by the
server (topic notifications, missing-topic requests, session events, topic
values) are queued and handed, one at a time and in arrival order, to the
handlers registered by the feature objects hanging off the session:

    - :attr:`Session.topics`         -- :class:`topicmirror.topics.Topics`
    - :attr:`Session.notifications`  -- :class:`topicmirror.notifications.Notifications`
    - :attr:`Session.clients`        -- :class:`topicmirror.clients.Clients`
    - :attr:`Session.streams`        -- :class:`topicmirror.streams.Streams`

Use :func:`connect` rather than instantiating :class:`Session` directly.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from typing import Callable, Dict, Optional

import zmq

from . import clients
from . import notifications
from . import streams
from . import topics
from .config import ServerConfig
from .errors import RequestError, SessionClosed, SessionTimeout
from .protocol import message
from .protocol.message import Message, Payload, Request


logger = logging.getLogger(__name__)
zmq_context = zmq.Context()

_session_counter = itertools.count()


class Session:
    """ Issue requests via a ZeroMQ DEALER socket and dispatch pushed events.

        The socket is owned by a single background thread; other threads hand
        outbound requests to it through a queue and an inproc PAIR signal, as
        ZeroMQ sockets are not thread-safe. A second background thread runs
        the event handlers so that a handler can itself issue a blocking
        request without starving the socket.
    """

    ack_timeout = 5.0

    def __init__(self, config: ServerConfig):
        self.config = config
        self.id: Optional[str] = None
        self.timeout = config.timeout
        self.closed = False

        number = next(_session_counter)
        identity = f"topicmirror.Session.{id(self)}.{number}".encode()

        self.socket = zmq_context.socket(zmq.DEALER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.identity = identity
        self.socket.connect(config.address)

        internal = f"inproc://topicmirror.Session:signal:{id(self)}:{number}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self._outbox: queue.SimpleQueue = queue.SimpleQueue()
        self._events: queue.SimpleQueue = queue.SimpleQueue()
        self._pending: Dict[bytes, Request] = {}
        self._handlers: Dict[str, Callable[[Message], None]] = {}
        self._shutdown = threading.Event()

        self.topics = topics.Topics(self)
        self.notifications = notifications.Notifications(self)
        self.clients = clients.Clients(self)
        self.streams = streams.Streams(self)

        self._handlers['CLOSED'] = self._closed_incoming
        self._handlers['ERROR'] = self._error_incoming

        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()

        self._dispatch_thread = threading.Thread(target=self._dispatch_main, daemon=True)
        self._dispatch_thread.start()

    def __repr__(self) -> str:
        return f"Session({self.id!r}, {self.config.address})"

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- public API ---

    def open(self) -> str:
        """Authenticate with the server and return the assigned session id."""

        payload = Payload(principal=self.config.principal,
                          credentials=self.config.credentials)
        value = self.request('OPEN', payload=payload)
        self.id = str(value)
        return self.id

    def close(self) -> None:
        """Tell the server the session is over, and stop the background
        threads. Any in-flight requests are abandoned."""

        if self.closed:
            return

        if self.id is not None:
            try:
                self.request('CLOSE', wait=False)
            except SessionTimeout:
                logger.warning("no acknowledgement closing session %s", self.id)

        self.closed = True
        self._shutdown.set()
        self._events.put(None)
        self._signal()

    def register(self, event_type: str, handler: Callable[[Message], None]) -> None:
        """Route pushed messages of *event_type* to *handler*. Feature objects
        call this at construction; there is one handler per event type."""

        if event_type not in message.event_types:
            raise ValueError('not a pushed event type: ' + event_type)

        self._handlers[event_type] = handler

    def request(self, type: str, target: Optional[str] = None,
                payload: Optional[Payload] = None, wait: bool = True, **fields):
        """Send a request and return the value from the reply.

        Extra keyword *fields* are added to the payload. With *wait* set to
        False the :class:`Request` is returned as soon as it is acknowledged;
        the caller may :func:`Request.wait` on it later, or not at all.
        Errors in the reply raise :class:`RequestError`.
        """

        if payload is None:
            payload = Payload(**fields)
        else:
            for key, value in fields.items():
                setattr(payload, key, value)

        request = Request(type, target, payload)
        self.send(request)

        if not wait:
            return request

        response = request.wait(self.timeout)

        if response is None:
            self._pending.pop(request.id, None)
            raise SessionTimeout(f"{type} {target or ''}: no response in {self.timeout:.1f} sec")

        return check(request, response)

    def send(self, request: Request) -> Request:
        """Queue *request* for the socket thread and block until the server
        acknowledges it."""

        if self.closed:
            raise SessionClosed('session is closed')

        self._outbox.put(request)
        self._signal()

        if not request.wait_ack(self.ack_timeout):
            self._pending.pop(request.id, None)
            raise SessionTimeout(f"{request.type}: no ACK in {self.ack_timeout:.2f} sec")

        return request

    # --- socket thread ---

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while not self._shutdown.is_set():
            for active, _flag in poller.poll(1000):
                if active == self._signal_rx:
                    self._handle_outgoing()
                elif active == self.socket:
                    parts = tuple(self.socket.recv_multipart())
                    self._handle_incoming(parts)

        # Drain anything left in the outbox, notably the CLOSE request.
        self._handle_outgoing()

        self.socket.close()
        self._signal_rx.close()

        with self._signal_lock:
            self._signal_tx.close()

    def _signal(self) -> None:
        with self._signal_lock:
            try:
                self._signal_tx.send(b"", flags=zmq.NOBLOCK)
            except zmq.ZMQError:
                # Closed, or a signal is already waiting to be read; either
                # way the socket thread will look at the outbox.
                pass

    def _handle_outgoing(self) -> None:
        while True:
            try:
                self._signal_rx.recv(flags=zmq.NOBLOCK)
            except zmq.ZMQError:
                break

        while True:
            try:
                request = self._outbox.get(block=False)
            except queue.Empty:
                break

            self._pending[request.id] = request
            self.socket.send_multipart(tuple(request))

    def _handle_incoming(self, parts) -> None:
        try:
            msg = message.from_frames(parts)
        except (ValueError, UnicodeDecodeError):
            logger.exception("discarding malformed message from %s", self.config.address)
            return

        if msg.type == 'ACK':
            pending = self._pending.get(msg.id)
            if pending is not None:
                pending._complete_ack()
            return

        if msg.type == 'REP':
            pending = self._pending.pop(msg.id, None)
            if pending is not None:
                pending._complete(msg)
            return

        self._events.put(msg)

    # --- dispatch thread ---

    def _dispatch_main(self) -> None:
        """Run the handler for each pushed event. Exceptions escaping a
        handler are logged; they never stop the dispatch loop."""

        while True:
            msg = self._events.get()

            if msg is None:
                break

            handler = self._handlers.get(msg.type)

            if handler is None:
                logger.debug("no handler for %s %s", msg.type, msg.target)
                continue

            try:
                handler(msg)
            except Exception:
                logger.exception("error handling %s for %s", msg.type, msg.target)

    def _feature(self, name: str):
        features = {
            'topics': self.topics,
            'notifications': self.notifications,
            'clients': self.clients,
            'streams': self.streams,
        }
        return features.get(name)

    def _closed_incoming(self, msg: Message) -> None:
        name = msg.get('feature')
        feature = self._feature(name)

        if feature is None:
            logger.warning("server closed unknown feature %r", name)
            return

        feature.closed(msg.get('key'))

    def _error_incoming(self, msg: Message) -> None:
        name = msg.get('feature')
        feature = self._feature(name)
        error = msg.get('error')

        if feature is None:
            logger.error("server error for unknown feature %r: %s", name, error)
            return

        feature.error(msg.get('key'), error)


def check(request: Request, response: Message):
    """Return the value carried by *response*, raising :class:`RequestError`
    if the server reported an error for *request*."""

    error = response.get('error')

    if error:
        e_type = error.get('type', 'Error')
        e_text = error.get('text', '')
        raise RequestError(request.type, e_type, e_text)

    return response.get('value')


def connect(config: ServerConfig) -> Session:
    """Create a :class:`Session` for *config* and open it. A failure to open
    closes the half-built session before re-raising."""

    session = Session(config)

    try:
        session.open()
    except Exception:
        session.close()
        raise

    logger.debug("opened %r", session)
    return session


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
