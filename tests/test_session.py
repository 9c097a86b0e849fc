""" Exercise a real :class:`topicmirror.Session` against a minimal ZeroMQ
    ROUTER peer running in a background thread. The peer acknowledges every
    request, answers it from a table of canned replies, and can push events.
"""

import queue
import threading
import time

import pytest
import zmq

import topicmirror
from topicmirror import config
from topicmirror.errors import RequestError, SessionClosed, SessionTimeout
from topicmirror.protocol import message


class Peer:

    def __init__(self):

        self.context = zmq.Context.instance()
        self.socket = self.context.socket(zmq.ROUTER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.port = self.socket.bind_to_random_port('tcp://127.0.0.1')

        self.replies = {'OPEN': {'value': '0-42'}}
        self.requests = queue.Queue()
        self.outbox = queue.Queue()
        self.identity = None
        self.shutdown = False

        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()


    def run(self):

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)

        while self.shutdown == False:
            for active, flag in poller.poll(20):
                parts = self.socket.recv_multipart()
                self.incoming(parts)

            while True:
                try:
                    parts = self.outbox.get(block=False)
                except queue.Empty:
                    break
                self.socket.send_multipart((self.identity,) + parts)

        self.socket.close()


    def incoming(self, parts):

        identity, version, id, type, target, payload = parts
        self.identity = identity

        type = type.decode()
        if payload == b'':
            payload = dict()
        else:
            payload = topicmirror.json.loads(payload)

        self.requests.put((type, target.decode(), payload))

        ack = (identity, message.version, id, b'ACK', b'', b'')
        self.socket.send_multipart(ack)

        reply = self.replies.get(type, {'value': None})
        reply = topicmirror.json.dumps(reply)
        self.socket.send_multipart((identity, message.version, id, b'REP', target, reply))


    def push(self, kind, target, **payload):
        parts = (message.version, b'ffff0001', kind.encode(), target.encode(), topicmirror.json.dumps(payload))
        self.outbox.put(parts)


    def next_request(self, type):
        """ Return the next request of the given type, skipping others.
        """

        deadline = time.time() + 5
        while time.time() < deadline:
            request = self.requests.get(timeout=5)
            if request[0] == type:
                return request
        raise AssertionError('no %s request' % (type))


    def stop(self):
        self.shutdown = True
        self.thread.join()



@pytest.fixture
def peer():
    peer = Peer()
    yield peer
    peer.stop()


@pytest.fixture
def connected(peer):
    server = config.ServerConfig('127.0.0.1', peer.port, principal='admin', credentials='secret', timeout=5)
    session = topicmirror.connect(server)
    yield session
    session.close()



def test_open(peer, connected):

    assert connected.id == '0-42'

    type, target, payload = peer.next_request('OPEN')
    assert payload['principal'] == 'admin'
    assert payload['credentials'] == 'secret'


def test_request_error(peer, connected):

    peer.replies['SET'] = {'value': None, 'error': {'type': 'PermissionError', 'text': 'not allowed'}}

    with pytest.raises(RequestError) as raised:
        connected.topics.set('cdn/a.json', {'x': 1})

    assert raised.value.type == 'PermissionError'
    assert raised.value.text == 'not allowed'

    type, target, payload = peer.next_request('SET')
    assert target == 'cdn/a.json'
    assert payload['value'] == {'x': 1}
    assert payload['specification']['type'] == 'JSON'


def test_notifications(peer, connected):

    peer.replies['LISTEN'] = {'value': 7}
    seen = threading.Event()
    tracked = topicmirror.TrackedTopicSet('cdn')

    class Listener(topicmirror.notifications.TopicNotificationListener):
        def on_topic_notification(self, path, specification, kind):
            tracked.on_topic_notification(path, specification, kind)
            seen.set()

    registration = connected.notifications.add_listener(Listener())
    registration.select('?cdn//')

    type, target, payload = peer.next_request('SELECT')
    assert target == '?cdn//'
    assert payload['listener'] == 7

    peer.push('NOTIFY', 'cdn/a.json', listener=7, type='selected')

    assert seen.wait(5)
    assert tracked.paths() == frozenset(('cdn/a.json',))


def test_missing_topic(peer, connected, tmp_path):

    (tmp_path / 'cdn').mkdir()
    (tmp_path / 'cdn' / 'c.json').write_text('{"c": 3}')

    peer.replies['LISTEN'] = {'value': 1}
    mirror = topicmirror.TopicMirror.build(connected, 'cdn', str(tmp_path))
    connected.topics.add_missing_topic_handler('cdn', mirror)

    peer.push('MISSING', 'cdn/c.json', handler='cdn', selector='>cdn/c.json', session='0-7')

    type, target, payload = peer.next_request('SET')
    assert target == 'cdn/c.json'
    assert payload['value'] == {'c': 3}
    assert payload['specification']['properties']['REMOVAL'] == 'when subscriptions < 1 for 1m'

    type, target, payload = peer.next_request('PROCEED')
    assert target == 'cdn/c.json'
    assert payload['notification'] == 'ffff0001'


def test_handler_exception(peer, connected):
    """ An exception in one handler must not stop later events from being
        dispatched.
    """

    peer.replies['LISTEN'] = {'value': 2}
    seen = threading.Event()

    class Listener(topicmirror.notifications.TopicNotificationListener):
        def on_topic_notification(self, path, specification, kind):
            if path == 'cdn/bad':
                raise RuntimeError('listener bug')
            seen.set()

    connected.notifications.add_listener(Listener()).select('?cdn//')

    peer.push('NOTIFY', 'cdn/bad', listener=2, type='added')
    peer.push('NOTIFY', 'cdn/good', listener=2, type='added')

    assert seen.wait(5)


def test_close(peer, connected):

    connected.close()
    peer.next_request('CLOSE')

    with pytest.raises(SessionClosed):
        connected.topics.set('cdn/a.json', {})

    # Closing twice is harmless.
    connected.close()


def test_no_server(monkeypatch):

    monkeypatch.setattr(topicmirror.Session, 'ack_timeout', 0.2)

    context = zmq.Context.instance()
    placeholder = context.socket(zmq.ROUTER)
    port = placeholder.bind_to_random_port('tcp://127.0.0.1')
    placeholder.close()

    server = config.ServerConfig('127.0.0.1', port, timeout=1)

    with pytest.raises(SessionTimeout):
        topicmirror.connect(server)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
