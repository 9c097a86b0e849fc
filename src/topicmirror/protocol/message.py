""" A class representation of a session message, including subclasses for
    requests and for events pushed by the server.
"""

import itertools
import threading
import time as timemodule

from .. import json


# This is the version of the on-the-wire protocol implemented here,
# identified by a single byte.

version = b'a'

request_types = set(('OPEN', 'CLOSE', 'SET', 'REMOVE', 'LISTEN', 'UNLISTEN',
                     'SELECT', 'DESELECT', 'MISSING', 'PROCEED', 'PROPERTIES',
                     'SUBSCRIBE', 'UNSUBSCRIBE'))

response_types = set(('ACK', 'REP'))

event_types = set(('NOTIFY', 'MISSING', 'SESSION', 'SUBSCRIBED', 'VALUE',
                   'UNSUBSCRIBED', 'CLOSED', 'ERROR'))


class Message:
    """ The :class:`Message` provides a very thin encapsulation of what it
        means to be a message in a session context. The fields are largely
        in order of how they are represented on the wire: the message *type*,
        the topic path or selector *target* for the message, the *payload*
        of the message, and an identification number unique to this
        correspondence.

        The *payload* is a :class:`Payload` instance for outbound messages,
        and a plain dictionary (or None) for messages decoded from the wire.

        :ivar valid_types: A set of valid strings for the message type.
        :ivar timestamp: A UNIX epoch timestamp for the message creation time.
    """

    valid_types = response_types | event_types

    def __init__(self, type, target=None, payload=None, id=None):

        if type in self.valid_types:
            pass
        else:
            raise ValueError('invalid message type: ' + str(type))

        self.id = id
        self.type = type
        self.payload = payload
        self.target = target
        self.timestamp = timemodule.time()

        self.parts = None


    def __iter__(self):
        self._finalize()
        return iter(self.parts)


    def __repr__(self):
        self._finalize()
        return repr(self.parts)


    def get(self, field, default=None):
        """ Convenience accessor for a field of a decoded payload.
        """

        payload = self.payload

        if payload is None:
            return default

        if isinstance(payload, Payload):
            return getattr(payload, field, default)

        return payload.get(field, default)


    def _finalize(self):
        """ Take the contents of this :class:`Message`, interpet them as
            bytes, and prepare the tuple that will be used for the multipart
            transmission on the wire.
        """

        if self.parts is not None:
            return

        id = self.id

        if id is None:
            raise RuntimeError('messages must have an id to be put on the wire')

        try:
            id.decode
        except AttributeError:
            id = '%08x' % (id)
            id = id.encode()

        target = self.target
        if target is None or target == '':
            target = b''
        else:
            target = target.encode()

        payload = self.payload
        if payload is None:
            payload = b''
        elif isinstance(payload, Payload):
            payload = payload.encapsulate()
        else:
            payload = json.dumps(payload)

        self.parts = (version, id, self.type.encode(), target, payload)


# end of class Message



class Request(Message):
    """ A :class:`Request` has a little extra functionality, focusing on
        signaling that a request is acknowledged and complete. This is the
        class used on the client side whenever a server is expected to
        provide a response.

        :ivar response: The final response to a request (also a Message).
    """

    valid_types = request_types

    def __init__(self, type, target=None, payload=None, id=None):

        # Requests are initiated without an id number in nearly all cases;
        # auto-generate a locally unique one so that the response handler
        # can tie an incoming response back to this request.

        if id is None:
            id = _id_next()

        Message.__init__(self, type, target, payload, id)

        self.response = None
        self.ack_event = threading.Event()
        self.rep_event = threading.Event()


    def __repr__(self):
        self._finalize()
        request = 'REQ: ' + repr(self.parts)

        if self.response is None:
            response = 'REP: None'
        else:
            response = 'REP: ' + repr(tuple(self.response))

        return request + ', ' + response


    def _complete_ack(self):
        self.ack_event.set()


    def _complete(self, response):
        """ Locally store the response and signal any callers blocking via
            :func:`wait` to proceed.
        """

        self.response = response
        self.ack_event.set()
        self.rep_event.set()


    def poll(self):
        """ Return True if the request is complete, otherwise return False.
        """

        return self.rep_event.is_set()


    def wait_ack(self, timeout):
        """ Block until the request has been acknowledged. Returns True if
            the acknowledgement arrived, otherwise False after the requested
            *timeout*. If the *timeout* is None it will block indefinitely.
        """

        return self.ack_event.wait(timeout)


    def wait(self, timeout=60):
        """ Block until the request has been handled. The response to the
            request is always returned; the response will be None if the
            original request is still pending.
        """

        self.rep_event.wait(timeout)
        return self.response


# end of class Request



class Payload:
    """ This is a lightweight class to properly encapsulate a Python-native
        value for later inclusion in a :class:`Message` instance. Any fields
        in the Payload.omit set will be excluded from the encapsulation.
    """

    omit = set(('_encapsulated', 'omit'))

    def __init__(self, value=None, time=None, error=None, **kwargs):

        # The use of 'time' as a keyword argument is what's motivating the
        # weird import of the time module in this file.

        if time is None:
            time = timemodule.time()

        self.error = error
        self.time = time
        self.value = value

        self._encapsulated = None

        # Allow additional arbitrary fields in the payload, on the assumption
        # that they can be serialized as JSON.

        for key,value in kwargs.items():
            setattr(self, key, value)


    def __repr__(self):
        return self.encapsulate().decode()


    def encapsulate(self):
        ''' Encapsulate the fields as a dictionary, and return the JSON
            encoding of that dictionary. Fields set to None are omitted.
            Calling this method multiple times will return the cached
            encapsulation rather than generate it anew.
        '''

        if self._encapsulated:
            return self._encapsulated

        payload = dict()

        for key,value in vars(self).items():
            if key in self.omit:
                continue
            if value is None and key != 'value':
                continue
            payload[key] = value

        payload = json.dumps(payload)

        self._encapsulated = payload
        return payload


# end of class Payload



def from_frames(parts):
    """ Decode the multipart *parts* received from the server into a
        :class:`Message`. A version mismatch is represented as an error
        reply, so that a waiting caller learns about it instead of timing
        out.
    """

    if len(parts) < 2:
        raise ValueError('truncated message: ' + repr(parts))

    their_version = parts[0]
    id = parts[1]

    if their_version != version:
        error = dict()
        error['type'] = 'RuntimeError'
        error['text'] = "message is protocol %s, recipient expects %s" % (repr(their_version), repr(version))
        payload = dict()
        payload['error'] = error
        return Message('REP', None, payload, id)

    if len(parts) < 5:
        raise ValueError('truncated message: ' + repr(parts))

    type = parts[2].decode()
    target = parts[3]
    payload = parts[4]

    if target == b'':
        target = None
    else:
        target = target.decode()

    if payload == b'':
        payload = None
    else:
        payload = json.loads(payload)

    return Message(type, target, payload, id)



_id_min = 0
_id_max = 0xFFFFFFFF
_id_lock = threading.Lock()
_id_ticker = itertools.count(_id_min)


def _id_next():
    """ Return the next request identification number for subroutines to
        use when constructing a message.
    """

    global _id_ticker
    _id_lock.acquire()
    id = next(_id_ticker)

    if id >= _id_max:
        _id_ticker = itertools.count(_id_min)

        if id > _id_max:
            id = next(_id_ticker)

    _id_lock.release()

    id = '%08x' % (id)
    id = id.encode()
    return id


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
