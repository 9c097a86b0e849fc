""" Value streams: local callbacks for the values of subscribed topics.
    Registering a stream does not subscribe to anything; :func:`Streams.select`
    does that, and any stream whose selector matches a topic receives its
    subscription, values and unsubscription.
"""

import logging
import threading

from . import selector
from .topics import TopicSpecification


logger = logging.getLogger(__name__)


class ValueStream:
    """ Interface for objects passed to :func:`Streams.add`. Every method has
        a no-op default.
    """

    def on_subscribe(self, topic, specification):
        pass


    def on_value(self, topic, specification, new_value, old_value):
        pass


    def on_unsubscribe(self, topic, specification, reason):
        pass


    def on_close(self):
        pass


    def on_error(self, error):
        pass


# end of class ValueStream



class Streams:
    """ The subscription feature of a :class:`topicmirror.session.Session`.
    """

    def __init__(self, session):

        self.session = session
        self.streams = list()
        self.specifications = dict()
        self.values = dict()
        self._lock = threading.Lock()

        session.register('SUBSCRIBED', self._subscribed_incoming)
        session.register('VALUE', self._value_incoming)
        session.register('UNSUBSCRIBED', self._unsubscribed_incoming)


    def add(self, topics, stream):
        """ Route values for topics matching the selector *topics* to
            *stream*. Returns *stream* for convenience.
        """

        parsed = selector.parse(topics)

        with self._lock:
            self.streams.append((parsed, stream))

        return stream


    def remove(self, stream):
        with self._lock:
            self.streams = [pair for pair in self.streams if pair[1] is not stream]

        stream.on_close()


    def select(self, topics):
        """ Subscribe this session to the topics matching *topics*.
        """

        selector.parse(topics)
        return self.session.request('SUBSCRIBE', str(topics))


    def unselect(self, topics):
        return self.session.request('UNSUBSCRIBE', str(topics))


    def matching(self, topic):
        """ Return the streams whose selector matches *topic*.
        """

        with self._lock:
            pairs = list(self.streams)

        return [stream for parsed, stream in pairs if parsed.matches(topic)]


    def closed(self, key=None):
        with self._lock:
            pairs = self.streams
            self.streams = list()

        for parsed, stream in pairs:
            stream.on_close()


    def error(self, key, error):
        with self._lock:
            pairs = self.streams
            self.streams = list()

        if len(pairs) == 0:
            logger.error("value stream error: %s", error)

        for parsed, stream in pairs:
            stream.on_error(error)


    def _subscribed_incoming(self, msg):

        topic = msg.target
        specification = TopicSpecification.from_dict(msg.get('specification'))
        self.specifications[topic] = specification

        for stream in self.matching(topic):
            stream.on_subscribe(topic, specification)


    def _value_incoming(self, msg):

        topic = msg.target

        try:
            specification = self.specifications[topic]
        except KeyError:
            specification = TopicSpecification.from_dict(msg.get('specification'))
            self.specifications[topic] = specification

        new_value = msg.get('value')
        old_value = self.values.get(topic)
        self.values[topic] = new_value

        for stream in self.matching(topic):
            stream.on_value(topic, specification, new_value, old_value)


    def _unsubscribed_incoming(self, msg):

        topic = msg.target
        specification = self.specifications.pop(topic, None)
        self.values.pop(topic, None)

        if specification is None:
            specification = TopicSpecification()

        reason = msg.get('reason')

        for stream in self.matching(topic):
            stream.on_unsubscribe(topic, specification, reason)


# end of class Streams


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
