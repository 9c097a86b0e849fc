""" Topic management: creating, updating and removing topics, and handling
    requests for topics that do not exist yet.
"""

import logging

from . import selector


logger = logging.getLogger(__name__)

types = ('JSON', 'STRING', 'INT64', 'DOUBLE', 'BINARY')

REMOVAL = 'REMOVAL'


def removal_policy(subscriptions=1, minutes=1):
    """ Return a topic removal policy: the server removes the topic once it
        has had fewer than *subscriptions* subscribers for *minutes*
        continuous minutes.
    """

    return "when subscriptions < %d for %dm" % (int(subscriptions), int(minutes))



class TopicSpecification:
    """ The type of a topic, plus any server-side properties attached to it
        at creation time, such as a :func:`removal_policy`.
    """

    def __init__(self, type='JSON', properties=None):

        type = str(type).upper()

        if type in types:
            pass
        else:
            raise ValueError('unknown topic type: ' + type)

        if properties is None:
            properties = dict()

        self.type = type
        self.properties = dict(properties)


    def __eq__(self, other):
        if isinstance(other, TopicSpecification):
            return self.type == other.type and self.properties == other.properties
        return NotImplemented


    def __repr__(self):
        return 'TopicSpecification(%r, %r)' % (self.type, self.properties)


    def to_dict(self):
        return {'type': self.type, 'properties': dict(self.properties)}


    @classmethod
    def from_dict(cls, contents):
        """ Build a specification from the dictionary received on the wire.
            Missing contents yield a JSON specification with no properties.
        """

        if not contents:
            return cls()

        return cls(contents.get('type', 'JSON'), contents.get('properties'))


# end of class TopicSpecification



class MissingTopicHandler:
    """ Interface for objects passed to :func:`Topics.add_missing_topic_handler`.
        Only :func:`on_missing_topic` is required; the remaining methods are
        lifecycle notifications with no-op defaults.
    """

    def on_missing_topic(self, notification):
        """ A client selected a topic under the registered path that does not
            exist. The handler must eventually call
            :func:`MissingTopicNotification.proceed`, whether or not it
            created the topic, or the subscriber will wait indefinitely.
        """

        raise NotImplementedError('on_missing_topic() must be implemented')


    def on_register(self, path, deregister):
        pass


    def on_close(self, path):
        pass


    def on_error(self, path, error):
        pass


# end of class MissingTopicHandler



class MissingTopicNotification:
    """ One request for a missing topic. The *path* is the requested topic,
        *selector* the selector the subscribing session used, and
        *session_id* the session waiting on the outcome.
    """

    def __init__(self, topics, id, path, selector, session_id):
        self._topics = topics
        self.id = id
        self.path = path
        self.selector = selector
        self.session_id = session_id
        self.proceeded = False


    def __repr__(self):
        return "MissingTopicNotification(path=%r, selector=%r, session=%r)" % (self.path, self.selector, self.session_id)


    def proceed(self):
        """ Let the server continue with the original subscription. Calling
            this more than once has no further effect.
        """

        if self.proceeded == True:
            return

        self.proceeded = True
        self._topics._proceed(self)


# end of class MissingTopicNotification



class Topics:
    """ The topic control feature of a :class:`topicmirror.session.Session`.
    """

    def __init__(self, session):

        self.session = session
        self.handlers = dict()

        session.register('MISSING', self._missing_incoming)


    def set(self, path, value, specification=None, wait=True):
        """ Set the value of the topic at *path*, creating it with the given
            *specification* if it does not already exist. The *value* must be
            serializable as JSON.
        """

        path = selector.normalize(path)

        if specification is None:
            specification = TopicSpecification()

        return self.session.request('SET', path, wait=wait,
                value=value, specification=specification.to_dict())


    def remove(self, topics, wait=True):
        """ Remove the topics selected by *topics*, a path or selector
            expression. Returns the number of topics removed; removing a
            topic that does not exist is not an error.
        """

        return self.session.request('REMOVE', str(topics), wait=wait)


    def add_missing_topic_handler(self, path, handler):
        """ Register *handler* to be called for missing topics at or below
            *path*. Blocks until the server confirms the registration.
        """

        path = selector.normalize(path)

        self.session.request('MISSING', path)
        self.handlers[path] = handler

        def deregister():
            self.handlers.pop(path, None)

        handler.on_register(path, deregister)


    def closed(self, path):
        try:
            handler = self.handlers.pop(path)
        except KeyError:
            return

        handler.on_close(path)


    def error(self, path, error):
        try:
            handler = self.handlers.pop(path)
        except KeyError:
            logger.error("missing topic handler error for %s: %s", path, error)
            return

        handler.on_error(path, error)


    def _missing_incoming(self, msg):

        registered = msg.get('handler')

        try:
            handler = self.handlers[registered]
        except KeyError:
            handler = None

        notification = MissingTopicNotification(self, msg.id, msg.target,
                msg.get('selector'), msg.get('session'))

        if handler is None:
            # Nobody to ask; let the subscriber carry on.
            logger.warning("no missing topic handler for %r", registered)
            notification.proceed()
            return

        handler.on_missing_topic(notification)


    def _proceed(self, notification):

        id = notification.id

        try:
            id = id.decode()
        except AttributeError:
            pass

        self.session.request('PROCEED', notification.path, wait=False, notification=id)


# end of class Topics


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
