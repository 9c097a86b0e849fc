""" Topic notifications: a stream of events describing topics being added
    to or removed from the part of the topic tree a listener has selected.
"""

import logging

from .topics import TopicSpecification


logger = logging.getLogger(__name__)

ADDED = 'added'
REMOVED = 'removed'
SELECTED = 'selected'
DESELECTED = 'deselected'

kinds = (ADDED, REMOVED, SELECTED, DESELECTED)


class TopicNotificationListener:
    """ Interface for objects passed to :func:`Notifications.add_listener`.
        The *kind* argument is one of ADDED, REMOVED, SELECTED or DESELECTED;
        SELECTED reports a topic that already existed when its selector was
        registered.
    """

    def on_topic_notification(self, path, specification, kind):
        raise NotImplementedError('on_topic_notification() must be implemented')


    def on_descendant_notification(self, path, kind):
        """ A topic below a selected topic, but not itself selected, changed.
        """

        pass


    def on_close(self):
        pass


    def on_error(self, error):
        pass


# end of class TopicNotificationListener



class Registration:
    """ Handle for one registered listener, returned by
        :func:`Notifications.add_listener`.
    """

    def __init__(self, notifications, id, listener):
        self.notifications = notifications
        self.id = id
        self.listener = listener


    def __repr__(self):
        return 'Registration(%r)' % (self.id)


    def select(self, selector):
        """ Receive notifications for topics matching *selector*. Blocks until
            the server acknowledges the selection; the initial SELECTED
            notifications follow asynchronously.
        """

        self.notifications.session.request('SELECT', str(selector), listener=self.id)


    def deselect(self, selector):
        self.notifications.session.request('DESELECT', str(selector), listener=self.id)


    def close(self):
        self.notifications.session.request('UNLISTEN', listener=self.id)
        self.notifications.closed(self.id)


# end of class Registration



class Notifications:
    """ The topic notification feature of a
        :class:`topicmirror.session.Session`.
    """

    def __init__(self, session):

        self.session = session
        self.listeners = dict()

        session.register('NOTIFY', self._notify_incoming)


    def add_listener(self, listener):
        """ Register *listener* and return a :class:`Registration`. The
            listener receives nothing until :func:`Registration.select`
            is called.
        """

        id = self.session.request('LISTEN')
        self.listeners[id] = listener
        return Registration(self, id, listener)


    def closed(self, id):
        try:
            listener = self.listeners.pop(id)
        except KeyError:
            return

        listener.on_close()


    def error(self, id, error):
        try:
            listener = self.listeners.pop(id)
        except KeyError:
            logger.error("notification listener %r error: %s", id, error)
            return

        listener.on_error(error)


    def _notify_incoming(self, msg):

        id = msg.get('listener')

        try:
            listener = self.listeners[id]
        except KeyError:
            return

        kind = msg.get('type')

        if kind in kinds:
            pass
        else:
            logger.warning("unknown notification type %r for %s", kind, msg.target)
            return

        if msg.get('descendant'):
            listener.on_descendant_notification(msg.target, kind)
        else:
            specification = TopicSpecification.from_dict(msg.get('specification'))
            listener.on_topic_notification(msg.target, specification, kind)


# end of class Notifications


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
