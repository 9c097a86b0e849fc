import pytest

import topicmirror


class FakeRegistration:

    def __init__(self, session, listener):
        self.session = session
        self.listener = listener


    def select(self, selector):
        self.session.selected.append(selector)



class FakeNotifications:

    def __init__(self, session):
        self.session = session
        self.listeners = list()


    def add_listener(self, listener):
        self.listeners.append(listener)
        return FakeRegistration(self.session, listener)



class FakeTopics:
    """ Stand-in for the topic feature of a session: remembers the value and
        specification of every topic, and every call made.
    """

    def __init__(self):
        self.values = dict()
        self.specifications = dict()
        self.calls = list()
        self.fail = None


    def set(self, path, value, specification=None, wait=True):
        self.calls.append(('set', path, value))

        if self.fail is not None:
            raise self.fail

        self.values[path] = value
        self.specifications[path] = specification


    def remove(self, topics, wait=True):
        self.calls.append(('remove', topics))

        if self.fail is not None:
            raise self.fail

        path = topics.lstrip('>')

        if path in self.values:
            del self.values[path]
            return 1

        return 0



class FakeSession:

    def __init__(self):
        self.selected = list()
        self.topics = FakeTopics()
        self.notifications = FakeNotifications(self)


    def notify(self, path, kind):
        specification = topicmirror.topics.TopicSpecification()
        for listener in self.notifications.listeners:
            listener.on_topic_notification(path, specification, kind)



class FakeMissingTopicNotification:

    def __init__(self, path, selector=None, session_id='0-1'):
        self.path = path
        self.selector = selector or '>' + path
        self.session_id = session_id
        self.proceeded = 0


    def proceed(self):
        self.proceeded += 1



@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def cdn(tmp_path):
    """ An empty 'cdn' directory under a temporary base directory; the base
        directory is what the mirror is given.
    """

    directory = tmp_path / 'cdn'
    directory.mkdir()
    return directory


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
