""" Mirror a directory of JSON files into a branch of the topic tree.

    A :class:`TopicMirror` owns one root prefix, such as ``cdn``. The topic
    ``cdn/a.json`` is backed by the file ``cdn/a.json`` relative to the
    mirror's base directory. Topics are created lazily, when a client asks
    for one that does not exist yet; from then on, modifying the file updates
    the topic, and deleting the file removes it. Topics created by the mirror
    carry a removal policy, so the server drops them again once nobody has
    been subscribed for a minute.

    Which topics exist is tracked locally in a :class:`TrackedTopicSet`, kept
    current by topic notifications from the server. Filesystem events for
    files that are not tracked are ignored unless the mirror is *eager*.
"""

import logging
import os
import threading

from . import json
from . import selector
from .errors import SessionError
from .notifications import ADDED, REMOVED, SELECTED, DESELECTED
from .notifications import TopicNotificationListener
from .topics import MissingTopicHandler, TopicSpecification
from .topics import REMOVAL, removal_policy


logger = logging.getLogger(__name__)


class TrackedTopicSet(TopicNotificationListener):
    """ The set of topic paths under *root* believed to exist on the server.
        Membership changes arrive from two threads, the session dispatch
        thread and the filesystem observer, hence the lock.
    """

    def __init__(self, root):

        self.root = selector.normalize(root)
        self._paths = set()
        self._lock = threading.Lock()


    def __contains__(self, path):
        with self._lock:
            return path in self._paths


    def __iter__(self):
        return iter(self.paths())


    def __len__(self):
        with self._lock:
            return len(self._paths)


    def __repr__(self):
        return 'TrackedTopicSet(%r, %r)' % (self.root, sorted(self.paths()))


    def paths(self):
        """ Return a snapshot of the tracked paths.
        """

        with self._lock:
            return frozenset(self._paths)


    def add(self, path):
        """ Track *path*. Returns True if it was not already tracked.
        """

        with self._lock:
            if path in self._paths:
                return False
            self._paths.add(path)
            return True


    def discard(self, path):
        """ Stop tracking *path*. Returns True if it was tracked; discarding
            an untracked path is not an error.
        """

        with self._lock:
            if path in self._paths:
                self._paths.remove(path)
                return True
            return False


    def on_topic_notification(self, path, specification, kind):

        if kind == ADDED:
            logger.info("Topic %s has been added", path)
            self.add(path)
        elif kind == SELECTED:
            logger.info("Topic %s existed at the time of the selector registration", path)
            self.add(path)
        elif kind == REMOVED:
            logger.warning("Topic %s has been removed", path)
            self.discard(path)
        elif kind == DESELECTED:
            logger.warning("Topic %s has been deselected", path)
            self.discard(path)


    def on_close(self):
        logger.warning("Topic notifications for %s closed", self.root)


    def on_error(self, error):
        logger.error("Topic notification error for %s: %s", self.root, error)


# end of class TrackedTopicSet



class TopicMirror(MissingTopicHandler):
    """ Keep the topics under *root* consistent with the JSON files under
        *directory*/*root*. The *session* is a connected
        :class:`topicmirror.session.Session`, or anything offering the same
        ``notifications`` and ``topics`` features.

        Use :func:`build` to get a mirror that is already tracking the
        existing topics.
    """

    specification = TopicSpecification('JSON', {REMOVAL: removal_policy(1, 1)})

    def __init__(self, session, root, directory=None, eager=False):

        if directory is None:
            directory = os.getcwd()

        root = selector.normalize(root)

        if root == '':
            raise ValueError('the mirror root must not be empty')

        self.session = session
        self.root = root
        self.directory = os.path.abspath(directory)
        self.eager = eager
        self.topics = TrackedTopicSet(root)
        self.registration = None


    @classmethod
    def build(cls, session, root, directory=None, eager=False):
        mirror = cls(session, root, directory, eager)
        mirror.initialize()
        return mirror


    def initialize(self):
        """ Start tracking the topics under the root. Blocks until the
            server has accepted the selector; the topics that already exist
            are reported asynchronously afterwards. Returns the
            :class:`TrackedTopicSet`.
        """

        topics = selector.descendants(self.root)

        self.registration = self.session.notifications.add_listener(self.topics)
        self.registration.select(topics)
        logger.info("Watching for topics that match %s", topics)

        return self.topics


    @property
    def watched(self):
        """ The directory holding the files for the topics under the root.
        """

        return self.filename(self.root)


    def contains(self, path):
        """ Return True if the topic *path* is below the mirror root. Paths
            with empty, '.' or '..' segments never are, whatever they start
            with, since they would not map to a file under the root.
        """

        if path.startswith(self.root + '/') == False:
            return False

        for segment in path.split('/'):
            if segment in ('', os.curdir, os.pardir):
                return False

        return True


    def filename(self, path):
        return os.path.join(self.directory, *path.split('/'))


    def topic_path(self, filename):
        """ Map *filename* to its topic path. Returns None for files outside
            the mirror root. Relative filenames are taken relative to the
            base directory.
        """

        filename = os.path.join(self.directory, filename)
        relative = os.path.relpath(os.path.abspath(filename), self.directory)

        if relative == os.curdir or relative == os.pardir or relative.startswith(os.pardir + os.sep):
            return None

        path = relative.replace(os.sep, '/')

        if self.contains(path):
            return path

        return None


    def on_file_changed(self, filename):
        """ A file was written. If its topic is tracked (or the mirror is
            eager), push the new content. Returns True if the topic was set.
        """

        path = self.topic_path(filename)

        if path is None:
            return False

        if self.eager == False and path not in self.topics:
            return False

        logger.info("Updating topic %s", path)
        return self._set_topic(path, "Topic %s not updated, %s is gone")


    def on_file_removed(self, filename):
        """ A file was deleted. If its topic is tracked, stop tracking it and
            remove it from the server. Returns True if a removal was issued.
        """

        path = self.topic_path(filename)

        if path is None:
            return False

        # Discarding first makes a second removal event for the same file
        # a no-op, even while the first removal is still in flight.

        if self.topics.discard(path) == False:
            return False

        try:
            self.session.topics.remove('>' + path)
        except SessionError as e:
            logger.error("Failed to remove topic %s: %s", path, e)
        else:
            logger.info("Removed topic %s", path)

        return True


    def missing_topic(self, path):
        """ Try to create the missing topic *path* from its file. Never
            raises; returns True if the topic now exists.
        """

        path = selector.normalize(path)

        if self.contains(path) == False:
            logger.warning("Missing topic %s is outside %s", path, self.root)
            return False

        if path in self.topics:
            return True

        return self._set_topic(path, "Cannot satisfy missing topic %s, no existing file %s")


    def on_missing_topic(self, notification):

        logger.info("Missing topic notification: path=%s, selector=%s, session=%s",
                notification.path, notification.selector, notification.session_id)

        try:
            self.missing_topic(notification.path)
        finally:
            try:
                notification.proceed()
            except SessionError as e:
                logger.error("Failed to proceed with missing topic %s: %s", notification.path, e)


    def on_register(self, path, deregister):
        logger.info("Registered missing topic handler on path %s", path)


    def on_close(self, path):
        logger.warning("Missing topic handler closed for path %s", path)


    def on_error(self, path, error):
        logger.error("Missing topic handler for path %s failed: %s", path, error)


    def _set_topic(self, path, absent):
        """ Create or update the topic *path* from its file. The *absent*
            format string, given the path and filename, is logged as a
            warning if the file does not exist.
        """

        filename = self.filename(path)

        try:
            with open(filename, 'rb') as handle:
                raw = handle.read()
        except FileNotFoundError:
            logger.warning(absent, path, filename)
            return False
        except OSError as e:
            logger.error("Cannot read %s: %s", filename, e)
            return False

        try:
            content = json.loads(raw)
        except json.DecodeError as e:
            logger.error("Invalid JSON in %s: %s", filename, e)
            return False

        try:
            self.session.topics.set(path, content, self.specification)
        except SessionError as e:
            logger.error("Failed to set topic %s: %s", path, e)
            return False

        self.topics.add(path)
        return True


# end of class TopicMirror


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
