""" Feed filesystem events into a :class:`topicmirror.mirror.TopicMirror`.
"""

import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer


logger = logging.getLogger(__name__)


class MirrorEventHandler(FileSystemEventHandler):
    """ Translate watchdog events into mirror calls. Directory events are
        ignored; a move is a removal of the old name plus a change of the
        new one.
    """

    def __init__(self, mirror):
        FileSystemEventHandler.__init__(self)
        self.mirror = mirror


    def on_created(self, event):
        if event.is_directory:
            return

        logger.debug("File %s created", event.src_path)
        self.mirror.on_file_changed(_decode(event.src_path))


    def on_modified(self, event):
        if event.is_directory:
            return

        logger.debug("File %s changed", event.src_path)
        self.mirror.on_file_changed(_decode(event.src_path))


    def on_deleted(self, event):
        if event.is_directory:
            return

        logger.info("File %s unlinked", event.src_path)
        self.mirror.on_file_removed(_decode(event.src_path))


    def on_moved(self, event):
        if event.is_directory:
            return

        logger.info("File %s moved to %s", event.src_path, event.dest_path)
        self.mirror.on_file_removed(_decode(event.src_path))
        self.mirror.on_file_changed(_decode(event.dest_path))


# end of class MirrorEventHandler



def _decode(path):
    """ watchdog reports bytes paths if it was given a bytes path.
    """

    return os.fsdecode(path)



def start(mirror, observer=None):
    """ Watch the mirror's directory recursively and return the running
        observer. The directory is created if it does not exist yet; the
        caller is responsible for ``observer.stop()`` and ``observer.join()``.
    """

    watched = mirror.watched
    os.makedirs(watched, exist_ok=True)

    if observer is None:
        observer = Observer()

    observer.schedule(MirrorEventHandler(mirror), watched, recursive=True)
    observer.start()

    logger.info("Watching directory %s", watched)
    return observer


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
