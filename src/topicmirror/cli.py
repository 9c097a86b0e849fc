""" Command-line entry points. Each program connects using the server
    descriptor (see :mod:`topicmirror.config`), registers its listener, and
    runs until interrupted.
"""

import argparse
import logging
import sys
import threading

from . import config
from . import roles
from . import session
from . import watch
from .errors import SessionError
from .mirror import TopicMirror
from .subscriber import ValueLogger


logger = logging.getLogger('topicmirror')

log_format = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(level='INFO'):
    logging.basicConfig(level=getattr(logging, level.upper()), format=log_format)



def _parser(description):

    parser = argparse.ArgumentParser(description=description)
    parser.add_argument('--config', default=None,
            help="server descriptor (default: $TOPICMIRROR_CONFIG or ./%s)" % (config.default_filename))
    parser.add_argument('--log-level', default='INFO',
            choices=('DEBUG', 'INFO', 'WARNING', 'ERROR'),
            help='logging threshold (default: INFO)')
    return parser



def _connect(arguments):
    """ Load the server descriptor and open a session. Failures are logged
        and None is returned.
    """

    try:
        server = config.load(arguments.config)
    except (OSError, ValueError) as e:
        logger.error("Cannot load server configuration: %s", e)
        return None

    try:
        connected = session.connect(server)
    except SessionError as e:
        logger.error("Cannot connect to %s: %s", server.host, e)
        return None

    logger.info("Connected session %s to %s", connected.id, server.host)
    return connected



def _run_until_interrupted():
    stop = threading.Event()

    try:
        while not stop.wait(1):
            pass
    except KeyboardInterrupt:
        pass



def missing_topics(argv=None):
    """ Serve topics under a prefix from JSON files, creating them on demand.
    """

    parser = _parser(missing_topics.__doc__)
    parser.add_argument('--root', default='cdn',
            help='topic path prefix, and directory, to mirror (default: cdn)')
    parser.add_argument('--directory', default=None,
            help='directory containing the root directory (default: current directory)')
    parser.add_argument('--eager', action='store_true',
            help='create topics for new or changed files without waiting for a request')
    arguments = parser.parse_args(argv)
    setup_logging(arguments.log_level)

    connected = _connect(arguments)
    if connected is None:
        return 1

    try:
        mirror = TopicMirror.build(connected, arguments.root, arguments.directory, arguments.eager)
        connected.topics.add_missing_topic_handler(mirror.root, mirror)
    except SessionError as e:
        logger.error("Cannot set up the mirror for %s: %s", arguments.root, e)
        connected.close()
        return 1

    observer = watch.start(mirror)

    _run_until_interrupted()

    observer.stop()
    observer.join()
    connected.close()
    return 0



def role_subscriber(argv=None):
    """ Subscribe every session with a given role to a selector.
    """

    parser = _parser(role_subscriber.__doc__)
    parser.add_argument('--role', default='TRADER',
            help='role to look for in $Roles (default: TRADER)')
    parser.add_argument('--selector', default='cdn/trader-news.json',
            help='selector to subscribe matching sessions to (default: cdn/trader-news.json)')
    arguments = parser.parse_args(argv)
    setup_logging(arguments.log_level)

    connected = _connect(arguments)
    if connected is None:
        return 1

    listener = roles.RoleSubscriber(connected, arguments.role, arguments.selector)

    try:
        connected.clients.set_session_properties_listener(roles.properties, listener)
    except SessionError as e:
        logger.error("Cannot register session properties listener: %s", e)
        connected.close()
        return 1

    _run_until_interrupted()

    connected.close()
    return 0



def subscribe(argv=None):
    """ Subscribe to a topic selector and log its values.
    """

    parser = _parser(subscribe.__doc__)
    parser.add_argument('selector', help='topic path or selector to subscribe to')
    arguments = parser.parse_args(argv)
    setup_logging(arguments.log_level)

    connected = _connect(arguments)
    if connected is None:
        return 1

    try:
        connected.streams.add(arguments.selector, ValueLogger())
        connected.streams.select(arguments.selector)
    except (SessionError, ValueError) as e:
        logger.error("Cannot subscribe to %s: %s", arguments.selector, e)
        connected.close()
        return 1

    logger.info("Selected: %s", arguments.selector)

    _run_until_interrupted()

    connected.close()
    return 0



if __name__ == '__main__':
    sys.exit(missing_topics())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
