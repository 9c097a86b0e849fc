""" Client programs for a publish/subscribe messaging server: a topic mirror
    that serves a directory of JSON files as topics, a listener that
    subscribes sessions by role, and a subscriber that logs topic values.
"""

# Utility components.

from . import json
from . import errors
from . import selector

# Session and its features.

from . import protocol
from . import config
from . import topics
from . import notifications
from . import clients
from . import streams
from . import session

connect = session.connect

# Applications.

from . import mirror
from . import roles
from . import subscriber

from .mirror import TopicMirror, TrackedTopicSet
from .session import Session

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
