""" Wire-level message definitions for the client session. The session
    module is the only consumer; application code should not need to
    construct messages directly.
"""

from . import message

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
