"""Session-level exceptions.

Everything raised by the client session derives from :class:`SessionError`,
so callers that only care about "the server call failed" need one except
clause.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for all session errors."""


class SessionTimeout(SessionError):
    """A request did not receive a timely acknowledgement or reply."""


class SessionClosed(SessionError):
    """The session is closed, or was never opened."""


class RequestError(SessionError):
    """The server processed a request and replied with an error."""

    def __init__(self, request_type: str, error_type: str, text: str):
        self.request_type = request_type
        self.type = error_type
        self.text = text
        Exception.__init__(self, "%s failed: %s: %s" % (request_type, error_type, text))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
