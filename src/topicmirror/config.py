""" Server connection descriptor. The descriptor is a small JSON file,
    conventionally named ``serverConfig.json``, loaded once at startup and
    handed to :func:`topicmirror.session.connect`. For example::

        {"host": "localhost", "port": 10079,
         "principal": "admin", "credentials": "password"}
"""

import os

from . import json


default_filename = 'serverConfig.json'
default_port = 10079
default_timeout = 120


class ServerConfig:
    """ The :class:`ServerConfig` is a plain container for the connection
        parameters; the only required field is the *host*. The *timeout* is
        the number of seconds to wait for a reply to any single request.
    """

    def __init__(self, host, port=None, principal=None, credentials=None, timeout=None):

        if host is None or host == '':
            raise ValueError('the server host must be specified')

        if port is None:
            port = default_port

        if timeout is None:
            timeout = default_timeout

        self.host = str(host)
        self.port = int(port)
        self.principal = principal
        self.credentials = credentials
        self.timeout = float(timeout)


    def __repr__(self):
        return 'ServerConfig(%s:%d, principal=%r)' % (self.host, self.port, self.principal)


    @property
    def address(self):
        return "tcp://%s:%d" % (self.host, self.port)


    @classmethod
    def from_dict(cls, contents):

        if isinstance(contents, dict):
            pass
        else:
            raise ValueError('server configuration must be a JSON object')

        try:
            host = contents['host']
        except KeyError:
            raise ValueError("server configuration is missing 'host'")

        return cls(host,
                port=contents.get('port'),
                principal=contents.get('principal'),
                credentials=contents.get('credentials'),
                timeout=contents.get('timeout'))


# end of class ServerConfig



def filename():
    """ Return the path of the configuration file to use if none was given
        explicitly: the TOPICMIRROR_CONFIG environment variable, if set,
        otherwise ``serverConfig.json`` in the current directory.
    """

    try:
        return os.environ['TOPICMIRROR_CONFIG']
    except KeyError:
        return default_filename



def load(path=None):
    """ Read and parse the server descriptor at *path*, returning a
        :class:`ServerConfig` instance. A missing file raises
        FileNotFoundError; malformed contents raise ValueError.
    """

    if path is None:
        path = filename()

    with open(path, 'rb') as handle:
        raw = handle.read()

    try:
        contents = json.loads(raw)
    except json.DecodeError as e:
        raise ValueError("cannot parse %s: %s" % (path, str(e)))

    return ServerConfig.from_dict(contents)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
