""" Client control: observing other sessions through their properties, and
    subscribing them to topics on their behalf.
"""

import logging


logger = logging.getLogger(__name__)

PRINCIPAL = '$Principal'
ROLES = '$Roles'

OPEN = 'open'
UPDATE = 'update'
CLOSE = 'close'


def parse_roles(string):
    """ Split the value of the $Roles session property into a list of role
        names. Roles are separated by commas; a role containing a comma,
        quote, backslash, or leading or trailing whitespace is enclosed in
        double quotes, with quotes and backslashes escaped by a backslash.
        A ValueError is raised for unbalanced quoting.
    """

    roles = list()

    if string is None:
        return roles

    string = str(string)
    index = 0
    length = len(string)

    while index < length:

        while index < length and string[index] == ' ':
            index += 1

        if index == length:
            break

        if string[index] == '"':
            index += 1
            role = list()
            closed = False

            while index < length:
                character = string[index]
                if character == '\\':
                    index += 1
                    if index == length:
                        break
                    role.append(string[index])
                elif character == '"':
                    closed = True
                    index += 1
                    break
                else:
                    role.append(character)
                index += 1

            if closed == False:
                raise ValueError('unterminated quote in roles: ' + repr(string))

            role = ''.join(role)

            while index < length and string[index] == ' ':
                index += 1

            if index < length and string[index] != ',':
                raise ValueError('unexpected text after quoted role: ' + repr(string))

        else:
            comma = string.find(',', index)
            if comma == -1:
                comma = length
            role = string[index:comma].strip()
            index = comma

        roles.append(role)

        # Skip the comma, if any.
        index += 1

    return roles



def format_roles(roles):
    """ The inverse of :func:`parse_roles`.
    """

    formatted = list()

    for role in roles:
        role = str(role)
        if role == '' or role != role.strip() or any(c in role for c in ',"\\'):
            role = role.replace('\\', '\\\\').replace('"', '\\"')
            role = '"' + role + '"'
        formatted.append(role)

    return ','.join(formatted)



class SessionPropertiesListener:
    """ Interface for objects passed to
        :func:`Clients.set_session_properties_listener`. Every method has a
        no-op default; implement the ones of interest.
    """

    def on_active(self):
        pass


    def on_session_open(self, session_id, properties):
        pass


    def on_session_event(self, session_id, type, properties, previous):
        pass


    def on_session_close(self, session_id, properties, reason):
        pass


    def on_close(self):
        pass


    def on_error(self, error):
        pass


# end of class SessionPropertiesListener



class Clients:
    """ The client control feature of a :class:`topicmirror.session.Session`.
    """

    def __init__(self, session):

        self.session = session
        self.listener = None

        session.register('SESSION', self._session_incoming)


    def subscribe(self, session_id, selector):
        """ Subscribe another session, identified by *session_id*, to the
            topics matching *selector*. Returns the number of sessions
            subscribed, as reported by the server.
        """

        return self.session.request('SUBSCRIBE', str(selector), session=str(session_id))


    def unsubscribe(self, session_id, selector):
        return self.session.request('UNSUBSCRIBE', str(selector), session=str(session_id))


    def set_session_properties_listener(self, properties, listener):
        """ Receive open, update and close events for every session, each
            carrying the named *properties*. Replaces any previous listener.
        """

        properties = list(properties)
        self.session.request('PROPERTIES', value=properties)

        previous = self.listener
        self.listener = listener

        if previous is not None and previous is not listener:
            previous.on_close()

        listener.on_active()


    def closed(self, key=None):
        listener = self.listener
        self.listener = None

        if listener is not None:
            listener.on_close()


    def error(self, key, error):
        listener = self.listener
        self.listener = None

        if listener is None:
            logger.error("session properties listener error: %s", error)
        else:
            listener.on_error(error)


    def _session_incoming(self, msg):

        listener = self.listener

        if listener is None:
            return

        session_id = msg.target
        event = msg.get('event')
        properties = msg.get('properties') or dict()

        if event == OPEN:
            listener.on_session_open(session_id, properties)
        elif event == UPDATE:
            previous = msg.get('previous') or dict()
            listener.on_session_event(session_id, msg.get('type'), properties, previous)
        elif event == CLOSE:
            listener.on_session_close(session_id, properties, msg.get('reason'))
        else:
            logger.warning("unknown session event %r for %s", event, session_id)


# end of class Clients


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
