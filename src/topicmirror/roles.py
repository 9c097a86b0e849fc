""" Subscribe sessions with a specific role to a given selector, as soon as
    they open.
"""

import logging

from .clients import PRINCIPAL, ROLES
from .clients import SessionPropertiesListener, parse_roles
from .errors import SessionError


logger = logging.getLogger(__name__)

properties = (PRINCIPAL, ROLES)


class RoleSubscriber(SessionPropertiesListener):
    """ Session properties listener: any session opening with *role* among
        its $Roles is subscribed to *selector*. Register it with::

            session.clients.set_session_properties_listener(roles.properties, listener)
    """

    def __init__(self, session, role, selector):
        self.session = session
        self.role = role
        self.selector = selector
        self.subscribed = list()


    def on_active(self):
        logger.info("Session properties listener is active")


    def on_session_open(self, session_id, properties):

        logger.info("Session opened %s: %s", session_id, properties)

        roles = properties.get(ROLES)
        principal = properties.get(PRINCIPAL)

        if not (roles and principal):
            return

        try:
            roles = set(parse_roles(roles))
        except ValueError as e:
            logger.warning("Session %s has unreadable roles: %s", session_id, e)
            return

        if self.role not in roles:
            return

        try:
            self.session.clients.subscribe(session_id, self.selector)
        except SessionError as e:
            logger.error("Failed to subscribe %s at %s to %s: %s", principal, session_id, self.selector, e)
            return

        self.subscribed.append(session_id)
        logger.info("Subscribed %s at %s to %s", principal, session_id, self.selector)


    def on_session_event(self, session_id, type, properties, previous):
        logger.info("Session changed properties %s: %s", session_id, properties)


    def on_session_close(self, session_id, properties, reason):
        logger.info("Session closed %s (%s): %s", session_id, reason, properties)


    def on_close(self):
        logger.info("Session properties listener is closed")


    def on_error(self, error):
        logger.error("Session properties listener error: %s", error)


# end of class RoleSubscriber


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
