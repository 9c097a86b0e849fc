""" A value stream that logs everything it receives.
"""

import logging

from .streams import ValueStream


logger = logging.getLogger(__name__)


class ValueLogger(ValueStream):

    def __init__(self, log=None):
        if log is None:
            log = logger
        self.log = log


    def on_subscribe(self, topic, specification):
        self.log.info("Subscribed to %s, type %s", topic, specification.type)


    def on_value(self, topic, specification, new_value, old_value):
        self.log.info("Topic update for %s: %s", topic, new_value)


    def on_unsubscribe(self, topic, specification, reason):
        self.log.warning("Unsubscribed from %s: %s", topic, reason)


    def on_error(self, error):
        self.log.error("Value stream error: %s", error)


# end of class ValueLogger


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
