import pytest

from topicmirror import clients
from topicmirror import roles
from topicmirror.errors import RequestError


class FakeClients:

    def __init__(self):
        self.subscriptions = list()
        self.fail = None


    def subscribe(self, session_id, selector):
        if self.fail is not None:
            raise self.fail
        self.subscriptions.append((session_id, selector))
        return 1



class FakeSession:

    def __init__(self):
        self.clients = FakeClients()



def test_parse_roles():

    assert clients.parse_roles(None) == []
    assert clients.parse_roles('') == []
    assert clients.parse_roles('TRADER') == ['TRADER']
    assert clients.parse_roles('CLIENT,TRADER') == ['CLIENT', 'TRADER']
    assert clients.parse_roles('CLIENT, TRADER ') == ['CLIENT', 'TRADER']
    assert clients.parse_roles('"a,b", c') == ['a,b', 'c']
    assert clients.parse_roles('"say \\"hi\\"","back\\\\slash"') == ['say "hi"', 'back\\slash']

    with pytest.raises(ValueError):
        clients.parse_roles('"unterminated')

    with pytest.raises(ValueError):
        clients.parse_roles('"quoted"trailing')


def test_format_roles():

    assert clients.format_roles(['CLIENT', 'TRADER']) == 'CLIENT,TRADER'
    assert clients.format_roles(['a,b', 'c']) == '"a,b",c'

    for names in (['a,b', ' padded ', 'say "hi"', 'back\\slash'], ['TRADER']):
        assert clients.parse_roles(clients.format_roles(names)) == names


def test_role_subscriber():

    session = FakeSession()
    listener = roles.RoleSubscriber(session, 'TRADER', 'cdn/trader-news.json')

    listener.on_active()

    listener.on_session_open('0-1', {'$Principal': 'alice', '$Roles': 'CLIENT,TRADER'})
    listener.on_session_open('0-2', {'$Principal': 'bob', '$Roles': 'CLIENT'})
    listener.on_session_open('0-3', {'$Roles': 'TRADER'})
    listener.on_session_open('0-4', {'$Principal': 'carol', '$Roles': ''})
    listener.on_session_open('0-5', {'$Principal': 'dave', '$Roles': '"TRADER"'})
    listener.on_session_open('0-6', {'$Principal': 'eve', '$Roles': '"TRADER'})

    assert session.clients.subscriptions == [
        ('0-1', 'cdn/trader-news.json'),
        ('0-5', 'cdn/trader-news.json'),
    ]
    assert listener.subscribed == ['0-1', '0-5']

    listener.on_session_event('0-1', 'updated', {}, {})
    listener.on_session_close('0-1', {}, 'closed by client')
    listener.on_close()


def test_role_subscriber_failure(caplog):

    session = FakeSession()
    session.clients.fail = RequestError('SUBSCRIBE', 'PermissionError', 'denied')
    listener = roles.RoleSubscriber(session, 'TRADER', 'cdn/trader-news.json')

    listener.on_session_open('0-1', {'$Principal': 'alice', '$Roles': 'TRADER'})

    assert listener.subscribed == []
    assert 'denied' in caplog.text


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
