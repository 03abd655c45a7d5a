import logging
from unittest import mock

import pytest

from ircchain.buffers import PendingMessage


@pytest.fixture
def outgoing(connection):
    """Record every ``outgoing_*`` event dispatched, in order."""
    events = []
    names = ['privmsg', 'msg', 'ctcp', 'act', 'notice', 'ctcpreply', 'mode', 'join', 'part', 'quit',
             'nick', 'user', 'pass', 'oper', 'topic', 'names', 'list', 'invite', 'kick']
    for name in names:
        connection.prepend_handler(f'outgoing_{name}',
                                   lambda *args, name=name: events.append((f'outgoing_{name}',) + args))
    return events


def queued(connection):
    return connection._throttle.pop_round()


def test_msg(connection, transport, outgoing):
    connection.msg('#chan', 'hello')
    assert outgoing == [
        ('outgoing_msg', '#chan', 'hello'),
        ('outgoing_privmsg', '#chan', 'hello'),
    ]
    # Nothing is written until the throttle sends it
    assert transport.sent == []
    assert queued(connection) == [('#chan', PendingMessage('hello', '#chan <> hello'))]


def test_act(connection, transport, outgoing):
    connection.act('#chan', 'waves')
    assert [e[0] for e in outgoing] == ['outgoing_act', 'outgoing_ctcp', 'outgoing_privmsg']
    assert outgoing[0] == ('outgoing_act', '#chan', 'waves')
    assert outgoing[1] == ('outgoing_ctcp', '#chan', 'ACTION waves')
    assert outgoing[2] == ('outgoing_privmsg', '#chan', '\x01ACTION waves\x01')
    [(target, message)] = queued(connection)
    assert target == '#chan'
    assert message.body == '\x01ACTION waves\x01'


def test_ctcp(connection, outgoing):
    connection.ctcp('bob', 'VERSION')
    assert [e[0] for e in outgoing] == ['outgoing_ctcp', 'outgoing_privmsg']
    [(target, message)] = queued(connection)
    assert (target, message.body) == ('bob', '\x01VERSION\x01')


def test_privmsg_per_target_queues(connection):
    connection.privmsg('bob', 'one')
    connection.privmsg('bob', 'two')
    connection.privmsg('carol', 'three')
    assert dict(queued(connection)) == {
        'bob': PendingMessage('one'),
        'carol': PendingMessage('three'),
    }
    assert queued(connection) == [('bob', PendingMessage('two'))]


def test_notice(connection, transport, outgoing, caplog):
    with caplog.at_level(logging.INFO, logger='ircchain.report'):
        connection.notice('bob', 'hi there')
    assert outgoing == [('outgoing_notice', 'bob', 'hi there')]
    assert transport.sent == ['NOTICE bob :hi there']
    assert 'bob -- hi there' in caplog.text


def test_ctcpreply(connection, transport, outgoing):
    connection.ctcpreply('bob', 'VERSION ircchain')
    assert [e[0] for e in outgoing] == ['outgoing_ctcpreply', 'outgoing_notice']
    assert transport.sent == ['NOTICE bob :\x01VERSION ircchain\x01']


@pytest.mark.parametrize("method,args,event,line", [
    ('mode', ('#chan', '+o', 'alice'), ('outgoing_mode', '#chan', '+o', 'alice'), 'MODE #chan +o alice'),
    ('mode', ('#chan',), ('outgoing_mode', '#chan', '', ''), 'MODE #chan'),
    ('join', ('#chan',), ('outgoing_join', '#chan', ''), 'JOIN #chan'),
    ('join', ('#chan', 'key'), ('outgoing_join', '#chan', 'key'), 'JOIN #chan key'),
    ('part', ('#chan',), ('outgoing_part', '#chan', ''), 'PART #chan'),
    ('part', ('#chan', 'bye now'), ('outgoing_part', '#chan', 'bye now'), 'PART #chan :bye now'),
    ('quit', (), ('outgoing_quit', ''), 'QUIT'),
    ('quit', ('bye now',), ('outgoing_quit', 'bye now'), 'QUIT :bye now'),
    ('nick', ('newnick',), ('outgoing_nick', 'newnick'), 'NICK :newnick'),
    ('user', ('chain', '0.0.0.0', 'irc.example.net', 'Chain Bot'),
     ('outgoing_user', 'chain', '0.0.0.0', 'irc.example.net', 'Chain Bot'),
     'USER chain 0.0.0.0 irc.example.net :Chain Bot'),
    ('pass_', ('sekrit',), ('outgoing_pass', 'sekrit'), 'PASS sekrit'),
    ('oper', ('admin', 'sekrit'), ('outgoing_oper', 'admin', 'sekrit'), 'OPER admin sekrit'),
    ('topic', ('#chan',), ('outgoing_topic', '#chan', ''), 'TOPIC #chan'),
    ('topic', ('#chan', 'new topic'), ('outgoing_topic', '#chan', 'new topic'), 'TOPIC #chan :new topic'),
    ('names', (), ('outgoing_names', ''), 'NAMES'),
    ('names', ('#chan',), ('outgoing_names', '#chan'), 'NAMES #chan'),
    ('list_', (), ('outgoing_list', '', ''), 'LIST'),
    ('list_', ('#chan',), ('outgoing_list', '#chan', ''), 'LIST #chan'),
    ('invite', ('bob', '#chan'), ('outgoing_invite', 'bob', '#chan'), 'INVITE bob #chan'),
    ('kick', ('bob', '#chan'), ('outgoing_kick', 'bob', '#chan', ''), 'KICK #chan bob'),
    ('kick', ('bob', '#chan', 'behave'), ('outgoing_kick', 'bob', '#chan', 'behave'), 'KICK #chan bob :behave'),
])
def test_immediate_commands(connection, transport, outgoing, method, args, event, line):
    getattr(connection, method)(*args)
    assert outgoing == [event]
    assert transport.sent == [line]


def test_pong(connection, transport):
    connection.pong('irc.example.net')
    assert transport.sent == ['PONG :irc.example.net']


def test_password_not_reported(connection, caplog):
    with caplog.at_level(logging.INFO, logger='ircchain.report'):
        connection.pass_('sekrit')
        connection.oper('admin', 'hunter2')
    assert 'sekrit' not in caplog.text
    assert 'hunter2' not in caplog.text
    assert 'PASS ********' in caplog.text


def test_raw_reports(connection, transport, caplog):
    with caplog.at_level(logging.INFO, logger='ircchain.report'):
        assert connection.raw('WHOIS alice') is True
        assert connection.raw('WHOIS bob', report=False) is True
    assert transport.sent == ['WHOIS alice', 'WHOIS bob']
    assert 'bot: WHOIS alice' in caplog.text
    assert 'bot: WHOIS bob' not in caplog.text


def test_outgoing_handler_cannot_suppress(connection, transport):
    connection.prepend_handler('outgoing_join', mock.Mock(return_value=True))
    connection.join('#chan')
    assert transport.sent == ['JOIN #chan']
