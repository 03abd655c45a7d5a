"""Handlers every connection needs, and handlers it has unless told otherwise.

The magic handlers keep the connection alive and track our own identity.
They are put at the front of their chains when the connection starts
listening, after any user handlers were registered, so they always run first.
They never handle an event, so user handlers still see everything.

The default handlers are put at the back of their chains when the connection
is created, so any user handler can take over by handling the event.
"""
from .dispatch import CONTINUE, HANDLED
from . import util


class MagicHandlers:
    """Ping replies, registration tracking and nick collision handling.

    Classes using this mixin must provide :attr:`dispatcher`,
    :attr:`nicknames` and the :class:`~ircchain.output.OutputAPI` helpers.
    """

    def setup_magic_handlers(self):
        self.dispatcher.prepend('incoming_ping', self._magic_ping)
        self.dispatcher.prepend('incoming_welcome', self._magic_welcome)
        self.dispatcher.prepend('incoming_nicknameinuse', self._magic_nick_in_use)
        self.dispatcher.prepend('incoming_nickcollision', self._magic_nick_in_use)
        self.dispatcher.prepend('incoming_nick', self._magic_nick)

    def _magic_ping(self, text):
        self.pong(text)
        return CONTINUE

    def _magic_welcome(self, text, args):
        """Registration is complete, and the reply is addressed to the nick we ended up with."""
        self._registered = True
        self._me = args['target']
        self.log.info('registered as %s', self._me)
        return CONTINUE

    def _magic_nick_in_use(self, text, args):
        """Attempted nick is in use, try another.

        Once registered, the nick we already have is kept and this is left to
        other handlers.  Before that, the next configured nickname is tried,
        and once those run out one is made up by adding underscores.
        """
        if self._registered:
            return CONTINUE

        refused = text.split(' ', 1)[0] or self._attempted_nick
        self._nick_index += 1
        if self._nick_index < len(self.nicknames):
            new_nick = self.nicknames[self._nick_index]
        else:
            new_nick = util.next_nick(refused, self._attempted_nick)
        self.log.warning('nick %s unavailable, trying %s', refused, new_nick)
        self._attempted_nick = new_nick
        self.nick(new_nick)
        return CONTINUE

    def _magic_nick(self, fullname, nick, new_nick):
        if nick == self._me:
            self._me = new_nick
            self.log.info('nick changed to %s', new_nick)
        return CONTINUE


class DefaultHandlers:
    """Identification on connect, and reporting of incoming traffic.

    Classes using this mixin must provide :attr:`dispatcher`, :meth:`report`
    and the :class:`~ircchain.output.OutputAPI` helpers.
    """

    def setup_default_handlers(self):
        self.dispatcher.append('outgoing_begin_connection', self._default_begin_connection)

        for event_name in ('incoming_msg', 'incoming_notice'):
            self.dispatcher.append(event_name, self._report_message)
        self.dispatcher.append('incoming_act', self._report_act)
        self.dispatcher.append('incoming_ctcp', self._report_ctcp)
        self.dispatcher.append('incoming_ctcpreply', self._report_ctcpreply)
        self.dispatcher.append('incoming_invite', self._report_invite)
        self.dispatcher.append('incoming_mode', self._report_mode)
        self.dispatcher.append('incoming_topic_change', self._report_topic_change)
        self.dispatcher.append('incoming_join', self._report_join)
        self.dispatcher.append('incoming_part', self._report_part)
        self.dispatcher.append('incoming_kick', self._report_kick)
        self.dispatcher.append('incoming_quit', self._report_quit)
        self.dispatcher.append('incoming_nick', self._report_nick)
        self.dispatcher.append('incoming_error', self._report_error)
        self.dispatcher.append('incoming_welcome', self._report_welcome)

    def _default_begin_connection(self, username, address, realname):
        """Identify ourselves to the server."""
        if self.server_password:
            self.pass_(self.server_password)
        self.user(username, '0.0.0.0', address, realname)
        self._attempted_nick = self.nicknames[0]
        self.nick(self._attempted_nick)
        return HANDLED

    def _report_message(self, fullname, nick, target, text):
        self.report(f'{target} <{nick or "server"}> {text}')
        return HANDLED

    def _report_act(self, fullname, nick, target, text):
        self.report(f'{target} * {nick} {text}')
        return HANDLED

    def _report_ctcp(self, fullname, nick, target, text):
        self.report(f'{target} [{nick}] CTCP {text}')
        return HANDLED

    def _report_ctcpreply(self, fullname, nick, target, text):
        self.report(f'{target} [{nick}] CTCP reply {text}')
        return HANDLED

    def _report_invite(self, fullname, nick, channel):
        self.report(f'[{nick}] INVITE to {channel}')
        return HANDLED

    def _report_mode(self, fullname, nick, target, modes, objects):
        self.report(' '.join(filter(None, [f'{target} {nick or fullname} sets mode', modes, objects])))
        return HANDLED

    def _report_topic_change(self, fullname, nick, channel, text):
        self.report(f'{channel} {nick} changed topic to {text}')
        return HANDLED

    def _report_join(self, fullname, nick, channel):
        self.report(f'{channel} {nick} joined')
        return HANDLED

    def _report_part(self, fullname, nick, channel, text):
        self.report(f'{channel} {nick} left' + (f' ({text})' if text else ''))
        return HANDLED

    def _report_kick(self, fullname, nick, channel, target, text):
        self.report(f'{channel} {nick} kicked {target}' + (f' ({text})' if text else ''))
        return HANDLED

    def _report_quit(self, fullname, nick, text):
        self.report(f'{nick} quit' + (f' ({text})' if text else ''))
        return HANDLED

    def _report_nick(self, fullname, nick, new_nick):
        self.report(f'{nick} is now known as {new_nick}')
        return HANDLED

    def _report_error(self, text):
        self.report(f'ERROR: {text}')
        return HANDLED

    def _report_welcome(self, text, args):
        self.report(f'*** Logged in as {args["target"]}. ***')
        return HANDLED
