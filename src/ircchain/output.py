class OutputAPI:
    """Helpers for sending commands to the server.

    Each helper first dispatches its ``outgoing_<command>`` event, so handlers
    can log or inspect what is about to happen; they cannot stop the command
    from being sent.  Private messages go through the output throttle, while
    everything else is written immediately with :meth:`raw`.

    Classes using this mixin must provide :meth:`dispatch`, :meth:`raw`,
    :meth:`report`, :meth:`enqueue_privmsg` and :attr:`me`.
    """

    def privmsg(self, target, text, report=''):
        """Queue a ``PRIVMSG`` for *target*, to be sent when the throttle allows.

        All private message helpers end up here.  *report* is reported once
        the message is actually sent.  Returns False if the message couldn't
        be queued.
        """
        self.dispatch('outgoing_privmsg', target, text)
        return self.enqueue_privmsg(target, text, report)

    def msg(self, target, text):
        """Send *text* to a channel or nick."""
        self.dispatch('outgoing_msg', target, text)
        return self.privmsg(target, text, report=f'{target} <{self.me}> {text}')

    def ctcp(self, target, text, report=None):
        """Send *text* to *target* as a CTCP query."""
        self.dispatch('outgoing_ctcp', target, text)
        if report is None:
            report = f'{target} [{self.me}] CTCP {text}'
        return self.privmsg(target, f'\x01{text}\x01', report=report)

    def act(self, target, text):
        """Send *text* to *target* as a CTCP ACTION (an emote)."""
        self.dispatch('outgoing_act', target, text)
        return self.ctcp(target, f'ACTION {text}', report=f'{target} * {self.me} {text}')

    def notice(self, target, text, report=None):
        """Send *text* to *target* as a ``NOTICE``."""
        self.dispatch('outgoing_notice', target, text)
        if report is None:
            report = f'{target} -{self.me}- {text}'
        if self.raw(f'NOTICE {target} :{text}', report=False):
            self.report(report)

    def ctcpreply(self, target, text):
        """Send *text* to *target* as a CTCP reply."""
        self.dispatch('outgoing_ctcpreply', target, text)
        self.notice(target, f'\x01{text}\x01', report=f'{target} [{self.me}] CTCP reply {text}')

    def mode(self, target, modes='', objects=''):
        """Set or query the modes of *target*, a channel or nick.

        >>> class Demo(OutputAPI):
        ...     def dispatch(self, *args): pass
        ...     def raw(self, line, report=True): print(line)
        >>> Demo().mode('#chan', '+o', 'alice')
        MODE #chan +o alice
        >>> Demo().mode('#chan')
        MODE #chan
        """
        self.dispatch('outgoing_mode', target, modes, objects)
        self.raw(' '.join(filter(None, ['MODE', target, modes, objects])))

    def join(self, target, password=''):
        """Join the channel *target*, with an optional channel key."""
        self.dispatch('outgoing_join', target, password)
        self.raw(' '.join(filter(None, ['JOIN', target, password])))

    def part(self, target, text=''):
        """Leave the channel *target*, with an optional reason."""
        self.dispatch('outgoing_part', target, text)
        self.raw(f'PART {target} :{text}' if text else f'PART {target}')

    def quit(self, text=''):
        """Leave the server, with an optional reason."""
        self.dispatch('outgoing_quit', text)
        self.raw(f'QUIT :{text}' if text else 'QUIT')

    def nick(self, new_nick):
        """Ask the server to change our nick."""
        self.dispatch('outgoing_nick', new_nick)
        self.raw(f'NICK :{new_nick}')

    def user(self, username, myaddress, address, realname):
        """Send the ``USER`` command that identifies us during registration."""
        self.dispatch('outgoing_user', username, myaddress, address, realname)
        self.raw(f'USER {username} {myaddress} {address} :{realname}')

    def pass_(self, password):
        """Send the server password.  The password itself is never reported."""
        self.dispatch('outgoing_pass', password)
        if self.raw(f'PASS {password}', report=False):
            self.report('bot: PASS ********')

    def oper(self, user, password):
        """Request operator status."""
        self.dispatch('outgoing_oper', user, password)
        if self.raw(f'OPER {user} {password}', report=False):
            self.report(f'bot: OPER {user} ********')

    def topic(self, channel, new_topic=''):
        """Set the topic of *channel*, or request it if *new_topic* is empty."""
        self.dispatch('outgoing_topic', channel, new_topic)
        self.raw(f'TOPIC {channel} :{new_topic}' if new_topic else f'TOPIC {channel}')

    def names(self, channel=''):
        """Request the nicks in *channel*, or in every visible channel."""
        self.dispatch('outgoing_names', channel)
        self.raw(' '.join(filter(None, ['NAMES', channel])))

    def list_(self, channel='', server=''):
        """Request channel information, optionally for one channel."""
        self.dispatch('outgoing_list', channel, server)
        self.raw(' '.join(filter(None, ['LIST', channel, server])))

    def invite(self, nick, channel):
        """Invite *nick* to *channel*."""
        self.dispatch('outgoing_invite', nick, channel)
        self.raw(f'INVITE {nick} {channel}')

    def kick(self, nick, channel, comment=''):
        """Kick *nick* from *channel*, with an optional comment."""
        self.dispatch('outgoing_kick', nick, channel, comment)
        self.raw(f'KICK {channel} {nick} :{comment}' if comment else f'KICK {channel} {nick}')

    def pong(self, text):
        """Answer a server ``PING``."""
        self.raw(f'PONG :{text}', report=False)
