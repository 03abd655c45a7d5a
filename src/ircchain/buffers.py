"""Lock-guarded buffers shared between the connection's threads.

Each buffer owns exactly one lock, and holds it only for the duration of a
mutation; nothing is classified, dispatched or written while a lock is held.
"""
from collections import deque
import threading
import time
from typing import (
    Callable,
    Deque,
    Dict,
    List,
    Tuple,
)

import attr


class InputQueue:
    """Ordered buffer of raw lines, filled by the reader and drained by the dispatcher."""
    def __init__(self):
        self._lines: List[str] = []
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)

    def __len__(self):
        with self._lock:
            return len(self._lines)

    def push(self, line: str):
        with self._lock:
            self._lines.append(line)
            self._not_empty.notify()

    def swap(self, timeout: float = 0.0) -> List[str]:
        """Take every buffered line, waiting at most *timeout* seconds for one to arrive.

        The whole buffer is swapped out at once rather than popped line by
        line, so the lock is held as briefly as possible.
        """
        with self._lock:
            if not self._lines and timeout > 0:
                self._not_empty.wait(timeout)
            lines, self._lines = self._lines, []
        return lines


@attr.s(frozen=True, slots=True)
class PendingMessage:
    #: Message body, sent as ``PRIVMSG <target> :<body>``
    body: str = attr.ib()
    #: Text to report once the message is sent, if non-empty
    report: str = attr.ib(default='')


class OutputThrottle:
    """Per-target queues of outgoing private messages, sent at a limited rate.

    Each :meth:`drain` sends at most one message for every target that has
    something queued, and once anything has been sent no further drain can
    happen until *interval* seconds have passed.  Targets are visited in
    whatever order the underlying mapping yields them; there is no ordering
    guarantee across targets.

    >>> clock = iter([0.0, 0.0, 0.0, 0.5, 1.0, 1.0]).__next__
    >>> throttle = OutputThrottle(1.0, clock=clock)
    >>> throttle.enqueue('bob', 'one')
    >>> throttle.enqueue('bob', 'two')
    >>> throttle.drain(lambda target, msg: print(target, msg.body))
    bob one
    1
    >>> throttle.drain(lambda target, msg: print(target, msg.body))
    0
    >>> throttle.drain(lambda target, msg: print(target, msg.body))
    bob two
    1
    """
    def __init__(self, interval: float = 1.0, *, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._queues: Dict[str, Deque[PendingMessage]] = {}
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        # Buffered output is allowed to go out right away
        self._next_time = clock()

    def __len__(self):
        """Total number of messages waiting to be sent."""
        with self._lock:
            return sum(len(q) for q in self._queues.values())

    @property
    def targets(self) -> List[str]:
        with self._lock:
            return list(self._queues)

    @property
    def empty(self) -> bool:
        return not self._queues

    def enqueue(self, target: str, body: str, report: str = ''):
        with self._lock:
            self._queues.setdefault(target, deque()).append(PendingMessage(body, report or ''))
            self._changed.notify()

    def delay(self) -> float:
        """Seconds until the next drain is permitted (0 if it already is)."""
        return max(0.0, self._next_time - self._clock())

    def is_due(self) -> bool:
        """Is there something to send, and has the interval elapsed since the last send?"""
        return not self.empty and self._clock() >= self._next_time

    def pop_round(self) -> List[Tuple[str, PendingMessage]]:
        """Pop the head of every target's queue.

        The set of targets is snapshotted under the lock, and a target is
        removed as soon as its queue is empty.
        """
        popped = []
        with self._lock:
            for target in list(self._queues):
                queue = self._queues[target]
                popped.append((target, queue.popleft()))
                if not queue:
                    del self._queues[target]
        return popped

    def drain(self, send: Callable[[str, PendingMessage], None]) -> int:
        """Send one message per target with *send*, if a drain is due.

        Returns the number of messages sent.
        """
        if not self.is_due():
            return 0
        popped = self.pop_round()
        if popped:
            self._next_time = self._clock() + self.interval
        for target, message in popped:
            send(target, message)
        return len(popped)

    def wait(self, timeout: float):
        """Wait at most *timeout* seconds for a message to be queued, if none are."""
        with self._lock:
            if not self._queues and timeout > 0:
                self._changed.wait(timeout)
