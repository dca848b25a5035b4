""" Exponential backoff with jitter, used to space out reconnection attempts
    so that a fleet of clients does not hammer a recovering server in
    lock step.
"""

import math
import random

from .errors import MaxAttemptsExceeded


minimum_delay = 100


class Backoff:
    """ Compute successive reconnection delays. All delays are in
        milliseconds. The baseline delay starts at *initial_delay* and is
        scaled by *multiplier* after every call to :func:`next_delay`, up to
        *max_delay*; each returned delay is the baseline plus or minus
        *jitter* (a fraction of the baseline), clamped to the range
        [100, *max_delay*]. Setting *max_attempts* to None allows unlimited
        attempts.

        :ivar attempts: The number of delays handed out since the last reset.
        :ivar current_delay: The pre-jitter baseline for the next delay.
    """

    def __init__(self, initial_delay=3000, multiplier=1.5, max_delay=30000,
                        jitter=0.1, max_attempts=None, random=random.random):

        if initial_delay is None or initial_delay <= 0:
            raise ValueError('initial_delay must be a positive number')

        if multiplier is None or multiplier < 1:
            raise ValueError('multiplier must be at least 1')

        if jitter is None or jitter < 0 or jitter > 1:
            raise ValueError('jitter must be between 0 and 1')

        if max_attempts is None:
            max_attempts = math.inf

        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.max_attempts = max_attempts
        self.random = random

        self.attempts = 0
        self.current_delay = initial_delay


    def attempts_exceeded(self):
        """ Return True if no further delays can be handed out.
        """

        return self.attempts >= self.max_attempts


    def _jittered(self, baseline):

        offset = (self.random() * 2 - 1) * baseline * self.jitter
        delay = baseline + offset
        delay = min(delay, self.max_delay)
        delay = max(minimum_delay, delay)

        return int(math.floor(delay))


    def next_delay(self):
        """ Return the delay to wait before the next attempt, and advance
            the internal state. Raises :class:`MaxAttemptsExceeded` if
            *max_attempts* delays have already been handed out since the
            last :func:`reset`.
        """

        if self.attempts_exceeded():
            error = "maximum reconnection attempts exceeded (%s)" % (self.max_attempts)
            raise MaxAttemptsExceeded(error)

        self.attempts += 1

        delay = self._jittered(self.current_delay)

        next_delay = self.current_delay * self.multiplier
        self.current_delay = min(next_delay, self.max_delay)

        return delay


    def peek(self):
        """ Return what :func:`next_delay` would hand out right now, without
            counting it as an attempt. The jitter is re-rolled, so the value
            is representative rather than a promise.
        """

        return self._jittered(self.current_delay)


    def reset(self):
        """ Forget all previous attempts; called after a successful
            connection.
        """

        self.attempts = 0
        self.current_delay = self.initial_delay


    def status(self):
        """ Return a dictionary describing the configuration and current
            state, intended for diagnostics.
        """

        if self.attempts_exceeded():
            next_delay = None
        else:
            next_delay = self.peek()

        status = dict()
        status['attempts'] = self.attempts
        status['current_delay'] = self.current_delay
        status['next_delay'] = next_delay
        status['max_attempts'] = self.max_attempts

        config = dict()
        config['initial_delay'] = self.initial_delay
        config['multiplier'] = self.multiplier
        config['max_delay'] = self.max_delay
        config['jitter'] = self.jitter
        status['config'] = config

        return status


# end of class Backoff


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
