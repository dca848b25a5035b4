""" Revocable timers. Every delayed or periodic action taken by a
    :class:`brook.connection.Connection` goes through a :class:`Scheduler`
    so that it can be cancelled the moment it is superseded; a cancelled
    timer never invokes its function, even if the deadline has already
    passed while the cancellation was in flight.
"""

import threading
import time


class Timer:
    """ Invoke *function* with *args* once, after *delay* seconds, from a
        dedicated background thread.
    """

    def __init__(self, delay, function, *args):

        self.delay = float(delay)
        self.function = function
        self.args = args
        self.cancelled = False

        self.alarm = threading.Event()
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True


    def start(self):
        self.thread.start()
        return self


    def run(self):

        self.alarm.wait(self.delay)

        if self.cancelled == True:
            return

        self.function(*self.args)


    def cancel(self):
        self.cancelled = True
        self.alarm.set()


# end of class Timer



class Interval:
    """ Invoke *function* every *period* seconds until cancelled. The
        cadence is fixed: regardless of how long *function* takes, the next
        call is scheduled relative to the previous deadline, not relative to
        when the previous call returned.
    """

    def __init__(self, period, function, *args):

        self.period = float(period)
        self.function = function
        self.args = args
        self.cancelled = False

        self.alarm = threading.Event()
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True


    def start(self):
        self.thread.start()
        return self


    def run(self):

        next = time.time() + self.period

        while True:
            delay = next - time.time()
            if delay > 0:
                self.alarm.wait(delay)

            if self.cancelled == True:
                break

            self.function(*self.args)
            next += self.period


    def cancel(self):
        self.cancelled = True
        self.alarm.set()


# end of class Interval



class Scheduler:
    """ Factory for :class:`Timer` and :class:`Interval` instances. A
        :class:`brook.connection.Connection` only ever asks its scheduler
        for timers, which allows a replacement scheduler to be substituted,
        for example one driven manually by a test.
    """

    def timer(self, delay, function, *args):
        """ Start and return a one-shot :class:`Timer`.
        """

        return Timer(delay, function, *args).start()


    def interval(self, period, function, *args):
        """ Start and return a periodic :class:`Interval`.
        """

        return Interval(period, function, *args).start()


# end of class Scheduler


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
