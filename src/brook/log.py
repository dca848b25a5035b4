""" Logging for the Brook client. Messages are routed through the standard
    :mod:`logging` machinery, under the ``brook`` logger by default, but only
    when the client was configured with ``verbose=True``; otherwise every
    call is a no-op.
"""

import logging


name = 'brook'
format = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class Log:
    """ Thin gate in front of a :class:`logging.Logger`. The arguments to
        each method are the same as the corresponding :class:`logging.Logger`
        method: a %-style format string followed by its arguments.
    """

    def __init__(self, verbose=False, logger=None):

        if logger is None:
            logger = logging.getLogger(name)

        self.verbose = bool(verbose)
        self.logger = logger

        if self.verbose == True:
            console(logger)


    def debug(self, *args, **kwargs):
        if self.verbose:
            self.logger.debug(*args, **kwargs)


    def info(self, *args, **kwargs):
        if self.verbose:
            self.logger.info(*args, **kwargs)


    def warning(self, *args, **kwargs):
        if self.verbose:
            self.logger.warning(*args, **kwargs)

    warn = warning


    def error(self, *args, **kwargs):
        if self.verbose:
            self.logger.error(*args, **kwargs)


    def exception(self, *args, **kwargs):
        """ Log at error level, including the traceback of the exception
            currently being handled.
        """

        if self.verbose:
            self.logger.exception(*args, **kwargs)


# end of class Log



def console(logger):
    """ Attach a console handler to *logger* if the application has not
        configured any logging of its own. Repeated calls are harmless.
    """

    if logger.handlers or logging.getLogger().handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format))
    logger.addHandler(handler)

    if logger.level == logging.NOTSET:
        logger.setLevel(logging.DEBUG)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
