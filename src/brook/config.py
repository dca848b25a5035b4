""" Client configuration. A :class:`Configuration` gathers the options
    recognized by :class:`brook.Client`, fills in defaults, and picks up
    values from the environment for anything not passed explicitly.
"""

import os
import random
import string
import time

from .errors import InvalidConfiguration


default_endpoint = 'wss://connect.aptly.cloud'

defaults = dict()
defaults['endpoint'] = default_endpoint
defaults['api_key'] = None
defaults['reconnect_timeout'] = 3000
defaults['client_id'] = None
defaults['verbose'] = False
defaults['max_queue_size'] = 10000
defaults['heartbeat_interval'] = 30
defaults['auth_timeout'] = 30
defaults['connect_timeout'] = 10
defaults['backoff_multiplier'] = 1.5
defaults['backoff_max_delay'] = 30000
defaults['backoff_max_attempts'] = 20
defaults['backoff_jitter'] = 0.1

environment = dict()
environment['endpoint'] = 'BROOK_ENDPOINT'
environment['api_key'] = 'BROOK_API_KEY'
environment['verbose'] = 'BROOK_VERBOSE'

untruths = set(('', '0', 'false', 'f', 'no', 'n', 'off'))


class Configuration:
    """ Validated option set for a single :class:`brook.Client`. Options are
        available as attributes; *options* may be a dictionary, keyword
        arguments, or both, with keyword arguments taking precedence.
        An :class:`InvalidConfiguration` exception is raised if no API key
        can be found, or if an option is not recognized.
    """

    def __init__(self, options=None, **kwargs):

        merged = dict()

        if options is not None:
            if isinstance(options, Configuration):
                options = options.as_dict()
            merged.update(options)

        merged.update(kwargs)

        for name in merged.keys():
            if name in defaults:
                pass
            else:
                raise InvalidConfiguration('unrecognized option: ' + repr(name))

        for name,default in defaults.items():
            try:
                value = merged[name]
            except KeyError:
                value = None

            if value is None:
                value = from_environment(name)

            if value is None:
                value = default

            setattr(self, name, value)

        if not self.api_key:
            raise InvalidConfiguration('API key is required')

        self.verbose = bool(self.verbose)

        if self.client_id is None:
            self.client_id = generate_client_id()

        for name in ('reconnect_timeout', 'max_queue_size', 'heartbeat_interval', 'auth_timeout', 'connect_timeout'):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidConfiguration("'%s' must be positive, got %r" % (name, value))


    def __repr__(self):
        # Never echo the API key.
        options = self.as_dict()
        options['api_key'] = '***'
        return 'Configuration(' + repr(options) + ')'


    def as_dict(self):
        options = dict()
        for name in defaults.keys():
            options[name] = getattr(self, name)

        return options


# end of class Configuration



def from_environment(name):
    """ Return the value of the environment variable associated with the
        option *name*, or None if there is no such variable or it is unset.
    """

    try:
        variable = environment[name]
    except KeyError:
        return None

    try:
        value = os.environ[variable]
    except KeyError:
        return None

    if name == 'verbose':
        value = value.strip().lower() not in untruths

    return value



def generate_client_id():
    """ Return a new client identifier of the form
        ``client_<milliseconds>_<nine random base36 characters>``.
    """

    alphabet = string.digits + string.ascii_lowercase
    millis = int(time.time() * 1000)
    suffix = ''.join(random.choice(alphabet) for i in range(9))

    return 'client_%d_%s' % (millis, suffix)



def directory():
    """ Return the directory where client state, such as channel offsets,
        is kept on disk: ``$BROOK_HOME`` if set, otherwise ``.brook`` in
        the user's home directory. The directory is not created here.
    """

    try:
        return os.environ['BROOK_HOME']
    except KeyError:
        pass

    home = os.path.expanduser('~')

    if home == '~':
        raise RuntimeError('BROOK_HOME and HOME are not set, cannot locate the Brook directory')

    return os.path.join(home, '.brook')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
