""" Key/value storage used to remember the last observed offset for each
    channel across client restarts. Any object providing ``get(key)`` and
    ``set(key, value)`` with string values can stand in for the classes
    defined here.
"""

import os
import threading
import urllib.parse

from . import config


class MemoryStorage:
    """ Process-local storage. Offsets survive reconnections, but not the
        process itself. This is the default for a :class:`brook.Client`.
    """

    def __init__(self):
        self._values = dict()
        self._lock = threading.Lock()


    def get(self, key):
        with self._lock:
            return self._values.get(key)


    def set(self, key, value):
        with self._lock:
            self._values[key] = str(value)


# end of class MemoryStorage



class FileStorage:
    """ Storage backed by one small file per key, located in the *directory*
        provided, or in an ``offsets`` subdirectory of
        :func:`brook.config.directory` if no *directory* is specified.
        Key names are URL-quoted to form the file names.
    """

    def __init__(self, directory=None):

        if directory is None:
            directory = os.path.join(config.directory(), 'offsets')

        self.directory = directory
        self._lock = threading.Lock()


    def _filename(self, key):
        quoted = urllib.parse.quote(str(key), safe='')
        return os.path.join(self.directory, quoted)


    def get(self, key):

        filename = self._filename(key)

        try:
            reader = open(filename, 'r')
        except FileNotFoundError:
            return None

        with reader:
            value = reader.read()

        return value.strip()


    def set(self, key, value):

        filename = self._filename(key)
        temporary = filename + '.tmp'

        with self._lock:
            if os.path.exists(self.directory):
                pass
            else:
                os.makedirs(self.directory, mode=0o775)

            # Readers must never see a partially written value.

            writer = open(temporary, 'w')
            writer.write(str(value))
            writer.close()

            os.replace(temporary, filename)


# end of class FileStorage


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
