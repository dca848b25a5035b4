''' JSON codec for frames moving through a
    :class:`brook.connection.Connection`. The fastest library available at
    import time is used: msgspec (the 'fast' extra), then orjson (the
    'orjson' extra), then the standard library. :attr:`backend` names the
    one in use.
'''

import importlib


preference = ('msgspec', 'orjson', 'json')


def _select():

    for name in preference:
        try:
            module = importlib.import_module(name)
        except ImportError:
            continue

        return name, module

    # The standard library is always last in line, and always present.
    raise ImportError('no JSON library available')


backend, _module = _select()


# Every flavor of 'dumps' returns bytes, as msgspec and orjson do natively;
# every flavor of 'loads' accepts bytes or str.

if backend == 'msgspec':
    _encoder = _module.json.Encoder()
    _decoder = _module.json.Decoder()

    dumps = _encoder.encode
    loads = _decoder.decode
    DecodeError = _module.DecodeError

elif backend == 'orjson':
    dumps = _module.dumps
    loads = _module.loads
    DecodeError = _module.JSONDecodeError

else:
    def dumps(value):
        text = _module.dumps(value, separators=(',', ':'), ensure_ascii=False)
        return text.encode('utf-8')

    loads = _module.loads
    DecodeError = _module.JSONDecodeError


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
