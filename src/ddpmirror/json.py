''' Select the fastest available JSON library for DDP text frames. The
    preference order is msgspec, then orjson, then the standard library;
    whichever is chosen, :func:`dumps` returns text (DDP frames are text,
    not bytes) and :func:`loads` accepts either text or bytes.
'''

from .errors import ProtocolDecodeError

msgspec = None
orjson = None
json = None

try:
    import msgspec
except ImportError:
    pass

if msgspec is None:
    try:
        import orjson
    except ImportError:
        pass

if msgspec is None and orjson is None:
    import json


if msgspec is not None:
    backend = 'msgspec'
    _encode = msgspec.json.Encoder().encode
    _decode = msgspec.json.Decoder().decode
    _decode_errors = (msgspec.DecodeError,)
elif orjson is not None:
    backend = 'orjson'
    _encode = orjson.dumps
    _decode = orjson.loads
    _decode_errors = (orjson.JSONDecodeError,)
else:
    backend = 'json'
    _decode = json.loads
    _decode_errors = (ValueError,)

    def _encode(value):
        return json.dumps(value, separators=(',', ':')).encode()


def dumps(value):
    """ Encode *value*, which must already be plain JSON types, as text.
    """

    return _encode(value).decode()


def loads(text):
    """ Decode *text* (str or bytes). Malformed input raises
        :class:`ddpmirror.errors.ProtocolDecodeError`.
    """

    try:
        return _decode(text)
    except _decode_errors as e:
        raise ProtocolDecodeError('malformed JSON: ' + str(e))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
