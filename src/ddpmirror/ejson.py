""" Extended JSON, as spoken by DDP servers. Plain JSON cannot represent
    dates, binary data, or non-finite numbers; extended JSON represents each
    of them as a single-key dictionary:

        datetime        {"$date": milliseconds since the UNIX epoch}
        bytes           {"$binary": "base64 text"}
        inf, -inf, nan  {"$InfNaN": 1}, {"$InfNaN": -1}, {"$InfNaN": 0}

    A genuine dictionary that happens to look like one of these is wrapped
    as {"$escape": {...}} on the way out, and unwrapped on the way in.

    :func:`stringify` and :func:`parse` are the two entry points; the byte
    level work is handed to :mod:`ddpmirror.json`.
"""

import base64
import datetime
import math

from . import json


_tags = set(('$date', '$binary', '$InfNaN', '$escape'))
_epoch = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _looks_tagged(value):

    if len(value) == 1:
        for key in value:
            return key in _tags

    if len(value) == 2:
        return '$type' in value and '$value' in value

    return False



def to_json_value(value):
    """ Return a copy of *value* with every extended type replaced by its
        plain JSON representation.
    """

    if isinstance(value, dict):
        converted = dict()
        for key, item in value.items():
            converted[key] = to_json_value(item)

        if _looks_tagged(value):
            return {'$escape': converted}

        return converted

    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]

    if isinstance(value, bool) or value is None:
        return value

    if isinstance(value, float):
        if math.isnan(value):
            return {'$InfNaN': 0}
        if math.isinf(value):
            if value > 0:
                return {'$InfNaN': 1}
            return {'$InfNaN': -1}
        return value

    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        delta = value - _epoch
        milliseconds = delta // datetime.timedelta(milliseconds=1)
        return {'$date': milliseconds}

    if isinstance(value, (bytes, bytearray, memoryview)):
        encoded = base64.b64encode(bytes(value))
        return {'$binary': encoded.decode()}

    return value



def from_json_value(value):
    """ The inverse of :func:`to_json_value`.
    """

    if isinstance(value, list):
        return [from_json_value(item) for item in value]

    if isinstance(value, dict) == False:
        return value

    if len(value) == 1:
        for key, item in value.items():
            pass

        if key == '$date':
            milliseconds = datetime.timedelta(milliseconds=item)
            return _epoch + milliseconds

        if key == '$binary':
            return base64.b64decode(item)

        if key == '$InfNaN':
            if item > 0:
                return math.inf
            if item < 0:
                return -math.inf
            return math.nan

        if key == '$escape':
            unescaped = dict()
            for inner_key, inner_item in item.items():
                unescaped[inner_key] = from_json_value(inner_item)
            return unescaped

    converted = dict()
    for key, item in value.items():
        converted[key] = from_json_value(item)

    return converted



def stringify(value):
    """ Encode *value* as extended JSON text.
    """

    return json.dumps(to_json_value(value))



def parse(text):
    """ Decode extended JSON *text*; malformed text raises
        :class:`ddpmirror.errors.ProtocolDecodeError`.
    """

    return from_json_value(json.loads(text))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
