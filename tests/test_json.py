import datetime
import ddpmirror
import json
import math
import pytest


def test_json_encode_and_decode():
    encode_and_decode(json.dumps, json.loads)


def test_ddpmirror_encode_and_decode():
    encode_and_decode(ddpmirror.json.dumps, ddpmirror.json.loads)


def encode_and_decode(dumps, loads):

    input_dictionary = dict()
    input_dictionary['list'] = [1, 2, 3, 'a', 'b', None, 'c', 'z']
    input_dictionary['dict'] = {'one': 1, 'two': 2}
    input_dictionary['none'] = None
    input_dictionary['true'] = True
    input_dictionary['false'] = False

    # DDP frames are text, whichever JSON module is in use.

    encoded = dumps(input_dictionary)
    assert isinstance(encoded, str)

    decoded = loads(encoded)
    assert decoded == input_dictionary


def test_decode_error():

    with pytest.raises(ddpmirror.errors.ProtocolDecodeError):
        ddpmirror.json.loads('{"msg": ')

    with pytest.raises(ddpmirror.errors.ProtocolDecodeError):
        ddpmirror.ejson.parse('not json at all')


def test_backend():
    assert ddpmirror.json.backend in ('msgspec', 'orjson', 'json')


def test_extended_types():

    when = datetime.datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=datetime.timezone.utc)

    value = dict()
    value['when'] = when
    value['blob'] = b'\x00\xffbinary'
    value['inf'] = math.inf
    value['ninf'] = -math.inf
    value['nested'] = [{'when': when}]

    text = ddpmirror.ejson.stringify(value)
    assert isinstance(text, str)

    plain = json.loads(text)
    assert plain['when'] == {'$date': 1704164645678}
    assert plain['inf'] == {'$InfNaN': 1}
    assert plain['ninf'] == {'$InfNaN': -1}
    assert list(plain['blob'].keys()) == ['$binary']

    parsed = ddpmirror.ejson.parse(text)
    assert parsed == value
    assert parsed['when'].tzinfo is not None


def test_nan():

    parsed = ddpmirror.ejson.parse(ddpmirror.ejson.stringify([math.nan]))
    assert math.isnan(parsed[0])


def test_naive_datetime_is_utc():

    naive = datetime.datetime(2020, 6, 1, 12, 0, 0)
    plain = ddpmirror.ejson.to_json_value(naive)
    assert plain == {'$date': 1591012800000}


def test_escaped_lookalikes():

    lookalike = {'$date': 'not really a date'}
    typed = {'$type': 'custom', '$value': 12}

    text = ddpmirror.ejson.stringify({'a': lookalike, 'b': typed})

    plain = json.loads(text)
    assert plain['a'] == {'$escape': lookalike}
    assert plain['b'] == {'$escape': typed}

    parsed = ddpmirror.ejson.parse(text)
    assert parsed == {'a': lookalike, 'b': typed}


def test_server_message():

    text = '{"msg":"added","collection":"items","id":"1","fields":{"at":{"$date":0}}}'
    message = ddpmirror.ejson.parse(text)

    assert message['fields']['at'] == datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
