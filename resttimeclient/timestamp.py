# Copyright (C) 2024 The REST Time Client developers
#
# This file is part of the REST Time Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the REST Time Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

"""Signed timestamp envelopes and their canonical encoding

The canonical encoding of a payload is consensus-critical: it is exactly what
the time server hashed and signed, so it has to be reproduced byte for byte.
The server emits compact JSON, fields in declaration order, with '<', '>',
'&', U+2028 and U+2029 escaped inside strings.
"""

import json

from resttimeclient.errors import ClientError

INT64_MIN = -2**63
INT64_MAX = 2**63 - 1

class DecodeError(ClientError):
    """The response body is not a well-formed envelope"""

class EncodeError(ClientError):
    """A payload could not be canonically encoded

    Can only happen for payloads that were not produced by the decoder.
    """


class _JsonObject(list):
    """Key/value pairs of a JSON object, in document order"""


def _reject_constant(name):
    raise DecodeError('Invalid JSON literal %s' % name)


def _parse_json(body):
    if isinstance(body, bytes):
        try:
            body = body.decode('utf8')
        except UnicodeDecodeError as exp:
            raise DecodeError('Response is not valid UTF-8: %s' % exp)

    body = body.lstrip(' \t\r\n')
    if not body:
        raise DecodeError('Empty response body')

    decoder = json.JSONDecoder(object_pairs_hook=_JsonObject,
                               parse_constant=_reject_constant)
    try:
        # Only the first value counts; whatever follows it is ignored.
        value, _ = decoder.raw_decode(body)
    except ValueError as exp:
        raise DecodeError('Invalid JSON: %s' % exp)
    except RecursionError:
        raise DecodeError('JSON nested too deeply')
    return value


def _match_field(key, fields):
    for field in fields:
        if field[1] == key:
            return field

    folded_key = key.casefold()
    for field in fields:
        if field[1].casefold() == folded_key:
            return field

    return None


def _decode_fields(obj, fields, path):
    """Assign JSON object members to fields

    Returns a dict of attribute name to value. Unknown members are ignored,
    null members leave the field untouched, and for repeated members the last
    one wins.
    """
    values = {}
    for key, value in obj:
        field = _match_field(key, fields)
        if field is None or value is None:
            continue

        attr, name, kind = field
        where = path + '.' + name
        if kind is str:
            if not isinstance(value, str):
                raise DecodeError('%s: expected a string, got %s' % (where, json.dumps(value)[:40]))

        elif kind is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise DecodeError('%s: expected an integer, got %s' % (where, json.dumps(value)[:40]))
            if not INT64_MIN <= value <= INT64_MAX:
                raise DecodeError('%s: integer %d out of range' % (where, value))

        else:
            if not isinstance(value, _JsonObject):
                raise DecodeError('%s: expected an object' % where)
            value = kind.from_json_object(value, where)

        values[attr] = value
    return values


def _serialize_str(s):
    encoded = json.dumps(s, ensure_ascii=False)
    return encoded.translate(TimestampPayload.HTML_ESCAPES)


class TimestampPayload:
    """The signed assertion of the current date and time"""

    __slots__ = ['software_version', 'date_utc', 'time_utc', 'epoch_utc']

    # (attribute, wire name, type) in the order the server serializes them
    FIELDS = (('software_version', 'swVersion', str),
              ('date_utc', 'dateIsoUtc', str),
              ('time_utc', 'time24Utc', str),
              ('epoch_utc', 'dateTimeEpocUtc', int))

    HTML_ESCAPES = str.maketrans({'<': '\\u003c',
                                  '>': '\\u003e',
                                  '&': '\\u0026',
                                  '\u2028': '\\u2028',
                                  '\u2029': '\\u2029'})

    def __init__(self, software_version='', date_utc='', time_utc='', epoch_utc=0):
        object.__setattr__(self, 'software_version', software_version)
        object.__setattr__(self, 'date_utc', date_utc)
        object.__setattr__(self, 'time_utc', time_utc)
        object.__setattr__(self, 'epoch_utc', epoch_utc)

    def __setattr__(self, name, value):
        raise AttributeError("%s is immutable" % self.__class__.__name__)

    def __eq__(self, other):
        if isinstance(other, TimestampPayload):
            return all(getattr(self, attr) == getattr(other, attr) for attr, _, _ in self.FIELDS)
        return NotImplemented

    def __hash__(self):
        return hash(tuple(getattr(self, attr) for attr, _, _ in self.FIELDS))

    def __repr__(self):
        return 'TimestampPayload(%s)' % ', '.join('%s=%r' % (attr, getattr(self, attr))
                                                 for attr, _, _ in self.FIELDS)

    @classmethod
    def from_json_object(cls, obj, path='data'):
        return cls(**_decode_fields(obj, cls.FIELDS, path))

    def serialize(self):
        """Canonical encoding of the payload

        This is the exact byte string covered by the server's signature.
        """
        members = []
        for attr, name, kind in self.FIELDS:
            value = getattr(self, attr)
            if kind is int:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise EncodeError('%s must be an integer, not %r' % (attr, value))
                encoded = '%d' % value
            else:
                if not isinstance(value, str):
                    raise EncodeError('%s must be a string, not %r' % (attr, value))
                encoded = _serialize_str(value)
            members.append('"%s":%s' % (name, encoded))

        try:
            return ('{' + ','.join(members) + '}').encode('utf8')
        except UnicodeEncodeError as exp:
            raise EncodeError('Payload is not representable as UTF-8: %s' % exp)

    def to_json(self):
        """Payload as a dict keyed by wire names, in canonical order"""
        return {name: getattr(self, attr) for attr, name, _ in self.FIELDS}

    def str_pretty(self):
        return json.dumps(self.to_json(), indent=4, ensure_ascii=False)


class Envelope:
    """A time server response: payload, digest and signature"""

    __slots__ = ['data', 'digest', 'signature']

    FIELDS = (('data', 'data', TimestampPayload),
              ('digest', 'digest', str),
              ('signature', 'signature', str))

    def __init__(self, data=None, digest='', signature=''):
        object.__setattr__(self, 'data', data if data is not None else TimestampPayload())
        object.__setattr__(self, 'digest', digest)
        object.__setattr__(self, 'signature', signature)

    def __setattr__(self, name, value):
        raise AttributeError("%s is immutable" % self.__class__.__name__)

    def __eq__(self, other):
        if isinstance(other, Envelope):
            return (self.data == other.data and
                    self.digest == other.digest and
                    self.signature == other.signature)
        return NotImplemented

    def __hash__(self):
        return hash((self.data, self.digest, self.signature))

    def __repr__(self):
        return 'Envelope(data=%r, digest=%r, signature=%r)' % (self.data, self.digest, self.signature)

    @classmethod
    def deserialize(cls, body):
        """Decode an envelope from a response body

        Raises DecodeError if the body is not a JSON object of the expected
        shape. Missing members are left at their zero value.
        """
        obj = _parse_json(body)
        if not isinstance(obj, _JsonObject):
            raise DecodeError('Expected a JSON object, got %s' % type(obj).__name__)

        return cls(**_decode_fields(obj, cls.FIELDS, 'response'))
