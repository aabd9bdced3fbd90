""" Encoding and decoding of TNetstrings, the nested length-prefixed string
    format Mongrel2 uses for request headers, request bodies, and the
    control port. Each value is represented as::

        <decimal length>:<exactly that many bytes><type marker>

    The type marker is one of:

        ``,``  byte string
        ``#``  integer
        ``^``  float
        ``!``  boolean (``true`` or ``false``)
        ``~``  null (always ``0:~``)
        ``]``  list of TNetstrings
        ``}``  alternating key/value TNetstrings

    String values decode as bytes unless an *encoding* is requested, in
    which case strings (including dictionary keys) are decoded to text.
"""

from ..exceptions import ParseError


# The reference implementation refuses length prefixes longer than this.
MAX_PREFIX = 9


def encode(value):
    """ Return the TNetstring representation of *value* as bytes. Text is
        encoded as UTF-8; tuples are encoded as lists.
    """

    if value is None:
        return b'0:~'

    if value is True:
        payload = b'true'
        marker = b'!'
    elif value is False:
        payload = b'false'
        marker = b'!'
    elif isinstance(value, (bytes, bytearray, memoryview)):
        payload = bytes(value)
        marker = b','
    elif isinstance(value, str):
        payload = value.encode('utf-8')
        marker = b','
    elif isinstance(value, int):
        payload = str(value).encode()
        marker = b'#'
    elif isinstance(value, float):
        payload = repr(value).encode()
        marker = b'^'
    elif isinstance(value, dict):
        pieces = list()
        for key, item in value.items():
            if isinstance(key, (str, bytes)):
                pass
            else:
                raise TypeError('dictionary keys must be strings, not %s' % (type(key).__name__))

            pieces.append(encode(key))
            pieces.append(encode(item))

        payload = b''.join(pieces)
        marker = b'}'
    elif isinstance(value, (list, tuple)):
        payload = b''.join(encode(item) for item in value)
        marker = b']'
    else:
        raise TypeError('cannot encode %s as a TNetstring' % (type(value).__name__))

    return b'%d:%s%s' % (len(payload), payload, marker)


def decode(data, encoding=None):
    """ Decode the first TNetstring in *data*. Returns a tuple of the decoded
        value and whatever bytes followed it. Raises :class:`ParseError` for
        malformed or truncated input.
    """

    if isinstance(data, str):
        data = data.encode('utf-8')
    else:
        data = bytes(data)

    colon = data.find(b':', 0, MAX_PREFIX + 1)

    if colon < 1:
        raise ParseError('missing or oversized length prefix: %r' % (data[:MAX_PREFIX + 1],))

    prefix = data[:colon]

    if prefix.isdigit():
        pass
    else:
        raise ParseError('non-numeric length prefix: %r' % (prefix,))

    length = int(prefix)
    start = colon + 1
    end = start + length

    # The type marker sits immediately after the payload; its absence means
    # the input is short.

    if len(data) <= end:
        raise ParseError('truncated TNetstring: expected %d bytes of payload, found %d' % (length, max(len(data) - start, 0)))

    payload = data[start:end]
    marker = data[end:end + 1]
    remainder = data[end + 1:]

    value = _convert(payload, marker, encoding)
    return value, remainder


def loads(data, encoding=None):
    """ Decode *data*, which must contain exactly one TNetstring.
    """

    value, remainder = decode(data, encoding)

    if remainder:
        raise ParseError('%d trailing bytes after TNetstring' % (len(remainder)))

    return value


def _convert(payload, marker, encoding):
    """ Interpret a single *payload* according to its type *marker*.
    """

    if marker == b',':
        return _string(payload, encoding)

    if marker == b'#':
        try:
            return int(payload)
        except ValueError:
            raise ParseError('invalid integer: %r' % (payload,))

    if marker == b'^':
        try:
            return float(payload)
        except ValueError:
            raise ParseError('invalid float: %r' % (payload,))

    if marker == b'!':
        if payload == b'true':
            return True
        if payload == b'false':
            return False
        raise ParseError('invalid boolean: %r' % (payload,))

    if marker == b'~':
        if payload:
            raise ParseError('null with a payload: %r' % (payload,))
        return None

    if marker == b']':
        items = list()
        while payload:
            item, payload = decode(payload, encoding)
            items.append(item)
        return items

    if marker == b'}':
        items = dict()
        while payload:
            key, payload = decode(payload, encoding)

            if isinstance(key, (str, bytes)):
                pass
            else:
                raise ParseError('dictionary key is not a string: %r' % (key,))

            if payload:
                pass
            else:
                raise ParseError('dictionary key %r has no value' % (key,))

            value, payload = decode(payload, encoding)
            items[key] = value
        return items

    raise ParseError('unknown TNetstring type marker: %r' % (marker,))


def _string(payload, encoding):

    if encoding is None:
        return payload

    try:
        return payload.decode(encoding)
    except UnicodeDecodeError as error:
        raise ParseError('string is not valid %s: %s' % (encoding, error))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
