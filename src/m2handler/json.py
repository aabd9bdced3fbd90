''' JSON encoding for m2handler: legacy JSON-encoded request headers, JSON
    request bodies, and the on-disk handler configuration all go through
    :func:`dumps` and :func:`loads` here.

    The fastest available library is used: msgspec, then orjson, then the
    standard library. Whichever it is, :func:`dumps` returns bytes,
    :func:`loads` accepts bytes or str, and malformed input raises
    :class:`DecodeError`. The name of the library in use is :data:`library`.
'''

# Only the selected library is imported.

try:
    import msgspec
except ImportError:
    msgspec = None

if msgspec is not None:
    library = 'msgspec'
    _encoder = msgspec.json.Encoder()
    _decoder = msgspec.json.Decoder()

    dumps = _encoder.encode
    loads = _decoder.decode
    DecodeError = msgspec.DecodeError

else:
    try:
        import orjson
    except ImportError:
        orjson = None

    if orjson is not None:
        library = 'orjson'
        dumps = orjson.dumps
        loads = orjson.loads
        DecodeError = orjson.JSONDecodeError

    else:
        import json as _json

        library = 'json'

        def dumps(value):
            return _json.dumps(value, separators=(',', ':')).encode('utf-8')

        loads = _json.loads
        DecodeError = _json.JSONDecodeError


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
