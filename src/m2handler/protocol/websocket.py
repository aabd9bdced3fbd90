""" WebSocket (RFC6455) frames. Mongrel2 passes each frame from a client to
    the handler as a WEBSOCKET request, with the first header byte of the
    frame in the FLAGS header and the unmasked payload as the body. Replies
    are frames as well, serialized in wire form with an unmasked payload.
"""

import logging
import struct

from ..exceptions import FrameError, ParseError
from .request import Request, register_request_type
from .response import as_bytes

log = logging.getLogger(__name__)


# Bits of the first header byte.

FIN_FLAG = 0x80
RSV1_FLAG = 0x40
RSV2_FLAG = 0x20
RSV3_FLAG = 0x10
RSV_FLAG_MASK = RSV1_FLAG | RSV2_FLAG | RSV3_FLAG

OPCODE_BITMASK = 0x0F
OPCODE_CONTROL_MASK = 0x08

MASK_FLAG = 0x80
LENGTH_BITMASK = 0x7F

OPCODE_NAME = dict()
OPCODE_NAME[0x0] = 'continuation'
OPCODE_NAME[0x1] = 'text'
OPCODE_NAME[0x2] = 'binary'
OPCODE_NAME[0x8] = 'close'
OPCODE_NAME[0x9] = 'ping'
OPCODE_NAME[0xA] = 'pong'

OPCODE = dict()
for number, name in OPCODE_NAME.items():
    OPCODE[name] = number
del number, name

RESERVED = 'reserved'

# The largest payload that fits in the seven-bit length field, and the
# largest that fits in the sixteen-bit extended length field.
MAX_SHORT_LENGTH = 125
MAX_MEDIUM_LENGTH = 0xFFFF


# Close status codes.

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_PROTOCOL_ERROR = 1002
CLOSE_BAD_DATA_TYPE = 1003
CLOSE_RESERVED = 1004
CLOSE_MISSING_STATUS = 1005
CLOSE_ABNORMAL_STATUS = 1006
CLOSE_BAD_DATA = 1007
CLOSE_POLICY_VIOLATION = 1008
CLOSE_MESSAGE_TOO_LARGE = 1009
CLOSE_MISSING_EXTENSION = 1010
CLOSE_EXCEPTION = 1011
CLOSE_TLS_ERROR = 1015

CLOSING_STATUS_DESC = {
    CLOSE_NORMAL: 'Session closed normally.',
    CLOSE_GOING_AWAY: 'Endpoint going away.',
    CLOSE_PROTOCOL_ERROR: 'Protocol error.',
    CLOSE_BAD_DATA_TYPE: 'Unhandled data type.',
    CLOSE_RESERVED: 'Reserved for future use.',
    CLOSE_MISSING_STATUS: 'No status code was present.',
    CLOSE_ABNORMAL_STATUS: 'Abnormal close.',
    CLOSE_BAD_DATA: 'Bad or malformed data.',
    CLOSE_POLICY_VIOLATION: 'Policy violation.',
    CLOSE_MESSAGE_TOO_LARGE: 'Message too large for endpoint.',
    CLOSE_MISSING_EXTENSION: 'Missing extension.',
    CLOSE_EXCEPTION: 'Unexpected condition/exception.',
    CLOSE_TLS_ERROR: 'TLS handshake failure.',
}


def encode_frame(flags, payload):
    """ Return the wire form of a frame with the header byte *flags* and the
        given *payload*. The payload is never masked.
    """

    payload = as_bytes(payload)
    length = len(payload)

    if length > MAX_MEDIUM_LENGTH:
        header = struct.pack('!BBQ', flags, 127, length)
    elif length > MAX_SHORT_LENGTH:
        header = struct.pack('!BBH', flags, 126, length)
    else:
        header = struct.pack('!BB', flags, length)

    return header + payload


def decode_frame(data):
    """ Decode one frame from the start of *data*, returning a tuple of
        (flags, payload, remainder). Masked payloads, as sent by clients,
        are unmasked. Raises :class:`FrameError` if *data* does not hold a
        complete frame.
    """

    data = bytes(data)

    if len(data) < 2:
        raise FrameError('truncated frame header')

    flags = data[0]
    masked = data[1] & MASK_FLAG
    length = data[1] & LENGTH_BITMASK
    offset = 2

    if length == 126:
        if len(data) < offset + 2:
            raise FrameError('truncated 16-bit frame length')
        length, = struct.unpack_from('!H', data, offset)
        offset += 2
    elif length == 127:
        if len(data) < offset + 8:
            raise FrameError('truncated 64-bit frame length')
        length, = struct.unpack_from('!Q', data, offset)
        offset += 8

    if masked:
        mask = data[offset:offset + 4]
        if len(mask) != 4:
            raise FrameError('truncated frame mask')
        offset += 4
    else:
        mask = None

    end = offset + length

    if len(data) < end:
        raise FrameError('frame payload is %d bytes, only %d available' % (length, len(data) - offset))

    payload = data[offset:end]

    if mask is not None:
        payload = bytes(byte ^ mask[index % 4] for index, byte in enumerate(payload))

    return flags, payload, data[end:]


class Frame(Request):
    """ A WebSocket frame, used both for frames from a client and for the
        frames sent back. Replies are built with :func:`response`, which
        addresses the new frame to the same server and connection.

        :ivar flags: The first header byte as an integer.
        :ivar errors: Problems found by the last :func:`validate`.
        :ivar request_frame: The frame this one responds to, if any.
    """

    DEFAULT_FLAGS = FIN_FLAG | OPCODE['close']

    def __init__(self, sender_id, conn_id, path, headers=None, body=b'', raw=None):

        Request.__init__(self, sender_id, conn_id, path, headers, body, raw)

        flags = self.headers.get('FLAGS')

        if flags is None:
            flags = self.DEFAULT_FLAGS
        elif isinstance(flags, int):
            pass
        else:
            try:
                flags = int(str(flags), 0)
            except ValueError:
                raise ParseError('invalid FLAGS header: ' + repr(flags))

        self.flags = flags
        self.errors = list()
        self.request_frame = None
        self._response = None


    @classmethod
    def from_request(cls, frame):
        """ Create a frame addressed to the same server and connection as
            *frame*, recording *frame* as its :attr:`request_frame`.
        """

        log.debug('Creating a %s in response to %r', cls.__name__, frame)

        response = cls(frame.sender_id, frame.conn_id, frame.path)
        response.request_frame = frame
        return response


    def __repr__(self):
        return '<%s %s:%d FIN:%d RSV1:%d RSV2:%d RSV3:%d OPCODE:%s (0x%x) %d bytes>' % (
            self.__class__.__name__, self.sender_id, self.conn_id,
            self.fin, self.rsv1, self.rsv2, self.rsv3,
            self.opcode, self.numeric_opcode, len(self.body))


    @property
    def payload(self):
        return self.body


    @payload.setter
    def payload(self, payload):
        self.body = as_bytes(payload)


    def _flag(self, bitmask):
        return bool(self.flags & bitmask)


    def _set_flag(self, bitmask, value):

        if value:
            self.flags |= bitmask
        else:
            self.flags &= ~bitmask & 0xFF


    @property
    def fin(self):
        """ True if this is the final fragment of a message.
        """

        return self._flag(FIN_FLAG)

    @fin.setter
    def fin(self, value):
        self._set_flag(FIN_FLAG, value)

    @property
    def rsv1(self):
        return self._flag(RSV1_FLAG)

    @rsv1.setter
    def rsv1(self, value):
        self._set_flag(RSV1_FLAG, value)

    @property
    def rsv2(self):
        return self._flag(RSV2_FLAG)

    @rsv2.setter
    def rsv2(self, value):
        self._set_flag(RSV2_FLAG, value)

    @property
    def rsv3(self):
        return self._flag(RSV3_FLAG)

    @rsv3.setter
    def rsv3(self, value):
        self._set_flag(RSV3_FLAG, value)


    @property
    def has_rsv_flags(self):
        return bool(self.flags & RSV_FLAG_MASK)


    @property
    def numeric_opcode(self):
        return self.flags & OPCODE_BITMASK


    @property
    def opcode(self):
        """ The name of the frame's opcode: 'continuation', 'text', 'binary',
            'close', 'ping', 'pong', or 'reserved' for any other value. It can
            be set with either a name or a number.
        """

        return OPCODE_NAME.get(self.numeric_opcode, RESERVED)


    @opcode.setter
    def opcode(self, code):

        if isinstance(code, int):
            if code & ~OPCODE_BITMASK:
                raise ValueError('opcode out of range: %r' % (code,))
            number = code
        else:
            try:
                number = OPCODE[code]
            except KeyError:
                raise ValueError('unknown opcode %r' % (code,))

        self.flags = (self.flags & ~OPCODE_BITMASK & 0xFF) | number


    @property
    def control(self):
        """ True if this is a control frame (close, ping, pong).
        """

        return bool(self.flags & OPCODE_CONTROL_MASK)


    def write(self, data):
        """ Append *data* to the payload. Returns the frame for chaining.
        """

        self.body = self.body + as_bytes(data)
        return self


    def puts(self, *objects):

        for thing in objects:
            text = str(thing)
            if text.endswith('\n'):
                pass
            else:
                text += '\n'
            self.write(text)


    def set_flags(self, *flags):
        """ Apply each of *flags* to the frame. A flag is one of 'fin',
            'rsv1', 'rsv2', 'rsv3', an opcode name, or an integer whose bits
            are OR'd into the header byte::

                frame.set_flags('fin', 'close')
        """

        log.debug('Setting flags %r on %r', flags, self)

        for flag in flags:
            if flag is None:
                continue

            if isinstance(flag, int):
                self.flags |= flag
            elif flag in ('fin', 'rsv1', 'rsv2', 'rsv3'):
                setattr(self, flag, True)
            elif flag in OPCODE:
                self.opcode = flag
            else:
                raise ValueError("unknown frame flag %r" % (flag,))


    def set_status(self, code):
        """ Replace the payload with a close status message for *code*.
        """

        try:
            description = CLOSING_STATUS_DESC[code]
        except KeyError:
            log.warning('Unknown close status code %d', code)
            description = ''

        self.payload = '%d %s' % (code, description)


    def response(self, *flags):
        """ Return the frame replying to this one. The reply's opcode mirrors
            this frame, except that a ping is answered with a pong carrying
            the same payload. Any *flags* are applied with :func:`set_flags`.
            The same reply is returned on every call.
        """

        if self._response is not None:
            return self._response

        response = self.__class__.from_request(self)

        if self.opcode == 'ping':
            response.opcode = 'pong'
            response.payload = self.payload
        else:
            response.flags = (response.flags & ~OPCODE_BITMASK & 0xFF) | self.numeric_opcode

        if flags:
            response.set_flags(*flags)

        self._response = response
        return response


    def validate(self):
        """ Check the frame, replacing :attr:`errors` with a description of
            each problem found.
        """

        del self.errors[:]

        self.validate_payload_encoding()
        self.validate_control_frame()
        self.validate_opcode()
        self.validate_reserved_flags()


    @property
    def valid(self):
        self.validate()
        return len(self.errors) == 0


    def validate_payload_encoding(self):

        if self.opcode == 'binary':
            return

        try:
            self.body.decode('utf-8')
        except UnicodeDecodeError:
            log.error('Invalid UTF-8 in %s frame payload', self.opcode)
            self.errors.append('Invalid UTF8 in payload')


    def validate_control_frame(self):

        if self.control:
            pass
        else:
            return

        if len(self.body) > MAX_SHORT_LENGTH:
            log.error('Payload of control frame exceeds 125 bytes (%d)', len(self.body))
            self.errors.append('payload of control frame cannot exceed 125 bytes')

        if self.fin:
            pass
        else:
            log.error('Control frame fragmented (FIN is unset)')
            self.errors.append('control frame is fragmented (no FIN flag set)')


    def validate_opcode(self):

        if self.opcode == RESERVED:
            log.error('Frame uses reserved opcode 0x%x', self.numeric_opcode)
            self.errors.append('Frame uses reserved opcode')


    def validate_reserved_flags(self):
        """ Reject frames with any of RSV1-3 set. Subclasses implementing an
            extension that uses these bits override this method.
        """

        if self.has_rsv_flags:
            log.error('Frame has one or more reserved flags set.')
            self.errors.append('Frame has one or more reserved flags set.')


    def __bytes__(self):

        if self.valid:
            pass
        else:
            raise FrameError('invalid frame: %s' % (', '.join(self.errors)))

        return encode_frame(self.flags, self.body)


# end of class Frame


register_request_type(Frame, 'WEBSOCKET')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
