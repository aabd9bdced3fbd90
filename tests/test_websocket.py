import logging
import struct

import pytest

from m2handler.exceptions import FrameError
from m2handler.protocol import request, websocket
from m2handler.protocol.websocket import Frame, decode_frame, encode_frame
from m2handler.testing import WebSocketFrameFactory, build_message

SENDER = 'ABCD'
ROUTE = '/chat'

factory = WebSocketFrameFactory(sender_id=SENDER, conn_id=8, route=ROUTE)


def make_frame(flags, payload=b''):
    return Frame(SENDER, 8, ROUTE, {'FLAGS': flags}, payload)


def test_encode_small_frame():

    assert encode_frame(0x81, b'Hello') == b'\x81\x05Hello'
    assert encode_frame(0x88, b'') == b'\x88\x00'


def test_encode_length_boundaries():

    data = encode_frame(0x82, b'x' * 125)
    assert data[:2] == b'\x82\x7d'
    assert len(data) == 2 + 125

    data = encode_frame(0x82, b'x' * 126)
    assert data[:4] == b'\x82\x7e\x00\x7e'
    assert len(data) == 4 + 126

    data = encode_frame(0x82, b'x' * 65535)
    assert data[:4] == b'\x82\x7e\xff\xff'

    data = encode_frame(0x82, b'x' * 65536)
    assert data[:2] == b'\x82\x7f'
    assert struct.unpack('!Q', data[2:10]) == (65536,)
    assert len(data) == 10 + 65536


def test_frame_round_trip():

    for length in (0, 5, 125, 126, 65535, 65536):
        payload = bytes(index % 251 for index in range(length))
        flags, decoded, remainder = decode_frame(encode_frame(0x82, payload) + b'extra')

        assert flags == 0x82
        assert decoded == payload
        assert remainder == b'extra'


def test_decode_masked_frame():

    # The masked "Hello" example from RFC6455, section 5.7.
    data = b'\x81\x85\x37\xfa\x21\x3d\x7f\x9f\x4d\x51\x58'
    flags, payload, remainder = decode_frame(data)

    assert flags == 0x81
    assert payload == b'Hello'
    assert remainder == b''


@pytest.mark.parametrize('data', [
    b'',
    b'\x81',
    b'\x81\x05Hel',
    b'\x82\x7e\x00',
    b'\x82\x7f\x00\x00',
    b'\x81\x85\x37\xfa',
])
def test_decode_truncated(data):

    with pytest.raises(FrameError):
        decode_frame(data)


def test_flags_header():

    assert make_frame('0x89').opcode == 'ping'
    assert make_frame('137').opcode == 'ping'
    assert make_frame(0x81).opcode == 'text'

    frame = Frame(SENDER, 8, ROUTE)
    assert frame.flags == websocket.FIN_FLAG | websocket.OPCODE['close']
    assert frame.opcode == 'close'


def test_parsed_frame():

    raw = build_message(SENDER, 8, ROUTE, {'METHOD': 'WEBSOCKET', 'FLAGS': '0x81'}, b'Hi!')
    frame = request.parse(raw)

    assert isinstance(frame, Frame)
    assert frame.fin
    assert frame.opcode == 'text'
    assert frame.payload == b'Hi!'


def test_flag_properties():

    frame = make_frame(0x01)
    assert not frame.fin
    assert not frame.has_rsv_flags

    frame.fin = True
    frame.rsv2 = True
    assert frame.flags == 0xA1
    assert frame.rsv2 and not frame.rsv1 and not frame.rsv3
    assert frame.has_rsv_flags

    frame.rsv2 = False
    assert frame.flags == 0x81


def test_opcodes():

    for number, name in websocket.OPCODE_NAME.items():
        assert make_frame(0x80 | number).opcode == name

    for number in (0x3, 0x4, 0x5, 0x6, 0x7, 0xB, 0xF):
        assert make_frame(0x80 | number).opcode == 'reserved'

    assert make_frame(0x88).control
    assert make_frame(0x89).control
    assert make_frame(0x8A).control
    assert not make_frame(0x81).control
    assert not make_frame(0x80).control


def test_opcode_setter():

    frame = make_frame(0xC1)

    frame.opcode = 'binary'
    assert frame.flags == 0xC2

    frame.opcode = 0x9
    assert frame.flags == 0xC9
    assert frame.numeric_opcode == 0x9

    with pytest.raises(ValueError):
        frame.opcode = 'bogus'

    with pytest.raises(ValueError):
        frame.opcode = 0x10


def test_set_flags():

    frame = make_frame(0x00)
    frame.set_flags('fin', 'close')
    assert frame.flags == 0x88

    frame.set_flags(0x40)
    assert frame.rsv1

    with pytest.raises(ValueError):
        frame.set_flags('sideways')


def test_control_frame_length_boundary():

    frame = make_frame(0x89, b'x' * 125)
    assert frame.valid
    assert frame.errors == []

    frame = make_frame(0x89, b'x' * 126)
    assert not frame.valid
    assert frame.errors == ['payload of control frame cannot exceed 125 bytes']

    frame = make_frame(0x81, b'x' * 126)
    assert frame.valid


def test_fragmented_control_frame():

    frame = make_frame(0x09, b'ping')
    assert not frame.valid
    assert frame.errors == ['control frame is fragmented (no FIN flag set)']

    frame = make_frame(0x01, b'partial text')
    assert frame.valid


def test_reserved_opcode_and_flags():

    frame = make_frame(0x83)
    assert not frame.valid
    assert frame.errors == ['Frame uses reserved opcode']

    frame = make_frame(0xC1, b'compressed?')
    assert not frame.valid
    assert frame.errors == ['Frame has one or more reserved flags set.']


def test_reserved_flags_override():

    class Extended(Frame):
        def validate_reserved_flags(self):
            pass

    frame = Extended(SENDER, 8, ROUTE, {'FLAGS': 0xC1}, b'compressed')
    assert frame.valid


def test_payload_encoding():

    frame = make_frame(0x81, b'\xff\xfe')
    assert not frame.valid
    assert frame.errors == ['Invalid UTF8 in payload']

    frame = make_frame(0x82, b'\xff\xfe')
    assert frame.valid

    frame = make_frame(0x81, 'snowman ☃')
    assert frame.payload == b'snowman \xe2\x98\x83'
    assert frame.valid


def test_validate_resets_errors():

    frame = make_frame(0x09, b'ping')
    frame.validate()
    frame.validate()
    assert len(frame.errors) == 1

    frame.fin = True
    frame.validate()
    assert frame.errors == []


def test_serialize():

    frame = make_frame(0x81, b'Hello')
    assert bytes(frame) == b'\x81\x05Hello'

    frame = make_frame(0x81, b'x' * 300)
    assert bytes(frame)[:4] == b'\x81\x7e\x01\x2c'


def test_serialize_invalid_frame():

    frame = make_frame(0x09, b'x' * 126)

    with pytest.raises(FrameError) as caught:
        bytes(frame)

    message = str(caught.value)
    assert message.startswith('invalid frame: ')
    assert 'payload of control frame cannot exceed 125 bytes' in message
    assert 'control frame is fragmented (no FIN flag set)' in message


def test_ping_response_is_pong():

    ping = factory.ping(ROUTE, b'Hello')
    pong = ping.response()

    assert isinstance(pong, Frame)
    assert pong.opcode == 'pong'
    assert pong.fin
    assert pong.payload == b'Hello'
    assert pong.sender_id == SENDER
    assert pong.conn_id == 8
    assert pong.request_frame is ping
    assert bytes(pong) == b'\x8a\x05Hello'


def test_response_mirrors_opcode():

    text = factory.text(ROUTE, b'data')
    response = text.response()

    assert response.opcode == 'text'
    assert response.payload == b''

    # The response is built once.
    assert text.response() is response
    assert text.response('close') is response


def test_response_flags():

    text = factory.text(ROUTE, b'data')
    response = text.response('close')

    assert response.opcode == 'close'
    assert response.fin


def test_write_and_puts():

    frame = factory.text(ROUTE).response()
    assert frame.write('one ') is frame
    frame.puts('two', 3)

    assert frame.payload == b'one two\n3\n'


def test_set_status():

    frame = factory.close(ROUTE).response()
    frame.set_status(websocket.CLOSE_PROTOCOL_ERROR)

    assert frame.payload == b'1002 Protocol error.'
    assert bytes(frame) == b'\x88\x141002 Protocol error.'


def test_set_unknown_status(caplog):

    frame = factory.close(ROUTE).response()

    with caplog.at_level(logging.WARNING):
        frame.set_status(4000)

    assert frame.payload == b'4000 '
    assert 'Unknown close status code 4000' in caplog.text


def test_close_status_table():

    codes = list(range(1000, 1012)) + [1015]
    assert sorted(websocket.CLOSING_STATUS_DESC) == codes
    assert websocket.CLOSING_STATUS_DESC[websocket.CLOSE_EXCEPTION] == 'Unexpected condition/exception.'
    assert websocket.CLOSING_STATUS_DESC[websocket.CLOSE_BAD_DATA] == 'Bad or malformed data.'


def test_factory_frames():

    continuation = factory.continuation(ROUTE, b'more', fin=False)
    assert continuation.opcode == 'continuation'
    assert not continuation.fin
    assert continuation.headers['FLAGS'] == '0x0'

    binary = factory.binary(ROUTE, b'\x00\x01', 'rsv1')
    assert binary.rsv1
    assert binary.headers['FLAGS'] == '0xc2'

    assert factory.pong(ROUTE).opcode == 'pong'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
