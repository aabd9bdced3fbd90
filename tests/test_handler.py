import logging
import signal

import pytest
import zmq

import m2handler
from m2handler import handler as handler_module
from m2handler.exceptions import UnhandledMethodError
from m2handler.handler import Handler
from m2handler.protocol import request
from m2handler.protocol.websocket import Frame
from m2handler.testing import RequestFactory, WebSocketFrameFactory, build_message

APP_ID = 'test-handler'
SEND_SPEC = 'tcp://127.0.0.1:9998'
RECV_SPEC = 'tcp://127.0.0.1:9997'

GET_MESSAGE = b'ABCD 8 /handler 16:{"METHOD":"GET"},0:,'


class Recorder(Handler):
    """ A handler that remembers what it was asked to do. """

    def __init__(self, *args, **kwargs):
        Handler.__init__(self, *args, **kwargs)
        self.calls = list()

    def handle_disconnect(self, request):
        self.calls.append(('disconnect', request))
        return 'ignored'

    def handle_json(self, request):
        self.calls.append(('json', request))
        return None

    def handle_xml(self, request):
        self.calls.append(('xml', request))
        return None

    def checkpoint(self):
        self.calls.append(('checkpoint', None))


def make_handler(context, handler_class=Handler, **kwargs):

    handler = handler_class(APP_ID, SEND_SPEC, RECV_SPEC, context=context, **kwargs)
    handler.poll_interval = 0.001
    return handler


def stop_when_idle(handler, context):
    context.idle = lambda: handler.post(handler_module.SHUTDOWN)


def test_default_handler_replies_204(context):

    handler = make_handler(context)
    stop_when_idle(handler, context)
    context.incoming.append(GET_MESSAGE)

    assert handler.run() is handler

    sent, = context.outgoing
    assert sent.startswith(b'ABCD 1:8, HTTP/1.1 204 No Content\r\n')
    assert sent.endswith(b'\r\n\r\n')
    assert handler.conn.closed


def test_requests_are_handled_in_order(context):

    class Echo(Handler):
        def handle(self, request):
            response = request.response()
            response.status = 200
            response.write(request.path)
            return response

    handler = make_handler(context, Echo)
    stop_when_idle(handler, context)

    for path in ('/one', '/two', '/three'):
        context.incoming.append(build_message('ABCD', 8, path, {'METHOD': 'GET'}))

    handler.run()

    bodies = [message.rpartition(b'\r\n\r\n')[2] for message in context.outgoing]
    assert bodies == [b'/one', b'/two', b'/three']


def test_unparseable_requests_are_dropped(context):

    handler = make_handler(context)
    stop_when_idle(handler, context)

    context.incoming.append(b'garbage')
    context.incoming.append(b'ABCD 8 /handler 99:{},0:,')
    context.incoming.append(GET_MESSAGE)

    handler.run()

    assert len(context.outgoing) == 1


def test_transport_errors_are_retried(context):

    handler = make_handler(context)
    stop_when_idle(handler, context)

    context.incoming.append(zmq.ZMQError(zmq.EAGAIN))
    context.incoming.append(GET_MESSAGE)

    handler.run()

    assert len(context.outgoing) == 1


def test_invalid_reply_frames_are_not_sent(context, caplog):

    class Echo(Handler):
        def handle_text_frame(self, frame):
            response = frame.response()
            response.write(frame.payload)
            return response

    handler = make_handler(context, Echo)
    stop_when_idle(handler, context)

    headers = {'METHOD': 'WEBSOCKET', 'FLAGS': '0x81'}
    context.incoming.append(build_message('ABCD', 8, '/ws', headers, b'\xff\xfe'))
    context.incoming.append(build_message('ABCD', 9, '/ws', headers, b'hello'))

    with caplog.at_level(logging.ERROR):
        handler.run()

    sent, = context.outgoing
    assert sent == b'ABCD 1:9, \x81\x05hello'
    assert 'Invalid UTF8 in payload' in caplog.text


def test_other_errors_propagate(context):

    class Broken(Handler):
        def handle(self, request):
            raise RuntimeError('handler bug')

    handler = make_handler(context, Broken)
    context.incoming.append(GET_MESSAGE)

    with pytest.raises(RuntimeError):
        handler.run()


def test_strict_method_policy_propagates(context, monkeypatch):

    monkeypatch.setattr(request, 'method_policy', request.STRICT)

    handler = make_handler(context)
    context.incoming.append(b'ABCD 8 /handler 2:{},0:,')

    with pytest.raises(UnhandledMethodError):
        handler.run()


def test_dispatch_request(context):

    handler = make_handler(context, Recorder)

    json_request = request.parse(build_message('ABCD', 1, '/j', {'METHOD': 'JSON'}, b'{"type": "msg"}'))
    assert handler.dispatch_request(json_request) is None
    assert handler.calls[-1] == ('json', json_request)

    xml_request = request.parse(build_message('ABCD', 1, '/x', {'METHOD': 'XML'}, b'<x/>'))
    assert handler.dispatch_request(xml_request) is None
    assert handler.calls[-1] == ('xml', xml_request)

    disconnect = request.parse(build_message('ABCD', 1, '@*', {'METHOD': 'JSON'}, b'{"type": "disconnect"}'))
    assert handler.dispatch_request(disconnect) is None
    assert handler.calls[-1] == ('disconnect', disconnect)

    http_request = RequestFactory().get('/a_handler/thing')
    response = handler.dispatch_request(http_request)
    assert response.status == 204


def test_unhandled_request_type(context, caplog):

    handler = make_handler(context)
    generic = request.Request('ABCD', 1, '/x', {'METHOD': 'FROBNICATE'})

    with caplog.at_level(logging.ERROR):
        assert handler.dispatch_request(generic) is None

    assert 'Unhandled request type Request' in caplog.text


def test_ping_frame_gets_pong(context):

    handler = make_handler(context)
    ping = WebSocketFrameFactory(sender_id='ABCD', conn_id=8).ping('/a_handler', b'Hello')

    pong = handler.dispatch_request(ping)

    assert isinstance(pong, Frame)
    assert pong.opcode == 'pong'
    assert pong.payload == b'Hello'


def test_data_frames_get_no_response(context):

    handler = make_handler(context)
    factory = WebSocketFrameFactory(sender_id='ABCD', conn_id=8)

    assert handler.dispatch_request(factory.text('/a_handler', b'hi')) is None
    assert handler.dispatch_request(factory.binary('/a_handler', b'\x00')) is None
    assert handler.dispatch_request(factory.continuation('/a_handler', b'more')) is None
    assert handler.dispatch_request(factory.pong('/a_handler')) is None
    assert context.outgoing == []


def test_close_frame(context):

    handler = make_handler(context)
    close = WebSocketFrameFactory(sender_id='ABCD', conn_id=8).close('/a_handler')

    assert handler.dispatch_request(close) is None
    assert context.outgoing == [b'ABCD 1:8, \x88\x00', b'ABCD 1:8, ']


def test_reserved_opcode_frame(context):

    handler = make_handler(context)
    frame = Frame('ABCD', 8, '/a_handler', {'FLAGS': '0x83'})

    response = handler.dispatch_request(frame)

    assert response.opcode == 'close'
    assert response.payload == b'1002 Protocol error.'


def test_websocket_over_the_wire(context):

    handler = make_handler(context)
    stop_when_idle(handler, context)

    context.incoming.append(build_message('ABCD', 8, '/ws', {'METHOD': 'WEBSOCKET', 'FLAGS': '0x89'}, b'Hello'))
    handler.run()

    assert context.outgoing == [b'ABCD 1:8, \x8a\x05Hello']


def test_post_rejects_unknown_commands(context):

    handler = make_handler(context)

    with pytest.raises(ValueError):
        handler.post('explode')


def test_restart(context):

    handler = make_handler(context)
    original = handler.conn
    original.connect()

    handler.post(handler_module.RESTART)
    handler.process_commands()

    assert handler.conn is not original
    assert handler.conn.identifier == original.identifier
    assert original.closed
    assert not handler.conn.closed
    assert handler.conn.sub_addr == SEND_SPEC
    assert handler.conn.pub_addr == RECV_SPEC


def test_restart_during_loop(context):

    handler = make_handler(context)
    original = handler.conn
    events = iter(['restart', 'shutdown'])

    def idle():
        try:
            handler.post(next(events))
        except StopIteration:
            pass

    context.idle = idle
    handler.run()

    assert original.closed
    assert handler.conn is not original
    assert handler.conn.closed


def test_commands_after_shutdown_are_discarded(context):

    handler = make_handler(context, Recorder)

    handler.post(handler_module.SHUTDOWN)
    handler.post(handler_module.RESTART)
    handler.post(handler_module.CHECKPOINT)
    conn = handler.conn

    handler.process_commands()

    assert handler.conn is conn
    assert conn.closed
    assert handler.calls == []


def test_checkpoint(context):

    handler = make_handler(context, Recorder)
    handler.post(handler_module.CHECKPOINT)
    handler.process_commands()

    assert handler.calls == [('checkpoint', None)]
    assert not handler.conn.closed


def test_signals_post_commands(context):

    handler = make_handler(context)
    handler.on_signal(signal.SIGTERM, None)
    handler.on_signal(signal.SIGINT, None)

    assert handler.commands.get_nowait() == handler_module.SHUTDOWN
    assert handler.commands.get_nowait() == handler_module.SHUTDOWN
    assert not handler.conn.closed

    if hasattr(signal, 'SIGHUP'):
        handler.on_signal(signal.SIGHUP, None)
        assert handler.commands.get_nowait() == handler_module.RESTART


def test_signal_handlers_are_restored(context):

    previous = signal.getsignal(signal.SIGTERM)
    handler = make_handler(context)

    seen = list()

    def idle():
        seen.append(signal.getsignal(signal.SIGTERM))
        handler.post(handler_module.SHUTDOWN)

    context.idle = idle
    handler.run()

    assert seen[0] == handler.on_signal
    assert signal.getsignal(signal.SIGTERM) == previous


def test_run_app(context):

    class Provider:
        def connection_info_for(self, app_id):
            assert app_id == APP_ID
            return SEND_SPEC, RECV_SPEC

    class Quick(Handler):
        poll_interval = 0.001

        def start_accepting_requests(self):
            self.shutdown()

    handler = Quick.run_app(APP_ID, Provider(), context=context)

    assert isinstance(handler, Quick)
    assert handler.conn.sub_addr == SEND_SPEC
    assert handler.conn.closed


def test_run_app_with_configuration(home, context):

    m2handler.config.save(m2handler.config.HandlerConfig(APP_ID, SEND_SPEC, RECV_SPEC))

    assert Handler.connection_info_for(APP_ID) == (SEND_SPEC, RECV_SPEC)


def test_injected_logger(context, caplog):

    log = logging.getLogger('my.application')
    handler = make_handler(context, log=log)

    assert handler.log is log
    assert handler.conn.log is log

    with caplog.at_level(logging.INFO, logger='my.application'):
        handler.checkpoint()

    assert any(record.name == 'my.application' for record in caplog.records)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
