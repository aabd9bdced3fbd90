""" A WebSocket handler that echoes text and binary frames back to the
    client, pinging idle clients along the way. Register it first::

        import m2handler
        config = m2handler.config.HandlerConfig('ws-echo', 'tcp://127.0.0.1:9999', 'tcp://127.0.0.1:9998')
        m2handler.config.save(config)

    then run it with::

        python -m m2handler ws_echo:EchoHandler ws-echo
"""

import m2handler


class EchoHandler(m2handler.HeartbeatHandler):

    heartbeat_rate = 10.0
    idle_timeout = 30.0

    def handle(self, request):

        response = request.response()
        response.status = 426
        response.headers['Upgrade'] = 'websocket'
        response.puts('This route only speaks WebSocket.\n')
        return response


    def handle_text_frame(self, frame):

        response = frame.response()
        response.write(frame.payload)
        return response


    def handle_binary_frame(self, frame):

        response = frame.response()
        response.write(frame.payload)
        return response


if __name__ == '__main__':
    m2handler.logs.setup_logging()
    EchoHandler.run_app('ws-echo')
