""" A WebSocket handler that keeps track of its clients. Every
    :attr:`HeartbeatHandler.heartbeat_rate` seconds a background thread pings
    each client connection it has heard from; a connection that has been
    silent for longer than :attr:`HeartbeatHandler.idle_timeout` seconds is
    sent a close frame and closed instead.
"""

import threading
import time

import zmq

from . import exceptions
from .handler import Handler
from .protocol.websocket import CLOSE_EXCEPTION, FIN_FLAG, OPCODE, Frame


class HeartbeatHandler(Handler):
    """ A :class:`Handler` that pings idle WebSocket clients, and
        disconnects those that stop answering. The heartbeat thread runs for
        as long as the request loop does, and is restarted along with the
        connection.
    """

    heartbeat_rate = 5.0
    idle_timeout = 15.0

    def __init__(self, app_id, send_spec, recv_spec, log=None, context=None):

        Handler.__init__(self, app_id, send_spec, recv_spec, log, context)

        self.last_seen = dict()
        self.last_seen_lock = threading.Lock()
        self.heartbeat = None


    def start_accepting_requests(self):

        self.start_heartbeat()

        try:
            Handler.start_accepting_requests(self)
        finally:
            self.stop_heartbeat()


    def restart(self):

        self.stop_heartbeat()
        Handler.restart(self)
        self.start_heartbeat()


    def shutdown(self):

        self.stop_heartbeat()
        Handler.shutdown(self)


    def start_heartbeat(self):

        if self.heartbeat is None:
            self.log.info('Starting heartbeat every %.1f sec', self.heartbeat_rate)
            self.heartbeat = _Heartbeat(self.send_heartbeat, self.heartbeat_rate)


    def stop_heartbeat(self):

        heartbeat = self.heartbeat
        self.heartbeat = None

        if heartbeat is not None:
            self.log.info('Stopping heartbeat')
            heartbeat.stop()


    def handle_websocket(self, frame):

        if frame.opcode == 'close':
            pass
        else:
            self.seen(frame.sender_id, frame.conn_id)

        return Handler.handle_websocket(self, frame)


    def handle_close_frame(self, frame):

        self.forget(frame.sender_id, frame.conn_id)
        return Handler.handle_close_frame(self, frame)


    def seen(self, sender_id, conn_id, when=None):
        """ Record activity from the client connection *conn_id* on the server
            *sender_id*.
        """

        if when is None:
            when = time.time()

        with self.last_seen_lock:
            self.last_seen[(sender_id, conn_id)] = when


    def forget(self, sender_id, conn_id):

        with self.last_seen_lock:
            self.last_seen.pop((sender_id, conn_id), None)


    def tracked(self):
        """ Return a sorted list of the (sender_id, conn_id) pairs being
            tracked.
        """

        with self.last_seen_lock:
            return sorted(self.last_seen.keys())


    def send_heartbeat(self):
        """ Ping every tracked connection, closing those that have been idle
            for longer than :attr:`idle_timeout`.
        """

        now = time.time()

        with self.last_seen_lock:
            snapshot = list(self.last_seen.items())

        for address, last_seen in snapshot:
            sender_id, conn_id = address

            try:
                if now - last_seen > self.idle_timeout:
                    self.disconnect_idle(sender_id, conn_id, now - last_seen)
                else:
                    self.ping(sender_id, conn_id)
            except (exceptions.ConnectionError, zmq.ZMQError) as error:
                self.log.error('Heartbeat to %s:%d failed: %s', sender_id, conn_id, error)


    def ping(self, sender_id, conn_id):

        self.log.debug('Pinging %s:%d', sender_id, conn_id)
        frame = Frame(sender_id, conn_id, '', {'FLAGS': FIN_FLAG | OPCODE['ping']})
        self.conn.reply(frame)


    def disconnect_idle(self, sender_id, conn_id, idle):

        self.log.info('Closing %s:%d, idle for %.1f sec', sender_id, conn_id, idle)

        frame = Frame(sender_id, conn_id, '', {'FLAGS': FIN_FLAG | OPCODE['close']})
        frame.set_status(CLOSE_EXCEPTION)

        self.forget(sender_id, conn_id)
        self.conn.reply(frame)
        self.conn.send_close(sender_id, conn_id)


# end of class HeartbeatHandler



class _Heartbeat:
    """ Background thread to invoke the heartbeat *method* every *interval*
        seconds.
    """

    def __init__(self, method, interval):

        self.method = method
        self.interval = float(interval)
        self.shutdown = False

        self.alarm = threading.Event()
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()


    def run(self):

        next = time.time() + self.interval

        while True:
            delay = next - time.time()
            if delay > 0:
                self.alarm.wait(delay)

            if self.shutdown == True:
                break

            self.method()
            next += self.interval


    def stop(self):
        """ Stop the thread, waiting for a heartbeat in progress to finish
            unless called from the heartbeat itself.
        """

        self.shutdown = True
        self.alarm.set()

        if threading.current_thread() is not self.thread:
            self.thread.join()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
