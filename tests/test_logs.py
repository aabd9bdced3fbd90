import io
import logging

from m2handler import logs


def test_setup_logging():

    root = logging.getLogger()
    level = root.level
    stream = io.StringIO()

    try:
        first = logs.setup_logging(logging.DEBUG, stream)
        logging.getLogger('m2handler.test').debug('hello there')

        second = logs.setup_logging('warning', stream)
        logging.getLogger('m2handler.test').info('not shown')

        assert first not in root.handlers
        assert second in root.handlers
        assert root.level == logging.WARNING
    finally:
        root.removeHandler(logs._handler)
        logs._handler = None
        root.setLevel(level)

    output = stream.getvalue()
    lines = output.splitlines()

    assert len(lines) == 1
    assert ' | DEBUG    | m2handler.test:test_setup_logging:' in lines[0]
    assert lines[0].endswith(' | hello there')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
