""" Run a handler application::

        python -m m2handler [-v] [--home DIR] package.module:HandlerClass app_id

    The handler's connection information is looked up by *app_id* in the
    m2handler configuration directory.
"""

import argparse
import importlib
import logging
import sys

from . import config
from . import json
from . import logs
from .exceptions import ConfigError
from .handler import Handler


def load_handler_class(target):
    """ Import and return the :class:`Handler` subclass named by *target*,
        in the form 'package.module:ClassName'.
    """

    module_name, separator, class_name = target.partition(':')

    if separator == '' or module_name == '' or class_name == '':
        raise ValueError("handler must be given as 'module:ClassName', not " + repr(target))

    module = importlib.import_module(module_name)

    try:
        handler_class = getattr(module, class_name)
    except AttributeError:
        raise ValueError('module %s has no attribute %s' % (module_name, class_name))

    if isinstance(handler_class, type) and issubclass(handler_class, Handler):
        pass
    else:
        raise ValueError('%s is not a Handler subclass' % (target))

    return handler_class


def main(argv=None):
    """Main entry point for the launcher."""

    parser = argparse.ArgumentParser(
        prog='python -m m2handler',
        description='Run a Mongrel2 handler application'
    )
    parser.add_argument(
        'handler',
        help="The handler class, as 'package.module:ClassName'"
    )
    parser.add_argument(
        'app_id',
        help='The send_ident of the handler configuration to use'
    )
    parser.add_argument(
        '--home',
        help='The m2handler configuration directory (default: $M2HANDLER_HOME or ~/.m2handler)',
        default=None
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log debugging messages'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logs.setup_logging(logging.DEBUG)
    else:
        logs.setup_logging(logging.INFO)

    logging.getLogger(__name__).debug('JSON library: %s', json.library)

    if args.home is not None:
        config.directory(args.home)

    try:
        handler_class = load_handler_class(args.handler)
    except (ImportError, ValueError) as error:
        parser.error(str(error))

    try:
        handler_class.run_app(args.app_id)
    except ConfigError as error:
        logging.getLogger(__name__).error('%s', error)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
