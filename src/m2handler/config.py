""" Handler configuration. Each handler is described by a record naming the
    ZeroMQ endpoints it uses to talk to Mongrel2; the records are stored as
    JSON files in the ``handlers`` subdirectory of the m2handler home
    directory, one file per handler, named for the handler's send_ident.

    This module is the default configuration provider for
    :func:`m2handler.handler.Handler.run_app`; any object with a
    ``connection_info_for(app_id)`` method can stand in for it.
"""

import logging
import os
import re
import threading
import urllib.parse

from . import json
from .constants import HOME_VARIABLE
from .exceptions import ConfigError

log = logging.getLogger(__name__)

_cache = dict()
_cache_lock = threading.Lock()

IDENT_PATTERN = re.compile(r'^\w[\w\-]+$')
VALID_SPEC_SCHEMES = ('tcp', 'ipc', 'pgm', 'epgm')
VALID_PROTOCOLS = ('json', 'tnetstring')


class HandlerConfig:
    """ The configuration of a single handler. The *send_spec* is the
        endpoint Mongrel2 sends requests on, and the *recv_spec* the endpoint
        it receives responses on; *send_ident* is the handler's app id.
    """

    fields = ('send_ident', 'send_spec', 'recv_spec', 'recv_ident', 'protocol', 'raw_payload')

    def __init__(self, send_ident, send_spec, recv_spec, recv_ident='', protocol=None, raw_payload=False):

        self.send_ident = send_ident
        self.send_spec = send_spec
        self.recv_spec = recv_spec
        self.recv_ident = recv_ident
        self.protocol = protocol
        self.raw_payload = raw_payload


    def __repr__(self):
        return '<%s %s: %s -> %s>' % (self.__class__.__name__, self.send_ident, self.send_spec, self.recv_spec)


    def __eq__(self, other):

        if isinstance(other, HandlerConfig):
            return self.to_dict() == other.to_dict()

        return NotImplemented


    @classmethod
    def from_dict(cls, block):

        try:
            return cls(**block)
        except TypeError as error:
            raise ConfigError('invalid handler configuration: %s' % (error))


    def to_dict(self):

        block = dict()
        for field in self.fields:
            block[field] = getattr(self, field)

        return block


    def errors(self):
        """ Return a list of problems with this configuration, empty if
            there are none.
        """

        errors = list()

        if isinstance(self.send_ident, str) and IDENT_PATTERN.match(self.send_ident):
            pass
        else:
            errors.append('send_ident %r: invalid sender identity (should be UUID-like)' % (self.send_ident,))

        recv_ident = self.recv_ident
        if recv_ident == '' or (isinstance(recv_ident, str) and IDENT_PATTERN.match(recv_ident)):
            pass
        else:
            errors.append('recv_ident %r: invalid receiver identity (should be empty or UUID-like)' % (recv_ident,))

        for name in ('send_spec', 'recv_spec'):
            problem = check_spec(getattr(self, name))
            if problem:
                errors.append('%s %r: %s' % (name, getattr(self, name), problem))

        if self.protocol is None or self.protocol in VALID_PROTOCOLS:
            pass
        else:
            errors.append('protocol %r: invalid' % (self.protocol,))

        return errors


    def validate(self):
        """ Raise :class:`ConfigError` if the configuration is invalid.
        """

        errors = self.errors()

        if errors:
            for error in errors:
                log.error('%s: %s', self.send_ident, error)
            raise ConfigError('invalid handler configuration: ' + '; '.join(errors))


# end of class HandlerConfig



def check_spec(spec):
    """ Return a description of the problem with the ZeroMQ endpoint *spec*,
        or None if it is acceptable.
    """

    if spec is None:
        return 'must not be empty'

    try:
        scheme = urllib.parse.urlsplit(str(spec)).scheme
    except ValueError:
        return 'not a URI; should be something like "tcp://127.0.0.1:9998"'

    if scheme in VALID_SPEC_SCHEMES:
        return None

    return 'invalid 0mq transport %r' % (scheme,)



def directory(default=None):
    """ Return the directory location where handler configuration files are
        loaded and saved. This defaults to ``$HOME/.m2handler``, but can be
        overridden by calling this method with a valid path, or by setting
        the ``M2HANDLER_HOME`` environment variable. Note that changes to the
        environment variable will be ignored unless it is set prior to the
        first invocation of this method.
    """

    if default is not None:
        default = str(default)
        default = os.path.expandvars(default)

        if os.path.isabs(default):
            pass
        else:
            raise ValueError('the default directory must be an absolute path')

        if os.path.exists(default):
            pass
        else:
            os.makedirs(default, mode=0o775)

        os.environ[HOME_VARIABLE] = default
        directory.found = default

        with _cache_lock:
            _cache.clear()


    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ[HOME_VARIABLE]
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        raise ConfigError(HOME_VARIABLE + ' and HOME environment variables not set, cannot determine m2handler configuration directory')

    found = os.path.join(home, '.m2handler')

    directory.found = found
    return found

directory.found = None



def _handler_directory():
    return os.path.join(directory(), 'handlers')


def _filename(send_ident):

    if IDENT_PATTERN.match(str(send_ident)):
        pass
    else:
        raise ConfigError('invalid handler identity: ' + repr(send_ident))

    return os.path.join(_handler_directory(), send_ident + '.json')



def get(send_ident):
    """ Return the :class:`HandlerConfig` for the handler *send_ident*.
        A :class:`ConfigError` is raised if there is no such handler.
    """

    try:
        return _cache[send_ident]
    except KeyError:
        pass

    filename = _filename(send_ident)

    try:
        raw_json = open(filename, 'rb').read()
    except FileNotFoundError:
        raise ConfigError('no configuration for handler ' + repr(send_ident))

    try:
        block = json.loads(raw_json)
    except json.DecodeError as error:
        raise ConfigError('cannot parse %s: %s' % (filename, error))

    if isinstance(block, dict):
        pass
    else:
        raise ConfigError('%s does not contain a JSON object' % (filename))

    config = HandlerConfig.from_dict(block)

    with _cache_lock:
        _cache[send_ident] = config

    return config



def save(config):
    """ Validate the :class:`HandlerConfig` *config* and write it to disk,
        replacing any existing record for the same handler.
    """

    config.validate()

    handler_directory = _handler_directory()

    if os.path.exists(handler_directory):
        pass
    else:
        os.makedirs(handler_directory, mode=0o775)

    if os.access(handler_directory, os.W_OK) != True:
        raise OSError('cannot write to handler directory: ' + handler_directory)

    raw_json = json.dumps(config.to_dict())
    target_filename = _filename(config.send_ident)

    try:
        os.remove(target_filename)
    except FileNotFoundError:
        pass

    writer = open(target_filename, 'wb')
    writer.write(raw_json)
    writer.close()

    os.chmod(target_filename, 0o664)

    with _cache_lock:
        _cache[config.send_ident] = config

    log.info('Saved configuration for handler %s', config.send_ident)



def remove(send_ident):
    """ Remove the record for the handler *send_ident*. Takes no action and
        throws no errors if there is no such record.
    """

    with _cache_lock:
        _cache.pop(send_ident, None)

    try:
        os.remove(_filename(send_ident))
    except FileNotFoundError:
        pass



def handlers():
    """ Return a sorted list of the send_idents of all configured handlers.
    """

    try:
        filenames = os.listdir(_handler_directory())
    except FileNotFoundError:
        return list()

    idents = list()

    for filename in filenames:
        if filename.endswith('.json'):
            idents.append(filename[:-5])

    idents.sort()
    return idents



def connection_info_for(app_id):
    """ Return the (send_spec, recv_spec) pair for the handler *app_id*.
    """

    config = get(app_id)
    log.debug('Connection info for %s: %s -> %s', app_id, config.send_spec, config.recv_spec)

    return config.send_spec, config.recv_spec


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
