"""
Process-wide TLS library state.

The ``ssl`` module needs no explicit setup, but the contract of this package
is that :func:`initialize` runs once before the first
:class:`~apns_legacy.connection.Session` is opened and :func:`teardown` runs
after the last one is closed. Tracking that here lets us refuse to open
sessions too early and refuse to tear down underneath live ones.
"""
from contextlib import contextmanager
import logging
import ssl
from threading import Lock

from .errors import TlsError


logger = logging.getLogger(__name__)


class _State(object):
    def __init__(self):
        self.lock = Lock()
        self.initialized = False
        self.version = None
        self.sessions = 0


_state = _State()


def initialize():
    """
    Bootstraps the TLS library.

    :returns: `True` if this call did the initialization, `False` if it had
        already been done.

    """
    with _state.lock:
        if _state.initialized:
            logger.debug("TLS library already initialized.")
            return False

        _state.version = ssl.OPENSSL_VERSION
        _state.initialized = True

    logger.debug("TLS library initialized: {0}.".format(_state.version))

    return True


def teardown():
    """
    Releases the TLS library.

    :returns: `True` if this call did the teardown, `False` if the library
        wasn't initialized.
    :raises TlsError: If any session is still open.

    """
    with _state.lock:
        if not _state.initialized:
            logger.debug("TLS library not initialized; nothing to tear down.")
            return False

        if _state.sessions > 0:
            raise TlsError("Can't tear down the TLS library with {0} open session(s)".format(_state.sessions))

        _state.initialized = False
        _state.version = None

    logger.debug("TLS library torn down.")

    return True


def is_initialized():
    return _state.initialized


def version():
    """ The OpenSSL version string recorded at initialization. """
    return _state.version


def require():
    """ Raises :exc:`~apns_legacy.errors.TlsError` unless initialized. """
    if not _state.initialized:
        raise TlsError("TLS library is not initialized; call apns_legacy.library.initialize() first")


def session_opened():
    with _state.lock:
        _state.sessions += 1


def session_closed():
    with _state.lock:
        if _state.sessions > 0:
            _state.sessions -= 1


def open_sessions():
    return _state.sessions


@contextmanager
def initialized():
    """
    Initializes the library for the duration of a with block.

    If the library was already initialized on entry, it's left that way on
    exit.

    """
    did_init = initialize()
    try:
        yield
    finally:
        if did_init:
            teardown()
