from contextlib import ExitStack
import logging
import select
import socket
import ssl

from . import library
from .errors import ConnectError, ResolutionError, TlsError


logger = logging.getLogger(__name__)


class Session(object):
    """
    A TLS session with an APNs gateway or feedback service.

    Don't instantiate this directly; use :meth:`Session.open`, which either
    returns a fully connected session or raises, leaving nothing allocated.
    A session owns its socket, TLS context and TLS connection and releases
    all three in :meth:`close` (connection, then socket, then context). It
    can be used as a context manager.

    Sessions are not thread-safe. All I/O is blocking except
    :meth:`pending_bytes`, :meth:`fill` and reads that are already covered by
    pending bytes.

    .. attribute:: address

        The `(host, port)` we were asked to connect to.

    .. attribute:: at_eof

        `True` once the peer has closed its side of the stream.

    """
    #: Seconds to wait for the peer's close_notify in :meth:`close`.
    shutdown_timeout = 1.0

    #: Largest chunk requested by :meth:`fill`. One TLS record is at most 16K.
    fill_size = 16384

    def __init__(self, address, context, connection):
        self.address = address
        self.at_eof = False

        self._context = context
        self._tls = connection
        self._rbuf = bytearray()
        self._closed = False
        self._counted = False

    def __repr__(self):
        state = 'closed' if self._closed else 'open'

        return "<Session {0}:{1} {2}>".format(self.address[0], self.address[1], state)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @classmethod
    def open(cls, host, port, cert_path, key_path, passphrase_provider=None, timeout=None):
        """
        Connects to a gateway and completes the TLS handshake.

        :param str host: Host name or IPv4 literal. Only the first IPv4
            address is tried.
        :param int port: TCP port.
        :param str cert_path: Path to our PEM-encoded client certificate.
        :param str key_path: Path to our PEM-encoded private key.
        :param passphrase_provider: A function of no arguments returning the
            key's passphrase (str or bytes). It's only called if the key is
            encrypted.
        :param float timeout: An optional socket timeout, in seconds, applied
            to the connect, the handshake and all later blocking I/O.

        :raises ResolutionError: If `host` doesn't resolve.
        :raises ConnectError: If the TCP connection fails.
        :raises TlsError: If the certificate or key can't be loaded, don't
            match, or the handshake fails.

        .. warning::

            The gateway's certificate is not verified.

        """
        library.require()

        address = _resolve(host, port)

        with ExitStack() as stack:
            logger.debug("Opening connection to {0}:{1} ({2}).".format(host, port, address[0]))

            sock = _new_socket()
            stack.callback(sock.close)
            if timeout is not None:
                sock.settimeout(timeout)

            try:
                sock.connect(address)
            except OSError as e:
                raise ConnectError(host, port, e) from e

            context = _new_context(cert_path, key_path, passphrase_provider)

            try:
                connection = context.wrap_socket(sock, server_hostname=host, do_handshake_on_connect=False)
            except (OSError, ValueError) as e:
                raise TlsError.wrap("Failed to set up TLS connection", e) from e
            stack.callback(connection.close)

            try:
                connection.do_handshake()
            except OSError as e:
                raise TlsError.wrap("TLS handshake with {0}:{1} failed".format(host, port), e) from e

            session = cls((host, port), context, connection)
            stack.pop_all()

        library.session_opened()
        session._counted = True
        logger.debug("Connected to {0}:{1} using {2}.".format(host, port, connection.version()))

        return session

    @property
    def closed(self):
        return self._closed

    def write(self, data):
        """
        Writes bytes to the peer in a single blocking call.

        :rtype: int
        :returns: The number of bytes written.

        """
        connection = self._connection()

        try:
            count = connection.send(data)
        except OSError as e:
            raise TlsError.wrap("Write to {0}:{1} failed".format(*self.address), e) from e

        if count <= 0:
            raise TlsError("Write to {0}:{1} failed: {2} bytes written".format(self.address[0], self.address[1], count))

        return count

    def pending_bytes(self):
        """
        The number of decrypted bytes we can read without blocking.

        This is a TLS-layer count: bytes still encrypted in the socket buffer
        are not included. Use :meth:`fill` to pull those in.

        """
        connection = self._connection()

        return len(self._rbuf) + connection.pending()

    def read(self, max_len):
        """
        Reads up to `max_len` bytes, blocking if none are pending.

        :rtype: bytes
        :raises TlsError: On error or if the peer has closed the stream.

        """
        self._connection()

        if max_len <= 0:
            raise ValueError("max_len must be positive")

        if len(self._rbuf) > 0:
            data = bytes(self._rbuf[:max_len])
            del self._rbuf[:max_len]
        else:
            data = self._recv(max_len)

        return data

    def peek(self, count):
        """
        Returns the next `count` bytes without consuming them.

        This blocks unless `count` is no greater than :meth:`pending_bytes`.

        """
        self._connection()

        while len(self._rbuf) < count:
            self._rbuf += self._recv(count - len(self._rbuf))

        return bytes(self._rbuf[:count])

    def fill(self, timeout=0.0):
        """
        Moves newly arrived bytes from the network into the pending buffer.

        Waits up to `timeout` seconds for the socket to become readable, then
        performs a single non-blocking read.

        :returns: The number of bytes added. 0 if nothing arrived in time or
            the peer has closed the stream (check :attr:`at_eof`).

        """
        connection = self._connection()

        if self.at_eof:
            return 0

        if connection.pending() == 0:
            readable, _, _ = select.select([connection], [], [], timeout)
            if not readable:
                return 0

        previous = connection.gettimeout()
        connection.settimeout(0.0)
        try:
            data = connection.recv(self.fill_size)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
            data = None
        except ssl.SSLEOFError:
            data = b''
        except OSError as e:
            raise TlsError.wrap("Read from {0}:{1} failed".format(*self.address), e) from e
        finally:
            connection.settimeout(previous)

        if data is None:
            return 0

        if len(data) == 0:
            logger.debug("{0}:{1} closed the connection.".format(*self.address))
            self.at_eof = True

        self._rbuf += data

        return len(data)

    def close(self):
        """
        Shuts down the TLS connection and releases everything.

        Safe to call more than once. Shutdown failures are logged, not
        raised: the socket is closed regardless.

        """
        if self._closed:
            return

        self._closed = True
        connection, self._tls = self._tls, None

        try:
            logger.debug("Closing connection to {0}:{1}.".format(*self.address))
            self._shutdown(connection)
        finally:
            connection.close()
            self._context = None
            self._rbuf = bytearray()
            if self._counted:
                library.session_closed()

    def _shutdown(self, connection):
        """ Sends close_notify and waits briefly for the peer's. """
        if self.at_eof:
            return

        try:
            connection.settimeout(self.shutdown_timeout)
            connection.unwrap()
        except (OSError, ValueError) as e:
            logger.debug("TLS shutdown with {0}:{1} failed: {2}".format(self.address[0], self.address[1], e))

    def _connection(self):
        if self._closed:
            raise TlsError("Session with {0}:{1} is closed".format(*self.address))

        return self._tls

    def _recv(self, bufsize):
        try:
            data = self._tls.recv(bufsize)
        except OSError as e:
            raise TlsError.wrap("Read from {0}:{1} failed".format(*self.address), e) from e

        if len(data) == 0:
            self.at_eof = True
            raise TlsError("Connection closed by {0}:{1}".format(*self.address))

        return data


def _resolve(host, port):
    """ Returns the first IPv4 `(address, port)` for `host`. """
    try:
        infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(host, port, e) from e

    if len(infos) == 0:
        raise ResolutionError(host, port, "no IPv4 addresses")

    return infos[0][4]


def _new_socket():
    """ Mock target. """
    return socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)


def _new_context(cert_path, key_path, passphrase_provider):
    """
    Builds a client context that presents our certificate.

    The peer's certificate is deliberately not verified.

    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    logger.info("Server certificate verification is disabled.")

    try:
        context.load_cert_chain(cert_path, key_path, password=_passphrase_callback(passphrase_provider))
    except (OSError, ValueError) as e:
        raise TlsError.wrap("Failed to load client certificate {0} / key {1}".format(cert_path, key_path), e) from e

    return context


def _passphrase_callback(provider):
    """
    Adapts a passphrase provider for OpenSSL.

    OpenSSL only calls this for encrypted keys. Without a provider we fail
    rather than let OpenSSL prompt on the terminal.

    """
    def callback():
        logger.debug("Private key is encrypted; requesting passphrase.")
        if provider is None:
            raise TlsError("Private key is encrypted and no passphrase provider was given")

        return provider()

    return callback
