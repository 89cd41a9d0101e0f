"""
Exceptions raised by apns-legacy.

Everything we raise derives from :class:`ApnsError`, so callers that don't
care about the details can catch that. Nothing here is retried internally.
"""


class ApnsError(Exception):
    """ Base class for all apns-legacy errors. """


class ResolutionError(ApnsError):
    """
    The gateway host name could not be resolved to an IPv4 address.

    The underlying :exc:`socket.gaierror` is available as ``__cause__``.

    """
    def __init__(self, host, port, reason=None):
        self.host = host
        self.port = port

        message = "Failed to resolve {0}:{1}".format(host, port)
        if reason:
            message = "{0}: {1}".format(message, reason)

        super(ResolutionError, self).__init__(message)


class ConnectError(ApnsError):
    """ The TCP connection to the gateway could not be established. """
    def __init__(self, host, port, reason=None):
        self.host = host
        self.port = port

        message = "Failed to connect to {0}:{1}".format(host, port)
        if reason:
            message = "{0}: {1}".format(message, reason)

        super(ConnectError, self).__init__(message)


class TlsError(ApnsError):
    """
    A TLS failure: context setup, handshake, read, write or shutdown.

    .. attribute:: code

        The underlying error code, if there was one. For :exc:`ssl.SSLError`
        this is the OpenSSL reason (e.g. ``'KEY_VALUES_MISMATCH'``), falling
        back to the errno.

    .. attribute:: message

        A human-readable description.

    """
    def __init__(self, message, code=None):
        self.message = message
        self.code = code

        super(TlsError, self).__init__(message)

    def __str__(self):
        if self.code is not None:
            return "{0} [{1}]".format(self.message, self.code)

        return self.message

    @classmethod
    def wrap(cls, message, exc):
        """ Builds a TlsError that describes a lower-level exception. """
        code = getattr(exc, 'reason', None) or getattr(exc, 'errno', None)
        detail = getattr(exc, 'strerror', None) or str(exc)

        return cls("{0}: {1}".format(message, detail), code)


class FramingError(TlsError):
    """ The feedback stream contained a record we can't make sense of. """


class InvalidToken(ApnsError, ValueError):
    """ A device token was not valid hex, or decoded to the wrong length. """


class PayloadTooLarge(ApnsError, ValueError):
    """ The encoded payload exceeds the gateway's size limit. """
    def __init__(self, length, limit):
        self.length = length
        self.limit = limit

        super(PayloadTooLarge, self).__init__(
            "Payload is {0} bytes; the limit is {1}".format(length, limit)
        )
