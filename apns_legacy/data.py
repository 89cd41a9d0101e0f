"""
APNs data structures with serialization.

Both wire formats are declared as :class:`struct.Struct` layouts, all
integers big-endian:

    push frame:      command:1 | ident:4 | expiry:4 | token_len:2 | token:32 | payload_len:2 | payload
    feedback record: timestamp:4 | token_len:2 | token
"""
from collections import namedtuple
from datetime import datetime, timedelta
from struct import Struct

from .errors import FramingError, InvalidToken, PayloadTooLarge
from .tokens import TOKEN_LENGTH, encode_hex


#: The gateway rejects payloads larger than this.
MAX_PAYLOAD_LENGTH = 256

_uint32_max = 0xFFFFFFFF


class Notification(object):
    """
    A single push notification, as rendered onto the wire.

    :param bytes encoded_token: Binary representation of a device token.
    :param bytes payload: The encoded JSON payload.
    :param int ident: 32-bit notification identifier.
    :param int expiry: Unix time after which the gateway may discard the
        notification.

    """
    command = 1
    layout = Struct('!BIIH{0}sH'.format(TOKEN_LENGTH))

    def __init__(self, encoded_token, payload, ident, expiry):
        if len(encoded_token) != TOKEN_LENGTH:
            raise InvalidToken("Raw token is {0} bytes; expected {1}".format(len(encoded_token), TOKEN_LENGTH))
        if len(payload) > MAX_PAYLOAD_LENGTH:
            raise PayloadTooLarge(len(payload), MAX_PAYLOAD_LENGTH)

        self.encoded_token = bytes(encoded_token)
        self.payload = bytes(payload)
        self.ident = _uint32(ident, 'ident')
        self.expiry = _uint32(expiry, 'expiry')

    def __str__(self):
        return "{0} -> {1}".format(self.payload.decode('utf-8', 'replace'), self.token)

    def __repr__(self):
        return "<Notification {0} ident={1} expiry={2}>".format(self.token, self.ident, self.expiry)

    def __eq__(self, other):
        if not isinstance(other, Notification):
            return NotImplemented

        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def _key(self):
        return (self.encoded_token, self.payload, self.ident, self.expiry)

    @property
    def token(self):
        """
        This notification's hex-encoded token.

        :rtype: str

        """
        return encode_hex(self.encoded_token)

    def frame(self):
        """
        Renders this notification to an APNs frame.

        :returns: A complete frame, ready to be put on the wire.
        :rtype: bytes

        """
        header = self.layout.pack(
            self.command, self.ident, self.expiry,
            TOKEN_LENGTH, self.encoded_token, len(self.payload)
        )

        return header + self.payload

    @classmethod
    def parse(cls, buf):
        """
        Parses one Notification from the head of a byte string.

        :returns: A two-tuple with the parsed
            :class:`~apns_legacy.data.Notification` and the remaining bytes.
            The first element is `None` if the buffer doesn't hold a complete
            frame yet.
        :rtype: (:class:`~apns_legacy.data.Notification`, bytes)

        :raises FramingError: If the head of the buffer is not a command 1
            frame.

        """
        notification = None
        remainder = buf

        if len(buf) >= cls.layout.size:
            command, ident, expiry, token_len, token, payload_len = cls.layout.unpack_from(buf)
            if command != cls.command:
                raise FramingError("Unexpected command {0} in push frame".format(command))
            if token_len != TOKEN_LENGTH:
                raise FramingError("Unexpected token length {0} in push frame".format(token_len))

            total_len = cls.layout.size + payload_len
            if len(buf) >= total_len:
                notification = cls(token, buf[cls.layout.size:total_len], ident, expiry)
                remainder = buf[total_len:]

        return (notification, remainder)


class Feedback(namedtuple('Feedback', ['timestamp', 'token'])):
    """
    A single record from the APNs feedback service.

    .. attribute:: timestamp

        Unix time at which the gateway decided the token was undeliverable.

    .. attribute:: token

        The hex-encoded device token. Its length is whatever the record
        declared, not necessarily 64 digits.

    """
    header = Struct('!IH')

    _epoch = datetime(1970, 1, 1)

    @property
    def when(self):
        """
        :attr:`timestamp` as a naive UTC datetime. If the device was
        registered with your service after this time, you can ignore this
        feedback.
        """
        return self._epoch + timedelta(seconds=self.timestamp)

    @classmethod
    def record_length(cls, header):
        """
        Returns the full size of the record that starts with `header`.

        :param bytes header: At least :attr:`header.size` bytes.

        :raises FramingError: If the record declares an empty token.

        """
        _, token_len = cls.header.unpack_from(header)
        if token_len == 0:
            raise FramingError("Feedback record declares a zero-length token")

        return cls.header.size + token_len

    @classmethod
    def parse(cls, buf):
        """
        Parses one Feedback object from the head of a byte string.

        :returns: A two-tuple with the parsed
            :class:`~apns_legacy.data.Feedback` and the remaining bytes. The
            first element of the tuple will be `None` if it could not be
            parsed.
        :rtype: (:class:`~apns_legacy.data.Feedback`, bytes)

        """
        feedback = None
        remainder = buf

        if len(buf) >= cls.header.size:
            total_len = cls.record_length(buf)

            if len(buf) >= total_len:
                timestamp, _ = cls.header.unpack_from(buf)
                token = encode_hex(buf[cls.header.size:total_len], length=None)

                feedback = cls(timestamp, token)
                remainder = buf[total_len:]

        return (feedback, remainder)


def _uint32(value, name):
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError("{0} must be an integer".format(name))
    if not (0 <= value <= _uint32_max):
        raise ValueError("{0} must fit in 32 bits: {1}".format(name, value))

    return value
