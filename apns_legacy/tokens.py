"""
Conversion between hex-encoded and raw device tokens.
"""
from binascii import hexlify, unhexlify
import string

from .errors import InvalidToken


#: Size of a raw device token, in bytes.
TOKEN_LENGTH = 32

_hexdigits = frozenset(string.hexdigits)


def encode_hex(raw, length=TOKEN_LENGTH):
    """
    Renders a raw token as lowercase hex, two digits per byte.

    :param bytes raw: The raw token.
    :param int length: The required size of `raw`, or `None` to accept any
        size (feedback records declare their own token length).

    :rtype: str

    """
    if not isinstance(raw, (bytes, bytearray)):
        raise InvalidToken("Raw token must be bytes, not {0}".format(type(raw).__name__))

    if (length is not None) and (len(raw) != length):
        raise InvalidToken("Raw token is {0} bytes; expected {1}".format(len(raw), length))

    return hexlify(raw).decode('ascii')


def decode_hex(s, length=TOKEN_LENGTH):
    """
    Parses a hex-encoded token.

    :param str s: Exactly ``2 * length`` hex digits.
    :param int length: The size of the decoded token.

    :rtype: bytes
    :raises InvalidToken: If `s` has the wrong length or isn't hex.

    """
    if not isinstance(s, str):
        raise InvalidToken("Token must be a string, not {0}".format(type(s).__name__))

    if len(s) != 2 * length:
        raise InvalidToken("Token must be {0} hex digits, got {1}".format(2 * length, len(s)))

    # unhexlify tolerates nothing else, but its error doesn't say which token.
    if not _hexdigits.issuperset(s):
        raise InvalidToken("Token contains non-hex characters: {0!r}".format(s))

    return unhexlify(s)


def is_valid_hex(s, length=TOKEN_LENGTH):
    try:
        decode_hex(s, length)
    except InvalidToken:
        return False

    return True
