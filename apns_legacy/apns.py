import json
import logging

from .connection import Session
from .data import MAX_PAYLOAD_LENGTH, Feedback, Notification
from .datetime import now
from .errors import PayloadTooLarge
from .tokens import decode_hex


logger = logging.getLogger(__name__)


#: Notifications expire this many seconds after their identifier by default.
DEFAULT_VALIDITY = 86400

GATEWAYS = {
    'production': ('gateway.push.apple.com', 2195),
    'sandbox': ('gateway.sandbox.push.apple.com', 2195),
}

FEEDBACK_SERVICES = {
    'production': ('feedback.push.apple.com', 2196),
    'sandbox': ('feedback.sandbox.push.apple.com', 2196),
}


def gateway_address(environment):
    """
    The `(host, port)` of the push gateway.

    :param str environment: `'sandbox'` or `'production'`.

    """
    return _lookup(GATEWAYS, environment)


def feedback_address(environment):
    """ The `(host, port)` of the feedback service. """
    return _lookup(FEEDBACK_SERVICES, environment)


def _lookup(addresses, environment):
    try:
        return addresses[environment]
    except KeyError:
        raise ValueError("Unknown APNs environment: {0!r}".format(environment)) from None


def open_gateway(environment, cert_path, key_path, **kwargs):
    """
    Opens a :class:`~apns_legacy.connection.Session` with the push gateway.

    Extra keyword arguments go to
    :meth:`~apns_legacy.connection.Session.open`.

    """
    host, port = gateway_address(environment)

    return Session.open(host, port, cert_path, key_path, **kwargs)


def open_feedback(environment, cert_path, key_path, **kwargs):
    """ Opens a :class:`~apns_legacy.connection.Session` with the feedback service. """
    host, port = feedback_address(environment)

    return Session.open(host, port, cert_path, key_path, **kwargs)


#
# Pushing
#

def build_alert_payload(body, badge=None, sound=None):
    """
    Builds a standard alert payload.

    Renders ``{"aps": {"alert": body, "badge": badge, "sound": sound}}``,
    omitting `badge` and `sound` if they're `None`. String values are JSON
    escaped, so quotes and backslashes in the alert are safe.

    :param str body: The alert text.
    :param int badge: The badge number.
    :param str sound: The name of a sound in the app bundle.

    :returns: UTF-8 encoded JSON.
    :rtype: bytes

    """
    if not isinstance(body, str):
        raise TypeError("Alert body must be a string")
    if (badge is not None) and (not isinstance(badge, int) or isinstance(badge, bool)):
        raise TypeError("Badge must be an integer or None")
    if (sound is not None) and (not isinstance(sound, str)):
        raise TypeError("Sound must be a string or None")

    aps = {'alert': body}
    if badge is not None:
        aps['badge'] = badge
    if sound is not None:
        aps['sound'] = sound

    return _encode_payload({'aps': aps})


def _encode_payload(payload):
    return json.dumps(payload, ensure_ascii=False, separators=(',', ': ')).encode('utf-8')


def push(session, device_token_hex, body, badge=None, sound=None, identifier=None, expiry=None):
    """
    Sends a standard alert notification.

    :param session: An open session with the push gateway.
    :type session: :class:`~apns_legacy.connection.Session`
    :param str device_token_hex: 64 hex digits.
    :param str body: The alert text.
    :param int badge: The badge number (optional).
    :param str sound: The sound name (optional).
    :param int identifier: 32-bit identifier; the current Unix time by
        default.
    :param int expiry: Unix time after which the gateway may discard the
        notification; `identifier` plus 24 hours by default.

    :returns: The number of bytes written.

    :raises InvalidToken: If the token is malformed.
    :raises PayloadTooLarge: If the payload exceeds 256 bytes.
    :raises TlsError: If the write fails.

    """
    encoded_token = decode_hex(device_token_hex)
    payload = build_alert_payload(body, badge, sound)

    return _send(session, encoded_token, payload, identifier, expiry)


def push_payload(session, device_token_hex, payload, identifier=None, expiry=None):
    """
    Sends a notification with an arbitrary payload.

    :param dict payload: Any JSON-serializable dictionary, normally with an
        ``'aps'`` key.

    Otherwise the same as :func:`push`.

    """
    encoded_token = decode_hex(device_token_hex)

    return _send(session, encoded_token, _encode_payload(payload), identifier, expiry)


def _send(session, encoded_token, payload, identifier, expiry):
    if len(payload) > MAX_PAYLOAD_LENGTH:
        raise PayloadTooLarge(len(payload), MAX_PAYLOAD_LENGTH)

    if identifier is None:
        identifier = now()
    if expiry is None:
        # Wraps like the gateway's uint32 field.
        expiry = (identifier + DEFAULT_VALIDITY) & 0xFFFFFFFF

    notification = Notification(encoded_token, payload, identifier, expiry)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Sending {0}".format(notification))

    return session.write(notification.frame())


#
# Feedback
#

def drain_feedback(session):
    """
    Parses whatever complete feedback records are already pending.

    This never blocks: it only consumes bytes the session reports as
    pending, and a trailing partial record is left there for the next call.
    An empty list doesn't distinguish "nothing yet" from "connection
    closed"; see :attr:`~apns_legacy.connection.Session.at_eof`.

    :rtype: list of :class:`~apns_legacy.data.Feedback`

    :raises FramingError: If a record is malformed.
    :raises TlsError: If a read fails.

    """
    feedbacks = []

    while session.pending_bytes() >= Feedback.header.size:
        record_len = Feedback.record_length(session.peek(Feedback.header.size))
        if session.pending_bytes() < record_len:
            break

        buf = _read_exactly(session, record_len)
        feedback, _ = Feedback.parse(buf)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Received feedback: {0}".format(feedback))

        feedbacks.append(feedback)

    return feedbacks


def _read_exactly(session, count):
    buf = b''
    while len(buf) < count:
        buf += session.read(count - len(buf))

    return buf


def iter_feedback(session, timeout=1.0):
    """
    Yields feedback records until the service closes the connection.

    Unlike :func:`drain_feedback`, this blocks: each round waits up to
    `timeout` seconds for more data.

    """
    while True:
        session.fill(timeout)
        for feedback in drain_feedback(session):
            yield feedback

        if session.at_eof:
            if session.pending_bytes() > 0:
                logger.warning("Discarding {0} trailing feedback bytes.".format(session.pending_bytes()))
            break
