"""
A client for the legacy APNs binary protocol.

Typical use::

    from apns_legacy import library, open_gateway, push

    library.initialize()
    with open_gateway('sandbox', 'cert.pem', 'key.pem') as session:
        push(session, token, "Hello", badge=1, sound='default')
    library.teardown()
"""
from .apns import (  # noqa
    DEFAULT_VALIDITY, FEEDBACK_SERVICES, GATEWAYS,
    build_alert_payload, drain_feedback, feedback_address, gateway_address,
    iter_feedback, open_feedback, open_gateway, push, push_payload,
)
from .connection import Session  # noqa
from .data import MAX_PAYLOAD_LENGTH, Feedback, Notification  # noqa
from .errors import (  # noqa
    ApnsError, ConnectError, FramingError, InvalidToken, PayloadTooLarge,
    ResolutionError, TlsError,
)
from .tokens import TOKEN_LENGTH, decode_hex, encode_hex  # noqa
from . import library  # noqa
