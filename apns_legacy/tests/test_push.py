# -*- coding: utf-8 -*-

import json
import socket
import unittest
from unittest import mock

from apns_legacy.apns import (
    build_alert_payload, feedback_address, gateway_address, open_feedback, open_gateway, push, push_payload,
)
from apns_legacy.data import Notification
from apns_legacy.datetime import Now
from apns_legacy.errors import FramingError, InvalidToken, PayloadTooLarge, TlsError

from .fakes import fake_session


_token0 = '00' * 32
_token1 = '1ba97ad1311307c189696e2369c89fa83d652611a6e3c7370881289e45668fd3'


class PayloadTestCase(unittest.TestCase):
    def test_alert(self):
        payload = build_alert_payload('hi', 1, 'default')

        self.assertEqual(payload, b'{"aps": {"alert": "hi","badge": 1,"sound": "default"}}')

    def test_alert_only(self):
        payload = build_alert_payload('hi')

        self.assertEqual(payload, b'{"aps": {"alert": "hi"}}')

    def test_escaping(self):
        body = 'Say "hi" \\ then\nleave'
        payload = build_alert_payload(body, 1, 'a"b')

        self.assertEqual(json.loads(payload.decode('utf-8')), {'aps': {'alert': body, 'badge': 1, 'sound': 'a"b'}})

    def test_unicode(self):
        payload = build_alert_payload('Ümlaut')

        self.assertEqual(payload, '{"aps": {"alert": "Ümlaut"}}'.encode('utf-8'))

    def test_bad_badge(self):
        with self.assertRaises(TypeError):
            build_alert_payload('hi', badge='1')

    def test_bad_body(self):
        with self.assertRaises(TypeError):
            build_alert_payload(None)


class NotificationTestCase(unittest.TestCase):
    _payload = b'{"aps": {"alert": "hi","badge": 1,"sound": "default"}}'

    def test_frame(self):
        notification = Notification(b'\x00' * 32, self._payload, 1, 0x00015181)

        self.assertEqual(
            notification.frame(),
            b'\x01' b'\x00\x00\x00\x01' b'\x00\x01\x51\x81' b'\x00\x20' + (b'\x00' * 32) + b'\x00\x36' + self._payload
        )

    def test_frame_length(self):
        notification = Notification(b'\x00' * 32, self._payload, 1, 2)

        self.assertEqual(len(notification.frame()), 45 + len(self._payload))

    def test_parse(self):
        notification = Notification(b'\x1b' * 32, self._payload, 0xFFFFFFFF, 7)
        parsed, remainder = Notification.parse(notification.frame() + b'\x01')

        self.assertEqual(parsed, notification)
        self.assertEqual(remainder, b'\x01')

    def test_parse_partial(self):
        frame = Notification(b'\x1b' * 32, self._payload, 1, 2).frame()
        parsed, remainder = Notification.parse(frame[:-1])

        self.assertEqual(parsed, None)
        self.assertEqual(remainder, frame[:-1])

    def test_parse_bad_command(self):
        frame = Notification(b'\x1b' * 32, self._payload, 1, 2).frame()

        with self.assertRaises(FramingError):
            Notification.parse(b'\x02' + frame[1:])

    def test_bad_token(self):
        with self.assertRaises(InvalidToken):
            Notification(b'\x00' * 31, self._payload, 1, 2)

    def test_bad_ident(self):
        with self.assertRaises(ValueError):
            Notification(b'\x00' * 32, self._payload, 1 << 32, 2)

    def test_too_large(self):
        with self.assertRaises(PayloadTooLarge):
            Notification(b'\x00' * 32, b' ' * 257, 1, 2)


class PushTestCase(unittest.TestCase):
    def setUp(self):
        super(PushTestCase, self).setUp()

        self.session = fake_session()

    def tearDown(self):
        self.session.close()

        super(PushTestCase, self).tearDown()

    @property
    def sent(self):
        return bytes(self.session._tls.outbuf)

    def test_push_literal(self):
        count = push(self.session, _token0, 'hi', 1, 'default', identifier=1)
        payload = b'{"aps": {"alert": "hi","badge": 1,"sound": "default"}}'

        self.assertEqual(count, 45 + 54)
        self.assertEqual(
            self.sent,
            b'\x01\x00\x00\x00\x01\x00\x01\x51\x81\x00\x20' + (b'\x00' * 32) + b'\x00\x36' + payload
        )

    def test_push_default_identifier(self):
        with Now(1441065600):
            push(self.session, _token1, 'hi')

        notification, remainder = Notification.parse(self.sent)

        self.assertEqual(notification.ident, 1441065600)
        self.assertEqual(notification.expiry, 1441065600 + 86400)
        self.assertEqual(notification.token, _token1)
        self.assertEqual(remainder, b'')

    def test_push_custom_expiry(self):
        push(self.session, _token1, 'hi', identifier=5, expiry=0)

        notification, _ = Notification.parse(self.sent)

        self.assertEqual(notification.ident, 5)
        self.assertEqual(notification.expiry, 0)

    def test_push_max_identifier(self):
        push(self.session, _token1, 'hi', identifier=0xFFFFFFFF)

        notification, _ = Notification.parse(self.sent)

        self.assertEqual(notification.ident, 0xFFFFFFFF)
        self.assertEqual(notification.expiry, 86399)

    def test_push_bad_token(self):
        with self.assertRaises(InvalidToken):
            push(self.session, 'bogus', 'hi')

        self.assertEqual(self.sent, b'')

    def test_payload_limit(self):
        base = len(build_alert_payload('', 1, 'default'))
        body = 'a' * (256 - base)

        count = push(self.session, _token1, body, 1, 'default', identifier=1)

        self.assertEqual(count, 45 + 256)

    def test_payload_too_large(self):
        base = len(build_alert_payload('', 1, 'default'))
        body = 'a' * (257 - base)

        with self.assertRaises(PayloadTooLarge) as cm:
            push(self.session, _token1, body, 1, 'default', identifier=1)

        self.assertEqual(cm.exception.length, 257)
        self.assertEqual(self.sent, b'')

    def test_push_payload(self):
        push_payload(self.session, _token1, {'aps': {'content-available': 1}, 'id': 7}, identifier=1)

        notification, _ = Notification.parse(self.sent)

        self.assertEqual(json.loads(notification.payload.decode('utf-8')), {'aps': {'content-available': 1}, 'id': 7})

    def test_write_error(self):
        self.session._tls.write_exc = socket.error("Test error")

        with self.assertRaises(TlsError):
            push(self.session, _token1, 'hi')

    def test_write_nothing(self):
        self.session._tls.send_result = 0

        with self.assertRaises(TlsError):
            push(self.session, _token1, 'hi')

    def test_push_closed(self):
        self.session.close()

        with self.assertRaises(TlsError):
            push(self.session, _token1, 'hi')


class GatewayTestCase(unittest.TestCase):
    def test_addresses(self):
        self.assertEqual(gateway_address('production'), ('gateway.push.apple.com', 2195))
        self.assertEqual(gateway_address('sandbox'), ('gateway.sandbox.push.apple.com', 2195))
        self.assertEqual(feedback_address('production'), ('feedback.push.apple.com', 2196))
        self.assertEqual(feedback_address('sandbox'), ('feedback.sandbox.push.apple.com', 2196))

    def test_unknown_environment(self):
        with self.assertRaises(ValueError):
            gateway_address('staging')

    def test_open_gateway(self):
        with mock.patch('apns_legacy.apns.Session.open') as open_mock:
            open_gateway('sandbox', 'cert.pem', 'key.pem', timeout=3)

        open_mock.assert_called_once_with('gateway.sandbox.push.apple.com', 2195, 'cert.pem', 'key.pem', timeout=3)

    def test_open_feedback(self):
        with mock.patch('apns_legacy.apns.Session.open') as open_mock:
            open_feedback('production', 'cert.pem', 'key.pem')

        open_mock.assert_called_once_with('feedback.push.apple.com', 2196, 'cert.pem', 'key.pem')
