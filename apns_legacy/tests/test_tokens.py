import os
import unittest

from apns_legacy.errors import InvalidToken
from apns_legacy.tokens import decode_hex, encode_hex, is_valid_hex


_token1 = '1ba97ad1311307c189696e2369c89fa83d652611a6e3c7370881289e45668fd3'


class TokenTestCase(unittest.TestCase):
    def test_decode(self):
        raw = decode_hex(_token1)

        self.assertEqual(len(raw), 32)
        self.assertEqual(raw[:4], b'\x1b\xa9\x7a\xd1')

    def test_decode_uppercase(self):
        self.assertEqual(decode_hex(_token1.upper()), decode_hex(_token1))

    def test_encode_small_bytes(self):
        raw = bytes(range(32))

        self.assertEqual(encode_hex(raw), ''.join('{0:02x}'.format(i) for i in range(32)))

    def test_encode_high_bytes(self):
        raw = b'\xff' * 16 + b'\x80' * 16

        self.assertEqual(encode_hex(raw), 'ff' * 16 + '80' * 16)

    def test_round_trip(self):
        for raw in [b'\x00' * 32, b'\xff' * 32, os.urandom(32), os.urandom(32)]:
            self.assertEqual(decode_hex(encode_hex(raw)), raw)

    def test_encode_wrong_length(self):
        with self.assertRaises(InvalidToken):
            encode_hex(b'\x00' * 31)

    def test_encode_any_length(self):
        self.assertEqual(encode_hex(b'\x01\x02', length=None), '0102')

    def test_decode_short(self):
        with self.assertRaises(InvalidToken):
            decode_hex(_token1[:-2])

    def test_decode_long(self):
        with self.assertRaises(InvalidToken):
            decode_hex(_token1 + '00')

    def test_decode_odd(self):
        with self.assertRaises(InvalidToken):
            decode_hex(_token1[:-1])

    def test_decode_not_hex(self):
        with self.assertRaises(InvalidToken):
            decode_hex('zz' + _token1[2:])

    def test_decode_whitespace(self):
        with self.assertRaises(InvalidToken):
            decode_hex(' ' + _token1[1:])

    def test_decode_bytes(self):
        with self.assertRaises(InvalidToken):
            decode_hex(_token1.encode('ascii'))

    def test_invalid_token_is_value_error(self):
        with self.assertRaises(ValueError):
            decode_hex('bogus')

    def test_is_valid_hex(self):
        self.assertTrue(is_valid_hex(_token1))
        self.assertFalse(is_valid_hex('bogus'))
