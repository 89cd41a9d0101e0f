"""
Command line interface.

    apns-legacy push --cert cert.pem --key key.pem TOKEN --alert "Hello"
    apns-legacy feedback --cert cert.pem --key key.pem --sandbox
"""
import argparse
import logging
import os
import sys

from . import apns, library
from .connection import Session
from .errors import ApnsError, TlsError


logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='apns-legacy',
        description="Send push notifications and read feedback over the legacy APNs binary protocol.",
    )
    parser.add_argument('-v', '--verbose', action='store_true', help="Log debugging output.")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--cert', required=True, help="PEM-encoded client certificate.")
    common.add_argument('--key', help="PEM-encoded private key (default: same file as --cert).")
    common.add_argument('--passphrase-env', metavar='NAME', help="Environment variable holding the key passphrase.")
    common.add_argument('--sandbox', action='store_true', help="Use the sandbox environment.")
    common.add_argument('--host', help="Override the service host.")
    common.add_argument('--port', type=int, help="Override the service port.")
    common.add_argument('--timeout', type=float, help="Socket timeout in seconds.")

    commands = parser.add_subparsers(dest='command', metavar='COMMAND')
    commands.required = True

    push = commands.add_parser('push', parents=[common], help="Send one alert notification.")
    push.add_argument('token', help="Hex-encoded device token.")
    push.add_argument('--alert', default='', help="Alert text.")
    push.add_argument('--badge', type=int, help="Badge number.")
    push.add_argument('--sound', help="Sound name.")
    push.add_argument('--identifier', type=int, help="Notification identifier (default: current time).")
    push.add_argument('--expiry', type=int, help="Expiration as Unix time (default: identifier + 24h).")
    push.set_defaults(func=cmd_push, addresses=apns.GATEWAYS)

    feedback = commands.add_parser('feedback', parents=[common], help="Print tokens reported by the feedback service.")
    feedback.add_argument('--wait', type=float, default=1.0, help="Seconds to wait for data on each poll.")
    feedback.set_defaults(func=cmd_feedback, addresses=apns.FEEDBACK_SERVICES)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    library.initialize()
    try:
        return args.func(args)
    except ApnsError as e:
        print("apns-legacy: {0}".format(e), file=sys.stderr)
        return 1
    finally:
        library.teardown()


def cmd_push(args):
    with open_session(args) as session:
        count = apns.push(
            session, args.token, args.alert, args.badge, args.sound,
            identifier=args.identifier, expiry=args.expiry
        )

    print("Wrote {0} bytes.".format(count))

    return 0


def cmd_feedback(args):
    count = 0

    with open_session(args) as session:
        for feedback in apns.iter_feedback(session, args.wait):
            print("{0} {1}".format(feedback.timestamp, feedback.token))
            count += 1

    logger.info("Received {0} feedback record(s).".format(count))

    return 0


def open_session(args):
    environment = 'sandbox' if args.sandbox else 'production'
    host, port = args.addresses[environment]

    return Session.open(
        args.host or host, args.port or port,
        args.cert, args.key or args.cert,
        passphrase_provider=env_passphrase(args.passphrase_env),
        timeout=args.timeout,
    )


def env_passphrase(name):
    """ Returns a passphrase provider that reads an environment variable. """
    if name is None:
        return None

    def provider():
        try:
            return os.environ[name]
        except KeyError:
            raise TlsError("Environment variable {0} is not set".format(name)) from None

    return provider
