"""
Command line entry points: echo-server and echo-client.

Both programs exit with 0 on success and 1 on any argument or I/O error.
"""

import sys
import codecs
import argparse
import logging
from typing import List, Optional

from .config import ServerConfig, ClientConfig, DEFAULT_HOSTNAME, DEFAULT_MESSAGE, MAX_PORT
from .server import EchoServer
from .client import EchoClient
from .errors import EchoError


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad arguments."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"ERROR: {message}\n")


def port_number(text: str) -> int:
    """argparse type for a listening port."""
    try:
        port = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {text!r}")
    if not 0 < port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"invalid port number: {port}")
    return port


def build_server_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="echo-server", description="TCP Echo Server")
    parser.add_argument("port", type=port_number, help="Port to listen on")
    parser.add_argument("--hostname", default=DEFAULT_HOSTNAME,
                        help=f'The hostname to use, defaults to "{DEFAULT_HOSTNAME}"')
    parser.add_argument("--abort-on-client-error", action="store_true",
                        help="Shut the server down when a client connection fails")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def build_client_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="echo-client", description="TCP Echo Client")
    parser.add_argument("port", type=port_number, help="Server port")
    parser.add_argument("--hostname", default=DEFAULT_HOSTNAME,
                        help=f'The hostname to use, defaults to "{DEFAULT_HOSTNAME}"')
    parser.add_argument("--message", default=DEFAULT_MESSAGE,
                        help="The message to send to the server")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def _setup_logging(verbose: bool, quiet_level: int):
    logging.basicConfig(
        level=logging.DEBUG if verbose else quiet_level,
        format=LOG_FORMAT
    )


def server_main(argv: Optional[List[str]] = None) -> int:
    """Run the echo server until Ctrl+C or a fatal error."""
    args = build_server_parser().parse_args(argv)
    _setup_logging(args.verbose, logging.INFO)

    config = ServerConfig(
        port=args.port,
        hostname=args.hostname,
        isolate_client_errors=not args.abort_on_client_error
    )
    print(f"Starting server at {config.hostname}:{config.port}")

    server = EchoServer(config)
    try:
        server.start()
    except EchoError as e:
        print(f"ERROR: failed to start server: {e}", file=sys.stderr)
        return 1

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down server...")
    except EchoError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        server.close()

    return 0


def client_main(argv: Optional[List[str]] = None) -> int:
    """Send one message to the echo server and print the response."""
    args = build_client_parser().parse_args(argv)
    _setup_logging(args.verbose, logging.WARNING)

    config = ClientConfig(port=args.port, hostname=args.hostname, message=args.message)
    payload = config.payload

    with EchoClient(config) as client:
        try:
            print(f"connecting to server at {config.hostname}:{config.port}")
            client.connect()

            print(f'sending message: "{config.display_message}"')
            client.send_message(payload)

            print('receiving response: "', end="", flush=True)
            decoder = codecs.getincrementaldecoder(config.encoding)(errors="replace")
            for chunk in client.iter_echo(len(payload)):
                print(decoder.decode(chunk), end="", flush=True)
            print(decoder.decode(b"", final=True), end="")
            print('"')
        except EchoError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    return 0

