from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version

from mspeak.errors import MspeakError
from mspeak.httpbin import frame_file
from mspeak.mode import parse_flags
from mspeak.session import run_session

try:
    __version__ = version("mspeak")
except PackageNotFoundError:
    # Running from a source checkout that was never installed.
    __version__ = "0+unknown"

MSPEAK_HELP = """\
Address/port is IPv4, such as 192.168.1.10:32

Flags are:

  r - read mode
  w - write mode
  c - client mode
  s - server mode
  h - fake HTTP mode

Either r/w must be specified.
Either c/s must be specified.
h is optional but only allowed with sw.

Superuser privilege may be required to listen on a
low-numbered port.
"""


class _Parser(argparse.ArgumentParser):
    """Exit with status 1 on usage errors, like every other failure."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        print(f"ERROR: {message}", file=sys.stderr)
        raise SystemExit(1)


def _configure_logging(verbose: bool, prog: str = "mspeak") -> None:
    # stdout carries the payload, so diagnostics only ever go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=f"[{prog}] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _mspeak_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="mspeak",
        description=(
            "Pipe standard input to a TCP peer, or a TCP peer to standard output. "
            "One side listens (s) and accepts a single connection; the other connects (c)."
        ),
        epilog=MSPEAK_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("flags", help="Two or three of s/c, r/w and h, in any order (e.g. sr, cw, swh)")
    parser.add_argument("endpoint", help="Numeric IPv4 address and port, e.g. 192.168.1.10:32")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log connection progress to stderr")
    parser.add_argument("-V", "--version", action="version", version=f"mspeak {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _mspeak_parser()
    if not argv:
        parser.print_help(sys.stderr)
        return 1

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        mode = parse_flags(args.flags)
        run_session(mode, args.endpoint, sys.stdin.buffer, sys.stdout.buffer)
    except MspeakError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("ERROR: interrupted", file=sys.stderr)
        return 1
    return 0


def httpbin_main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _Parser(
        prog="httpbin",
        description="Stream a file to standard output inside an HTTP/1.1 200 response.",
        epilog="Pipe into 'mspeak swh ADDRESS:PORT' to serve the file to a web browser.",
    )
    parser.add_argument("path", help="File to send as the response body")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("-V", "--version", action="version", version=f"httpbin {__version__}")
    if not argv:
        parser.print_help(sys.stderr)
        return 1

    args = parser.parse_args(argv)
    _configure_logging(args.verbose, prog="httpbin")

    try:
        length = frame_file(args.path, sys.stdout.buffer)
    except MspeakError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    logging.getLogger(__name__).info("framed %d bytes from %s", length, args.path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
