"""Command-line interface for sending request files."""

import argparse
import os
import sys

from httper import __version__
from httper.engine import DEFAULT_TIMEOUT


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the httper CLI."""
    parser = argparse.ArgumentParser(
        prog="httper",
        description=(
            "httper v{ver}: send HTTP requests described in plain-text "
            "request files.\n\n"
            "A request file holds a request line (METHOD URL [VERSION]), "
            "headers, a blank line and an optional body. Multipart parts "
            "may stream files with '< path', relative to the request file."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  httper requests/create-user.http\n"
            "  httper upload.http --env dev --env-file http-client.env.json "
            "-o response.json\n"
        ),
    )

    parser.add_argument(
        "request_file",
        help="File containing the HTTP request(s).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print the parsed request, debug logs and the full response.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        metavar="FILE",
        help="Write the response body to FILE.",
    )
    parser.add_argument(
        "--env",
        default=None,
        metavar="NAME",
        help="Environment whose variables replace {{placeholders}}.",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        metavar="PATH",
        help="JSON file defining the environments (used with --env).",
    )
    parser.add_argument(
        "--proxy",
        default=None,
        help=(
            "Route traffic through a proxy for debugging "
            "(e.g. http://127.0.0.1:8080)."
        ),
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        default=False,
        help="Verify TLS certificates (default: accept any certificate).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments.

    Raises:
        SystemExit: If an input file is missing or unreadable, or options
            are inconsistent.
    """
    if not os.path.isfile(args.request_file):
        print(
            f"Error: Request file not found: '{args.request_file}'",
            file=sys.stderr,
        )
        sys.exit(1)

    if not os.access(args.request_file, os.R_OK):
        print(
            f"Error: Request file is not readable: '{args.request_file}'",
            file=sys.stderr,
        )
        sys.exit(1)

    if (args.env is None) != (args.env_file is None):
        print("Error: --env and --env-file must be given together.", file=sys.stderr)
        sys.exit(1)

    if args.env_file is not None and not os.path.isfile(args.env_file):
        print(
            f"Error: Env file not found: '{args.env_file}'",
            file=sys.stderr,
        )
        sys.exit(1)

    if args.timeout <= 0:
        print("Error: Timeout must be positive.", file=sys.stderr)
        sys.exit(1)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed and validated argument namespace.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(args)
    return args
