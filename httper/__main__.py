"""httper — Main entry point.

Ties together the CLI, environment substitution, parser and engine to send
every request in a request file.
"""

import logging
import sys

import requests

from httper.cli import parse_cli
from httper.engine import print_report, save_response, send_request
from httper.environment import (
    EnvironmentFileError,
    load_environments,
    select_environment,
    substitute,
)
from httper.parser import (
    load_request_file,
    parse_requests,
    request_directory,
)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    """Run httper.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = all requests sent, 2 = error).
    """
    args = parse_cli(argv)
    setup_logging(args.verbose)

    print(f"[*] Loading request file: {args.request_file}")
    try:
        raw_text = load_request_file(args.request_file)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error reading request file: {exc}", file=sys.stderr)
        return 2

    if args.env is not None:
        try:
            variables = select_environment(
                load_environments(args.env_file), args.env
            )
        except (OSError, EnvironmentFileError) as exc:
            print(f"Error loading environment: {exc}", file=sys.stderr)
            return 2
        raw_text = substitute(raw_text, variables)

    try:
        descriptors = parse_requests(raw_text, request_directory(args.request_file))
    except ValueError as exc:
        print(f"Error parsing request: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"Error opening referenced file: {exc}", file=sys.stderr)
        return 2

    for index, descriptor in enumerate(descriptors):
        if args.verbose:
            print(f"\n{descriptor!r}")
            print("-" * 80)

        print(f"[*] {descriptor.method.value} {descriptor.url}")
        try:
            result = send_request(
                descriptor,
                proxy=args.proxy,
                timeout=args.timeout,
                verify=args.verify,
            )
        except (requests.RequestException, OSError, ValueError) as exc:
            print(f"Error sending request: {exc}", file=sys.stderr)
            for remaining in descriptors[index + 1 :]:
                remaining.close()
            return 2

        print_report(result, verbose=args.verbose)

        if args.output:
            try:
                save_response(result, args.output)
            except OSError as exc:
                print(f"Failed to write response to file: {exc}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
