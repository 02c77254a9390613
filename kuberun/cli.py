"""
Runs a container image in a Kubernetes cluster and prints its output.

Usage:
    kuberun [OPTIONS] --image <IMAGE> -- COMMAND [ARGS...]

The command goes after "--" so its own flags are not read as kuberun options.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from pydantic import ValidationError

from .config import get_settings
from .errors import KubeRunError
from .services.execution import AuthInfo, ExecutionRequest, execute

logger = logging.getLogger(__name__)

EXAMPLES = """\
Examples:

  # Runs the perl image and prints pi with 100 places
  kuberun --image perl -- perl "-Mbignum=bpi" -wle "print bpi(100)"

  # Same as above, but specifies a namespace and does not delete anything (useful for debugging)
  kuberun --namespace myproject --no-cleanup --image perl -- perl "-Mbignum=bpi" -wle "print bpi(100)"
"""


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="kuberun",
        description="Runs a docker image in a kubernetes cluster and prints its output",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--namespace",
        default="",
        help=(
            "Which namespace we should use. If not provided, a new one will be created. "
            "Be aware that in most clusters the creation of namespaces is restricted "
            "to cluster administrators."
        ),
    )
    parser.add_argument(
        "--image",
        default="",
        help="Docker image to run on the kubernetes instance",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=settings.default_timeout_seconds,
        help="Timeout (in seconds) to wait for the job to complete (0 to wait indefinitely)",
    )
    parser.add_argument(
        "--cleanup",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Delete all created artifacts (including the namespace, if we created it) after finishing the job",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Allow insecure TLS communication to kubernetes API server",
    )
    parser.add_argument(
        "--kubeconfig",
        default="",
        help="Path to the kubeconfig file (default: $KUBECONFIG or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default="",
        help="Kubeconfig context to use",
    )
    parser.add_argument(
        "--master-url",
        default="",
        help="Address of the kubernetes API server (overrides the kubeconfig)",
    )
    parser.add_argument(
        "--token",
        default="",
        help="Bearer token for the kubernetes API server",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command (and arguments) to run in the container",
    )
    return parser


def _usage_error(parser: argparse.ArgumentParser, message: str, stderr: TextIO) -> int:
    stderr.write(f"{message}\n\n")
    stderr.write(parser.format_help())
    return 1


def run_cli(
    argv: Optional[List[str]] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None
) -> int:
    """
    Parse arguments, run the job and print its output.

    Returns:
        Process exit code: 0 on success, 1 on usage or execution errors
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    if not args.image:
        return _usage_error(parser, "Missing image. Specify one with --image", stderr)
    if not command:
        return _usage_error(parser, "Missing the command to run", stderr)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        request = ExecutionRequest(
            namespace=args.namespace or None,
            image=args.image,
            command=command,
            timeout=args.timeout,
            cleanup=args.cleanup,
            auth=AuthInfo(
                master_url=args.master_url,
                token=args.token,
                config_file=args.kubeconfig,
                context=args.context,
                insecure=args.insecure,
            ),
        )
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        return _usage_error(parser, f"Invalid arguments: {messages}", stderr)

    try:
        result = asyncio.run(execute(request))
    except KubeRunError as e:
        stderr.write(f"{e}\n")
        return 1

    stdout.write(result.stdout)
    stderr.write(result.stderr)

    for error in result.errors:
        stderr.write(f"{error}\n")

    return 0 if result.succeeded else 1


def main():
    """Main entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
