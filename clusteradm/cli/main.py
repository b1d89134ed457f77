"""Main CLI entry point for clusteradm."""

import argparse
import sys
from typing import Optional

from .commands import run_audit, run_check, run_exec, run_playground


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--topology',
        type=str,
        help='Path to topology YAML file (default: run on localhost)'
    )
    parser.add_argument(
        '--sudo',
        action='store_true',
        help='Run commands with sudo (overrides topology exec_with_sudo)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='warn',
        help='Set log level'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the clusteradm CLI."""
    parser = argparse.ArgumentParser(
        prog='clusteradm',
        description='Storage cluster deployment and maintenance tool'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # check
    check_parser = subparsers.add_parser('check', help='Check mount status')
    check_parser.add_argument(
        'mount_point',
        type=str,
        help='Mount point to check'
    )
    check_parser.add_argument(
        '--host',
        type=str,
        help='Host to check on (default: first host in topology)'
    )
    _add_common_arguments(check_parser)

    # playground
    playground_parser = subparsers.add_parser('playground', help='Manage a local playground')
    playground_parser.add_argument(
        'action',
        choices=['run', 'clean'],
        help='Run or clean the playground'
    )
    playground_parser.add_argument('--kind', choices=['curvebs', 'curvefs'], help='Cluster kind')
    playground_parser.add_argument('--name', type=str, help='Container name')
    playground_parser.add_argument('--image', type=str, help='Container image')
    playground_parser.add_argument('--mount-point', type=str, help='Client mount point (curvefs)')
    _add_common_arguments(playground_parser)

    # exec
    exec_parser = subparsers.add_parser('exec', help='Run a shell command on hosts')
    exec_parser.add_argument(
        'shell_command',
        type=str,
        help='Shell command to run'
    )
    exec_parser.add_argument(
        '--host',
        action='append',
        metavar='NAME',
        help='Target host (can be specified multiple times; default: all hosts)'
    )
    exec_parser.add_argument(
        '--parallel',
        type=int,
        default=None,
        help='Maximum number of hosts to run on at once'
    )
    exec_parser.add_argument(
        '--max-retries',
        type=int,
        default=0,
        help='Re-run a failed host task up to N times'
    )
    exec_parser.add_argument(
        '--retry-delay',
        type=int,
        default=1000,
        help='Retry delay in milliseconds'
    )
    _add_common_arguments(exec_parser)

    # audit
    audit_parser = subparsers.add_parser('audit', help='Show audit log')
    audit_parser.add_argument(
        '--tail',
        type=int,
        default=0,
        help='Only show the last N entries'
    )
    _add_common_arguments(audit_parser)

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'check':
        return run_check(parsed_args)
    elif parsed_args.command == 'playground':
        return run_playground(parsed_args)
    elif parsed_args.command == 'exec':
        return run_exec(parsed_args)
    elif parsed_args.command == 'audit':
        return run_audit(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
