#!/usr/bin/env python3
"""Cloud provisioning examples: CLI entrypoint."""

import argparse

from cloudawait.commands.blockstorage import register_blockstorage_command
from cloudawait.commands.ec2 import register_ec2_command
from cloudawait.commands.files import register_files_command
from cloudawait.commands.servers import register_servers_command
from cloudawait.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Cloud provisioning examples built on Apache Libcloud")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every status check")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_ec2_command(subparsers)
    register_servers_command(subparsers)
    register_blockstorage_command(subparsers)
    register_files_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
