#!/usr/bin/env python3
"""DevOpsMate: provision a Civo instance and install a CI toolchain on it: CLI entrypoint."""

import argparse

from devopsmate.commands.install import register_install_command
from devopsmate.commands.vm import register_vm_command
from devopsmate.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(prog="devopsmate", description="DevOpsMate is a CLI tool for provisioning CI hosts")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output, including the ssh -v trace")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_vm_command(subparsers)
    register_install_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
