"""
BuildLayer command line entry point.

    buildlayer run --profile builds/lab01.yaml
    buildlayer plan --stages stages/lab01 --build values/lab01.csv ...
    buildlayer validate --profile builds/lab01.yaml -v
    buildlayer placeholders --stages stages/lab01 --build values/lab01.csv
    buildlayer allocate networks.json mgmt newIP
    buildlayer encrypt-credential admin --key lab/credential-key -o credentials/admin.yaml
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from buildlayer.config.loader import BuildProfile, load_profile
from buildlayer.config.settings import get_settings
from buildlayer.core.errors import BuildLayerError, exit_with_error
from buildlayer.logging import configure_logging


def _add_profile_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", help="Path to build profile YAML")
    parser.add_argument("--build", help="Build values CSV file or directory")
    parser.add_argument("--overrides", help="Override values CSV file")
    parser.add_argument("--dml-index", help="DML index CSV file")
    parser.add_argument("--credential-store", help="Directory holding credential records")
    parser.add_argument("--credential-key", help="Secret path or key file for credentials")
    parser.add_argument("--network-ledger", help="Network allocation ledger (JSON)")
    parser.add_argument("--stages", help="Directory of stage documents")
    parser.add_argument(
        "--skip-media-validation",
        action="store_true",
        default=None,
        help="Do not hash-check DML media",
    )
    parser.add_argument(
        "--skip-credential-validation",
        action="store_true",
        default=None,
        help="Do not test-decrypt credentials",
    )


def _profile_from_args(args: argparse.Namespace) -> BuildProfile:
    try:
        profile = load_profile(args.profile)
    except BuildLayerError as e:
        exit_with_error(e)
    return profile.merge(
        build=args.build,
        overrides=args.overrides,
        dml_index=args.dml_index,
        credential_store=args.credential_store,
        credential_key=args.credential_key,
        network_ledger=args.network_ledger,
        stages=args.stages,
        skip_media_validation=args.skip_media_validation,
        skip_credential_validation=args.skip_credential_validation,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="buildlayer", description="BuildLayer workflow engine")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Resolve values, render stages and run them")
    _add_profile_arguments(run_parser)
    run_parser.add_argument("--run-id", help="Explicit run id (names the run log)")

    plan_parser = subparsers.add_parser("plan", help="Show the stages a run would execute (dry-run)")
    _add_profile_arguments(plan_parser)
    plan_parser.add_argument("--output", choices=["text", "json"], default="text", help="Output format")

    validate_parser = subparsers.add_parser("validate", help="Resolve and validate build values")
    _add_profile_arguments(validate_parser)
    validate_parser.add_argument("-v", "--verbose", action="store_true", help="Show resolved values")

    placeholders_parser = subparsers.add_parser(
        "placeholders", help="List the build values stage documents require"
    )
    _add_profile_arguments(placeholders_parser)

    allocate_parser = subparsers.add_parser("allocate", help="Query or allocate from a network ledger")
    allocate_parser.add_argument("ledger", help="Network ledger JSON file")
    allocate_parser.add_argument("network", help="Network name")
    allocate_parser.add_argument(
        "action",
        nargs="?",
        default="newIP",
        choices=["newIP", "gateway", "netId", "netMask"],
        help="What to return (default: newIP)",
    )

    key_parser = subparsers.add_parser("generate-key", help="Create a credential encryption key")
    key_parser.add_argument("key", help="Secret path to store the key under")

    encrypt_parser = subparsers.add_parser("encrypt-credential", help="Write an encrypted credential record")
    encrypt_parser.add_argument("username", help="Credential user name")
    encrypt_parser.add_argument("--key", required=True, help="Secret path or key file")
    encrypt_parser.add_argument("-o", "--output", required=True, help="Record file to write")
    encrypt_parser.add_argument("--password", help="Password (prompted when omitted)")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or get_settings().log_level)

    if args.command == "run":
        from buildlayer.cli.run import run_command

        sys.exit(run_command(_profile_from_args(args), run_id=args.run_id))

    if args.command == "plan":
        from buildlayer.cli.run import plan_command

        sys.exit(plan_command(_profile_from_args(args), output_format=args.output))

    if args.command == "validate":
        from buildlayer.cli.validate import validate_command

        sys.exit(validate_command(_profile_from_args(args), verbose=args.verbose))

    if args.command == "placeholders":
        from buildlayer.cli.placeholders import placeholders_command

        sys.exit(placeholders_command(_profile_from_args(args)))

    if args.command == "allocate":
        from buildlayer.cli.allocate import allocate_command

        sys.exit(allocate_command(args.ledger, args.network, args.action))

    if args.command == "generate-key":
        from buildlayer.cli.credentials import generate_key_command

        sys.exit(generate_key_command(args.key))

    if args.command == "encrypt-credential":
        from buildlayer.cli.credentials import encrypt_credential_command

        sys.exit(
            encrypt_credential_command(
                args.username, args.key, args.output, password=args.password
            )
        )

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
