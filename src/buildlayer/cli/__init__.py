"""
CLI commands for BuildLayer.
"""

from buildlayer.cli.allocate import allocate_command
from buildlayer.cli.credentials import encrypt_credential_command, generate_key_command
from buildlayer.cli.placeholders import placeholders_command
from buildlayer.cli.run import plan_command, run_command
from buildlayer.cli.validate import validate_command

__all__ = [
    "allocate_command",
    "encrypt_credential_command",
    "generate_key_command",
    "placeholders_command",
    "plan_command",
    "run_command",
    "validate_command",
]
