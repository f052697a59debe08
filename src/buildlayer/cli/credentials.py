"""
CLI commands for managing encrypted build credentials.
"""

from pathlib import Path

from buildlayer.cli.ux import is_interactive, prompt_password, success, warning
from buildlayer.config.secrets import get_key_resolver
from buildlayer.core.errors import InputError, main_with_error_handling
from buildlayer.credentials import Credential, FernetCredentialService


@main_with_error_handling()
def generate_key_command(key_ref: str) -> int:
    """
    Generate a Fernet key and store it in the keyring under key_ref.

    Returns:
        Exit code (0 for success)
    """
    resolver = get_key_resolver()
    if not resolver.generate(key_ref):
        warning(f"Key '{key_ref}' already resolves; leaving it unchanged")
        return 0
    success(f"Stored new credential key '{key_ref}' in {resolver.keyring.path}")
    return 0


@main_with_error_handling()
def encrypt_credential_command(
    username: str,
    key_ref: str,
    output: str | Path,
    password: str | None = None,
) -> int:
    """
    Encrypt a credential into a record file for the credential store.

    Returns:
        Exit code (0 for success)
    """
    if password is None:
        if not is_interactive():
            raise InputError("A password is required when not running interactively")
        password = prompt_password(username)

    service = FernetCredentialService()
    record = service.encrypt(Credential(username=username, password=password), key_ref)

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(record)
    output_path.chmod(0o600)
    success(f"Credential written to {output_path}")
    return 0
