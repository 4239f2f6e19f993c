#!/usr/bin/env python3
"""Manage Plaid and Dwolla credentials in the system keychain.

Settings read these keys from the keychain before the environment, so
secrets never need to live in ``.env``.

Usage:
    python -m scripts.manage_credentials status
    python -m scripts.manage_credentials set DWOLLA_SECRET
    python -m scripts.manage_credentials remove DWOLLA_SECRET
    python -m scripts.manage_credentials import-env [--env-file PATH] [--clean]
"""

import argparse
import getpass
import re
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import dotenv_values

from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    get_credential,
    set_credential,
)

DEFAULT_ENV_FILE = Path(__file__).parent.parent / ".env"


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"


def show_status() -> None:
    """Print which credentials are stored, showing only the last four characters."""
    for key in sorted(CREDENTIAL_KEYS):
        value = get_credential(key)
        print(f"  {key:<16} {_mask(value) if value else '(not set)'}")


def store(key: str, value: str | None = None) -> bool:
    """Store one credential, prompting without echo when no value is given."""
    if key not in CREDENTIAL_KEYS:
        print(f"Unknown credential {key}. Expected one of: {', '.join(sorted(CREDENTIAL_KEYS))}")
        return False
    if value is None:
        value = getpass.getpass(f"{key}: ").strip()
    if set_credential(key, value):
        print(f"Stored {key} in keychain")
        return True
    print(f"Failed to store {key}")
    return False


def remove(key: str) -> bool:
    """Delete one credential from the keychain."""
    if delete_credential(key):
        print(f"Removed {key} from keychain")
        return True
    print(f"{key} was not removed (unknown key or not stored)")
    return False


def import_env(env_path: Path, *, clean: bool = False) -> list[str]:
    """Copy non-empty credentials from a ``.env`` file into the keychain.

    Args:
        env_path: Path to the ``.env`` file.
        clean: Drop the imported credential lines from the file afterwards.

    Returns:
        The keys now held in the keychain with the file's value.
    """
    if not env_path.exists():
        print(f"No .env file found at {env_path}")
        sys.exit(1)

    values = dotenv_values(env_path)
    imported: list[str] = []
    for key in sorted(CREDENTIAL_KEYS):
        value = values.get(key)
        if not value:
            continue
        if get_credential(key) == value or set_credential(key, value):
            imported.append(key)
        else:
            print(f"  ! failed to store {key}")

    print(f"Imported {len(imported)} credential(s) from {env_path}")
    for key in imported:
        print(f"  + {key}")

    if clean and imported:
        pattern = re.compile(r"^(" + "|".join(re.escape(k) for k in imported) + r")\s*=")
        lines = env_path.read_text().splitlines(keepends=True)
        env_path.write_text("".join(line for line in lines if not pattern.match(line)))
        print(f"Removed {len(imported)} credential line(s) from {env_path}")

    return imported


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage BankBridge credentials in the keychain")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show which credentials are stored")

    set_parser = commands.add_parser("set", help="Store a credential (prompts for the value)")
    set_parser.add_argument("key")

    remove_parser = commands.add_parser("remove", help="Delete a stored credential")
    remove_parser.add_argument("key")

    import_parser = commands.add_parser("import-env", help="Copy credentials from a .env file")
    import_parser.add_argument("--env-file", type=Path, default=DEFAULT_ENV_FILE)
    import_parser.add_argument(
        "--clean",
        action="store_true",
        help="Remove imported credentials from the .env file",
    )

    args = parser.parse_args(argv)
    if args.command == "status":
        show_status()
        return 0
    if args.command == "set":
        return 0 if store(args.key) else 1
    if args.command == "remove":
        return 0 if remove(args.key) else 1
    import_env(args.env_file, clean=args.clean)
    return 0


if __name__ == "__main__":
    sys.exit(main())
