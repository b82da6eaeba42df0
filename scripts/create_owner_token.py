#!/usr/bin/env python3
"""
Script to mint an owner access token for the Share Link Access API.

Usage:
    python scripts/create_owner_token.py --owner-id owner-123
    python scripts/create_owner_token.py --owner-id owner-123 --minutes 1440
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path to import sharelink modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sharelink.config import settings
from sharelink.core.security import create_access_token


def create_owner_token(owner_id: str, minutes: int = None) -> str:
    """
    Create a signed JWT whose subject is the document owner.

    Args:
        owner_id: Owner identifier placed in the ``sub`` claim
        minutes: Token lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    expires = timedelta(minutes=minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token({"sub": owner_id}, expires_delta=expires)


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Mint an owner access token for the Share Link Access API"
    )
    parser.add_argument(
        "--owner-id",
        required=True,
        help="Owner identifier (required)"
    )
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (optional)"
    )

    args = parser.parse_args()

    if not args.owner_id.strip():
        print("Error: --owner-id must not be blank", file=sys.stderr)
        sys.exit(1)

    token = create_owner_token(args.owner_id.strip(), args.minutes)
    lifetime = args.minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES

    print("\n" + "="*70)
    print("OWNER TOKEN CREATED")
    print("="*70)
    print(f"Owner: {args.owner_id}")
    print(f"Expires in: {lifetime} minutes")
    print("\n" + "-"*70)
    print(f"\nToken: {token}\n")
    print("="*70)
    print("\nUse this token in the Authorization header for owner endpoints.")
    print("Example: Authorization: Bearer " + token[:30] + "...")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
