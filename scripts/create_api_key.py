"""
Dev utility: issue an API key for a link owner.

This script prints the plaintext API key once.
Store it securely; only its SHA-256 hash is kept.
"""

import argparse
import secrets

from shortlinkapi.api.deps import hash_api_key
from shortlinkapi.db.base import Base
from shortlinkapi.db.models import ApiKey
from shortlinkapi.db.session import SessionLocal, engine


def generate_api_key() -> str:
    return "sk_live_" + secrets.token_urlsafe(32)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--owner", required=True, help="owner id the key authenticates as")
    parser.add_argument("--name", default="default")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    raw = generate_api_key()
    with SessionLocal() as session:
        session.add(ApiKey(name=args.name, owner_id=args.owner, key_hash=hash_api_key(raw)))
        session.commit()

    print(f"API key for owner {args.owner!r} (store this now; it will not be shown again):")
    print(raw)


if __name__ == "__main__":
    main()
