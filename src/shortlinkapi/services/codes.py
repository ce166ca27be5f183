from __future__ import annotations
import secrets
import string

from sqlalchemy import select
from sqlalchemy.orm import Session

from shortlinkapi.core.errors import StoreFailure
from shortlinkapi.core.link_rules import RESERVED_ALIASES
from shortlinkapi.db.models import Link

# 64 URL-safe symbols, the same alphabet custom aliases may use.
CODE_ALPHABET = string.ascii_letters + string.digits + "_-"
CODE_LENGTH = 6
MAX_ATTEMPTS = 10


def random_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def code_exists(db: Session, code: str) -> bool:
    stmt = select(Link.id).where((Link.short_code == code) | (Link.custom_alias == code))
    return db.execute(stmt).first() is not None


def generate_short_code(
    db: Session,
    length: int = CODE_LENGTH,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """
    Draws random codes until one is neither reserved nor taken by any link's
    code or alias.
    Raises StoreFailure after max_attempts collisions.
    """
    for _ in range(max_attempts):
        code = random_code(length)
        # a code like "health" would be shadowed by the route of the same name
        if code.lower() in RESERVED_ALIASES:
            continue
        if not code_exists(db, code):
            return code
    raise StoreFailure("Could not allocate a short code")
