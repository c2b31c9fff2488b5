# Overview: Monotonic identifier allocation for items, chats and orders.

from __future__ import annotations

import re

from sqlalchemy import update

from ..extensions import db
from ..models import IdentifierSequence


PREFIX_ITEM = "i"
PREFIX_CHAT = "c"
PREFIX_ORDER = "o"


def next_identifier(prefix: str) -> str:
    """
    Allocate the next identifier for a prefix, e.g. "c1", "c2", ...

    Flushes but does not commit; the caller's operation commits the id
    together with the row that uses it.
    """
    stmt = (
        update(IdentifierSequence)
        .where(IdentifierSequence.prefix == prefix)
        .values(next_number=IdentifierSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        current = (
            db.session.query(IdentifierSequence.next_number)
            .filter_by(prefix=prefix)
            .scalar()
        )
        next_num = current - 1
    else:
        db.session.add(IdentifierSequence(prefix=prefix, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}{next_num}"


def sync_sequence(prefix: str, existing_ids) -> int:
    """
    Move a sequence past every "<prefix><digits>" id already in use.

    Ids in other shapes (legacy timestamp/random ids) cannot collide with
    generated ones and are ignored. Returns the next number to be issued.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for ident in existing_ids:
        match = pattern.match(ident or "")
        if match:
            highest = max(highest, int(match.group(1)))

    seq = db.session.get(IdentifierSequence, prefix)
    if seq is None:
        seq = IdentifierSequence(prefix=prefix, next_number=highest + 1)
        db.session.add(seq)
    elif seq.next_number <= highest:
        seq.next_number = highest + 1
    db.session.flush()
    return seq.next_number
