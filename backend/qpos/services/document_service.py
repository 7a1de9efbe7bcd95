# Overview: Allocation of human-facing document numbers.

from __future__ import annotations

from sqlalchemy import update

from ..models import DocumentSequence

ORDER_DOCUMENT_TYPE = "ORDER"
ORDER_PREFIX = "ORD"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(session, *, document_type: str, prefix: str, pad: int = 6) -> str:
    """
    Allocate the next number for a document type, e.g. "ORD-000042".

    Runs inside the caller's transaction (flush only, no commit), so a rolled
    back settlement gives its number back.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = session.execute(stmt)
    if result.rowcount:
        current = (
            session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        number = current - 1
    else:
        session.add(DocumentSequence(document_type=document_type, next_number=2))
        session.flush()
        number = 1

    return f"{prefix}-{number:0{pad}d}"


def next_order_number(session) -> str:
    return next_document_number(session, document_type=ORDER_DOCUMENT_TYPE, prefix=ORDER_PREFIX)
