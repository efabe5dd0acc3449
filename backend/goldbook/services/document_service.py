# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from datetime import date

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    on_date: date,
    pad: int = 4,
) -> str:
    """
    Allocate the next document number for a type on a business date.

    Numbers restart at 0001 each day: AM-20260115-0001, AM-20260115-0002, ...
    Flushes only; the caller's unit of work commits.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    key = on_date.strftime("%Y%m%d")
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.sequence_key == key,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, sequence_key=key)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(document_type=document_type, sequence_key=key, next_number=2)
        db.session.add(seq)
        db.session.flush()
        next_num = 1

    return f"{prefix}-{key}-{next_num:0{pad}d}"
