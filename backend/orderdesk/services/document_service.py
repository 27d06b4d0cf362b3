# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


DOCUMENT_TYPE_ORDER = "ORDER"
DOCUMENT_TYPE_SKU = "SKU"


def next_document_number(
    *,
    seller_id: int,
    document_type: str,
    prefix: str,
    pad: int = 4,
) -> str:
    """
    Allocate the next document number for a seller/type.

    Runs inside the caller's transaction: the increment commits or rolls
    back together with the document that consumes the number. A race on
    the first row for a sequence is absorbed with a savepoint.
    """
    if not seller_id:
        raise DocumentSequenceError("seller_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.seller_id == seller_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_number(seller_id, document_type) - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(seller_id=seller_id, document_type=document_type, next_number=2))
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_number(seller_id, document_type) - 1

    return f"{prefix}-{next_num:0{pad}d}"


def _current_number(seller_id: int, document_type: str) -> int:
    db.session.flush()
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(seller_id=seller_id, document_type=document_type)
        .scalar()
    )
