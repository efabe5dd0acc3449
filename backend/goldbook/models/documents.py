from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Per-key counter for human-readable document numbers.

    sequence_key is the business date (YYYYMMDD) so numbering restarts daily.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "sequence_key", name="uq_document_sequences_type_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    sequence_key = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
