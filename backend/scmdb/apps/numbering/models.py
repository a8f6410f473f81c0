from __future__ import annotations

from sqlalchemy import Column, Integer, String, UniqueConstraint

from ...database import Base


class DocumentSequence(Base):
    """
    Last issued counter per number prefix and calendar year.
    """

    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    prefix = Column(String(16), nullable=False)
    year = Column(Integer, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)
