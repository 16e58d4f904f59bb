"""Named monotonically increasing sequences (e.g. the external userId)."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import Session

from filevault.models.base import Base

USER_ID_SEQUENCE = "userId"


class Counter(Base):
    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    seq = Column(Integer, nullable=False, default=0)


def next_sequence(db: Session, name: str) -> str:
    """
    Increment and return the named sequence as a string. Values are never reused.

    The row is locked for the rest of the transaction where the dialect supports it.
    """
    counter = db.query(Counter).filter(Counter.name == name).with_for_update().first()
    if counter is None:
        counter = Counter(name=name, seq=0)
        db.add(counter)
    counter.seq += 1
    db.flush()
    return str(counter.seq)
