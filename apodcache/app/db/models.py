from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from apodcache.app.db.base import Base
from apodcache.app.services.ranges import Record


class PictureUrl(Base):
    """One cached picture of the day.

    ``date`` is stored as its YYYY-MM-DD string, so lexical order is date
    order and the primary key makes a second insert for a date fail.
    """

    __tablename__ = "urls"

    date: Mapped[str] = mapped_column(String(10), primary_key=True)
    url: Mapped[str] = mapped_column(String)

    def to_record(self) -> Record:
        return Record(date=self.date, url=self.url)

    @classmethod
    def from_record(cls, record: Record) -> "PictureUrl":
        return cls(date=record.date, url=record.url)
