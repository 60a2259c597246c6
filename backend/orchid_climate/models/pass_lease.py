"""Pass lease ORM model: one row per pass currently running in any process."""

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class PassLeaseModel(Base):
    __tablename__ = "pass_leases"

    name: Mapped[str] = mapped_column(Text, primary_key=True)
    holder: Mapped[str] = mapped_column(Text, nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # A holder that died mid-pass stops blocking once this passes
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
