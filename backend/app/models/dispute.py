"""
Dispute database model.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.dispute_enums import DisputeType, DisputePriority, DisputeStatus


class Dispute(Base):
    """
    An issue raised by a party to a package (damage, loss, delay, ...).
    """
    __tablename__ = "disputes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tracking_number = Column(String(32), nullable=False)

    type = Column(Enum(DisputeType), nullable=False, index=True)
    priority = Column(Enum(DisputePriority), nullable=False, default=DisputePriority.MEDIUM, index=True)
    status = Column(Enum(DisputeStatus), nullable=False, default=DisputeStatus.OPEN, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    resolution = Column(Text, nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    evidence_photos = Column(JSON, nullable=False, default=lambda: [])

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Dispute(id={self.id}, package_id={self.package_id}, status='{self.status.value}')>"
