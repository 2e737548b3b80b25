"""
Package database model.
"""

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Enum, Boolean, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.package_enums import PackageStatus, PackagePriority


class Package(Base):
    """
    A shipment moving from a sender to a recipient.

    Packages are never deleted; they only change status. The status is
    driven by the custody transfer log (see CustodyTransfer) or set
    explicitly by the sender/recipient (cancel, exception, ...).
    """
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_number = Column(String(32), unique=True, nullable=False, index=True)

    # Parties
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    current_courier_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Description
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Logistics
    weight = Column(Float, nullable=False, default=0.0)       # kg
    dimensions = Column(JSON, nullable=True)                  # {"length": .., "width": .., "height": ..} cm
    value = Column(Float, nullable=False, default=0.0)        # declared value
    fragile = Column(Boolean, nullable=False, default=False)
    priority = Column(Enum(PackagePriority), nullable=False, default=PackagePriority.STANDARD)

    pickup_address = Column(String(500), nullable=True)
    delivery_address = Column(String(500), nullable=True)

    # Lifecycle
    status = Column(Enum(PackageStatus), nullable=False, default=PackageStatus.CREATED, index=True)
    pickup_date = Column(DateTime(timezone=True), nullable=True)         # planned
    picked_up_at = Column(DateTime(timezone=True), nullable=True)        # actual
    expected_delivery = Column(DateTime(timezone=True), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)

    # External references (chain transaction / content-addressed manifest)
    blockchain_hash = Column(String(255), nullable=True)
    ipfs_hash = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Package(id={self.id}, tracking='{self.tracking_number}', status='{self.status.value}')>"
