"""
Custody transfer database model.
"""

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Enum, Boolean
from backend.app.db.session import Base
from backend.app.models.package_enums import TransferType


class CustodyTransfer(Base):
    """
    One link in a package's chain of custody.

    Rows are append-only: once written only ``verified`` may change.
    The chain is read ordered by (timestamp, id).
    """
    __tablename__ = "custody_transfers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    transfer_type = Column(Enum(TransferType), nullable=False)

    # Where the handover happened
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    location_address = Column(String(500), nullable=True)

    # Evidence references (content hashes, blobs live elsewhere)
    photo_hash = Column(String(255), nullable=True)
    signature_hash = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    verified = Column(Boolean, nullable=False, default=False)

    # Set by the service so the package's delivery time can reuse it
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return (
            f"<CustodyTransfer(id={self.id}, package_id={self.package_id}, "
            f"type='{self.transfer_type.value}', {self.from_user_id}->{self.to_user_id})>"
        )
