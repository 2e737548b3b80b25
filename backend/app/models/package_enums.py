"""
Package and custody enumerations.
"""

import enum


class PackageStatus(str, enum.Enum):
    """
    Package status enumeration.

    Status flow:
        CREATED → PENDING_PICKUP → PICKED_UP → IN_TRANSIT → OUT_FOR_DELIVERY → DELIVERED
        Any non-terminal status can move to CANCELLED or EXCEPTION.
        DELIVERED and CANCELLED are terminal.
    """
    CREATED = "created"
    PENDING_PICKUP = "pending_pickup"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    EXCEPTION = "exception"


class TransferType(str, enum.Enum):
    """Kind of custody handover."""
    PICKUP = "pickup"
    HANDOFF = "handoff"
    DELIVERY = "delivery"


class PackagePriority(str, enum.Enum):
    """Service tier, drives the pricing multiplier."""
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
