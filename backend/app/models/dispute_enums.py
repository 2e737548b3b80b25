"""
Dispute enumerations.
"""

import enum


class DisputeType(str, enum.Enum):
    DAMAGE = "damage"
    MISSING = "missing"
    DELAY = "delay"
    OTHER = "other"


class DisputePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DisputeStatus(str, enum.Enum):
    """
    Dispute lifecycle.

    OPEN → INVESTIGATING → RESOLVED → CLOSED
    OPEN and INVESTIGATING may also jump straight to RESOLVED or CLOSED.
    CLOSED is terminal.
    """
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"
