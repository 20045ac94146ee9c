# db/enums.py

import enum
from sqlalchemy import TypeDecorator, String

class Frequency(enum.Enum):
    """How often an income arrives or a bill falls due."""
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    TWICE_MONTHLY = "twice_monthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    NONE = "none" # One-off / irregular, never used for per-cycle math

class EnvelopePriority(enum.Enum):
    """Waterfall tier of an envelope."""
    ESSENTIAL = "essential"          # Rent, power, insurance
    IMPORTANT = "important"          # Car service, school fees
    DISCRETIONARY = "discretionary"  # Dining out, hobbies (the "flexible" tier)

class PlanStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REVERSED = "reversed"

class AllocationStrategy(enum.Enum):
    """Household choice of whether the credit card holding envelope is funded before the tiers."""
    CREDIT_FIRST = "credit_first"
    ENVELOPES_ONLY = "envelopes_only"
    # A chosen amount goes to the credit card envelope, the rest flows through the tiers
    HYBRID = "hybrid"

# Supabase stores these as TEXT columns, so enum values are persisted as plain strings
class EnumString(TypeDecorator):
    """Ensures Enum values are stored as strings."""
    impl = String
    cache_ok = True

    def __init__(self, enum_type, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_type = enum_type

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, self.enum_type):
            return value.value
        return self.enum_type(value).value

    def process_result_value(self, value, dialect):
        if value is not None:
            return self.enum_type(value)
        return value

class GapStatus(enum.Enum):
    """Envelope balance relative to its expected accrual (derived, never stored)."""
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    BEHIND = "behind"

class SurplusStatus(enum.Enum):
    AVAILABLE = "available"
    EXACT = "exact"
