"""Pydantic models for send records and subscriber profiles.

Records are immutable once built. Date fields accept raw strings, which are
run through the date normalizer.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..dates import normalize_date


class Channel(str, Enum):
    """Send channel discriminator."""

    CAMPAIGN = "campaign"
    FLOW = "flow"


class OptionalInstant(BaseModel):
    """A date field that may be absent, present, or present but unparseable."""

    model_config = ConfigDict(frozen=True)

    value: Optional[datetime] = None
    raw_present: bool = False

    @classmethod
    def coerce(cls, raw: Any) -> "OptionalInstant":
        if isinstance(raw, OptionalInstant):
            return raw
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls()
        return cls(value=normalize_date(raw), raw_present=True)

    @property
    def is_absent(self) -> bool:
        """No raw value was supplied."""
        return not self.raw_present

    @property
    def is_unparseable(self) -> bool:
        return self.raw_present and self.value is None


class SendRecord(BaseModel):
    """One email send event (campaign blast or flow step)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    subject: Optional[str] = None
    sent_at: Optional[datetime] = None  # None when the raw date was unparseable
    channel: Channel = Channel.CAMPAIGN

    # Flow-only fields
    flow_name: Optional[str] = None
    status: Optional[str] = None

    # Counters
    emails_sent: int = Field(default=0, ge=0)
    unique_opens: int = Field(default=0, ge=0)
    unique_clicks: int = Field(default=0, ge=0)
    total_orders: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0)
    unsubscribes: int = Field(default=0, ge=0)
    spam_complaints: int = Field(default=0, ge=0)
    bounces: int = Field(default=0, ge=0)

    @field_validator("sent_at", mode="before")
    @classmethod
    def _normalize_sent_at(cls, value: Any) -> Optional[datetime]:
        return normalize_date(value)

    @property
    def is_campaign(self) -> bool:
        return self.channel == Channel.CAMPAIGN


class Subscriber(BaseModel):
    """One audience profile.

    The email is the segmentation join key, compared case-insensitively.
    """

    model_config = ConfigDict(frozen=True)

    email: str
    profile_created: OptionalInstant = OptionalInstant()
    first_active: OptionalInstant = OptionalInstant()
    last_active: OptionalInstant = OptionalInstant()
    last_open: OptionalInstant = OptionalInstant()
    last_click: OptionalInstant = OptionalInstant()
    total_clv: float = 0.0
    historic_clv: Optional[float] = None
    historic_orders: int = Field(default=0, ge=0)
    is_buyer: bool = False

    @field_validator(
        "profile_created",
        "first_active",
        "last_active",
        "last_open",
        "last_click",
        mode="before",
    )
    @classmethod
    def _coerce_instant(cls, value: Any) -> OptionalInstant:
        return OptionalInstant.coerce(value)

    @property
    def email_key(self) -> str:
        return self.email.strip().lower()

    @property
    def clv_for_average(self) -> float:
        """CLV used for the buyer average (historic when known)."""
        return self.historic_clv if self.historic_clv is not None else self.total_clv

    def lifetime_days(self, anchor: datetime) -> int:
        """Whole days since the profile was created; 0 when unknown."""
        created = self.profile_created.value
        if created is None:
            return 0
        return (anchor - created) // timedelta(days=1)
