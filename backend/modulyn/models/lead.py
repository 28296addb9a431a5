from datetime import datetime
import enum

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modulyn.core.database import Base


class LeadStatus(str, enum.Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    negotiation = "negotiation"
    closed = "closed"
    lost = "lost"


OPEN_LEAD_STATUSES = (LeadStatus.new, LeadStatus.contacted, LeadStatus.qualified, LeadStatus.negotiation)


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id", ondelete="CASCADE"), index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), index=True)
    source: Mapped[str | None] = mapped_column(String(80))
    status: Mapped[LeadStatus] = mapped_column(Enum(LeadStatus), default=LeadStatus.new, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    assigned_to: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)

    budget: Mapped[float | None] = mapped_column(Float)
    preferred_property_type: Mapped[str | None] = mapped_column(String(50))
    preferred_location: Mapped[str | None] = mapped_column(String(120))
    preferred_bedrooms: Mapped[int | None] = mapped_column(Integer)
    preferred_bathrooms: Mapped[int | None] = mapped_column(Integer)
    preferred_area: Mapped[str | None] = mapped_column(String(120))
    # Comma-separated free text, e.g. "Pool, Gym".
    preferred_amenities: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    assignee = relationship("User")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
