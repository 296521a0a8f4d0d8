"""SQLAlchemy ORM models for estate_crm."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from estate_crm.core.db import Base


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, enum.Enum):
    """User roles for authorization."""
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CLIENT = "CLIENT"


class AgentStatus(str, enum.Enum):
    """Employment status of an agent."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"


class PropertyType(str, enum.Enum):
    APARTMENT = "APARTMENT"
    VILLA = "VILLA"
    COMMERCIAL = "COMMERCIAL"
    LAND = "LAND"
    HOUSE = "HOUSE"
    PENTHOUSE = "PENTHOUSE"


class PropertyStatus(str, enum.Enum):
    """Property listing lifecycle."""
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"
    RENTED = "RENTED"
    UNDER_OFFER = "UNDER_OFFER"
    OFF_MARKET = "OFF_MARKET"


class FurnishedStatus(str, enum.Enum):
    UNFURNISHED = "UNFURNISHED"
    SEMI_FURNISHED = "SEMI_FURNISHED"
    FULLY_FURNISHED = "FULLY_FURNISHED"


class LeadType(str, enum.Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    RENTER = "RENTER"


class LeadSource(str, enum.Enum):
    """Channel a lead came in through."""
    FACEBOOK = "FACEBOOK"
    WEBSITE = "WEBSITE"
    WHATSAPP = "WHATSAPP"
    REFERRAL = "REFERRAL"
    PHONE_CALL = "PHONE_CALL"
    EMAIL = "EMAIL"
    OTHER = "OTHER"


class LeadStatus(str, enum.Enum):
    """Lead pipeline stages."""
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    INTERESTED = "INTERESTED"
    SITE_VISIT_SCHEDULED = "SITE_VISIT_SCHEDULED"
    NEGOTIATING = "NEGOTIATING"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"
    DEAD = "DEAD"


class ActivityType(str, enum.Enum):
    CALL = "CALL"
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"
    SMS = "SMS"
    MEETING = "MEETING"
    SITE_VISIT = "SITE_VISIT"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    NOTE = "NOTE"


class VisitStatus(str, enum.Enum):
    """Property visit outcomes."""
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    RESCHEDULED = "RESCHEDULED"
    CANCELLED = "CANCELLED"


class CommissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# =============================================================================
# User Model (Authentication)
# =============================================================================


class User(Base):
    """Application user for authentication and authorization."""
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.AGENT.value, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    agent_details: Mapped[Optional["AgentDetails"]] = relationship(
        "AgentDetails", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="agent")
    assigned_leads: Mapped[list["Lead"]] = relationship("Lead", back_populates="assigned_agent")
    commissions: Mapped[list["Commission"]] = relationship("Commission", back_populates="agent")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AgentDetails(Base):
    """HR-style details for an agent account."""
    __tablename__ = "agent_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, unique=True, index=True)
    employee_id: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=AgentStatus.ACTIVE.value, nullable=False)
    commission_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="agent_details")


# =============================================================================
# Property Model
# =============================================================================


class Property(Base):
    """A listing owned by exactly one agent."""
    __tablename__ = "property"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=PropertyStatus.AVAILABLE.value, nullable=False, index=True
    )

    # Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="India")
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Specs
    price: Mapped[float] = mapped_column(Float, nullable=False)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    square_feet: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    furnished_status: Mapped[str] = mapped_column(
        String(20), default=FurnishedStatus.UNFURNISHED.value, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    agent_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    agent: Mapped["User"] = relationship("User", back_populates="properties")
    interested_leads: Mapped[list["Lead"]] = relationship("Lead", back_populates="interested_property")
    visits: Mapped[list["PropertyVisit"]] = relationship(
        "PropertyVisit", back_populates="property", cascade="all, delete-orphan"
    )
    commissions: Mapped[list["Commission"]] = relationship("Commission", back_populates="property")


# =============================================================================
# Lead Model
# =============================================================================


class Lead(Base):
    """A prospective buyer, seller or renter."""
    __tablename__ = "lead"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)

    type: Mapped[str] = mapped_column(String(20), default=LeadType.BUYER.value, nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30), default=LeadStatus.NEW.value, nullable=False, index=True
    )

    budget_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    interested_property_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("property.id"), nullable=True, index=True
    )
    assigned_agent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("user.id"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assigned_agent: Mapped[Optional["User"]] = relationship("User", back_populates="assigned_leads")
    interested_property: Mapped[Optional["Property"]] = relationship(
        "Property", back_populates="interested_leads"
    )
    activities: Mapped[list["Activity"]] = relationship(
        "Activity",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="Activity.created_at.desc()",
    )
    visits: Mapped[list["PropertyVisit"]] = relationship(
        "PropertyVisit",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="PropertyVisit.scheduled_at.desc()",
    )

    __table_args__ = (
        Index("ix_lead_agent_status", "assigned_agent_id", "status"),
    )


class Activity(Base):
    """A logged touchpoint on a lead (call, email, meeting, ...)."""
    __tablename__ = "activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("lead.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("user.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    lead: Mapped["Lead"] = relationship("Lead", back_populates="activities")
    created_by: Mapped[Optional["User"]] = relationship("User")


# =============================================================================
# PropertyVisit Model
# =============================================================================


class PropertyVisit(Base):
    """A site visit of a lead to a property, run by an assigned agent."""
    __tablename__ = "property_visit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("lead.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("property.id"), nullable=False, index=True)
    assigned_agent_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, index=True)

    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=VisitStatus.SCHEDULED.value, nullable=False, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    lead: Mapped["Lead"] = relationship("Lead", back_populates="visits")
    property: Mapped["Property"] = relationship("Property", back_populates="visits")
    assigned_agent: Mapped["User"] = relationship("User")


# =============================================================================
# Commission Model
# =============================================================================


class Commission(Base):
    """
    Commission owed to an agent for a property.

    property_price and commission_amount are captured once at creation and
    are never recalculated when the property price changes.
    """
    __tablename__ = "commission"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("property.id"), nullable=False, index=True)

    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    property_price: Mapped[float] = mapped_column(Float, nullable=False)
    commission_amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=CommissionStatus.PENDING.value, nullable=False, index=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    agent: Mapped["User"] = relationship("User", back_populates="commissions")
    property: Mapped["Property"] = relationship("Property", back_populates="commissions")


__all__ = [
    "Base",
    "UserRole",
    "AgentStatus",
    "PropertyType",
    "PropertyStatus",
    "FurnishedStatus",
    "LeadType",
    "LeadSource",
    "LeadStatus",
    "ActivityType",
    "VisitStatus",
    "CommissionStatus",
    "User",
    "AgentDetails",
    "Property",
    "Lead",
    "Activity",
    "PropertyVisit",
    "Commission",
]
