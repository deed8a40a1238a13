"""Database models - BAPP progress tracking.
One contract belongs to one customer and one area; each (contract, year, month, sub_period) has at most
one monthly_progress row, and each (monthly_progress, signature) at most one signature_progress row."""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import String, Text, ForeignKey, DateTime, Boolean, Integer, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bapp.database import Base


INVOICE_TYPES = ("Pusat", "Regional 2", "Regional 3")


class Customer(Base):
    """Customer (top level of the dashboard)."""
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    areas: Mapped[List["Area"]] = relationship("Area", back_populates="customer", cascade="all, delete-orphan")
    contracts: Mapped[List["BappContract"]] = relationship("BappContract", back_populates="customer", cascade="all, delete-orphan")


class Area(Base):
    """Customer area; code is unique per customer."""
    __tablename__ = "areas"
    __table_args__ = (UniqueConstraint("customer_id", "code", name="areas_customer_id_code_key"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    code: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="areas")
    contracts: Mapped[List["BappContract"]] = relationship("BappContract", back_populates="area", cascade="all, delete-orphan")


class BappContract(Base):
    """BAPP contract for one year. period is the cadence label, e.g. "Per 3 Bulan" or "Per 1/2 Bulan"."""
    __tablename__ = "bapp_contracts"
    __table_args__ = (
        CheckConstraint("invoice_type IN ('Pusat', 'Regional 2', 'Regional 3')", name="bapp_contracts_invoice_type_check"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), index=True)
    area_id: Mapped[int] = mapped_column(ForeignKey("areas.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(300))
    period: Mapped[str] = mapped_column(String(30), default="Per 1 Bulan")
    invoice_type: Mapped[str] = mapped_column(String(20), comment="Pusat / Regional 2 / Regional 3")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    year: Mapped[int] = mapped_column(Integer, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="contracts")
    area: Mapped["Area"] = relationship("Area", back_populates="contracts")
    signatures: Mapped[List["Signature"]] = relationship(
        "Signature", back_populates="contract", cascade="all, delete-orphan", order_by="Signature.order"
    )
    monthly_progress: Mapped[List["MonthlyProgress"]] = relationship(
        "MonthlyProgress", back_populates="contract", cascade="all, delete-orphan"
    )


class Signature(Base):
    """Sign-off step of a contract; order is a dense 1-based rank."""
    __tablename__ = "signatures"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("bapp_contracts.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(200), default="")
    order: Mapped[int] = mapped_column("order", Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    contract: Mapped["BappContract"] = relationship("BappContract", back_populates="signatures")
    progress: Mapped[List["SignatureProgress"]] = relationship(
        "SignatureProgress", back_populates="signature", cascade="all, delete-orphan"
    )


class MonthlyProgress(Base):
    """Progress of one period. sub_period is 1/2 for half-month contracts; NULL on rows written before half-month existed."""
    __tablename__ = "monthly_progress"
    __table_args__ = (
        UniqueConstraint("contract_id", "year", "month", "sub_period", name="uq_monthly_progress_period"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("bapp_contracts.id", ondelete="CASCADE"), index=True)
    month: Mapped[int] = mapped_column(Integer, comment="1-12")
    year: Mapped[int] = mapped_column(Integer, index=True)
    sub_period: Mapped[Optional[int]] = mapped_column(Integer, default=1, comment="1 or 2; NULL = legacy, read as 1")
    upload_link: Mapped[Optional[str]] = mapped_column(String(1000))
    is_upload_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    notes_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract: Mapped["BappContract"] = relationship("BappContract", back_populates="monthly_progress")
    signature_progress: Mapped[List["SignatureProgress"]] = relationship(
        "SignatureProgress", back_populates="monthly_progress", cascade="all, delete-orphan"
    )


class SignatureProgress(Base):
    """Completion of one signature within one period; a missing row means not completed."""
    __tablename__ = "signature_progress"
    __table_args__ = (
        UniqueConstraint("monthly_progress_id", "signature_id", name="uq_signature_progress_pair"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    monthly_progress_id: Mapped[int] = mapped_column(ForeignKey("monthly_progress.id", ondelete="CASCADE"), index=True)
    signature_id: Mapped[int] = mapped_column(ForeignKey("signatures.id", ondelete="CASCADE"), index=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_by: Mapped[Optional[str]] = mapped_column(String(200))

    monthly_progress: Mapped["MonthlyProgress"] = relationship("MonthlyProgress", back_populates="signature_progress")
    signature: Mapped["Signature"] = relationship("Signature", back_populates="progress")


class Profile(Base):
    """Dashboard user profile (admin may edit, viewer read-only)."""
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(20), default="viewer", comment="admin / viewer")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
