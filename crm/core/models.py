"""
SQLAlchemy models for the tenant CRM tables.

Every business table is tenant-scoped and soft-deletable. The duplicate
detection core only reads these rows, repoints owner foreign keys on the
dependent tables and flips the soft-delete columns on merged duplicates.
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Index, Numeric, String, Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    """Generate a primary key (UUID4 string)."""
    return str(uuid.uuid4())


class CustomerType(str, enum.Enum):
    """Customer kind - ONLY these values allowed."""
    INDIVIDUAL = "Individual"
    BUSINESS = "Business"


class TenantEntityMixin:
    """Primary key, tenant scope, audit timestamps and soft-delete columns."""

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    # Soft delete
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(36), nullable=True)


class Customer(TenantEntityMixin, Base):
    """
    A customer account (individual or business).

    Dependents (contacts, interactions, opportunities, tickets) reference
    the customer through their customer_id column.
    """
    __tablename__ = "customers"

    name = Column(String(200), nullable=False)
    type = Column(
        Enum(CustomerType, native_enum=False, length=20),
        nullable=False,
        default=CustomerType.INDIVIDUAL,
    )

    # Contact info
    email = Column(String(100))
    phone = Column(String(20))

    # Individual fields
    first_name = Column(String(100))
    last_name = Column(String(100))

    # Business fields
    company_name = Column(String(200))
    tax_id = Column(String(50))

    # Address
    address_line1 = Column(String(500))
    city = Column(String(100))
    state = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100))

    __table_args__ = (
        Index("ix_customers_tenant_email", "tenant_id", "email"),
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name}, type={self.type})>"


class Lead(TenantEntityMixin, Base):
    """A sales lead. Activities reference the lead through lead_id."""
    __tablename__ = "leads"

    title = Column(String(200), nullable=False, default="")

    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(100))
    phone = Column(String(20))
    company_name = Column(String(200))

    __table_args__ = (
        Index("ix_leads_tenant_email", "tenant_id", "email"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name={self.full_name})>"


class Contact(TenantEntityMixin, Base):
    """A person working at a customer."""
    __tablename__ = "contacts"

    customer_id = Column(String(36), ForeignKey("customers.id"), index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100))
    email = Column(String(100))
    phone = Column(String(20))


class Interaction(TenantEntityMixin, Base):
    """Logged touchpoint (call, email, meeting) with a customer or lead."""
    __tablename__ = "interactions"

    customer_id = Column(String(36), ForeignKey("customers.id"), index=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), index=True)
    type = Column(String(50), nullable=False, default="Note")
    subject = Column(String(200), nullable=False)
    description = Column(Text)


class Opportunity(TenantEntityMixin, Base):
    """Sales opportunity attached to a customer."""
    __tablename__ = "opportunities"

    customer_id = Column(String(36), ForeignKey("customers.id"), index=True)
    name = Column(String(200), nullable=False)
    amount = Column(Numeric(15, 2))
    stage = Column(String(50), default="Prospecting")


class Ticket(TenantEntityMixin, Base):
    """Support ticket raised by a customer."""
    __tablename__ = "tickets"

    customer_id = Column(String(36), ForeignKey("customers.id"), index=True)
    subject = Column(String(200), nullable=False)
    status = Column(String(50), default="Open")


class Activity(TenantEntityMixin, Base):
    """Task / call / meeting scheduled against a lead (or a customer)."""
    __tablename__ = "activities"

    lead_id = Column(String(36), ForeignKey("leads.id"), index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True)
    type = Column(String(50), nullable=False, default="Task")
    subject = Column(String(200), nullable=False)


class AuditLog(Base):
    """
    Append-only audit trail.

    Not soft-deletable; rows are written inside the same transaction as the
    change they describe.
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=True, index=True)
    user_id = Column(String(36), nullable=True)

    action = Column(String(50), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(36), nullable=True)
    entity_name = Column(String(200), nullable=True)
    message = Column(Text, nullable=True)

    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"entity_type={self.entity_type}, entity_id={self.entity_id})>"
        )
