"""SQLAlchemy ORM models for users, ledger entries and purchase suggestions"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BudgetUser(Base):
    """Ledger owner, keyed by the identity provider's uid"""

    __tablename__ = "budget_user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    uid = Column(Text, nullable=False, unique=True, index=True)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    photo_url = Column(Text, nullable=True)
    savings = Column(Float, nullable=False, default=0.0)
    location = Column(Text, nullable=True)
    occupation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    income = relationship("IncomeItem", back_populates="user", cascade="all, delete-orphan")
    expenses = relationship("ExpenseItem", back_populates="user", cascade="all, delete-orphan")


class IncomeItem(Base):
    """Income entry within one month of a user's ledger"""

    __tablename__ = "income_item"

    id = Column(String(32), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("budget_user.id", ondelete="CASCADE"), nullable=False)
    month_key = Column(String(7), nullable=False, index=True)
    label = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    source = Column(Text, nullable=False, default="Other")
    entry_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("BudgetUser", back_populates="income")


class ExpenseItem(Base):
    """Expense entry; EMI installments carry the emi_* columns"""

    __tablename__ = "expense_item"

    id = Column(String(32), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("budget_user.id", ondelete="CASCADE"), nullable=False)
    month_key = Column(String(7), nullable=False, index=True)
    label = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(Text, nullable=False)
    entry_date = Column(Date, nullable=False)
    type = Column(Text, nullable=False, default="one-time")
    emi_duration = Column(Integer, nullable=True)
    emi_remaining_months = Column(Integer, nullable=True)
    emi_monthly_amount = Column(Float, nullable=True)
    emi_started_on = Column(Date, nullable=True)
    emi_installment_number = Column(Integer, nullable=True)
    emi_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("BudgetUser", back_populates="expenses")


class ProductSuggestion(Base):
    """Stored purchase advice; immutable once written"""

    __tablename__ = "product_suggestion"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    uid = Column(Text, nullable=False, index=True)
    product_name = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    emi_amount = Column(Float, nullable=True)
    duration = Column(Integer, nullable=True)
    classification = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    suggested_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
