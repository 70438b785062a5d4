"""SQLAlchemy models for bolsas database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Account ("bolsa") model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    account_type = Column(String, default="personal", nullable=False)
    currency = Column(String, default="MXN", nullable=False)
    initial_balance = Column(Numeric(14, 2), default=0, nullable=False)
    current_balance = Column(Numeric(14, 2), default=0, nullable=False)
    default_income_maaserable = Column(Boolean, nullable=True)
    default_expense_deductible = Column(Boolean, nullable=True)
    is_maaser = Column(Boolean, default=False, nullable=False)
    is_savings_goal = Column(Boolean, default=False, nullable=False)
    target_amount = Column(Numeric(14, 2), nullable=True)
    deadline = Column(Date, nullable=True)
    color = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Category(Base):
    """Category model. Rows with a parent are subcategories."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    category_type = Column(String, nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    color = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")


class Transaction(Base):
    """Ledger row model.

    System-generated rows point at the user-entered row that spawned them
    through related_transaction_id.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(String, nullable=False, default="")
    transaction_type = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    subcategory_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    status = Column(String, default="cleared", nullable=False)
    notes = Column(String, nullable=True)
    cardholder = Column(String, nullable=True)
    is_maaserable = Column(Boolean, nullable=True)
    is_deductible = Column(Boolean, nullable=True)
    is_system_generated = Column(Boolean, default=False, nullable=False)
    related_transaction_id = Column(String(36), ForeignKey("transactions.id"), nullable=True, index=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Budget(Base):
    """Monthly budget model."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    month_year = Column(String(7), nullable=False)
    limit_amount = Column(Numeric(14, 2), nullable=False)
    alert_threshold = Column(Integer, default=80, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # One budget per category and month
    __table_args__ = (UniqueConstraint("category_id", "month_year", name="uq_budget_category_month"),)


class RecurringTransaction(Base):
    """Recurring transaction template model."""

    __tablename__ = "recurring_transactions"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    transaction_type = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    day_of_month = Column(Integer, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
