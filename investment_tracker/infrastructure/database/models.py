"""SQLAlchemy ORM models for the persisted ledger and objective"""

from sqlalchemy import Column, String, BigInteger, Float, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class InvestmentRow(Base):
    """Single investment record"""

    __tablename__ = "investment"

    id = Column(String(32), primary_key=True)
    timestamp = Column(BigInteger, nullable=True, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    fund = Column(Text, nullable=False)
    platform = Column(Text, nullable=False)
    date = Column(String(32), nullable=False)
    unit_price = Column(Float, nullable=True)
    units = Column(Float, nullable=True)


class ObjectiveRow(Base):
    """Savings objective; at most one row"""

    __tablename__ = "objective"

    id = Column(Integer, primary_key=True, default=1)
    target_amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
