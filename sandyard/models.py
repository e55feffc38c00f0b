from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

from .enums import PaymentMethod, PaymentStatus, TransactionStatus

Base = declarative_base()

WEIGHT = Numeric(10, 3)  # tons
MONEY = Numeric(12, 2)  # DH


class Driver(Base):
    __tablename__ = "drivers"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String, nullable=False)
    phone: Optional[str] = Column(String, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    trucks = relationship("Truck", back_populates="driver")


class Truck(Base):
    __tablename__ = "trucks"

    id: int = Column(Integer, primary_key=True, index=True)
    license_plate: str = Column(String, nullable=False, unique=True)
    empty_weight: Decimal = Column(WEIGHT, nullable=False)
    driver_id: int = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    driver = relationship("Driver", back_populates="trucks")
    transactions = relationship("Transaction", back_populates="truck")


class Client(Base):
    __tablename__ = "clients"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String, nullable=False)
    company: Optional[str] = Column(String, nullable=True)
    phone: Optional[str] = Column(String, nullable=True)
    email: Optional[str] = Column(String, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    transactions = relationship("Transaction", back_populates="client")


class Transaction(Base):
    __tablename__ = "transactions"

    id: int = Column(Integer, primary_key=True, index=True)
    truck_id: int = Column(Integer, ForeignKey("trucks.id"), nullable=False)
    client_id: int = Column(Integer, ForeignKey("clients.id"), nullable=False)
    entry_time: datetime = Column(DateTime, nullable=False)
    exit_time: Optional[datetime] = Column(DateTime, nullable=True)
    total_weight: Optional[Decimal] = Column(WEIGHT, nullable=True)
    sand_weight: Optional[Decimal] = Column(WEIGHT, nullable=True)
    status: TransactionStatus = Column(
        Enum(TransactionStatus, name="transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
    )
    receipt_hash: Optional[str] = Column(String(64), nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    truck = relationship("Truck", back_populates="transactions")
    client = relationship("Client", back_populates="transactions")
    payment = relationship(
        "Payment",
        back_populates="transaction",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def record_total_weight(self, total_weight: Decimal, empty_weight: Decimal) -> Decimal:
        """Store the loaded weight and the sand weight derived from it."""
        self.total_weight = total_weight
        self.sand_weight = total_weight - empty_weight
        return self.sand_weight


class Payment(Base):
    __tablename__ = "payments"

    id: int = Column(Integer, primary_key=True, index=True)
    transaction_id: int = Column(
        Integer, ForeignKey("transactions.id"), nullable=False, unique=True
    )
    amount: Decimal = Column(MONEY, nullable=False)
    method: PaymentMethod = Column(Enum(PaymentMethod, name="payment_method"), nullable=False)
    status: PaymentStatus = Column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    bank_reference: Optional[str] = Column(String, nullable=True)
    received_amount: Optional[Decimal] = Column(MONEY, nullable=True)
    change_amount: Optional[Decimal] = Column(MONEY, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    transaction = relationship("Transaction", back_populates="payment")
