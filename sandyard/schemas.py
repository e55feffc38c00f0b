from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import PaymentMethod, PaymentStatus, TransactionStatus
from .utils import clean_optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


def _check_phone(value: Optional[str]) -> Optional[str]:
    value = clean_optional(value)
    if value is not None and not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone format")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    value = clean_optional(value)
    if value is not None and not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value


def _check_required_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError("Value cannot be blank")
    return stripped


# Drivers


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _check_required_text(value)

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)


class DriverUpdate(DriverCreate):
    name: Optional[str] = None


class DriverRead(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Trucks


class TruckCreate(BaseModel):
    license_plate: str = Field(..., min_length=1)
    driver_id: int = Field(..., ge=1)
    empty_weight: float = Field(..., gt=0)

    @field_validator("license_plate")
    @classmethod
    def _normalize_plate(cls, value: str) -> str:
        return _check_required_text(value)


class TruckUpdate(BaseModel):
    license_plate: Optional[str] = None
    driver_id: Optional[int] = Field(default=None, ge=1)
    empty_weight: Optional[float] = Field(default=None, gt=0)

    @field_validator("license_plate")
    @classmethod
    def _normalize_plate(cls, value: Optional[str]) -> Optional[str]:
        return _check_required_text(value)


class TruckRead(BaseModel):
    id: int
    license_plate: str
    empty_weight: float
    driver_id: int
    driver: DriverRead
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DriverDetail(DriverRead):
    trucks: List["TruckSummary"] = Field(default_factory=list)


class TruckSummary(BaseModel):
    id: int
    license_plate: str
    empty_weight: float

    model_config = ConfigDict(from_attributes=True)


DriverDetail.model_rebuild()


# Clients


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    company: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _check_required_text(value)

    @field_validator("company")
    @classmethod
    def _strip_company(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional(value)

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class ClientUpdate(ClientCreate):
    name: Optional[str] = None


class ClientRead(BaseModel):
    id: int
    name: str
    company: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Transactions and payments


class TransactionCreate(BaseModel):
    truck_id: int = Field(..., ge=1)
    client_id: int = Field(..., ge=1)
    entry_time: Optional[datetime] = None


class WeighOutRequest(BaseModel):
    total_weight: float = Field(..., gt=0)
    exit_time: Optional[datetime] = None


class PaymentRequest(BaseModel):
    method: PaymentMethod
    bank_reference: Optional[str] = None
    received_amount: Optional[float] = Field(default=None, ge=0)

    @field_validator("bank_reference")
    @classmethod
    def _strip_reference(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional(value)


class PaymentRead(BaseModel):
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    bank_reference: Optional[str] = None
    received_amount: Optional[float] = None
    change_amount: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionRead(BaseModel):
    id: int
    truck: TruckRead
    client: ClientRead
    entry_time: datetime
    exit_time: Optional[datetime] = None
    total_weight: Optional[float] = None
    sand_weight: Optional[float] = None
    status: TransactionStatus
    payment: Optional[PaymentRead] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Pricing


class PriceBreakdownRead(BaseModel):
    base_price: float
    peak_hour_surcharge: float
    weekend_discount: float
    final_price: float


class TierRead(BaseModel):
    min_tons: float
    max_tons: float
    price_per_ton: float


class TierInfoRead(BaseModel):
    current_tier: TierRead
    next_tier: Optional[TierRead] = None
    tons_till_next_tier: Optional[float] = None


class QuoteRead(BaseModel):
    sand_weight: float
    entry_time: datetime
    payment_method: Optional[PaymentMethod] = None
    price: PriceBreakdownRead
    tier: TierInfoRead


class WeighOutRead(BaseModel):
    transaction: TransactionRead
    quote: QuoteRead


# Receipts


class ReceiptRead(BaseModel):
    transaction: TransactionRead
    receipt_hash: str
    stored_hash: Optional[str] = None
    verified: bool


class ReceiptSendRequest(BaseModel):
    transaction_id: int = Field(..., ge=1)


class ReceiptSendResponse(BaseModel):
    success: bool
    recipient: str
