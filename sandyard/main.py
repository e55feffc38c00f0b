import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Generator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import configure_logging, load_settings
from .database import SessionLocal, init_db
from .enums import PaymentMethod, PaymentStatus, TransactionStatus
from .exceptions import InvalidTransitionError, PricingError
from .lifecycle import ensure_transition
from .models import Client, Driver, Payment, Transaction, Truck
from .notifications import render_receipt, send_receipt
from .pricing import compute_final_price, tier_info
from .receipts import ReceiptFields, receipt_hash, verify_receipt
from .schemas import (
    ClientCreate,
    ClientRead,
    ClientUpdate,
    DriverCreate,
    DriverDetail,
    DriverUpdate,
    PaymentRequest,
    PriceBreakdownRead,
    QuoteRead,
    ReceiptRead,
    ReceiptSendRequest,
    ReceiptSendResponse,
    TierInfoRead,
    TransactionCreate,
    TransactionRead,
    TruckCreate,
    TruckRead,
    TruckUpdate,
    WeighOutRead,
    WeighOutRequest,
)
from .utils import to_decimal, to_yard_time, yard_now
from .validation import (
    TransactionCandidate,
    validate_empty_weight,
    validate_sand_weight,
    validate_transaction,
)

logger = logging.getLogger(__name__)

settings = load_settings()

WEIGHT_STEP = Decimal("0.001")
CENT = Decimal("0.01")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    init_db()
    yield


app = FastAPI(
    title="Sand Yard API",
    description="Weigh-bridge transactions, pricing and receipts for a sand yard.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError) -> JSONResponse:
    logger.error("Pricing failed for %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal pricing error"})


def _weight(value: float) -> Decimal:
    return to_decimal(value).quantize(WEIGHT_STEP)


def _yard_time(value: Optional[datetime]) -> datetime:
    if value is None:
        return yard_now(settings.timezone)
    return to_yard_time(value, settings.timezone)


def _transition(transaction: Transaction, target: TransactionStatus) -> None:
    try:
        transaction.status = ensure_transition(transaction.status, target)
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def _get_driver(db: Session, driver_id: int) -> Driver:
    driver = db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


def _get_truck(db: Session, truck_id: int) -> Truck:
    truck = db.get(Truck, truck_id)
    if not truck:
        raise HTTPException(status_code=404, detail="Truck not found")
    return truck


def _get_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _get_transaction(db: Session, transaction_id: int) -> Transaction:
    transaction = db.get(Transaction, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


def _ensure_plate_available(db: Session, plate: str, truck_id: Optional[int] = None) -> None:
    query = db.query(Truck).filter(func.lower(Truck.license_plate) == plate.lower())
    if truck_id is not None:
        query = query.filter(Truck.id != truck_id)
    if query.first():
        raise HTTPException(status_code=409, detail="License plate already registered")


def _check_empty_weight(empty_weight: Decimal) -> None:
    error = validate_empty_weight(empty_weight)
    if error:
        raise HTTPException(status_code=400, detail=error)


def _quote(
    sand_weight: Decimal,
    entry_time: datetime,
    payment_method: Optional[PaymentMethod] = None,
) -> QuoteRead:
    breakdown = compute_final_price(sand_weight, entry_time, payment_method)
    return QuoteRead(
        sand_weight=sand_weight,
        entry_time=entry_time,
        payment_method=payment_method,
        price=PriceBreakdownRead(**breakdown.to_dict()),
        tier=TierInfoRead.model_validate(tier_info(sand_weight).to_dict()),
    )


def _receipt_digest(transaction: Transaction) -> str:
    return receipt_hash(ReceiptFields.from_transaction(transaction))


def _require_payment(transaction: Transaction) -> None:
    if transaction.payment is None:
        raise HTTPException(status_code=409, detail="Receipt not available before payment")


@app.get("/api/health")
def health_check():
    return {"status": "running"}


# Drivers


@app.get("/api/drivers", response_model=List[DriverDetail])
def get_drivers(db: Session = Depends(get_db)) -> List[DriverDetail]:
    drivers = db.query(Driver).order_by(Driver.created_at.desc(), Driver.id.desc()).all()
    return [DriverDetail.model_validate(driver) for driver in drivers]


@app.post("/api/drivers", response_model=DriverDetail, status_code=201)
def create_driver(payload: DriverCreate, db: Session = Depends(get_db)) -> DriverDetail:
    driver = Driver(name=payload.name, phone=payload.phone)
    db.add(driver)
    db.commit()
    db.refresh(driver)
    logger.info("Registered driver %s (%s)", driver.id, driver.name)
    return DriverDetail.model_validate(driver)


@app.get("/api/drivers/{driver_id}", response_model=DriverDetail)
def get_driver(driver_id: int, db: Session = Depends(get_db)) -> DriverDetail:
    return DriverDetail.model_validate(_get_driver(db, driver_id))


@app.put("/api/drivers/{driver_id}", response_model=DriverDetail)
def update_driver(
    driver_id: int,
    payload: DriverUpdate,
    db: Session = Depends(get_db),
) -> DriverDetail:
    driver = _get_driver(db, driver_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        driver.name = changes["name"]
    if "phone" in changes:
        driver.phone = changes["phone"]
    db.commit()
    db.refresh(driver)
    return DriverDetail.model_validate(driver)


@app.delete("/api/drivers/{driver_id}")
def delete_driver(driver_id: int, db: Session = Depends(get_db)):
    """Remove a driver; refused while any truck still belongs to them."""
    driver = _get_driver(db, driver_id)
    if driver.trucks:
        raise HTTPException(status_code=409, detail="Driver still owns trucks")
    db.delete(driver)
    db.commit()
    return {"success": True}


# Trucks


@app.get("/api/trucks", response_model=List[TruckRead])
def get_trucks(db: Session = Depends(get_db)) -> List[TruckRead]:
    trucks = db.query(Truck).order_by(Truck.created_at.desc(), Truck.id.desc()).all()
    return [TruckRead.model_validate(truck) for truck in trucks]


@app.post("/api/trucks", response_model=TruckRead, status_code=201)
def create_truck(payload: TruckCreate, db: Session = Depends(get_db)) -> TruckRead:
    empty_weight = _weight(payload.empty_weight)
    _check_empty_weight(empty_weight)
    _get_driver(db, payload.driver_id)
    _ensure_plate_available(db, payload.license_plate)

    truck = Truck(
        license_plate=payload.license_plate,
        driver_id=payload.driver_id,
        empty_weight=empty_weight,
    )
    db.add(truck)
    db.commit()
    db.refresh(truck)
    logger.info("Registered truck %s (%s, empty %s T)", truck.id, truck.license_plate, empty_weight)
    return TruckRead.model_validate(truck)


@app.get("/api/trucks/{truck_id}", response_model=TruckRead)
def get_truck(truck_id: int, db: Session = Depends(get_db)) -> TruckRead:
    return TruckRead.model_validate(_get_truck(db, truck_id))


@app.put("/api/trucks/{truck_id}", response_model=TruckRead)
def update_truck(
    truck_id: int,
    payload: TruckUpdate,
    db: Session = Depends(get_db),
) -> TruckRead:
    truck = _get_truck(db, truck_id)

    if payload.empty_weight is not None:
        empty_weight = _weight(payload.empty_weight)
        _check_empty_weight(empty_weight)
        if empty_weight != truck.empty_weight and truck.transactions:
            # recorded sand weights were derived from the current empty weight
            raise HTTPException(
                status_code=409, detail="Empty weight is fixed once a truck has transactions"
            )
        truck.empty_weight = empty_weight
    if payload.driver_id is not None:
        _get_driver(db, payload.driver_id)
        truck.driver_id = payload.driver_id
    if payload.license_plate and payload.license_plate.lower() != truck.license_plate.lower():
        _ensure_plate_available(db, payload.license_plate, truck_id=truck.id)
        truck.license_plate = payload.license_plate

    db.commit()
    db.refresh(truck)
    return TruckRead.model_validate(truck)


@app.delete("/api/trucks/{truck_id}")
def delete_truck(truck_id: int, db: Session = Depends(get_db)):
    truck = _get_truck(db, truck_id)
    if truck.transactions:
        raise HTTPException(status_code=409, detail="Truck has recorded transactions")
    db.delete(truck)
    db.commit()
    return {"success": True}


# Clients


@app.get("/api/clients", response_model=List[ClientRead])
def get_clients(db: Session = Depends(get_db)) -> List[ClientRead]:
    clients = db.query(Client).order_by(Client.created_at.desc(), Client.id.desc()).all()
    return [ClientRead.model_validate(client) for client in clients]


@app.post("/api/clients", response_model=ClientRead, status_code=201)
def create_client(payload: ClientCreate, db: Session = Depends(get_db)) -> ClientRead:
    client = Client(**payload.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    return ClientRead.model_validate(client)


@app.get("/api/clients/{client_id}", response_model=ClientRead)
def get_client(client_id: int, db: Session = Depends(get_db)) -> ClientRead:
    return ClientRead.model_validate(_get_client(db, client_id))


@app.put("/api/clients/{client_id}", response_model=ClientRead)
def update_client(
    client_id: int,
    payload: ClientUpdate,
    db: Session = Depends(get_db),
) -> ClientRead:
    client = _get_client(db, client_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return ClientRead.model_validate(client)


@app.delete("/api/clients/{client_id}")
def delete_client(client_id: int, db: Session = Depends(get_db)):
    client = _get_client(db, client_id)
    if client.transactions:
        raise HTTPException(status_code=409, detail="Client has recorded transactions")
    db.delete(client)
    db.commit()
    return {"success": True}


# Transactions


@app.get("/api/transactions", response_model=List[TransactionRead])
def get_transactions(db: Session = Depends(get_db)) -> List[TransactionRead]:
    transactions = (
        db.query(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
    return [TransactionRead.model_validate(item) for item in transactions]


@app.post("/api/transactions", response_model=TransactionRead, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
) -> TransactionRead:
    """Open a transaction when a truck drives onto the weigh-bridge."""
    _get_truck(db, payload.truck_id)
    _get_client(db, payload.client_id)

    transaction = Transaction(
        truck_id=payload.truck_id,
        client_id=payload.client_id,
        entry_time=_yard_time(payload.entry_time),
        status=TransactionStatus.PENDING,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info("Opened transaction %s for truck %s", transaction.id, payload.truck_id)
    return TransactionRead.model_validate(transaction)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionRead)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)) -> TransactionRead:
    return TransactionRead.model_validate(_get_transaction(db, transaction_id))


@app.post("/api/transactions/{transaction_id}/weigh-out", response_model=WeighOutRead)
def weigh_out(
    transaction_id: int,
    payload: WeighOutRequest,
    db: Session = Depends(get_db),
) -> WeighOutRead:
    """Record the loaded weight on the way out and quote the price."""
    transaction = _get_transaction(db, transaction_id)
    _transition(transaction, TransactionStatus.IN_PROGRESS)

    truck = transaction.truck
    total_weight = _weight(payload.total_weight)
    exit_time = _yard_time(payload.exit_time)

    error = validate_transaction(
        TransactionCandidate(
            empty_weight=truck.empty_weight,
            total_weight=total_weight,
            entry_time=transaction.entry_time,
            exit_time=exit_time,
        )
    )
    if error:
        db.rollback()
        raise HTTPException(status_code=400, detail=error)

    sand_weight = transaction.record_total_weight(total_weight, to_decimal(truck.empty_weight))
    quote = _quote(sand_weight, transaction.entry_time)
    transaction.exit_time = exit_time

    db.commit()
    db.refresh(transaction)
    logger.info(
        "Transaction %s weighed out: %s T sand, quoted %s DH",
        transaction.id,
        sand_weight,
        quote.price.final_price,
    )
    return WeighOutRead(transaction=TransactionRead.model_validate(transaction), quote=quote)


@app.get("/api/transactions/{transaction_id}/quote", response_model=QuoteRead)
def get_transaction_quote(
    transaction_id: int,
    payment_method: Optional[PaymentMethod] = None,
    db: Session = Depends(get_db),
) -> QuoteRead:
    transaction = _get_transaction(db, transaction_id)
    if transaction.sand_weight is None:
        raise HTTPException(status_code=409, detail="Transaction has not been weighed out")
    return _quote(to_decimal(transaction.sand_weight), transaction.entry_time, payment_method)


@app.post("/api/transactions/{transaction_id}/payment", response_model=TransactionRead)
def record_payment(
    transaction_id: int,
    payload: PaymentRequest,
    db: Session = Depends(get_db),
) -> TransactionRead:
    """Take payment for a weighed-out load and stamp its receipt."""
    transaction = _get_transaction(db, transaction_id)
    _transition(transaction, TransactionStatus.COMPLETED)

    error = validate_transaction(
        TransactionCandidate(
            empty_weight=transaction.truck.empty_weight,
            total_weight=transaction.total_weight,
            entry_time=transaction.entry_time,
            exit_time=transaction.exit_time,
            payment_method=payload.method,
            bank_reference=payload.bank_reference,
        )
    )
    if error:
        db.rollback()
        raise HTTPException(status_code=400, detail=error)

    breakdown = compute_final_price(
        to_decimal(transaction.sand_weight), transaction.entry_time, payload.method
    )
    amount = breakdown.final_price

    received_amount = change_amount = None
    if payload.received_amount is not None:
        if payload.method is not PaymentMethod.CASH:
            db.rollback()
            raise HTTPException(
                status_code=400, detail="Received amount only applies to cash payments"
            )
        received_amount = to_decimal(payload.received_amount).quantize(CENT)
        if received_amount < amount:
            db.rollback()
            raise HTTPException(status_code=400, detail="Received amount is less than amount due")
        change_amount = received_amount - amount

    transaction.payment = Payment(
        amount=amount,
        method=payload.method,
        status=PaymentStatus.COMPLETED,
        bank_reference=(
            payload.bank_reference if payload.method is PaymentMethod.BANK_TRANSFER else None
        ),
        received_amount=received_amount,
        change_amount=change_amount,
    )
    db.commit()
    db.refresh(transaction)

    transaction.receipt_hash = _receipt_digest(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info(
        "Transaction %s paid %s DH by %s", transaction.id, amount, payload.method.value
    )
    return TransactionRead.model_validate(transaction)


@app.post("/api/transactions/{transaction_id}/cancel", response_model=TransactionRead)
def cancel_transaction(transaction_id: int, db: Session = Depends(get_db)) -> TransactionRead:
    transaction = _get_transaction(db, transaction_id)
    _transition(transaction, TransactionStatus.CANCELLED)
    db.commit()
    db.refresh(transaction)
    logger.info("Transaction %s cancelled", transaction.id)
    return TransactionRead.model_validate(transaction)


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    transaction = _get_transaction(db, transaction_id)
    db.delete(transaction)
    db.commit()
    return {"success": True}


# Receipts


@app.get("/api/transactions/{transaction_id}/receipt", response_model=ReceiptRead)
def get_receipt(transaction_id: int, db: Session = Depends(get_db)) -> ReceiptRead:
    """Return the receipt along with whether it still matches its issued fingerprint."""
    transaction = _get_transaction(db, transaction_id)
    _require_payment(transaction)

    fields = ReceiptFields.from_transaction(transaction)
    verified = verify_receipt(fields, transaction.receipt_hash)
    if not verified:
        logger.warning("Receipt for transaction %s no longer matches its fingerprint", transaction.id)
    return ReceiptRead(
        transaction=TransactionRead.model_validate(transaction),
        receipt_hash=receipt_hash(fields),
        stored_hash=transaction.receipt_hash,
        verified=verified,
    )


@app.get("/api/transactions/{transaction_id}/receipt/print", response_class=PlainTextResponse)
def print_receipt(transaction_id: int, db: Session = Depends(get_db)) -> str:
    transaction = _get_transaction(db, transaction_id)
    _require_payment(transaction)
    return render_receipt(transaction, _receipt_digest(transaction))


@app.post("/api/receipts/send", response_model=ReceiptSendResponse)
def email_receipt(payload: ReceiptSendRequest, db: Session = Depends(get_db)) -> ReceiptSendResponse:
    transaction = _get_transaction(db, payload.transaction_id)
    _require_payment(transaction)
    if not transaction.client.email:
        raise HTTPException(status_code=400, detail="Client email not found")

    send_receipt(transaction.client.email, transaction, _receipt_digest(transaction))
    return ReceiptSendResponse(success=True, recipient=transaction.client.email)


# Pricing


@app.get("/api/pricing/quote", response_model=QuoteRead)
def quote_price(
    sand_weight: float = Query(..., gt=0),
    entry_time: Optional[datetime] = None,
    payment_method: Optional[PaymentMethod] = None,
) -> QuoteRead:
    """Quote a load without recording anything."""
    weight = to_decimal(sand_weight)
    error = validate_sand_weight(weight)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return _quote(weight, _yard_time(entry_time), payment_method)


@app.get("/api/pricing/tiers", response_model=TierInfoRead)
def get_tier_info(sand_weight: float = Query(..., gt=0)) -> TierInfoRead:
    weight = to_decimal(sand_weight)
    error = validate_sand_weight(weight)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return TierInfoRead.model_validate(tier_info(weight).to_dict())
