"""
Load drivers, trucks and clients from a JSON registry file.

Usage:
    python -m sandyard.seed              # loads sandyard/data/registry.json
    python -m sandyard.seed --file path  # load a specific file
    python -m sandyard.seed --reset      # remove registry rows without transactions first
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import configure_logging
from .database import SessionLocal, init_db
from .models import Client, Driver, Transaction, Truck
from .utils import clean_optional, to_decimal
from .validation import validate_empty_weight

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_JSON = DATA_DIR / "registry.json"
WEIGHT_STEP = Decimal("0.001")


@dataclass
class ImportReport:
    imported: int = 0
    updated: int = 0
    skipped: int = 0


def get_or_create_driver(session: Session, name: str, phone: Optional[str] = None) -> Driver:
    """Return the driver called *name*, creating it when missing."""
    driver = (
        session.query(Driver)
        .filter(func.lower(Driver.name) == name.strip().lower())
        .first()
    )
    if driver:
        if phone:
            driver.phone = phone
        return driver

    driver = Driver(name=name.strip(), phone=clean_optional(phone))
    session.add(driver)
    session.flush()  # assign an id for the trucks that reference it
    return driver


def _reset(session: Session) -> None:
    used_trucks = session.query(Transaction.truck_id)
    used_clients = session.query(Transaction.client_id)
    session.query(Truck).filter(~Truck.id.in_(used_trucks)).delete(synchronize_session=False)
    session.query(Client).filter(~Client.id.in_(used_clients)).delete(synchronize_session=False)
    session.query(Driver).filter(~Driver.trucks.any()).delete(synchronize_session=False)
    session.commit()


def load_registry(records: Dict[str, list], *, reset: bool = False) -> ImportReport:
    """Persist registry records, optionally clearing unused rows first."""
    init_db()
    session = SessionLocal()
    report = ImportReport()

    try:
        if reset:
            _reset(session)

        for entry in records.get("drivers", []):
            get_or_create_driver(session, entry["name"], entry.get("phone"))

        for entry in records.get("trucks", []):
            plate = entry["licensePlate"].strip()
            empty_weight = to_decimal(entry["emptyWeight"]).quantize(WEIGHT_STEP)
            error = validate_empty_weight(empty_weight)
            if error:
                logger.warning("Skipping truck %s: %s", plate, error)
                report.skipped += 1
                continue

            driver = get_or_create_driver(session, entry["driverName"])
            truck = (
                session.query(Truck)
                .filter(func.lower(Truck.license_plate) == plate.lower())
                .one_or_none()
            )
            if truck:
                if empty_weight != truck.empty_weight and truck.transactions:
                    logger.warning(
                        "Skipping truck %s: empty weight is fixed once it has transactions", plate
                    )
                    report.skipped += 1
                    continue
                truck.empty_weight = empty_weight
                truck.driver_id = driver.id
                report.updated += 1
            else:
                session.add(Truck(license_plate=plate, empty_weight=empty_weight, driver_id=driver.id))
                session.flush()
                report.imported += 1

        for entry in records.get("clients", []):
            name = entry["name"].strip()
            values = {
                "company": clean_optional(entry.get("company")),
                "phone": clean_optional(entry.get("phone")),
                "email": clean_optional(entry.get("email")),
            }
            client = (
                session.query(Client)
                .filter(func.lower(Client.name) == name.lower())
                .first()
            )
            if client:
                for field, value in values.items():
                    setattr(client, field, value)
                report.updated += 1
            else:
                session.add(Client(name=name, **values))
                report.imported += 1

        session.commit()
        logger.info(
            "Registry imported: %d, updated: %d, skipped: %d",
            report.imported,
            report.updated,
            report.skipped,
        )
        return report
    finally:
        session.close()


def load_json_records(path: Path) -> Dict[str, list]:
    if not path.exists():
        raise FileNotFoundError(f"JSON registry file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load drivers, trucks and clients into the yard database."
    )
    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        default=DEFAULT_JSON,
        help=f"Path to the registry JSON file (default: {DEFAULT_JSON})",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete trucks, clients and drivers without recorded transactions before importing.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging()
    args = parse_cli_args(argv)
    records = load_json_records(args.file)
    load_registry(records, reset=args.reset)


if __name__ == "__main__":
    main()
