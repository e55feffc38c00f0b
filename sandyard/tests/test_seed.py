from __future__ import annotations

import json
from datetime import datetime
from importlib import import_module
from pathlib import Path

import pytest

from sandyard.models import Client, Driver, Transaction, Truck

REGISTRY = {
    "drivers": [{"name": "Youssef Amrani", "phone": "+212 600-112233"}],
    "trucks": [
        {"licensePlate": "12345-A-6", "emptyWeight": 10.5, "driverName": "Youssef Amrani"},
        {"licensePlate": "67890-B-1", "emptyWeight": 8.2, "driverName": "Karim Benali"},
        {"licensePlate": "LIGHT-1", "emptyWeight": 1.2, "driverName": "Karim Benali"},
    ],
    "clients": [{"name": "Chantier Ain Sebaa", "company": "BTP Atlas", "email": " "}],
}


def test_load_registry_imports_then_updates(isolated_db) -> None:
    seed = import_module("sandyard.seed")

    first = seed.load_registry(REGISTRY)
    assert (first.imported, first.updated, first.skipped) == (3, 0, 1)

    second = seed.load_registry(REGISTRY)
    assert (second.imported, second.updated, second.skipped) == (0, 3, 1)

    session = isolated_db.SessionLocal()
    try:
        plates = sorted(truck.license_plate for truck in session.query(Truck).all())
        assert plates == ["12345-A-6", "67890-B-1"]
        assert session.query(Driver).count() == 2

        truck = session.query(Truck).filter(Truck.license_plate == "67890-B-1").one()
        assert truck.driver.name == "Karim Benali"
        assert float(truck.empty_weight) == pytest.approx(8.2)

        client = session.query(Client).one()
        assert client.email is None
    finally:
        session.close()


def test_trucks_with_transactions_keep_their_empty_weight(isolated_db) -> None:
    seed = import_module("sandyard.seed")
    seed.load_registry(REGISTRY)

    session = isolated_db.SessionLocal()
    try:
        truck = session.query(Truck).filter(Truck.license_plate == "12345-A-6").one()
        client = session.query(Client).one()
        session.add(Transaction(truck_id=truck.id, client_id=client.id, entry_time=datetime(2024, 1, 8, 9, 0)))
        session.commit()
    finally:
        session.close()

    heavier = dict(REGISTRY, trucks=[dict(REGISTRY["trucks"][0], emptyWeight=11)] + REGISTRY["trucks"][1:])
    report = seed.load_registry(heavier)
    assert (report.imported, report.updated, report.skipped) == (0, 2, 2)

    session = isolated_db.SessionLocal()
    try:
        truck = session.query(Truck).filter(Truck.license_plate == "12345-A-6").one()
        assert float(truck.empty_weight) == pytest.approx(10.5)
    finally:
        session.close()


def test_reset_keeps_nothing_unused(isolated_db) -> None:
    seed = import_module("sandyard.seed")
    seed.load_registry(REGISTRY)

    report = seed.load_registry({"clients": [{"name": "Hassan Idrissi"}]}, reset=True)
    assert report.imported == 1

    session = isolated_db.SessionLocal()
    try:
        assert session.query(Truck).count() == 0
        assert session.query(Driver).count() == 0
        assert [client.name for client in session.query(Client).all()] == ["Hassan Idrissi"]
    finally:
        session.close()


def test_cli_reads_file(isolated_db, tmp_path: Path) -> None:
    seed = import_module("sandyard.seed")
    path = tmp_path / "registry.json"
    path.write_text(json.dumps(REGISTRY), encoding="utf-8")

    seed.main(["--file", str(path)])

    session = isolated_db.SessionLocal()
    try:
        assert session.query(Truck).count() == 2
    finally:
        session.close()


def test_missing_file_is_reported(tmp_path: Path) -> None:
    seed = import_module("sandyard.seed")
    with pytest.raises(FileNotFoundError):
        seed.load_json_records(tmp_path / "absent.json")


def test_bundled_registry_is_valid() -> None:
    seed = import_module("sandyard.seed")
    records = seed.load_json_records(seed.DEFAULT_JSON)
    assert {"drivers", "trucks", "clients"} <= set(records)
