"""Tests for the SQLite store, snapshot loader and deletion reconciliation."""

import json
from decimal import Decimal

import pytest

from config import ConfigurationManager
from src.consistency import DuplicateResolver
from src.models import InvoiceDirection
from src.storage import InvoiceStore, apply_resolutions, load_records
from src.utils.exceptions import (
    MissingRecordIdError,
    RecordLoadError,
    UnsupportedFileTypeError,
)


class TestInvoiceStore:

    def test_insert_and_fetch(self, db_path, make_record):
        store = InvoiceStore(str(db_path))
        stored = store.insert_batch([
            make_record(amount_excl_vat=Decimal("100.10"), invoice_direction="S"),
            make_record(vat_amount=None, tax_code="PVM1"),
        ])
        assert [record.id for record in stored] == ["1", "2"]

        snapshot = store.get_all()
        assert store.get_count() == 2
        assert snapshot[0].amount_excl_vat == Decimal("100.10")
        assert snapshot[0].invoice_direction is InvoiceDirection.SALES
        assert snapshot[1].vat_amount is None
        assert snapshot[1].tax_code == "PVM1"

    def test_delete(self, db_path, make_record):
        store = InvoiceStore(str(db_path))
        first, second = store.insert_batch([make_record(), make_record()])

        assert store.delete(first) is True
        assert store.delete(first) is False
        assert [record.id for record in store.get_all()] == [second.id]

    def test_delete_without_id(self, db_path, make_record):
        store = InvoiceStore(str(db_path))
        with pytest.raises(MissingRecordIdError):
            store.delete(make_record(id=None))

    def test_location_from_config(self, tmp_path, make_record):
        settings = tmp_path / "settings.yaml"
        settings.write_text(
            f"paths:\n  database: {tmp_path / 'data' / 'store.db'}\n"
            "storage:\n  table_name: invoice_rows\n",
            encoding="utf-8"
        )
        ConfigurationManager(str(settings))

        store = InvoiceStore()
        store.insert(make_record())
        assert store.db_path == tmp_path / "data" / "store.db"
        assert store.db_path.exists()
        assert store.table_name == "invoice_rows"
        assert store.get_count() == 1


class TestSnapshotLoader:

    def test_json_list(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps([
            {"invoice_id": "INV-1", "date": "15.01.2025", "amount_without_vat_eur": 100.0,
             "vat_amount_eur": "21,00", "invoice_type": "S"},
            {"id": 77, "invoice_id": "INV-2"},
        ]), encoding="utf-8")

        records = load_records(path)
        assert [record.id for record in records] == ["row-1", "77"]
        assert records[0].amount_excl_vat == Decimal("100.0")
        assert records[0].vat_amount == Decimal("21.00")
        assert records[0].invoice_direction is InvoiceDirection.SALES

    def test_json_wrapped_object_and_bad_rows(self, tmp_path, caplog):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"invoices": [{"invoice_id": "A"}, "junk"]}), encoding="utf-8")

        with caplog.at_level("WARNING", logger="invoice_consistency"):
            records = load_records(path)
        assert len(records) == 1
        assert "Skipping row 2" in caplog.text

    def test_csv(self, tmp_path):
        path = tmp_path / "snapshot.csv"
        path.write_text(
            "invoice_id,date,company_name,amount_without_vat_eur,vat_amount_eur,vat_number\n"
            "INV-1,2025-01-15,ACME UAB,100.00,21.00,LT123456789\n"
            "INV-2,2025-01-16,,50.00,,\n",
            encoding="utf-8"
        )
        records = load_records(path)
        assert [record.id for record in records] == ["row-1", "row-2"]
        assert records[1].company_name is None
        assert records[1].vat_amount is None
        assert records[1].invoice_direction is InvoiceDirection.PURCHASE

    def test_unreadable_values_are_logged(self, tmp_path, caplog):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps([
            {"invoice_id": "A", "date": "someday", "amount_without_vat_eur": "lots"},
        ]), encoding="utf-8")

        with caplog.at_level("WARNING", logger="invoice_consistency"):
            records = load_records(path)
        assert records[0].amount_excl_vat is None
        assert "unreadable amount_excl_vat 'lots'" in caplog.text
        assert "unparsable date 'someday'" in caplog.text

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "snapshot.xml"
        path.write_text("<invoices/>", encoding="utf-8")
        with pytest.raises(UnsupportedFileTypeError):
            load_records(path)

    def test_broken_json(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RecordLoadError):
            load_records(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(RecordLoadError):
            load_records(tmp_path / "absent.csv")


class TestApplyResolutions:

    def test_partial_failure_is_reported(self, today, make_record, caplog):
        records = [
            make_record(id="1", external_invoice_id="A", date="2025-01-01"),
            make_record(id="2", external_invoice_id="A", date="2025-01-02"),
            make_record(id="3", external_invoice_id="A", date="2025-01-03"),
        ]
        resolver = DuplicateResolver(today=today)
        resolutions = resolver.resolve_all(resolver.find_duplicates(records))

        def delete(record):
            if record.id == "1":
                raise RuntimeError("locked")
            return True

        with caplog.at_level("WARNING", logger="invoice_consistency"):
            report = apply_resolutions(resolutions, delete)

        assert report.attempted == 2
        assert report.succeeded == 1
        assert [outcome.record.id for outcome in report.failed] == ["1"]
        assert report.failed[0].error == "locked"
        assert "locked" in caplog.text

    def test_missing_rows_count_as_failures(self, today, make_record):
        records = [make_record(external_invoice_id="A"), make_record(external_invoice_id="A")]
        resolver = DuplicateResolver(today=today)
        report = apply_resolutions(resolver.resolve_all(resolver.find_duplicates(records)),
                                   lambda record: False)
        assert report.succeeded == 0
        assert report.failed[0].error == "record not found"

    def test_against_store(self, db_path, today, make_record):
        store = InvoiceStore(str(db_path))
        store.insert_batch([
            make_record(external_invoice_id="A", date="2025-01-01"),
            make_record(external_invoice_id="A", date="2025-01-20"),
            make_record(external_invoice_id="B"),
        ])
        resolver = DuplicateResolver(today=today)
        resolutions = resolver.resolve_all(resolver.find_duplicates(store.get_all(), "2025-01"))

        report = apply_resolutions(resolutions, store.delete)
        assert report.succeeded == 1

        remaining = store.get_all()
        assert [(r.external_invoice_id, r.date) for r in remaining] == [
            ("A", "2025-01-20"),
            ("B", "2025-01-15"),
        ]
        assert resolver.find_duplicates(remaining, "2025-01") == []
        assert report.to_dict()['outcomes'] == [{'id': "1", 'succeeded': True, 'error': None}]
