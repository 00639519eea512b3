"""Tests for the import orchestrator against a real MongoDB."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, BulkWriteError

from busana.config import ImportConfig
from busana.models import (
    AffiliateSample,
    CommissionAdjustment,
    ImportBatch,
    ImportHistoryEntry,
    ImportMetadata,
    ImportStatus,
    ImportType,
    Product,
    ReimbursementRecord,
    ReturnRecord,
    Sale,
    SettlementRecord,
    StockMovement,
)
from busana.services.import_service import metadata, processor
from busana.services.import_service import (
    DuplicateImportError,
    FileTooLargeError,
    ImportAbortedError,
    ImportFileError,
    StorageUnavailableError,
    ValidRow,
    run_import,
    upsert_rows,
)
from conftest import SALES_HEADERS, make_csv, make_xlsx, sales_rows

CONFIG = ImportConfig(chunk_size=10)


class FakeCollection:
    """Stands in for a pymongo collection, replaying scripted bulk_write outcomes."""

    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.calls: list[int] = []

    async def bulk_write(self, ops, ordered=True):
        self.calls.append(len(ops))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _written(*inserted_indexes: int) -> SimpleNamespace:
    return SimpleNamespace(upserted_ids={i: ObjectId() for i in inserted_indexes})


def _batch() -> ImportBatch:
    return ImportBatch(
        batch_name="test",
        import_type=ImportType.SALES,
        file_name="sales.csv",
        file_type="csv",
        total_records=0,
    )


def _valid_sales(count: int) -> list[ValidRow]:
    return [
        ValidRow(
            row=i,
            values={
                "order_id": f"ORD-{i}",
                "seller_sku": "SKU-1",
                "product_name": "Kebaya",
                "color": "",
                "size": "",
                "quantity": 1,
                "created_time": datetime(2024, 1, i),
            },
        )
        for i in range(1, count + 1)
    ]


# =============================================================================
# Full imports
# =============================================================================


class TestRunImport:
    """Tests for run_import."""

    @pytest.mark.asyncio
    async def test_partial_import_with_invalid_row(self, init_test_db):
        """Test that one bad row is reported while the rest are imported."""
        content = make_csv(SALES_HEADERS, sales_rows(100, bad_rows={37}))

        result = await run_import(content, "sales_jan.csv", ImportType.SALES, CONFIG)

        assert result.imported == 99
        assert result.updated == 0
        assert len(result.errors) == 1
        assert result.errors[0].row == 37
        assert result.errors[0].field == "quantity"
        assert result.total_rows == 100
        assert result.invalid_rows == 1
        assert result.success_rate == 99.0
        assert await Sale.count() == 99

        batch = await ImportBatch.get(result.batch.id)
        assert batch.status == ImportStatus.COMPLETED
        assert batch.imported_records == 99
        assert batch.invalid_records == 1
        assert batch.error_details[0].row == 37

        history = await ImportHistoryEntry.get(result.history.id)
        assert history.imported_records == 99
        assert history.failed_records == 1
        assert history.success_rate == 99.0
        assert history.import_summary["chunk_count"] == 10

    @pytest.mark.asyncio
    async def test_reimport_is_idempotent(self, init_test_db):
        """Test that importing the same file twice overwrites instead of duplicating."""
        content = make_csv(SALES_HEADERS, sales_rows(20))

        first = await run_import(content, "sales.csv", ImportType.SALES, CONFIG)
        second = await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

        assert first.imported == 20
        assert second.imported == 0
        assert second.updated == 20
        assert await Sale.count() == 20
        assert len(second.duplicate_report.exact_duplicates) == 1
        assert second.duplicate_report.is_duplicate is True

        sale = await Sale.find_one(Sale.order_id == "ORD-0001")
        assert sale.import_batch_id == second.batch.id

    @pytest.mark.asyncio
    async def test_later_row_wins_within_file(self, init_test_db):
        """Test two rows with the same natural key in one file."""
        rows = sales_rows(2)
        rows[1][0] = rows[0][0]
        rows[1][1] = rows[0][1]
        rows[1][5] = "5"

        result = await run_import(make_csv(SALES_HEADERS, rows), "sales.csv", ImportType.SALES, CONFIG)

        assert result.imported == 1
        assert result.updated == 1
        sale = await Sale.find_one(Sale.order_id == "ORD-0001")
        assert sale.quantity == 5

    @pytest.mark.asyncio
    async def test_block_exact_duplicates(self, init_test_db):
        """Test refusing an identical file when blocking is configured."""
        content = make_csv(SALES_HEADERS, sales_rows(5))
        config = ImportConfig(chunk_size=10, block_exact_duplicates=True)
        await run_import(content, "sales.csv", ImportType.SALES, config)

        with pytest.raises(DuplicateImportError):
            await run_import(content, "sales.csv", ImportType.SALES, config)

        assert await Sale.count() == 5
        failed = await ImportBatch.find(ImportBatch.status == ImportStatus.FAILED).to_list()
        assert len(failed) == 1

    @pytest.mark.asyncio
    async def test_require_full_validity(self, init_test_db):
        """Test that one bad row aborts the import when full validity is required."""
        content = make_csv(SALES_HEADERS, sales_rows(10, bad_rows={4}))
        config = ImportConfig(chunk_size=10, require_full_validity=True)

        with pytest.raises(ImportAbortedError) as exc_info:
            await run_import(content, "sales.csv", ImportType.SALES, config)

        assert await Sale.count() == 0
        assert exc_info.value.details["errors"] == 1
        batch = await ImportBatch.find_one()
        assert batch.status == ImportStatus.FAILED
        history = await ImportHistoryEntry.find_one()
        assert history.import_status == ImportStatus.FAILED
        assert history.imported_records == 0

    @pytest.mark.asyncio
    async def test_no_valid_rows(self, init_test_db):
        """Test that a file with only invalid rows fails."""
        content = make_csv(["Order ID", "Quantity"], [["A-1", "2"], ["A-2", "3"]])

        with pytest.raises(ImportAbortedError, match="No valid rows"):
            await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

    @pytest.mark.asyncio
    async def test_file_too_large(self, init_test_db):
        """Test the upload size limit."""
        config = ImportConfig(max_upload_mb=1)

        with pytest.raises(FileTooLargeError):
            await run_import(b"x" * (1024 * 1024 + 1), "big.csv", ImportType.SALES, config)

        assert await ImportBatch.count() == 0

    @pytest.mark.asyncio
    async def test_unsupported_file(self, init_test_db):
        """Test that nothing is written for an unreadable upload."""
        with pytest.raises(ImportFileError):
            await run_import(b"hello", "notes.txt", ImportType.SALES, CONFIG)

        assert await ImportBatch.count() == 0

    @pytest.mark.asyncio
    async def test_metadata_recorded(self, init_test_db):
        """Test that history metadata is stored for a completed import."""
        result = await run_import(make_csv(SALES_HEADERS, sales_rows(30)), "sales.csv", ImportType.SALES, CONFIG)

        records = await ImportMetadata.find(ImportMetadata.import_history_id == result.history.id).to_list()
        kinds = {r.metadata_type.value for r in records}
        assert kinds == {"date_range", "sales", "file_info", "processing_info"}

        history = await ImportHistoryEntry.get(result.history.id)
        assert history.metadata["date_range"]["start"] == "2024-01-01"
        assert history.metadata["file_info"]["file_type"] == "csv"

    @pytest.mark.asyncio
    async def test_xlsx_with_native_dates(self, init_test_db):
        """Test an Excel export with date cells and numeric quantities."""
        content = make_xlsx(
            SALES_HEADERS,
            [["ORD-1", "SKU-1", "Kebaya", "Merah", "M", 2, 300000, datetime(2024, 2, 14, 19, 30)]],
        )

        result = await run_import(content, "sales.xlsx", ImportType.SALES, CONFIG)

        assert result.imported == 1
        assert result.file_type == "excel"
        sale = await Sale.find_one(Sale.order_id == "ORD-1")
        assert sale.created_time == datetime(2024, 2, 14, 19, 30)
        assert sale.order_amount == 300000.0

    @pytest.mark.asyncio
    async def test_settlement_amounts(self, init_test_db):
        """Test grouped and negative settlement amounts."""
        content = make_csv(
            ["Order ID", "Type", "Order Created Time", "Order Settled Time", "Settlement Amount"],
            [
                ["577001", "Order", "2024-01-05 10:00:00", "2024-01-12", "555,000"],
                ["577002", "Refund", "2024-01-06 11:00:00", "2024-01-13", "-55,000"],
            ],
        )

        result = await run_import(content, "settlement.csv", ImportType.ADVERTISING_SETTLEMENT, CONFIG)

        assert result.imported == 2
        order = await SettlementRecord.find_one(SettlementRecord.order_id == "577001")
        refund = await SettlementRecord.find_one(SettlementRecord.order_id == "577002")
        assert order.settlement_amount == 555000.0
        assert order.currency == "IDR"
        assert refund.settlement_amount == -55000.0


class TestStockImport:
    """Tests for stock movements and product stock levels."""

    STOCK_HEADERS = ["Product Code", "Movement Type", "Quantity", "Movement Date", "Reference Number"]
    STOCK_ROWS = [
        ["P-1", "in", "5", "01/02/2024", "PO-1"],
        ["P-2", "out", "10", "02/02/2024", "SO-1"],
        ["P-3", "adjustment", "7", "03/02/2024", "ADJ-1"],
        ["P-9", "in", "4", "03/02/2024", "PO-9"],
    ]

    async def _load_products(self) -> None:
        content = make_csv(
            ["Product Code", "Product Name", "Stock Quantity"],
            [["P-1", "Kebaya", "10"], ["P-2", "Gamis", "5"], ["P-3", "Tunik", "1"]],
        )
        result = await run_import(content, "products.csv", ImportType.PRODUCTS, CONFIG)
        assert result.imported == 3

    async def _stock_levels(self) -> dict[str, int]:
        return {p.product_code: p.stock_quantity for p in await Product.find_all().to_list()}

    @pytest.mark.asyncio
    async def test_movements_adjust_stock(self, init_test_db):
        """Test in, out (floored at zero) and adjustment movements."""
        await self._load_products()

        result = await run_import(
            make_csv(self.STOCK_HEADERS, self.STOCK_ROWS), "stock.csv", ImportType.STOCK, CONFIG
        )

        assert result.imported == 4
        assert result.products_adjusted == 3
        assert await StockMovement.count() == 4
        assert await self._stock_levels() == {"P-1": 15, "P-2": 0, "P-3": 7}

    @pytest.mark.asyncio
    async def test_undated_reimport_is_idempotent(self, init_test_db):
        """Test that a file without a date column can be imported twice safely."""
        await self._load_products()
        content = make_csv(
            ["Product Code", "Movement Type", "Quantity", "Reference Number"],
            [["P-1", "in", "5", "PO-1"], ["P-2", "out", "2", "SO-1"]],
        )

        first = await run_import(
            content, "stock.csv", ImportType.STOCK, CONFIG, now=datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)
        )
        second = await run_import(
            content, "stock.csv", ImportType.STOCK, CONFIG, now=datetime(2025, 2, 1, 9, 5, tzinfo=timezone.utc)
        )

        assert first.imported == 2
        assert second.imported == 0
        assert second.updated == 2
        assert await StockMovement.count() == 2
        assert await self._stock_levels() == {"P-1": 15, "P-2": 3, "P-3": 1}

    @pytest.mark.asyncio
    async def test_reimport_does_not_reapply(self, init_test_db):
        """Test that re-imported movements leave stock levels alone."""
        await self._load_products()
        content = make_csv(self.STOCK_HEADERS, self.STOCK_ROWS)
        await run_import(content, "stock.csv", ImportType.STOCK, CONFIG)

        result = await run_import(content, "stock.csv", ImportType.STOCK, CONFIG)

        assert result.updated == 4
        assert result.products_adjusted == 0
        assert await self._stock_levels() == {"P-1": 15, "P-2": 0, "P-3": 7}


class TestTransactionImports:
    """Tests for returns, reimbursements, commission adjustments and affiliate samples."""

    RETURN_HEADERS = [
        "type",
        "original_order_id",
        "product_name",
        "marketplace",
        "return_date",
        "refund_amount",
        "shipping_cost_loss",
        "restocking_fee",
        "resellable",
    ]
    RETURN_ROWS = [
        ["return", "ORD-1", "Kebaya Modern", "Shopee", "05/03/2024", "150,000", "12,000", "2,000", "ya"],
        ["cancel", "ORD-2", "Gamis Syari", "TikTok Shop", "07/03/2024", "200,000", "0", "0", "tidak"],
    ]

    @pytest.mark.asyncio
    async def test_returns_reimport_is_idempotent(self, init_test_db):
        """Test that a returns file imported twice keeps one record per line."""
        content = make_csv(self.RETURN_HEADERS, self.RETURN_ROWS)

        first = await run_import(content, "returns.csv", ImportType.RETURNS, CONFIG)
        second = await run_import(content, "returns.csv", ImportType.RETURNS, CONFIG)

        assert first.imported == 2
        assert second.imported == 0
        assert second.updated == 2
        assert await ReturnRecord.count() == 2

        cancel = await ReturnRecord.find_one(ReturnRecord.original_order_id == "ORD-2")
        assert cancel.type == "cancel"
        assert cancel.return_date == datetime(2024, 3, 7)
        assert cancel.resellable is False

    @pytest.mark.asyncio
    async def test_returns_metadata(self, init_test_db):
        """Test the returns summary stored with the import history."""
        content = make_csv(self.RETURN_HEADERS, self.RETURN_ROWS)

        result = await run_import(content, "returns.csv", ImportType.RETURNS, CONFIG)

        history = await ImportHistoryEntry.get(result.history.id)
        assert history.metadata["date_range"]["start"] == "2024-03-05"
        assert history.metadata["date_range"]["end"] == "2024-03-07"
        summary = history.metadata["returns"]
        assert summary["total_returns"] == 1
        assert summary["total_cancellations"] == 1
        assert summary["total_refund_amount"] == 350000.0
        assert summary["total_loss"] == 360000.0
        assert summary["resellable_items"] == 1

    @pytest.mark.asyncio
    async def test_undated_reimbursements_reimport(self, init_test_db):
        """Test that claims without dates update in place on re-import."""
        content = make_csv(
            ["claim_id", "reimbursement_type", "marketplace", "claim_amount", "status"],
            [
                ["CLM-1", "Lost Package", "Shopee", "85,000", "Approved"],
                ["CLM-2", "damage_in_transit", "Shopee", "40,000", ""],
            ],
        )

        first = await run_import(
            content, "claims.csv", ImportType.REIMBURSEMENTS, CONFIG, now=datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)
        )
        second = await run_import(
            content, "claims.csv", ImportType.REIMBURSEMENTS, CONFIG, now=datetime(2025, 2, 1, 9, 5, tzinfo=timezone.utc)
        )

        assert first.imported == 2
        assert second.updated == 2
        assert await ReimbursementRecord.count() == 2
        claim = await ReimbursementRecord.find_one(ReimbursementRecord.claim_id == "CLM-1")
        assert claim.reimbursement_type == "lost_package"
        assert claim.status == "approved"
        assert claim.incident_date is None

        history = await ImportHistoryEntry.get(second.history.id)
        assert history.metadata["reimbursement"]["claims_by_status"] == {"approved": 1, "pending": 1}

    @pytest.mark.asyncio
    async def test_commission_adjustments(self, init_test_db):
        """Test commission adjustments with derived final commissions."""
        content = make_csv(
            ["original_order_id", "marketplace", "original_commission", "adjustment_amount", "adjustment_date"],
            [
                ["ORD-1", "Shopee", "15,000", "-2,500", "10/03/2024"],
                ["ORD-2", "Shopee", "8,000", "-8,000", "11/03/2024"],
            ],
        )

        result = await run_import(content, "commission.csv", ImportType.COMMISSION_ADJUSTMENTS, CONFIG)

        assert result.imported == 2
        adjustment = await CommissionAdjustment.find_one(CommissionAdjustment.original_order_id == "ORD-1")
        assert adjustment.final_commission == 12500.0
        assert adjustment.adjustment_date == datetime(2024, 3, 10)

        history = await ImportHistoryEntry.get(result.history.id)
        assert history.metadata["commission"]["total_adjustment_amount"] == -10500.0

    @pytest.mark.asyncio
    async def test_affiliate_samples_xlsx(self, init_test_db):
        """Test an affiliate sample sheet with native date cells."""
        content = make_xlsx(
            ["Affiliate", "Product Name", "SKU", "Quantity", "Product Cost", "Given Date", "Content Delivered"],
            [
                ["@hijabstyle", "Gamis Syari", "GMS-01", 2, 120000, datetime(2024, 4, 1), "yes"],
                ["@kebayadaily", "Kebaya Modern", "KBY-02", 1, 150000, datetime(2024, 4, 2), "no"],
            ],
        )

        result = await run_import(content, "samples.xlsx", ImportType.AFFILIATE_SAMPLES, CONFIG)

        assert result.imported == 2
        assert not result.errors
        sample = await AffiliateSample.find_one(AffiliateSample.affiliate_name == "@hijabstyle")
        assert sample.total_cost == 240000.0
        assert sample.content_delivered is True
        assert sample.given_date == datetime(2024, 4, 1)

        history = await ImportHistoryEntry.get(result.history.id)
        assert history.metadata["affiliate"]["total_samples"] == 3
        assert history.metadata["affiliate"]["content_delivered"] == 1


# =============================================================================
# Chunked upserts
# =============================================================================


class TestUpsertRows:
    """Tests for upsert_rows with scripted storage outcomes."""

    @pytest.mark.asyncio
    async def test_resumes_after_rejected_row(self, init_test_db, monkeypatch):
        """Test that a row the server rejects does not stop the chunk."""
        rejected = BulkWriteError(
            {
                "writeErrors": [{"index": 2, "code": 11000, "errmsg": "E11000 duplicate key"}],
                "upserted": [{"index": 0, "_id": ObjectId()}, {"index": 1, "_id": ObjectId()}],
            }
        )
        fake = FakeCollection([rejected, _written(0)])
        monkeypatch.setattr(Sale, "get_pymongo_collection", classmethod(lambda cls: fake))
        batch = _batch()

        summary = await upsert_rows(_valid_sales(5), ImportType.SALES, batch, 10, datetime(2024, 6, 1))

        assert fake.calls == [5, 2]
        assert summary.inserted == 3
        assert summary.updated == 1
        assert summary.chunks == 1
        assert len(summary.errors) == 1
        assert summary.errors[0].row == 3
        assert "E11000" in summary.errors[0].message
        assert summary.fatal_error is None

    @pytest.mark.asyncio
    async def test_connection_loss_stops_remaining_chunks(self, init_test_db, monkeypatch):
        """Test that a storage failure keeps earlier chunks and stops."""
        fake = FakeCollection([_written(0, 1), AutoReconnect("connection lost")])
        monkeypatch.setattr(Sale, "get_pymongo_collection", classmethod(lambda cls: fake))
        batch = _batch()

        summary = await upsert_rows(_valid_sales(6), ImportType.SALES, batch, 2, datetime(2024, 6, 1))

        assert fake.calls == [2, 2]
        assert summary.inserted == 2
        assert summary.chunks == 1
        assert summary.fatal_error == "connection lost"

    @pytest.mark.asyncio
    async def test_write_concern_error_is_fatal(self, init_test_db, monkeypatch):
        """Test that a bulk error not tied to a row stops the import."""
        fake = FakeCollection([BulkWriteError({"writeErrors": [], "writeConcernErrors": [{"errmsg": "timeout"}]})])
        monkeypatch.setattr(Sale, "get_pymongo_collection", classmethod(lambda cls: fake))
        batch = _batch()

        summary = await upsert_rows(_valid_sales(3), ImportType.SALES, batch, 10, datetime(2024, 6, 1))

        assert summary.fatal_error is not None
        assert summary.stored == 0

    @pytest.mark.asyncio
    async def test_run_import_reports_storage_failure(self, init_test_db, monkeypatch):
        """Test that run_import raises and marks the batch failed."""
        fake = FakeCollection([_written(*range(10)), AutoReconnect("connection lost")])
        monkeypatch.setattr(Sale, "get_pymongo_collection", classmethod(lambda cls: fake))
        content = make_csv(SALES_HEADERS, sales_rows(30))

        with pytest.raises(StorageUnavailableError) as exc_info:
            await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

        assert exc_info.value.details["imported"] == 10
        batch = await ImportBatch.find_one()
        assert batch.status == ImportStatus.FAILED
        assert batch.imported_records == 10


# =============================================================================
# Unexpected failures
# =============================================================================


class TestUnexpectedFailures:
    """Tests that every started batch ends in a terminal status."""

    @pytest.mark.asyncio
    async def test_nan_date_is_a_row_error(self, init_test_db):
        """Test that a NaN date cell fails its row and the import carries on."""
        rows = sales_rows(10)
        rows[4][7] = "nan"

        result = await run_import(make_csv(SALES_HEADERS, rows), "sales.csv", ImportType.SALES, CONFIG)

        assert result.imported == 9
        assert [(e.row, e.field) for e in result.errors] == [(5, "created_time")]
        assert result.batch.status == ImportStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_error_after_batch_creation_fails_batch(self, init_test_db, monkeypatch):
        """Test that an unexpected error marks the batch failed."""

        async def broken_check(*args, **kwargs):
            raise RuntimeError("duplicate index corrupted")

        monkeypatch.setattr(processor, "check_duplicates", broken_check)
        content = make_csv(SALES_HEADERS, sales_rows(5))

        with pytest.raises(ImportAbortedError) as exc_info:
            await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

        assert "duplicate index corrupted" in exc_info.value.message
        batch = await ImportBatch.find_one()
        assert str(batch.id) == exc_info.value.details["batchId"]
        assert batch.status == ImportStatus.FAILED
        assert batch.completed_at is not None
        assert "duplicate index corrupted" in batch.error_message
        assert await Sale.count() == 0

    @pytest.mark.asyncio
    async def test_storage_down_before_batch(self, init_test_db, monkeypatch):
        """Test that failing to create the batch reports storage unavailable."""

        async def refuse_insert(self, *args, **kwargs):
            raise AutoReconnect("connection refused")

        monkeypatch.setattr(ImportBatch, "insert", refuse_insert)
        content = make_csv(SALES_HEADERS, sales_rows(3))

        with pytest.raises(StorageUnavailableError) as exc_info:
            await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_metadata_analysis_error_keeps_import(self, init_test_db, monkeypatch):
        """Test that a failing analyzer leaves a completed import without metadata."""

        def broken_analyzer(records):
            raise KeyError("order_id")

        monkeypatch.setitem(metadata._ANALYZERS, ImportType.SALES, broken_analyzer)
        content = make_csv(SALES_HEADERS, sales_rows(4))

        result = await run_import(content, "sales.csv", ImportType.SALES, CONFIG)

        assert result.imported == 4
        assert result.batch.status == ImportStatus.COMPLETED
        assert result.history is not None
        assert await ImportMetadata.count() == 0
