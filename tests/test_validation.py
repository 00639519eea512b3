"""Tests for row validation and number coercion."""

from datetime import datetime

import pytest

from busana.models import ImportType
from busana.services.import_service import (
    CanonicalField,
    RowError,
    ValidRow,
    coerce_bool,
    coerce_number,
    natural_key,
    validate_row,
)

F = CanonicalField
NOW = datetime(2024, 6, 1, 12, 0)


# =============================================================================
# Numbers
# =============================================================================


class TestCoerceNumber:
    """Tests for coerce_number."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("555,000", 555000.0),
            ("Rp 555,000", 555000.0),
            ("Rp. 1,250,000", 1250000.0),
            ("IDR 75,000", 75000.0),
            ("1.234.567", 1234567.0),
            ("1.234,50", 1234.5),
            ("1,234.50", 1234.5),
            ("12,5", 12.5),
            ("555.000", 555.0),
            ("-12,500", -12500.0),
            ("4.5%", 4.5),
            (" 42 ", 42.0),
            (7, 7.0),
            (2.5, 2.5),
        ],
    )
    def test_accepted(self, raw, expected):
        """Test currency markers and digit grouping."""
        assert coerce_number(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "nan", "inf", True, "1,2,3.4.5"])
    def test_rejected(self, raw):
        """Test values that are not numbers."""
        with pytest.raises(ValueError):
            coerce_number(raw)


# =============================================================================
# Sales
# =============================================================================


def _sale(overrides: dict | None = None) -> dict:
    row = {
        F.ORDER_ID: "ORD-1",
        F.SELLER_SKU: "KBY-RED-M",
        F.PRODUCT_NAME: "Kebaya Modern",
        F.CREATED_TIME: "25/12/2024 10:00",
        F.QUANTITY: "2",
        F.ORDER_AMOUNT: "Rp 300,000",
    }
    row.update(overrides or {})
    return {k: v for k, v in row.items() if v is not None}


class TestSalesRows:
    """Tests for sales row validation."""

    def test_valid_row_with_defaults(self):
        """Test a valid sale and its defaults."""
        result = validate_row(_sale(), ImportType.SALES, 1, now=NOW)

        assert isinstance(result, ValidRow)
        values = result.values
        assert values["quantity"] == 2
        assert values["order_amount"] == 300000.0
        assert values["created_time"] == datetime(2024, 12, 25, 10, 0)
        assert values["marketplace"] == "TikTok Shop"
        assert values["customer"] == "-"
        assert values["color"] == ""
        assert values["size"] == ""

    def test_missing_quantity_defaults_to_one(self):
        """Test that a sale without quantity counts one unit."""
        result = validate_row(_sale({F.QUANTITY: None}), ImportType.SALES, 1, now=NOW)

        assert result.values["quantity"] == 1

    def test_negative_quantity(self):
        """Test that a negative quantity is a row error."""
        result = validate_row(_sale({F.QUANTITY: "-3"}), ImportType.SALES, 37, now=NOW)

        assert result == [RowError(37, "quantity", "-3", "quantity must not be negative")]

    def test_zero_quantity(self):
        """Test that a sale must have at least one unit."""
        result = validate_row(_sale({F.QUANTITY: "0"}), ImportType.SALES, 4, now=NOW)

        assert len(result) == 1
        assert result[0].message == "quantity must be at least 1"

    @pytest.mark.parametrize("raw", ["nan", float("nan")])
    def test_nan_date_is_row_error(self, raw):
        """Test that a NaN date cell rejects only its own row."""
        result = validate_row(_sale({F.CREATED_TIME: raw}), ImportType.SALES, 5, now=NOW)

        assert len(result) == 1
        assert result[0].row == 5
        assert result[0].field == "created_time"

    def test_fractional_quantity(self):
        """Test that quantities must be whole."""
        result = validate_row(_sale({F.QUANTITY: "1.5"}), ImportType.SALES, 2, now=NOW)

        assert result[0].field == "quantity"
        assert "whole number" in result[0].message

    def test_missing_required_fields(self):
        """Test that every missing required field is reported."""
        result = validate_row({F.ORDER_ID: "ORD-1"}, ImportType.SALES, 3, now=NOW)

        assert {e.field for e in result} == {"seller_sku", "product_name", "created_time"}
        assert all(e.row == 3 for e in result)

    def test_bad_date(self):
        """Test that an unreadable date is a row error."""
        result = validate_row(_sale({F.CREATED_TIME: "yesterday"}), ImportType.SALES, 5, now=NOW)

        assert result[0].field == "created_time"
        assert result[0].value == "yesterday"

    def test_regency_and_city_combined(self):
        """Test combining separate regency and city columns."""
        result = validate_row(_sale({F.REGENCY: "Bandung", F.CITY: "Cimahi"}), ImportType.SALES, 1, now=NOW)

        assert result.values["regency_city"] == "Bandung & Cimahi"

    def test_regency_equal_to_city(self):
        """Test that an identical regency and city is not repeated."""
        result = validate_row(_sale({F.REGENCY: "Bandung", F.CITY: "Bandung"}), ImportType.SALES, 1, now=NOW)

        assert result.values["regency_city"] == "Bandung"

    def test_natural_key(self):
        """Test the identity of a sale line."""
        result = validate_row(_sale({F.COLOR: "Merah", F.SIZE: "M"}), ImportType.SALES, 1, now=NOW)

        assert natural_key(result.values, ImportType.SALES) == ("ORD-1", "KBY-RED-M", "Merah", "M")


# =============================================================================
# Products and stock
# =============================================================================


class TestProductRows:
    """Tests for product row validation."""

    def test_defaults(self):
        """Test product defaults."""
        result = validate_row({F.PRODUCT_CODE: "P-1", F.PRODUCT_NAME: "Gamis"}, ImportType.PRODUCTS, 1, now=NOW)

        assert result.values["category"] == "Uncategorized"
        assert result.values["brand"] == "D'Busana"
        assert result.values["stock_quantity"] == 0
        assert result.values["min_stock"] == 5

    def test_numeric_product_code(self):
        """Test that spreadsheet float codes become plain text."""
        result = validate_row({F.PRODUCT_CODE: 1001.0, F.PRODUCT_NAME: "Gamis"}, ImportType.PRODUCTS, 1, now=NOW)

        assert result.values["product_code"] == "1001"

    def test_negative_price(self):
        """Test that prices cannot be negative."""
        result = validate_row(
            {F.PRODUCT_CODE: "P-1", F.PRODUCT_NAME: "Gamis", F.PRICE: "-100"},
            ImportType.PRODUCTS,
            1,
            now=NOW,
        )

        assert result[0].field == "price"


class TestStockRows:
    """Tests for stock movement validation."""

    def test_movement_type_aliases(self):
        """Test Indonesian movement types."""
        result = validate_row(
            {F.PRODUCT_CODE: "P-1", F.QUANTITY: "5", F.MOVEMENT_TYPE: "Masuk"},
            ImportType.STOCK,
            1,
            now=NOW,
        )

        assert result.values["movement_type"] == "in"

    def test_unknown_movement_type(self):
        """Test that unknown movement types are rejected."""
        result = validate_row(
            {F.PRODUCT_CODE: "P-1", F.QUANTITY: "5", F.MOVEMENT_TYPE: "sideways"},
            ImportType.STOCK,
            1,
            now=NOW,
        )

        assert result[0].field == "movement_type"

    def test_defaults(self):
        """Test that type and reference have defaults and the date stays empty."""
        result = validate_row({F.PRODUCT_CODE: "P-1", F.QUANTITY: "5"}, ImportType.STOCK, 1, now=NOW)

        assert result.values["movement_type"] == "in"
        assert result.values["movement_date"] is None
        assert result.values["reference_number"] == ""

    def test_adjustment_to_zero(self):
        """Test that an adjustment may set stock to zero."""
        result = validate_row(
            {F.PRODUCT_CODE: "P-1", F.QUANTITY: "0", F.MOVEMENT_TYPE: "adjustment"},
            ImportType.STOCK,
            1,
            now=NOW,
        )

        assert isinstance(result, ValidRow)
        assert result.values["quantity"] == 0


# =============================================================================
# Advertising and settlements
# =============================================================================


class TestAdvertisingRows:
    """Tests for advertising row validation."""

    def test_derived_metrics(self):
        """Test that missing metrics are derived from the raw counts."""
        result = validate_row(
            {
                F.CAMPAIGN_NAME: "Ramadan Sale",
                F.DATE_START: "2024-03-01",
                F.DATE_END: "2024-03-31",
                F.COST: "100,000",
                F.REVENUE: "250,000",
                F.CONVERSIONS: "10",
                F.IMPRESSIONS: "5000",
                F.CLICKS: "200",
            },
            ImportType.ADVERTISING,
            1,
            now=NOW,
        )

        values = result.values
        assert values["cpa"] == pytest.approx(10000.0)
        assert values["roi"] == pytest.approx(150.0)
        assert values["ctr"] == pytest.approx(4.0)
        assert values["conversion_rate"] == pytest.approx(5.0)
        assert values["account_name"] == "D'Busana"

    def test_supplied_metrics_kept(self):
        """Test that metrics present in the file are not recomputed."""
        result = validate_row(
            {
                F.CAMPAIGN_NAME: "Ramadan Sale",
                F.DATE_START: "2024-03-01",
                F.DATE_END: "2024-03-31",
                F.COST: "100,000",
                F.CONVERSIONS: "10",
                F.CPA: "9,000",
                F.ROI: "-20",
            },
            ImportType.ADVERTISING,
            1,
            now=NOW,
        )

        assert result.values["cpa"] == 9000.0
        assert result.values["roi"] == -20.0

    def test_no_division_by_zero(self):
        """Test that ratios without a denominator stay empty."""
        result = validate_row(
            {F.CAMPAIGN_NAME: "Test", F.DATE_START: "2024-03-01", F.DATE_END: "2024-03-01"},
            ImportType.ADVERTISING,
            1,
            now=NOW,
        )

        assert result.values["cpa"] is None
        assert result.values["ctr"] is None
        assert result.values["conversion_rate"] is None
        assert result.values["roi"] is None

    def test_end_before_start(self):
        """Test that a reversed window is rejected."""
        result = validate_row(
            {F.CAMPAIGN_NAME: "Test", F.DATE_START: "2024-03-31", F.DATE_END: "2024-03-01"},
            ImportType.ADVERTISING,
            9,
            now=NOW,
        )

        assert result[0].field == "date_end"
        assert result[0].row == 9


class TestSettlementRows:
    """Tests for advertising settlement validation."""

    def _row(self, amount: str) -> dict:
        return {
            F.ORDER_ID: "5770001",
            F.ORDER_CREATED_TIME: "2024-01-05 10:00:00",
            F.ORDER_SETTLED_TIME: "2024-01-12",
            F.SETTLEMENT_AMOUNT: amount,
        }

    def test_grouped_amount(self):
        """Test that 555,000 is read as five hundred and fifty-five thousand."""
        result = validate_row(self._row("555,000"), ImportType.ADVERTISING_SETTLEMENT, 1, now=NOW)

        assert result.values["settlement_amount"] == 555000.0
        assert result.values["currency"] == "IDR"
        assert result.values["account_name"] == "D'Busana"

    def test_negative_amount_allowed(self):
        """Test that reversals may be negative."""
        result = validate_row(self._row("-12,500"), ImportType.ADVERTISING_SETTLEMENT, 1, now=NOW)

        assert result.values["settlement_amount"] == -12500.0


# =============================================================================
# Returns, reimbursements, commission adjustments and affiliate samples
# =============================================================================


class TestCoerceBool:
    """Tests for coerce_bool."""

    @pytest.mark.parametrize("raw", ["true", "TRUE", "yes", "Ya", "1", 1, 1.0, True])
    def test_true(self, raw):
        assert coerce_bool(raw) is True

    @pytest.mark.parametrize("raw", ["false", "No", "tidak", "0", 0, False])
    def test_false(self, raw):
        assert coerce_bool(raw) is False

    @pytest.mark.parametrize("raw", ["maybe", 2, "nan"])
    def test_rejected(self, raw):
        with pytest.raises(ValueError):
            coerce_bool(raw)


class TestReturnRows:
    """Tests for returns and cancellations validation."""

    def _row(self, overrides: dict | None = None) -> dict:
        row = {
            F.TYPE: "return",
            F.ORIGINAL_ORDER_ID: "ORD-9",
            F.PRODUCT_NAME: "Kebaya Modern",
            F.MARKETPLACE: "Shopee",
            F.RETURN_DATE: "05/03/2024",
            F.REFUND_AMOUNT: "Rp 150,000",
        }
        row.update(overrides or {})
        return {k: v for k, v in row.items() if v is not None}

    def test_valid_row_with_defaults(self):
        """Test a return and its defaults."""
        result = validate_row(self._row(), ImportType.RETURNS, 1, now=NOW)

        values = result.values
        assert values["type"] == "return"
        assert values["refund_amount"] == 150000.0
        assert values["quantity_returned"] == 1
        assert values["product_condition"] == "used"
        assert values["resellable"] is False
        assert natural_key(values, ImportType.RETURNS) == (
            "return",
            "Shopee",
            "ORD-9",
            "Kebaya Modern",
            datetime(2024, 3, 5),
        )

    def test_cancellation_alias(self):
        """Test Indonesian spellings of a cancellation."""
        result = validate_row(self._row({F.TYPE: "Batal"}), ImportType.RETURNS, 1, now=NOW)

        assert result.values["type"] == "cancel"

    def test_unknown_type(self):
        """Test that only returns and cancellations are accepted."""
        result = validate_row(self._row({F.TYPE: "exchange"}), ImportType.RETURNS, 3, now=NOW)

        assert result == [RowError(3, "type", "exchange", "type must be return or cancel")]

    def test_resellable_flag(self):
        """Test yes/no cells."""
        assert validate_row(self._row({F.RESELLABLE: "ya"}), ImportType.RETURNS, 1, now=NOW).values["resellable"]

        result = validate_row(self._row({F.RESELLABLE: "maybe"}), ImportType.RETURNS, 2, now=NOW)
        assert result[0].field == "resellable"

    def test_marketplace_required(self):
        """Test that a return must name its marketplace."""
        result = validate_row(self._row({F.MARKETPLACE: None}), ImportType.RETURNS, 4, now=NOW)

        assert [e.field for e in result] == ["marketplace"]

    def test_undated_return(self):
        """Test that a missing return date stays empty."""
        result = validate_row(self._row({F.RETURN_DATE: None}), ImportType.RETURNS, 1, now=NOW)

        assert result.values["return_date"] is None


class TestReimbursementRows:
    """Tests for marketplace reimbursement validation."""

    def test_defaults_and_codes(self):
        """Test that types and statuses become codes."""
        result = validate_row(
            {F.MARKETPLACE: "TikTok Shop", F.REIMBURSEMENT_TYPE: "Fake Checkout", F.CLAIM_AMOUNT: "75,000"},
            ImportType.REIMBURSEMENTS,
            1,
            now=NOW,
        )

        values = result.values
        assert values["reimbursement_type"] == "fake_checkout"
        assert values["status"] == "pending"
        assert values["claim_amount"] == 75000.0
        assert values["claim_id"] == ""
        assert values["incident_date"] is None

    def test_default_type(self):
        """Test that a claim without a type is a lost package."""
        result = validate_row({F.MARKETPLACE: "Shopee"}, ImportType.REIMBURSEMENTS, 1, now=NOW)

        assert result.values["reimbursement_type"] == "lost_package"

    def test_negative_claim(self):
        """Test that claim amounts cannot be negative."""
        result = validate_row(
            {F.MARKETPLACE: "Shopee", F.CLAIM_AMOUNT: "-10"}, ImportType.REIMBURSEMENTS, 6, now=NOW
        )

        assert result[0].field == "claim_amount"


class TestCommissionAdjustmentRows:
    """Tests for commission adjustment validation."""

    def test_final_commission_derived(self):
        """Test that the final commission is the original plus the adjustment."""
        result = validate_row(
            {F.MARKETPLACE: "Shopee", F.ORIGINAL_COMMISSION: "15,000", F.ADJUSTMENT_AMOUNT: "-2,500"},
            ImportType.COMMISSION_ADJUSTMENTS,
            1,
            now=NOW,
        )

        values = result.values
        assert values["adjustment_amount"] == -2500.0
        assert values["final_commission"] == 12500.0
        assert values["adjustment_type"] == "return_commission_loss"
        assert values["dynamic_rate_applied"] is False

    def test_final_commission_supplied(self):
        """Test that a stated final commission is kept."""
        result = validate_row(
            {
                F.MARKETPLACE: "Shopee",
                F.ORIGINAL_COMMISSION: "15,000",
                F.ADJUSTMENT_AMOUNT: "-2,500",
                F.FINAL_COMMISSION: "13,000",
                F.DYNAMIC_RATE_APPLIED: "true",
            },
            ImportType.COMMISSION_ADJUSTMENTS,
            1,
            now=NOW,
        )

        assert result.values["final_commission"] == 13000.0
        assert result.values["dynamic_rate_applied"] is True


class TestAffiliateSampleRows:
    """Tests for affiliate sample validation."""

    def test_total_cost_derived(self):
        """Test that the total cost is the unit cost times the quantity."""
        result = validate_row(
            {F.AFFILIATE_NAME: "@hijabstyle", F.PRODUCT_NAME: "Gamis", F.PRODUCT_COST: "120,000", F.QUANTITY_GIVEN: "2"},
            ImportType.AFFILIATE_SAMPLES,
            1,
            now=NOW,
        )

        values = result.values
        assert values["total_cost"] == 240000.0
        assert values["status"] == "sent"
        assert values["content_delivered"] is False

    def test_zero_quantity(self):
        """Test that a sample must contain at least one item."""
        result = validate_row(
            {F.AFFILIATE_NAME: "@hijabstyle", F.PRODUCT_NAME: "Gamis", F.QUANTITY_GIVEN: "0"},
            ImportType.AFFILIATE_SAMPLES,
            2,
            now=NOW,
        )

        assert result == [RowError(2, "quantity_given", 0, "quantity_given must be at least 1")]

    def test_missing_affiliate(self):
        """Test that the affiliate name is required."""
        result = validate_row({F.PRODUCT_NAME: "Gamis"}, ImportType.AFFILIATE_SAMPLES, 1, now=NOW)

        assert [e.field for e in result] == ["affiliate_name"]
