"""Row validation: resolved spreadsheet rows to storable record values."""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from busana.models import (
    AdvertisingRecord,
    AffiliateSample,
    CommissionAdjustment,
    Product,
    ReimbursementRecord,
    ReturnRecord,
    RowErrorDetail,
    Sale,
    SettlementRecord,
    StockMovement,
)
from busana.models.import_batch import ImportType

from .constants import (
    BOOLEAN_FIELDS,
    DATE_FIELDS,
    DECIMAL_FIELDS,
    DEFAULT_BRAND,
    DEFAULT_CATEGORY,
    DEFAULT_CURRENCY,
    DEFAULT_MARKETPLACE,
    DEFAULT_MIN_STOCK,
    FALSE_MARKERS,
    INTEGER_FIELDS,
    MOVEMENT_TYPE_ALIASES,
    REQUIRED_FIELDS,
    RETURN_TYPE_ALIASES,
    SIGNED_FIELDS,
    TRUE_MARKERS,
    CanonicalField,
)
from .dates import date_formats_for, normalize_date

F = CanonicalField

RECORD_MODELS = {
    ImportType.SALES: Sale,
    ImportType.PRODUCTS: Product,
    ImportType.STOCK: StockMovement,
    ImportType.ADVERTISING: AdvertisingRecord,
    ImportType.ADVERTISING_SETTLEMENT: SettlementRecord,
    ImportType.RETURNS: ReturnRecord,
    ImportType.REIMBURSEMENTS: ReimbursementRecord,
    ImportType.COMMISSION_ADJUSTMENTS: CommissionAdjustment,
    ImportType.AFFILIATE_SAMPLES: AffiliateSample,
}

_CURRENCY_MARKERS = re.compile(r"(?i)rp\.?|idr|\$|%")
_GROUPED_COMMAS = re.compile(r"^-?\d{1,3}(,\d{3})+$")
_GROUPED_DOTS = re.compile(r"^-?\d{1,3}(\.\d{3}){2,}$")


@dataclass(frozen=True)
class RowError:
    """Why one data row was rejected. ``row`` is 1-based, header excluded."""

    row: int
    field: str
    value: Any
    message: str

    def to_detail(self) -> RowErrorDetail:
        value = self.value
        if isinstance(value, datetime):
            value = value.isoformat()
        return RowErrorDetail(row=self.row, field=self.field, value=value, message=self.message)


@dataclass(frozen=True)
class ValidRow:
    """A row that passed validation, ready to be upserted."""

    row: int
    values: dict[str, Any]


def coerce_number(value: Any) -> float:
    """Parse a numeric cell, tolerating currency markers and digit grouping.

    ``"Rp 555,000"`` and ``"555,000"`` give 555000, ``"1.234.567"`` gives
    1234567 and ``"1.234,50"`` gives 1234.5. When both separators appear
    the last one is the decimal point.

    Raises:
        ValueError: If the value is not a number.
    """
    if isinstance(value, bool):
        raise ValueError("is not a number")
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _CURRENCY_MARKERS.sub("", str(value))
        text = "".join(text.split())
        if "," in text and "." in text:
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif "," in text:
            text = text.replace(",", "") if _GROUPED_COMMAS.match(text) else text.replace(",", ".")
        elif _GROUPED_DOTS.match(text):
            text = text.replace(".", "")
        try:
            number = float(text)
        except ValueError:
            raise ValueError("is not a number") from None

    if math.isnan(number) or math.isinf(number):
        raise ValueError("is not a number")
    return number


def _coerce_numeric_field(field: CanonicalField, value: Any) -> int | float:
    number = coerce_number(value)
    if number < 0 and field not in SIGNED_FIELDS:
        raise ValueError("must not be negative")
    if field in INTEGER_FIELDS:
        if not number.is_integer():
            raise ValueError("must be a whole number")
        return int(number)
    return number


def coerce_bool(value: Any) -> bool:
    """Parse a yes/no cell: true/false, yes/no, ya/tidak or 1/0.

    Raises:
        ValueError: If the value is none of those.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in TRUE_MARKERS:
        return True
    if text in FALSE_MARKERS:
        return False
    raise ValueError("must be yes or no")


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        # Numeric IDs come back from spreadsheets as floats
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value).strip()


def validate_row(
    resolved: dict[CanonicalField, Any],
    import_type: ImportType,
    row_number: int,
    now: datetime | None = None,
) -> ValidRow | list[RowError]:
    """Validate one resolved row of an import.

    Each field is coerced to its type, required fields are checked and the
    import type's business rules and defaults are applied. Validation looks
    at this row only.

    Args:
        resolved: Canonical field -> raw cell value, from ``resolve_row``.
        import_type: Type of the import the row belongs to.
        row_number: 1-based position of the row among the data rows.
        now: Timestamp used for defaulted dates. Defaults to the current time.

    Returns:
        A ValidRow, or every RowError found in the row.
    """
    errors: list[RowError] = []
    clean: dict[CanonicalField, Any] = {}
    formats = date_formats_for(import_type)

    for field in REQUIRED_FIELDS[import_type]:
        if field not in resolved:
            errors.append(RowError(row_number, field.value, None, f"{field.value} is required"))

    for field, raw in resolved.items():
        if field in INTEGER_FIELDS or field in DECIMAL_FIELDS:
            try:
                clean[field] = _coerce_numeric_field(field, raw)
            except ValueError as e:
                errors.append(RowError(row_number, field.value, raw, f"{field.value} {e}"))
        elif field in BOOLEAN_FIELDS:
            try:
                clean[field] = coerce_bool(raw)
            except ValueError as e:
                errors.append(RowError(row_number, field.value, raw, f"{field.value} {e}"))
        elif field in DATE_FIELDS:
            parsed = normalize_date(raw, formats)
            if parsed is None:
                errors.append(RowError(row_number, field.value, raw, f"{field.value} is not a recognized date"))
            else:
                clean[field] = parsed.value
        else:
            clean[field] = _text(raw)

    if errors:
        return errors

    builder = _BUILDERS[import_type]
    values = builder(clean, row_number, errors, now or datetime.now(timezone.utc).replace(tzinfo=None))
    if errors:
        return errors
    return ValidRow(row=row_number, values=values)


def _build_sale(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    quantity = clean.get(F.QUANTITY, 1)
    if quantity < 1:
        errors.append(RowError(row, F.QUANTITY.value, quantity, "quantity must be at least 1"))

    regency_city = clean.get(F.REGENCY_CITY)
    if regency_city is None:
        regency, city = clean.get(F.REGENCY), clean.get(F.CITY)
        if regency and city:
            regency_city = regency if regency == city else f"{regency} & {city}"
        else:
            regency_city = regency or city

    return {
        "order_id": clean[F.ORDER_ID],
        "seller_sku": clean[F.SELLER_SKU],
        "product_name": clean[F.PRODUCT_NAME],
        "color": clean.get(F.COLOR, ""),
        "size": clean.get(F.SIZE, ""),
        "quantity": quantity,
        "order_amount": clean.get(F.ORDER_AMOUNT),
        "created_time": clean[F.CREATED_TIME],
        "delivered_time": clean.get(F.DELIVERED_TIME),
        "settlement_amount": clean.get(F.SETTLEMENT_AMOUNT),
        "total_revenue": clean.get(F.TOTAL_REVENUE),
        "hpp": clean.get(F.HPP),
        "total": clean.get(F.TOTAL),
        "marketplace": clean.get(F.MARKETPLACE, DEFAULT_MARKETPLACE),
        "customer": clean.get(F.CUSTOMER, "-"),
        "province": clean.get(F.PROVINCE),
        "regency_city": regency_city,
    }


def _build_product(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    return {
        "product_code": clean[F.PRODUCT_CODE],
        "product_name": clean[F.PRODUCT_NAME],
        "category": clean.get(F.CATEGORY, DEFAULT_CATEGORY),
        "brand": clean.get(F.BRAND, DEFAULT_BRAND),
        "size": clean.get(F.SIZE),
        "color": clean.get(F.COLOR),
        "price": clean.get(F.PRICE),
        "cost": clean.get(F.COST),
        "stock_quantity": clean.get(F.STOCK_QUANTITY, 0),
        "min_stock": clean.get(F.MIN_STOCK, DEFAULT_MIN_STOCK),
        "description": clean.get(F.DESCRIPTION),
    }


def _build_stock_movement(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    raw_type = clean.get(F.MOVEMENT_TYPE, "in")
    movement_type = MOVEMENT_TYPE_ALIASES.get(raw_type.lower())
    if movement_type is None:
        errors.append(
            RowError(row, F.MOVEMENT_TYPE.value, raw_type, "movement_type must be one of in, out, adjustment")
        )

    quantity = clean[F.QUANTITY]
    if movement_type in ("in", "out") and quantity == 0:
        errors.append(RowError(row, F.QUANTITY.value, quantity, "quantity must be at least 1"))

    return {
        "product_code": clean[F.PRODUCT_CODE],
        "movement_type": movement_type,
        "quantity": quantity,
        "movement_date": clean.get(F.MOVEMENT_DATE),
        "reference_number": clean.get(F.REFERENCE_NUMBER, ""),
        "notes": clean.get(F.NOTES),
    }


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float | None:
    return numerator / denominator * scale if denominator > 0 else None


def _build_advertising(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    date_start, date_end = clean[F.DATE_START], clean[F.DATE_END]
    if date_end < date_start:
        errors.append(RowError(row, F.DATE_END.value, date_end, "date_end is before date_start"))

    cost = clean.get(F.COST, 0.0)
    revenue = clean.get(F.REVENUE, 0.0)
    conversions = clean.get(F.CONVERSIONS, 0)
    impressions = clean.get(F.IMPRESSIONS, 0)
    clicks = clean.get(F.CLICKS, 0)

    # Supplied metrics win; missing or zero ones are derived
    roi = clean.get(F.ROI) or (_ratio(revenue - cost, cost, 100) if revenue > 0 else None)

    return {
        "campaign_name": clean[F.CAMPAIGN_NAME],
        "account_name": clean.get(F.ACCOUNT_NAME, DEFAULT_BRAND),
        "date_start": date_start,
        "date_end": date_end,
        "ad_creative_type": clean.get(F.AD_CREATIVE_TYPE),
        "ad_creative": clean.get(F.AD_CREATIVE),
        "cost": cost,
        "conversions": conversions,
        "cpa": clean.get(F.CPA) or _ratio(cost, conversions),
        "revenue": revenue,
        "roi": roi,
        "impressions": impressions,
        "clicks": clicks,
        "ctr": clean.get(F.CTR) or _ratio(clicks, impressions, 100),
        "conversion_rate": clean.get(F.CONVERSION_RATE) or _ratio(conversions, clicks, 100),
        "marketplace": clean.get(F.MARKETPLACE),
        "product_name": clean.get(F.PRODUCT_NAME),
    }


def _build_settlement(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    return {
        "order_id": clean[F.ORDER_ID],
        "type": clean.get(F.TYPE),
        "order_created_time": clean[F.ORDER_CREATED_TIME],
        "order_settled_time": clean[F.ORDER_SETTLED_TIME],
        "settlement_amount": clean.get(F.SETTLEMENT_AMOUNT, 0.0),
        "account_name": clean.get(F.ACCOUNT_NAME, DEFAULT_BRAND),
        "marketplace": clean.get(F.MARKETPLACE),
        "currency": clean.get(F.CURRENCY, DEFAULT_CURRENCY).upper(),
    }


def _code(value: str) -> str:
    """``"Lost Package"`` -> ``"lost_package"``."""
    return "_".join(value.lower().split())


def _build_return(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    raw_type = clean.get(F.TYPE, "return")
    return_type = RETURN_TYPE_ALIASES.get(raw_type.lower())
    if return_type is None:
        errors.append(RowError(row, F.TYPE.value, raw_type, "type must be return or cancel"))

    quantity = clean.get(F.QUANTITY_RETURNED, 1)
    if quantity < 1:
        errors.append(RowError(row, F.QUANTITY_RETURNED.value, quantity, "quantity_returned must be at least 1"))

    return {
        "type": return_type,
        "original_order_id": clean.get(F.ORIGINAL_ORDER_ID, ""),
        "product_name": clean[F.PRODUCT_NAME],
        "marketplace": clean[F.MARKETPLACE],
        "return_date": clean.get(F.RETURN_DATE),
        "reason": clean.get(F.REASON, ""),
        "returned_amount": clean.get(F.RETURNED_AMOUNT, 0.0),
        "refund_amount": clean.get(F.REFUND_AMOUNT, 0.0),
        "restocking_fee": clean.get(F.RESTOCKING_FEE, 0.0),
        "shipping_cost_loss": clean.get(F.SHIPPING_COST_LOSS, 0.0),
        "quantity_returned": quantity,
        "original_price": clean.get(F.ORIGINAL_PRICE, 0.0),
        "product_condition": clean.get(F.PRODUCT_CONDITION, "used").lower(),
        "resellable": clean.get(F.RESELLABLE, False),
    }


def _build_reimbursement(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    return {
        "claim_id": clean.get(F.CLAIM_ID, ""),
        "reimbursement_type": _code(clean.get(F.REIMBURSEMENT_TYPE, "lost_package")),
        "marketplace": clean[F.MARKETPLACE],
        "affected_order_id": clean.get(F.AFFECTED_ORDER_ID, ""),
        "product_name": clean.get(F.PRODUCT_NAME),
        "claim_amount": clean.get(F.CLAIM_AMOUNT, 0.0),
        "approved_amount": clean.get(F.APPROVED_AMOUNT, 0.0),
        "received_amount": clean.get(F.RECEIVED_AMOUNT, 0.0),
        "processing_fee": clean.get(F.PROCESSING_FEE, 0.0),
        "incident_date": clean.get(F.INCIDENT_DATE),
        "claim_date": clean.get(F.CLAIM_DATE),
        "approval_date": clean.get(F.APPROVAL_DATE),
        "received_date": clean.get(F.RECEIVED_DATE),
        "status": _code(clean.get(F.STATUS, "pending")),
        "notes": clean.get(F.NOTES),
        "evidence_provided": clean.get(F.EVIDENCE_PROVIDED),
    }


def _build_commission_adjustment(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    original = clean.get(F.ORIGINAL_COMMISSION, 0.0)
    adjustment = clean.get(F.ADJUSTMENT_AMOUNT, 0.0)
    quantity = clean.get(F.QUANTITY, 1)
    if quantity < 1:
        errors.append(RowError(row, F.QUANTITY.value, quantity, "quantity must be at least 1"))

    return {
        "original_order_id": clean.get(F.ORIGINAL_ORDER_ID, ""),
        "adjustment_type": _code(clean.get(F.ADJUSTMENT_TYPE, "return_commission_loss")),
        "reason": clean.get(F.REASON),
        "marketplace": clean[F.MARKETPLACE],
        "original_commission": original,
        "adjustment_amount": adjustment,
        "final_commission": clean.get(F.FINAL_COMMISSION, original + adjustment),
        "commission_rate": clean.get(F.COMMISSION_RATE),
        "dynamic_rate_applied": clean.get(F.DYNAMIC_RATE_APPLIED, False),
        "transaction_date": clean.get(F.TRANSACTION_DATE),
        "adjustment_date": clean.get(F.ADJUSTMENT_DATE),
        "product_name": clean.get(F.PRODUCT_NAME, ""),
        "quantity": quantity,
        "product_price": clean.get(F.PRODUCT_PRICE, 0.0),
    }


def _build_affiliate_sample(clean: dict, row: int, errors: list[RowError], now: datetime) -> dict[str, Any]:
    quantity = clean.get(F.QUANTITY_GIVEN, 1)
    if quantity < 1:
        errors.append(RowError(row, F.QUANTITY_GIVEN.value, quantity, "quantity_given must be at least 1"))
    product_cost = clean.get(F.PRODUCT_COST, 0.0)

    return {
        "affiliate_name": clean[F.AFFILIATE_NAME],
        "affiliate_platform": clean.get(F.AFFILIATE_PLATFORM),
        "affiliate_contact": clean.get(F.AFFILIATE_CONTACT),
        "product_name": clean[F.PRODUCT_NAME],
        "product_sku": clean.get(F.PRODUCT_SKU, ""),
        "quantity_given": quantity,
        "product_cost": product_cost,
        "total_cost": clean.get(F.TOTAL_COST, product_cost * quantity),
        "shipping_cost": clean.get(F.SHIPPING_COST, 0.0),
        "packaging_cost": clean.get(F.PACKAGING_COST, 0.0),
        "campaign_name": clean.get(F.CAMPAIGN_NAME),
        "expected_reach": clean.get(F.EXPECTED_REACH),
        "content_type": clean.get(F.CONTENT_TYPE),
        "given_date": clean.get(F.GIVEN_DATE),
        "expected_content_date": clean.get(F.EXPECTED_CONTENT_DATE),
        "actual_content_date": clean.get(F.ACTUAL_CONTENT_DATE),
        "content_delivered": clean.get(F.CONTENT_DELIVERED, False),
        "performance_notes": clean.get(F.PERFORMANCE_NOTES),
        "roi_estimate": clean.get(F.ROI_ESTIMATE),
        "status": _code(clean.get(F.STATUS, "sent")),
    }


_BUILDERS: dict[ImportType, Callable[[dict, int, list[RowError], datetime], dict[str, Any]]] = {
    ImportType.SALES: _build_sale,
    ImportType.PRODUCTS: _build_product,
    ImportType.STOCK: _build_stock_movement,
    ImportType.ADVERTISING: _build_advertising,
    ImportType.ADVERTISING_SETTLEMENT: _build_settlement,
    ImportType.RETURNS: _build_return,
    ImportType.REIMBURSEMENTS: _build_reimbursement,
    ImportType.COMMISSION_ADJUSTMENTS: _build_commission_adjustment,
    ImportType.AFFILIATE_SAMPLES: _build_affiliate_sample,
}


def natural_key(values: dict[str, Any], import_type: ImportType) -> tuple:
    """The values that identify a record of this import type."""
    return tuple(values[name] for name in RECORD_MODELS[import_type].natural_key)
