"""Constants for the bulk import service.

Alias tables list, for every field of an import type, the header spellings
seen in marketplace exports, our own templates and Indonesian-language
sheets. Order matters: fields are resolved top to bottom and the aliases
of a field are tried left to right.
"""

from enum import Enum

from busana.models.import_batch import ImportType

ALLOWED_EXTENSIONS = {"csv", "xlsx", "xls"}

DEFAULT_BRAND = "D'Busana"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_MARKETPLACE = "TikTok Shop"
DEFAULT_CURRENCY = "IDR"
DEFAULT_MIN_STOCK = 5

# Values that mean "no value" in exported sheets
BLANK_MARKERS = {"", "-", "n/a", "na", "null", "none"}


class CanonicalField(str, Enum):
    """Internal field names that spreadsheet headers resolve to."""

    ORDER_ID = "order_id"
    SELLER_SKU = "seller_sku"
    PRODUCT_CODE = "product_code"
    PRODUCT_NAME = "product_name"
    COLOR = "color"
    SIZE = "size"
    QUANTITY = "quantity"
    ORDER_AMOUNT = "order_amount"
    CREATED_TIME = "created_time"
    DELIVERED_TIME = "delivered_time"
    SETTLEMENT_AMOUNT = "settlement_amount"
    TOTAL_REVENUE = "total_revenue"
    HPP = "hpp"
    TOTAL = "total"
    MARKETPLACE = "marketplace"
    CUSTOMER = "customer"
    PROVINCE = "province"
    REGENCY_CITY = "regency_city"
    REGENCY = "regency"
    CITY = "city"
    CATEGORY = "category"
    BRAND = "brand"
    PRICE = "price"
    COST = "cost"
    STOCK_QUANTITY = "stock_quantity"
    MIN_STOCK = "min_stock"
    DESCRIPTION = "description"
    MOVEMENT_TYPE = "movement_type"
    MOVEMENT_DATE = "movement_date"
    REFERENCE_NUMBER = "reference_number"
    NOTES = "notes"
    CAMPAIGN_NAME = "campaign_name"
    ACCOUNT_NAME = "account_name"
    DATE_START = "date_start"
    DATE_END = "date_end"
    AD_CREATIVE_TYPE = "ad_creative_type"
    AD_CREATIVE = "ad_creative"
    CONVERSIONS = "conversions"
    CPA = "cpa"
    REVENUE = "revenue"
    ROI = "roi"
    IMPRESSIONS = "impressions"
    CLICKS = "clicks"
    CTR = "ctr"
    CONVERSION_RATE = "conversion_rate"
    TYPE = "type"
    ORDER_CREATED_TIME = "order_created_time"
    ORDER_SETTLED_TIME = "order_settled_time"
    CURRENCY = "currency"
    ORIGINAL_ORDER_ID = "original_order_id"
    REASON = "reason"
    RETURN_DATE = "return_date"
    RETURNED_AMOUNT = "returned_amount"
    REFUND_AMOUNT = "refund_amount"
    RESTOCKING_FEE = "restocking_fee"
    SHIPPING_COST_LOSS = "shipping_cost_loss"
    QUANTITY_RETURNED = "quantity_returned"
    ORIGINAL_PRICE = "original_price"
    PRODUCT_CONDITION = "product_condition"
    RESELLABLE = "resellable"
    CLAIM_ID = "claim_id"
    REIMBURSEMENT_TYPE = "reimbursement_type"
    CLAIM_AMOUNT = "claim_amount"
    APPROVED_AMOUNT = "approved_amount"
    RECEIVED_AMOUNT = "received_amount"
    PROCESSING_FEE = "processing_fee"
    INCIDENT_DATE = "incident_date"
    CLAIM_DATE = "claim_date"
    APPROVAL_DATE = "approval_date"
    RECEIVED_DATE = "received_date"
    AFFECTED_ORDER_ID = "affected_order_id"
    STATUS = "status"
    EVIDENCE_PROVIDED = "evidence_provided"
    ADJUSTMENT_TYPE = "adjustment_type"
    ORIGINAL_COMMISSION = "original_commission"
    ADJUSTMENT_AMOUNT = "adjustment_amount"
    FINAL_COMMISSION = "final_commission"
    COMMISSION_RATE = "commission_rate"
    DYNAMIC_RATE_APPLIED = "dynamic_rate_applied"
    TRANSACTION_DATE = "transaction_date"
    ADJUSTMENT_DATE = "adjustment_date"
    PRODUCT_PRICE = "product_price"
    AFFILIATE_NAME = "affiliate_name"
    AFFILIATE_PLATFORM = "affiliate_platform"
    AFFILIATE_CONTACT = "affiliate_contact"
    PRODUCT_SKU = "product_sku"
    QUANTITY_GIVEN = "quantity_given"
    PRODUCT_COST = "product_cost"
    TOTAL_COST = "total_cost"
    SHIPPING_COST = "shipping_cost"
    PACKAGING_COST = "packaging_cost"
    EXPECTED_REACH = "expected_reach"
    CONTENT_TYPE = "content_type"
    GIVEN_DATE = "given_date"
    EXPECTED_CONTENT_DATE = "expected_content_date"
    ACTUAL_CONTENT_DATE = "actual_content_date"
    CONTENT_DELIVERED = "content_delivered"
    PERFORMANCE_NOTES = "performance_notes"
    ROI_ESTIMATE = "roi_estimate"


F = CanonicalField

SALES_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.ORDER_ID: ("Order ID", "order_id", "orderId", "Order Id", "No. Pesanan", "nomor_pesanan"),
    F.SELLER_SKU: ("Seller SKU", "seller_sku", "sellerSku", "SKU", "sku_penjual"),
    F.PRODUCT_NAME: ("Product Name", "product_name", "productName", "Produk", "nama_produk"),
    F.COLOR: ("Color", "color", "Colour", "Variation", "warna"),
    F.SIZE: ("Size", "size", "ukuran"),
    F.QUANTITY: ("Quantity", "quantity", "Qty", "jumlah", "kuantitas"),
    F.ORDER_AMOUNT: ("Order Amount", "order_amount", "orderAmount", "SKU Subtotal After Discount", "total_pesanan"),
    F.CREATED_TIME: ("Created Time", "created_time", "createdTime", "Order Date", "order_date", "tanggal_pesanan", "tanggal"),
    F.DELIVERED_TIME: ("Delivered Time", "delivered_time", "deliveredTime", "tanggal_terkirim"),
    F.SETTLEMENT_AMOUNT: ("Settlement Amount", "settlement_amount", "settlementAmount"),
    F.TOTAL_REVENUE: ("Total Revenue", "total_revenue", "totalRevenue", "pendapatan"),
    F.HPP: ("HPP", "hpp", "COGS", "harga_pokok"),
    F.TOTAL: ("Total", "total"),
    F.MARKETPLACE: ("Marketplace", "marketplace", "Platform", "platform"),
    F.CUSTOMER: ("Customer", "customer", "Buyer Username", "Recipient", "pelanggan", "pembeli"),
    F.PROVINCE: ("Province", "province", "provinsi"),
    F.REGENCY_CITY: ("Regency & City", "regency_city", "Regency/City", "kabupaten_kota"),
    F.REGENCY: ("Regency", "regency", "kabupaten"),
    F.CITY: ("City", "city", "kota"),
}

PRODUCT_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.PRODUCT_CODE: ("Product Code", "product_code", "productCode", "Kode Produk", "kode_produk", "SKU"),
    F.PRODUCT_NAME: ("Product Name", "product_name", "productName", "Produk", "nama_produk"),
    F.CATEGORY: ("Category", "category", "kategori"),
    F.BRAND: ("Brand", "brand", "merek"),
    F.SIZE: ("Size", "size", "ukuran"),
    F.COLOR: ("Color", "color", "Colour", "warna"),
    F.PRICE: ("Price", "price", "Selling Price", "harga", "harga_jual"),
    F.COST: ("Cost", "cost", "Cost Price", "hpp", "harga_pokok"),
    F.STOCK_QUANTITY: ("Stock Quantity", "stock_quantity", "stockQuantity", "Stock", "stok"),
    F.MIN_STOCK: ("Min Stock", "min_stock", "minStock", "Minimum Stock", "stok_minimum"),
    F.DESCRIPTION: ("Description", "description", "deskripsi", "keterangan"),
}

STOCK_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.PRODUCT_CODE: ("Product Code", "product_code", "productCode", "Kode Produk", "kode_produk", "SKU"),
    F.MOVEMENT_TYPE: ("Movement Type", "movement_type", "movementType", "Type", "jenis_pergerakan", "jenis"),
    F.QUANTITY: ("Quantity", "quantity", "Qty", "jumlah"),
    F.MOVEMENT_DATE: ("Movement Date", "movement_date", "movementDate", "Date", "tanggal"),
    F.REFERENCE_NUMBER: ("Reference Number", "reference_number", "referenceNumber", "Reference", "no_referensi"),
    F.NOTES: ("Notes", "notes", "catatan", "keterangan"),
}

ADVERTISING_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.CAMPAIGN_NAME: ("Campaign Name", "campaign_name", "campaignName", "Nama Campaign", "nama_campaign"),
    F.ACCOUNT_NAME: ("Account Name", "account_name", "accountName", "Nama Akun", "nama_akun"),
    F.DATE_START: ("Date Start", "date_start", "dateStart", "Start Date", "tanggal_mulai", "date_range_start"),
    F.DATE_END: ("Date End", "date_end", "dateEnd", "End Date", "tanggal_selesai", "date_range_end"),
    F.AD_CREATIVE_TYPE: ("Ad Creative Type", "ad_creative_type", "Creative Type", "jenis_creative"),
    F.AD_CREATIVE: ("Ad Creative", "ad_creative", "Creative", "creative"),
    F.COST: ("Cost", "cost", "Spend", "biaya"),
    F.CONVERSIONS: ("Conversions", "conversions", "konversi"),
    F.CPA: ("CPA", "cpa", "Cost per Conversion"),
    F.REVENUE: ("Revenue", "revenue", "Gross Revenue", "pendapatan"),
    F.ROI: ("ROI", "roi", "ROAS"),
    F.IMPRESSIONS: ("Impressions", "impressions", "tayangan"),
    F.CLICKS: ("Clicks", "clicks", "klik"),
    F.CTR: ("CTR", "ctr"),
    F.CONVERSION_RATE: ("Conversion Rate", "conversion_rate", "tingkat_konversi"),
    F.MARKETPLACE: ("Marketplace", "marketplace", "Platform", "platform"),
    F.PRODUCT_NAME: ("Product Name", "product_name", "Produk", "nama_produk"),
}

SETTLEMENT_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.ORDER_ID: ("Order ID", "order_id", "orderId", "Order Id", "No. Pesanan"),
    F.TYPE: ("Type", "type", "Settlement Type", "settlement_type", "jenis"),
    F.ORDER_CREATED_TIME: ("Order Created Time", "order_created_time", "orderCreatedTime", "Created Time", "Order Date"),
    F.ORDER_SETTLED_TIME: (
        "Order Settled Time",
        "order_settled_time",
        "orderSettledTime",
        "Settled Time",
        "Settlement Date",
        "settlement_date",
    ),
    F.SETTLEMENT_AMOUNT: (
        "Settlement Amount",
        "settlement_amount",
        "Total settlement amount",
        "total_settlement_amount",
        "Amount",
    ),
    F.ACCOUNT_NAME: ("Account Name", "account_name", "accountName", "Nama Akun", "nama_akun"),
    F.MARKETPLACE: ("Marketplace", "marketplace", "Platform", "platform"),
    F.CURRENCY: ("Currency", "currency", "mata_uang"),
}

# Templates for the transaction types below use snake_case headers; the
# title-case spellings match them after normalization.
RETURNS_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.TYPE: ("type", "Return Type", "jenis"),
    F.ORIGINAL_ORDER_ID: ("original_order_id", "Order ID", "order_id", "No. Pesanan"),
    F.PRODUCT_NAME: ("product_name", "Produk", "nama_produk"),
    F.MARKETPLACE: ("marketplace", "Platform"),
    F.RETURN_DATE: ("return_date", "Date", "tanggal_retur", "tanggal"),
    F.REASON: ("reason", "alasan"),
    F.RETURNED_AMOUNT: ("returned_amount", "nilai_retur"),
    F.REFUND_AMOUNT: ("refund_amount", "Refund", "nilai_refund"),
    F.RESTOCKING_FEE: ("restocking_fee", "biaya_restock"),
    F.SHIPPING_COST_LOSS: ("shipping_cost_loss", "kerugian_ongkir"),
    F.QUANTITY_RETURNED: ("quantity_returned", "Quantity", "Qty", "jumlah"),
    F.ORIGINAL_PRICE: ("original_price", "Price", "harga"),
    F.PRODUCT_CONDITION: ("product_condition", "Condition", "kondisi"),
    F.RESELLABLE: ("resellable", "dapat_dijual"),
}

REIMBURSEMENT_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.CLAIM_ID: ("claim_id", "Claim Number", "no_klaim"),
    F.REIMBURSEMENT_TYPE: ("reimbursement_type", "Type", "jenis_klaim"),
    F.MARKETPLACE: ("marketplace", "Platform"),
    F.AFFECTED_ORDER_ID: ("affected_order_id", "Order ID", "order_id", "No. Pesanan"),
    F.PRODUCT_NAME: ("product_name", "Produk", "nama_produk"),
    F.CLAIM_AMOUNT: ("claim_amount", "nilai_klaim"),
    F.APPROVED_AMOUNT: ("approved_amount", "nilai_disetujui"),
    F.RECEIVED_AMOUNT: ("received_amount", "nilai_diterima"),
    F.PROCESSING_FEE: ("processing_fee", "biaya_proses"),
    F.INCIDENT_DATE: ("incident_date", "tanggal_kejadian"),
    F.CLAIM_DATE: ("claim_date", "tanggal_klaim"),
    F.APPROVAL_DATE: ("approval_date", "tanggal_disetujui"),
    F.RECEIVED_DATE: ("received_date", "tanggal_diterima"),
    F.STATUS: ("status",),
    F.NOTES: ("notes", "catatan", "keterangan"),
    F.EVIDENCE_PROVIDED: ("evidence_provided", "Evidence", "bukti"),
}

COMMISSION_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.ORIGINAL_ORDER_ID: ("original_order_id", "Order ID", "order_id", "No. Pesanan"),
    F.ADJUSTMENT_TYPE: ("adjustment_type", "Type", "jenis_penyesuaian"),
    F.MARKETPLACE: ("marketplace", "Platform"),
    F.REASON: ("reason", "alasan"),
    F.ORIGINAL_COMMISSION: ("original_commission", "komisi_awal"),
    F.ADJUSTMENT_AMOUNT: ("adjustment_amount", "nilai_penyesuaian"),
    F.FINAL_COMMISSION: ("final_commission", "komisi_akhir"),
    F.COMMISSION_RATE: ("commission_rate", "tarif_komisi"),
    F.DYNAMIC_RATE_APPLIED: ("dynamic_rate_applied",),
    F.TRANSACTION_DATE: ("transaction_date", "tanggal_transaksi"),
    F.ADJUSTMENT_DATE: ("adjustment_date", "Date", "tanggal_penyesuaian", "tanggal"),
    F.PRODUCT_NAME: ("product_name", "Produk", "nama_produk"),
    F.QUANTITY: ("quantity", "Qty", "jumlah"),
    F.PRODUCT_PRICE: ("product_price", "Price", "harga"),
}

AFFILIATE_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    F.AFFILIATE_NAME: ("affiliate_name", "Affiliate", "nama_affiliate"),
    F.AFFILIATE_PLATFORM: ("affiliate_platform", "Platform"),
    F.AFFILIATE_CONTACT: ("affiliate_contact", "Contact", "kontak"),
    F.PRODUCT_NAME: ("product_name", "Produk", "nama_produk"),
    F.PRODUCT_SKU: ("product_sku", "SKU", "Seller SKU"),
    F.QUANTITY_GIVEN: ("quantity_given", "Quantity", "Qty", "jumlah"),
    F.PRODUCT_COST: ("product_cost", "hpp", "harga_pokok"),
    F.TOTAL_COST: ("total_cost", "total_biaya"),
    F.SHIPPING_COST: ("shipping_cost", "ongkir"),
    F.PACKAGING_COST: ("packaging_cost", "biaya_packing"),
    F.CAMPAIGN_NAME: ("campaign_name", "Campaign", "nama_campaign"),
    F.EXPECTED_REACH: ("expected_reach",),
    F.CONTENT_TYPE: ("content_type", "jenis_konten"),
    F.GIVEN_DATE: ("given_date", "Date", "tanggal_kirim", "tanggal"),
    F.EXPECTED_CONTENT_DATE: ("expected_content_date",),
    F.ACTUAL_CONTENT_DATE: ("actual_content_date",),
    F.CONTENT_DELIVERED: ("content_delivered", "konten_terkirim"),
    F.PERFORMANCE_NOTES: ("performance_notes", "Notes", "catatan"),
    F.ROI_ESTIMATE: ("roi_estimate", "ROI"),
    F.STATUS: ("status",),
}

HEADER_ALIASES: dict[ImportType, dict[CanonicalField, tuple[str, ...]]] = {
    ImportType.SALES: SALES_ALIASES,
    ImportType.PRODUCTS: PRODUCT_ALIASES,
    ImportType.STOCK: STOCK_ALIASES,
    ImportType.ADVERTISING: ADVERTISING_ALIASES,
    ImportType.ADVERTISING_SETTLEMENT: SETTLEMENT_ALIASES,
    ImportType.RETURNS: RETURNS_ALIASES,
    ImportType.REIMBURSEMENTS: REIMBURSEMENT_ALIASES,
    ImportType.COMMISSION_ADJUSTMENTS: COMMISSION_ALIASES,
    ImportType.AFFILIATE_SAMPLES: AFFILIATE_ALIASES,
}

REQUIRED_FIELDS: dict[ImportType, tuple[CanonicalField, ...]] = {
    ImportType.SALES: (F.ORDER_ID, F.SELLER_SKU, F.PRODUCT_NAME, F.CREATED_TIME),
    ImportType.PRODUCTS: (F.PRODUCT_CODE, F.PRODUCT_NAME),
    ImportType.STOCK: (F.PRODUCT_CODE, F.QUANTITY),
    ImportType.ADVERTISING: (F.CAMPAIGN_NAME, F.DATE_START, F.DATE_END),
    ImportType.ADVERTISING_SETTLEMENT: (F.ORDER_ID, F.ORDER_CREATED_TIME, F.ORDER_SETTLED_TIME),
    ImportType.RETURNS: (F.PRODUCT_NAME, F.MARKETPLACE),
    ImportType.REIMBURSEMENTS: (F.MARKETPLACE,),
    ImportType.COMMISSION_ADJUSTMENTS: (F.MARKETPLACE,),
    ImportType.AFFILIATE_SAMPLES: (F.AFFILIATE_NAME, F.PRODUCT_NAME),
}

INTEGER_FIELDS = {
    F.QUANTITY,
    F.STOCK_QUANTITY,
    F.MIN_STOCK,
    F.IMPRESSIONS,
    F.CLICKS,
    F.CONVERSIONS,
    F.QUANTITY_RETURNED,
    F.QUANTITY_GIVEN,
    F.EXPECTED_REACH,
}

DECIMAL_FIELDS = {
    F.ORDER_AMOUNT,
    F.SETTLEMENT_AMOUNT,
    F.TOTAL_REVENUE,
    F.HPP,
    F.TOTAL,
    F.PRICE,
    F.COST,
    F.CPA,
    F.REVENUE,
    F.ROI,
    F.CTR,
    F.CONVERSION_RATE,
    F.RETURNED_AMOUNT,
    F.REFUND_AMOUNT,
    F.RESTOCKING_FEE,
    F.SHIPPING_COST_LOSS,
    F.ORIGINAL_PRICE,
    F.CLAIM_AMOUNT,
    F.APPROVED_AMOUNT,
    F.RECEIVED_AMOUNT,
    F.PROCESSING_FEE,
    F.ORIGINAL_COMMISSION,
    F.ADJUSTMENT_AMOUNT,
    F.FINAL_COMMISSION,
    F.COMMISSION_RATE,
    F.PRODUCT_PRICE,
    F.PRODUCT_COST,
    F.TOTAL_COST,
    F.SHIPPING_COST,
    F.PACKAGING_COST,
    F.ROI_ESTIMATE,
}

# Numeric fields allowed to go below zero (refunds, losing campaigns, commission cuts)
SIGNED_FIELDS = {F.SETTLEMENT_AMOUNT, F.ROI, F.ADJUSTMENT_AMOUNT, F.ROI_ESTIMATE}

BOOLEAN_FIELDS = {F.RESELLABLE, F.DYNAMIC_RATE_APPLIED, F.CONTENT_DELIVERED}

TRUE_MARKERS = {"true", "yes", "y", "ya", "1"}
FALSE_MARKERS = {"false", "no", "n", "tidak", "0"}

DATE_FIELDS = {
    F.CREATED_TIME,
    F.DELIVERED_TIME,
    F.MOVEMENT_DATE,
    F.DATE_START,
    F.DATE_END,
    F.ORDER_CREATED_TIME,
    F.ORDER_SETTLED_TIME,
    F.RETURN_DATE,
    F.INCIDENT_DATE,
    F.CLAIM_DATE,
    F.APPROVAL_DATE,
    F.RECEIVED_DATE,
    F.TRANSACTION_DATE,
    F.ADJUSTMENT_DATE,
    F.GIVEN_DATE,
    F.EXPECTED_CONTENT_DATE,
    F.ACTUAL_CONTENT_DATE,
}

# Fields whose dates describe the business period an import covers
DATE_RANGE_FIELDS: dict[ImportType, tuple[CanonicalField, ...]] = {
    ImportType.SALES: (F.CREATED_TIME,),
    ImportType.PRODUCTS: (),
    ImportType.STOCK: (F.MOVEMENT_DATE,),
    ImportType.ADVERTISING: (F.DATE_START, F.DATE_END),
    ImportType.ADVERTISING_SETTLEMENT: (F.ORDER_SETTLED_TIME,),
    ImportType.RETURNS: (F.RETURN_DATE,),
    ImportType.REIMBURSEMENTS: (F.INCIDENT_DATE,),
    ImportType.COMMISSION_ADJUSTMENTS: (F.ADJUSTMENT_DATE,),
    ImportType.AFFILIATE_SAMPLES: (F.GIVEN_DATE,),
}

_DAY_FIRST_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d/%m/%y",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y",
)
_ISO_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
)
# Only reached when the day-first reading is impossible, e.g. "12/25/2024"
_MONTH_FIRST_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
)

# Accepted string formats per import type, in priority order. Ambiguous
# dd/mm vs mm/dd strings always read day-first.
DATE_FORMATS: dict[ImportType, tuple[str, ...]] = {
    ImportType.SALES: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.PRODUCTS: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.STOCK: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    # Ad platforms export ISO dates
    ImportType.ADVERTISING: _ISO_FORMATS + _DAY_FIRST_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.ADVERTISING_SETTLEMENT: _ISO_FORMATS + _DAY_FIRST_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.RETURNS: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.REIMBURSEMENTS: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.COMMISSION_ADJUSTMENTS: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
    ImportType.AFFILIATE_SAMPLES: _DAY_FIRST_FORMATS + _ISO_FORMATS + _MONTH_FIRST_FORMATS,
}

MOVEMENT_TYPE_ALIASES = {
    "in": "in",
    "masuk": "in",
    "stock in": "in",
    "out": "out",
    "keluar": "out",
    "stock out": "out",
    "adjustment": "adjustment",
    "adjust": "adjustment",
    "penyesuaian": "adjustment",
}

RETURN_TYPE_ALIASES = {
    "return": "return",
    "returned": "return",
    "retur": "return",
    "cancel": "cancel",
    "cancelled": "cancel",
    "cancellation": "cancel",
    "batal": "cancel",
    "pembatalan": "cancel",
}

FIELD_DESCRIPTIONS: dict[CanonicalField, str] = {
    F.ORDER_ID: "Marketplace order number",
    F.SELLER_SKU: "Seller SKU of the ordered variant",
    F.PRODUCT_CODE: "Internal product code",
    F.PRODUCT_NAME: "Product display name",
    F.QUANTITY: "Number of units",
    F.CREATED_TIME: "When the order was placed",
    F.MOVEMENT_TYPE: "in, out or adjustment",
    F.CAMPAIGN_NAME: "Advertising campaign name",
    F.DATE_START: "First day of the reporting window",
    F.DATE_END: "Last day of the reporting window",
    F.ORDER_CREATED_TIME: "When the settled order was placed",
    F.ORDER_SETTLED_TIME: "When the marketplace settled the order",
    F.SETTLEMENT_AMOUNT: "Settled amount, negative for reversals",
    F.TYPE: "Settlement type, or return or cancel for returns",
    F.MARKETPLACE: "Marketplace the record belongs to",
    F.RETURN_DATE: "When the item came back or the order was cancelled",
    F.REIMBURSEMENT_TYPE: "lost_package, fake_checkout, platform_error or damage_in_transit",
    F.INCIDENT_DATE: "When the loss happened",
    F.ADJUSTMENT_TYPE: "Kind of commission change, e.g. return_commission_loss",
    F.ADJUSTMENT_AMOUNT: "Change to the commission, negative for losses",
    F.ADJUSTMENT_DATE: "When the marketplace applied the change",
    F.AFFILIATE_NAME: "Affiliate who received the sample",
    F.GIVEN_DATE: "When the sample was sent",
}
