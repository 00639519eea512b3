"""MongoDB database setup and Beanie ODM initialization."""

from typing import TYPE_CHECKING

from beanie import init_beanie
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from busana.config import DatabaseConfig

if TYPE_CHECKING:
    from beanie import Document

# Database client and database references for the running process
client: AsyncMongoClient | None = None
database: AsyncDatabase | None = None


def get_document_models() -> list[type["Document"]]:
    """Get all Beanie document models for initialization.

    Returns:
        List of Document model classes.
    """
    from busana.models import (
        AdvertisingRecord,
        AffiliateSample,
        CommissionAdjustment,
        DuplicateCheckLog,
        ImportBatch,
        ImportHistoryEntry,
        ImportMetadata,
        Product,
        ReimbursementRecord,
        ReturnRecord,
        Sale,
        SettlementRecord,
        StockMovement,
    )

    return [
        ImportBatch,
        ImportHistoryEntry,
        ImportMetadata,
        DuplicateCheckLog,
        Sale,
        Product,
        StockMovement,
        AdvertisingRecord,
        SettlementRecord,
        ReturnRecord,
        ReimbursementRecord,
        CommissionAdjustment,
        AffiliateSample,
    ]


async def init_db(
    db_config: DatabaseConfig,
    mongo_client: AsyncMongoClient | None = None,
) -> None:
    """Initialize the MongoDB database connection and Beanie ODM.

    Args:
        db_config: Connection URL, database name and pool sizes.
        mongo_client: Optional pre-configured client (for testing).
    """
    global client, database

    if mongo_client is not None:
        client = mongo_client
    else:
        client = AsyncMongoClient(
            db_config.mongodb_url,
            minPoolSize=db_config.min_pool_size,
            maxPoolSize=db_config.max_pool_size,
        )

    database = client[db_config.mongodb_database]

    # Indexes declared on the models (natural keys included) are created here
    await init_beanie(
        database=database,
        document_models=get_document_models(),
    )


async def close_db() -> None:
    """Close the MongoDB database connection."""
    global client, database

    if client is not None:
        await client.close()
        client = None
        database = None


def get_database() -> AsyncDatabase:
    """Get the current database instance.

    Returns:
        The active MongoDB database.

    Raises:
        RuntimeError: If database is not initialized.
    """
    if database is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return database
