"""Pytest configuration and fixtures for Busana tests with real MongoDB."""

import csv
import io
import os
import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from busana.config import BusanaConfig, DatabaseConfig, ImportConfig, StorageConfig
from busana.database import get_database, init_db
from busana.main import create_app
from busana.routers import import_router


# MongoDB connection URL for tests (can be overridden with env var)
TEST_MONGODB_URL = os.environ.get("TEST_MONGODB_URL", "mongodb://localhost:27017")


def make_csv(headers: list[str], rows: list[list]) -> bytes:
    """Helper to create CSV bytes."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue().encode("utf-8")


def make_xlsx(headers: list[str], rows: list[list]) -> bytes:
    """Helper to create XLSX bytes."""
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


SALES_HEADERS = [
    "Order ID",
    "Seller SKU",
    "Product Name",
    "Color",
    "Size",
    "Quantity",
    "Order Amount",
    "Created Time",
]


def sales_rows(count: int, bad_rows: set[int] | None = None) -> list[list[str]]:
    """January 2024 sales lines; rows listed in bad_rows get a negative quantity."""
    bad_rows = bad_rows or set()
    return [
        [
            f"ORD-{i:04d}",
            f"SKU-{i % 7}",
            "Kebaya Modern",
            "Merah",
            "M",
            "-3" if i in bad_rows else "2",
            "150000",
            f"{(i % 28) + 1:02d}/01/2024 10:00",
        ]
        for i in range(1, count + 1)
    ]


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty upload rate limit counters."""
    import_router.limiter.reset()
    yield


@pytest_asyncio.fixture(scope="function")
async def mongo_client():
    """Create a MongoDB client for testing.

    Function-scoped to avoid event loop issues with pytest-xdist. Tests
    that need the database are skipped when no server answers.
    """
    client = AsyncMongoClient(
        TEST_MONGODB_URL,
        maxPoolSize=10,
        minPoolSize=1,
        serverSelectionTimeoutMS=2000,
    )
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        await client.close()
        pytest.skip(f"MongoDB not available at {TEST_MONGODB_URL}: {e}")
    yield client
    await client.close()


@pytest_asyncio.fixture(scope="function")
async def init_test_db(mongo_client):
    """Initialize Beanie with a unique test database.

    Creates a unique database for each test function and drops it after the test.
    """
    db_name = f"test_busana_{uuid.uuid4().hex[:8]}"
    await init_db(DatabaseConfig(mongodb_url=TEST_MONGODB_URL, mongodb_database=db_name), mongo_client=mongo_client)
    yield get_database()

    # Cleanup: drop the entire test database
    await mongo_client.drop_database(db_name)


@pytest.fixture
def app_config(tmp_path) -> BusanaConfig:
    """Configuration for a test app: small chunks and a 1 MB upload limit."""
    return BusanaConfig(
        app_name="Busana Test",
        storage=StorageConfig(data_dir=tmp_path, log_dir=tmp_path / "logs"),
        imports=ImportConfig(max_upload_mb=1, chunk_size=25),
    )


@pytest_asyncio.fixture(scope="function")
async def client(init_test_db, app_config) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client against a test database."""
    app = create_app(app_config, manage_db=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
