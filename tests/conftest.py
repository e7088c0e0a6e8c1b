"""
Pytest configuration and fixtures.
"""
import hashlib
import hmac
from typing import Any, Generator
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings, get_settings
from database import DocumentStore, get_store
from main import app
from payments import RazorpayGateway, get_gateway

TEST_SECRET = "test_razorpay_secret"


def sign(order_id: str, payment_id: str, secret: str = TEST_SECRET) -> str:
    """Signature the gateway issues for a captured payment."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        razorpay_key_id="rzp_test_fake_key",
        razorpay_secret=TEST_SECRET,
        database_name="storefront_test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def store() -> Generator[DocumentStore, Any, None]:
    """In-memory document store backed by mongomock."""
    document_store = DocumentStore(mongomock.MongoClient(), "storefront_test")
    document_store.ensure_indexes()
    yield document_store
    document_store.close()


@pytest.fixture
def razorpay_client() -> MagicMock:
    """Stand-in for razorpay.Client."""
    client = MagicMock()
    client.order.create.return_value = {
        "id": "order_test_123",
        "entity": "order",
        "amount": 50000,
        "currency": "INR",
        "status": "created",
    }
    return client


@pytest.fixture
def gateway(razorpay_client: MagicMock) -> RazorpayGateway:
    return RazorpayGateway(
        key_id="rzp_test_fake_key",
        key_secret=TEST_SECRET,
        client=razorpay_client,
    )


@pytest.fixture
def client(
    store: DocumentStore, gateway: RazorpayGateway, test_settings: Settings
) -> Generator[TestClient, Any, None]:
    """Create test HTTP client with the store, gateway and settings swapped in."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_product() -> dict[str, Any]:
    return {
        "name": "Mug",
        "category": "Kitchen",
        "price": "$10",
        "regularPrice": "$12",
        "discount": "16%",
        "soldOut": False,
        "img": "https://example.com/mug.png",
    }


@pytest.fixture
def sample_order() -> dict[str, Any]:
    return {
        "orderId": "order_test_123",
        "products": [
            {"_id": "64b7f0c2a1b2c3d4e5f60718", "name": "Mug", "price": "₹1,200.50", "quantity": 2},
        ],
        "totalAmount": "₹2,401.00",
        "customer": {"name": "Asha", "email": "a@b.com", "contact": "9999999999"},
        "paymentId": "pay_test_456",
    }
