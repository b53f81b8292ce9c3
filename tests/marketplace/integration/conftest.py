import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from marketplace.api import order_router, register_error_handlers, retailer_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(retailer_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def retailer_headers():
    return {"X-Retailer-Id": "ret-1"}
