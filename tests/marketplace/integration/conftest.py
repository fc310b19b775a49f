import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    from marketplace.api import cart_router, order_router, register_marketplace_error_handlers

    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    register_marketplace_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def new_cart(client):
    def _new_cart(customer_id="buyer-api-001"):
        response = client.post("/carts", json={"customer_id": customer_id})
        assert response.status_code == 201
        return response.json()["cart_id"]

    return _new_cart
