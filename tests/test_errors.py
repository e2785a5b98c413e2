from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.exceptions import DispatchError, PersistenceError, ResourceNotFoundError
from app.main import app
from app.services.twilio_service import DispatchResult

import pytest

client = TestClient(app)


class Item(BaseModel):
    name: str
    price: int


@app.post("/test-validation")
def create_item(item: Item):
    return item


@app.get("/test-custom-error")
def trigger_custom_error():
    raise ResourceNotFoundError(message="Booking not found")


@app.get("/test-persistence-error")
def trigger_persistence_error():
    raise PersistenceError("Failed to load session", details="timeout")


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert data["code"] == "HTTP_ERROR"


def test_validation_error_structure():
    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert len(data["details"]) > 0


def test_custom_exception():
    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Booking not found"


def test_persistence_error_envelope():
    response = client.get("/test-persistence-error")
    assert response.status_code == 503
    data = response.json()
    assert data["code"] == "PERSISTENCE_ERROR"
    assert data["details"] == "timeout"


def test_dispatch_result_raise_for_status():
    ok = DispatchResult(success=True, message_sid="SM1")
    assert ok.raise_for_status() is ok

    with pytest.raises(DispatchError) as excinfo:
        DispatchResult(success=False, error="Twilio API timeout").raise_for_status()

    assert excinfo.value.code == "DISPATCH_ERROR"
    assert excinfo.value.status_code == 502
    assert excinfo.value.message == "Twilio API timeout"
