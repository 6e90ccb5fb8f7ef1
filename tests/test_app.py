"""Tests for the captcha HTTP API."""
from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app import create_app
from core.config import settings
from services.captcha.solver import CaptchaSolver


class FakeOCR:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error

    def recognize(self, image: Image.Image) -> str:
        if self.error is not None:
            raise self.error
        return self.text


def make_client(ocr: FakeOCR) -> TestClient:
    return TestClient(create_app(solver=CaptchaSolver(ocr=ocr, test_mode=True)))


@pytest.fixture
def client() -> TestClient:
    return make_client(FakeOCR("4 x 5 = ?"))


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_recognize(client: TestClient, png_b64: str) -> None:
    response = client.post("/api/captcha/recognize", json={"image": png_b64})

    assert response.status_code == 200
    data = response.json()
    assert data["result"] == 20
    assert data["details"]["rawOcrResult"] == "4 x 5 = ?"
    assert data["details"]["cleanedText"] == "4x5=?"
    assert data["details"]["expression"] == "4*5"
    assert data["details"]["calculation"] == "4*5 = 4*5=20 = 20"


def test_recognize_test_mode(client: TestClient) -> None:
    response = client.post("/api/captcha/recognize", json={"image": "test-captcha"})
    assert response.status_code == 200
    assert response.json()["result"] == 6


@pytest.mark.parametrize("body", [{}, {"image": ""}])
def test_missing_image(client: TestClient, body: dict) -> None:
    response = client.post("/api/captcha/recognize", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Missing image parameter"}


def test_missing_body(client: TestClient) -> None:
    response = client.post("/api/captcha/recognize")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing image parameter"}


def test_image_too_large(client: TestClient, png_b64: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "max_image_bytes", 10)
    response = client.post("/api/captcha/recognize", json={"image": png_b64})
    assert response.status_code == 413


@pytest.mark.parametrize("image", ["@@@", base64.b64encode(b"not an image").decode("ascii")])
def test_invalid_image(client: TestClient, image: str) -> None:
    response = client.post("/api/captcha/recognize", json={"image": image})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid base64 image format"}


def test_extraction_failure(png_b64: str) -> None:
    response = make_client(FakeOCR("7")).post("/api/captcha/recognize", json={"image": png_b64})
    assert response.status_code == 400
    assert response.json() == {"error": "Failed to extract expression from image"}


def test_evaluation_failure(png_b64: str) -> None:
    response = make_client(FakeOCR("5/0")).post("/api/captcha/recognize", json={"image": png_b64})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Failed to evaluate expression")


def test_server_error(png_b64: str) -> None:
    client = make_client(FakeOCR(error=RuntimeError("tesseract crashed")))
    response = client.post("/api/captcha/recognize", json={"image": png_b64})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error: tesseract crashed"}


def test_unknown_route(client: TestClient) -> None:
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_non_string_image(client: TestClient) -> None:
    response = client.post("/api/captcha/recognize", json={"image": 123})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid base64 image format"}


def test_malformed_json_body(client: TestClient) -> None:
    response = client.post(
        "/api/captcha/recognize",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Missing image parameter"}


def test_wrong_method_uses_catch_all(client: TestClient) -> None:
    response = client.get("/api/captcha/recognize")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}
