import inspect

import pytest
from fastapi.testclient import TestClient

from main import app, generate_stl
from QR_code import qr_to_triangles, stl_bytes
from qr_mesh import MeshOptions


@pytest.fixture
def client():
    return TestClient(app)


def test_form_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert 'id="generate_form"' in response.text
    assert 'value="2.5"' in response.text


def test_static_script(client):
    response = client.get("/static/app.js")
    assert response.status_code == 200
    assert "generate_form" in response.text


def test_generate_with_defaults(client):
    response = client.post("/api/generate", data={"text": "hello"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/octet-stream"
    assert "qr.stl" in response.headers["content-disposition"]
    assert response.content == stl_bytes(qr_to_triangles(b"hello"))


def test_generate_with_options(client):
    response = client.post("/api/generate", data={
        "text": "hello",
        "pixel_size": "1.0",
        "base_size": "0",
        "base_height": "2",
    })
    assert response.status_code == 200
    tris = qr_to_triangles(b"hello", MeshOptions(pixel_size=1.0, base_size=0.0, base_height=2.0))
    assert response.content == stl_bytes(tris)


def test_generate_too_long(client):
    response = client.post("/api/generate", data={"text": "x" * 3000})
    assert response.status_code == 400
    assert response.json() == {"detail": "encoding failed"}


@pytest.mark.parametrize("field, value", [
    ("pixel_size", "0"),
    ("base_size", "-1"),
    ("base_height", "-1"),
])
def test_generate_rejects_bad_sizes(client, field, value):
    response = client.post("/api/generate", data={"text": "hello", field: value})
    assert response.status_code == 422


def test_generate_runs_off_the_event_loop():
    # sync endpoints are run in FastAPI's threadpool
    assert not inspect.iscoroutinefunction(generate_stl)
