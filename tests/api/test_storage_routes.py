import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_storage_service
from application.services.storage_service import StorageApplicationService
from main import app
from shared.codes import BusinessCode
from shared.codes.storage_codes import StorageCode


BASE = "/api/v1/storage"


@pytest.fixture
def client(local_provider, local_config):
    service = StorageApplicationService(
        storage=local_provider,
        config=local_config,
        max_upload_size=1024,
        allowed_types=["text/plain", "application/pdf"],
    )
    app.dependency_overrides[get_storage_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def upload(client, content=b"hello", filename="notes.txt", content_type="text/plain"):
    resp = client.post(f"{BASE}/upload", files={"file": (filename, content, content_type)})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def test_info_and_check(client):
    info = client.get(f"{BASE}/info").json()
    assert info["code"] == 0
    assert info["data"] == {"type": "local", "supports_direct_upload": False}

    check = client.get(f"{BASE}/check").json()
    assert check["data"]["is_valid"] is True


def test_upload_returns_result_and_record(client):
    data = upload(client)

    assert data["upload"]["source_url"] == f"/uploads/{data['upload']['key']}"
    assert data["upload"]["metadata"]["content_type"] == "text/plain"
    record = data["record"]
    assert record["original_name"] == "notes.txt"
    assert record["size"] == "5"
    assert record["extension"] == ".txt"
    assert record["storage_key"] == data["upload"]["key"]


def test_download_metadata_urls_delete(client):
    key = upload(client, b"a,b\n", "table.csv", "text/csv")["upload"]["key"]

    resp = client.get(f"{BASE}/objects/{key}")
    assert resp.status_code == 200
    assert resp.content == b"a,b\n"
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]

    meta = client.get(f"{BASE}/objects/{key}/metadata").json()["data"]
    assert meta["size"] == 4
    assert meta["key"] == key

    urls = client.get(f"{BASE}/objects/{key}/url").json()["data"]
    assert urls["source_url"] == f"/uploads/{key}"
    assert urls["download_url"] == f"/uploads/{key}"

    deleted = client.delete(f"{BASE}/objects/{key}")
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"key": key, "deleted": True}

    missing = client.get(f"{BASE}/objects/{key}")
    assert missing.status_code == 404
    assert missing.json()["code"] == StorageCode.OBJECT_NOT_FOUND
    assert missing.json()["error"]["type"] == "NotFoundError"


def test_missing_object_lookups(client):
    assert client.get(f"{BASE}/objects/uploads/nope.txt/metadata").status_code == 404
    assert client.get(f"{BASE}/objects/uploads/nope.txt/url").status_code == 404
    assert client.delete(f"{BASE}/objects/uploads/nope.txt").status_code == 404


def test_upload_url_unavailable_on_local_disk(client):
    resp = client.post(f"{BASE}/upload-url", json={"filename": "a.pdf"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == BusinessCode.BUSINESS_ERROR
    assert body["error"]["type"] == "DirectUploadUnsupported"


def test_upload_url_rejects_bad_lifetime(client):
    resp = client.post(f"{BASE}/upload-url", json={"filename": "a.pdf", "expires_in": 5})
    assert resp.status_code == 422


def test_collection_upload_creates_record(client):
    resp = client.post(
        f"{BASE}/collections/col-1/files",
        files={"file": ("guide.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert resp.status_code == 201
    record = resp.json()["data"]
    assert record["collection_id"] == "col-1"
    assert record["type"] == "application/pdf"
    assert record["extension"] == ".pdf"
    assert record["storage_url"] == f"/uploads/{record['storage_key']}"


def test_collection_upload_rejects_type(client):
    resp = client.post(
        f"{BASE}/collections/col-1/files",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "File type image/png is not supported"


def test_collection_upload_rejects_size(client):
    resp = client.post(
        f"{BASE}/collections/col-1/files",
        files={"file": ("big.txt", b"x" * 2048, "text/plain")},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "FileTooLarge"


def test_collection_upload_requires_file(client):
    resp = client.post(f"{BASE}/collections/col-1/files", data={"note": "nothing"})

    assert resp.status_code == 400
    assert resp.json()["code"] == BusinessCode.PARAM_MISSING


def test_traversal_key_is_rejected(client):
    resp = client.get(f"{BASE}/objects/uploads/..%2F..%2Fsecret.txt")
    assert resp.status_code in (400, 404)


def test_request_id_header(client):
    resp = client.get(f"{BASE}/info", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_upload_rejects_escaping_folder(client, tmp_path):
    resp = client.post(
        f"{BASE}/upload",
        files={"file": ("a.txt", b"hello", "text/plain")},
        data={"folder": "../../escape"},
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == StorageCode.INVALID_KEY
    assert body["error"]["type"] == "ValidationError"
    assert "escape/" not in body["message"]
    assert not list(tmp_path.rglob("*-a.txt"))


def test_collection_upload_message(client):
    resp = client.post(
        f"{BASE}/collections/col-1/files",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.json()["message"] == "知识库文件上传成功"


def test_framework_errors_use_envelope(client):
    missing = client.get("/api/v1/nowhere")
    assert missing.status_code == 404
    assert missing.json()["code"] == BusinessCode.NOT_FOUND

    wrong_method = client.delete(f"{BASE}/info")
    assert wrong_method.status_code == 405
    assert wrong_method.json()["code"] == BusinessCode.PARAM_ERROR
    assert wrong_method.json()["error"]["type"] == "HTTPError"
