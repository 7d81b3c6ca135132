"""
HTTP-level tests for the document and signing routes.

Run with: pytest tests/test_api.py -v
"""
import pytest
from fastapi.testclient import TestClient

from conftest import make_pdf, page_text

import main
from core.auth import issue_token


@pytest.fixture
def client(storage, blobs):
    main.app.dependency_overrides[main.get_storage_adapter] = lambda: storage
    main.app.dependency_overrides[main.get_blob_store] = lambda: blobs
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


def upload(client, user_id="alice", data=None, name="contract.pdf", mime="application/pdf"):
    body = data if data is not None else make_pdf(pages=2)
    return client.post("/docs", files={"pdf": (name, body, mime)}, headers=auth(user_id))


class TestHealthAndAuth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "OK"
        assert "X-Request-ID" in resp.headers

    def test_missing_token(self, client):
        resp = client.get("/docs")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_bad_token(self, client):
        resp = client.get("/docs", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_wrong_scheme(self, client):
        resp = client.get("/docs", headers={"Authorization": f"Token {issue_token('alice')}"})
        assert resp.status_code == 401


class TestUploadAndList:

    def test_upload(self, client, blobs):
        resp = upload(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "File uploaded"
        doc = body["doc"]
        assert doc["originalName"] == "contract.pdf"
        assert doc["uploadedBy"] == "alice"
        assert doc["status"] == "pending"
        assert doc["signed"] is False
        assert doc["signedFilePath"] == ""
        assert doc["filePath"].startswith("pdf/")
        assert blobs.exists(doc["filePath"])

    def test_upload_rejects_non_pdf_mime(self, client):
        resp = upload(client, data=b"hello", name="notes.txt", mime="text/plain")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Only PDFs allowed"

    def test_upload_rejects_fake_pdf(self, client):
        resp = upload(client, data=b"GIF89a....")
        assert resp.status_code == 400

    def test_upload_requires_auth(self, client):
        resp = client.post("/docs", files={"pdf": ("a.pdf", make_pdf(), "application/pdf")})
        assert resp.status_code == 401

    def test_list_is_owner_filtered(self, client):
        upload(client, "alice", name="a1.pdf")
        upload(client, "alice", name="a2.pdf")
        upload(client, "bob", name="b1.pdf")

        resp = client.get("/docs", headers=auth("alice"))
        assert resp.status_code == 200
        names = [d["originalName"] for d in resp.json()["docs"]]
        assert sorted(names) == ["a1.pdf", "a2.pdf"]

        resp = client.get("/docs", headers=auth("carol"))
        assert resp.json()["docs"] == []

    def test_get_document(self, client):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.get(f"/docs/{doc_id}", headers=auth("alice"))
        assert resp.status_code == 200
        assert resp.json()["doc"]["id"] == doc_id

    def test_get_document_other_owner(self, client):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.get(f"/docs/{doc_id}", headers=auth("bob"))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Unauthorized"

    def test_get_unknown_document(self, client):
        resp = client.get("/docs/nope", headers=auth("alice"))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Document not found"


class TestComplete:

    def test_complete(self, client, blobs):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.put(
            f"/docs/{doc_id}/complete",
            json={
                "signatures": [
                    {"page": 2, "x": 72, "y": 72, "signatureType": "text", "signature": "Alice Doe"},
                ],
                "pdfWidth": 612,
                "pdfHeight": 792,
            },
            headers=auth("alice"),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Signatures saved successfully"
        assert body["doc"]["status"] == "completed"
        assert body["doc"]["signed"] is True
        assert body["signedFilePath"] == body["doc"]["signedFilePath"]
        assert body["doc"]["signatures"][0]["signature"] == "Alice Doe"
        assert "Alice Doe" in page_text(blobs.read(body["signedFilePath"]), 1)

    def test_complete_bad_body(self, client):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.put(f"/docs/{doc_id}/complete", json={"signatures": "all"}, headers=auth("alice"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "signatures must be an array"

    def test_complete_other_owner(self, client):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.put(f"/docs/{doc_id}/complete", json={"signatures": []}, headers=auth("bob"))
        assert resp.status_code == 403

        doc = client.get(f"/docs/{doc_id}", headers=auth("alice")).json()["doc"]
        assert doc["status"] == "pending"

    def test_complete_unknown(self, client):
        resp = client.put("/docs/nope/complete", json={"signatures": []}, headers=auth("alice"))
        assert resp.status_code == 404

    def test_legacy_sign(self, client, blobs):
        doc_id = upload(client).json()["doc"]["id"]
        resp = client.post(
            f"/docs/{doc_id}/sign",
            json={"annotations": [{"page": 1, "x": 50, "y": 50, "text": "Legacy"}]},
            headers=auth("alice"),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["doc"]["signatures"][0]["signatureType"] == "text"
        assert "Legacy" in page_text(blobs.read(body["signedFilePath"]))


class TestSignedFile:

    def _signed(self, client):
        doc_id = upload(client).json()["doc"]["id"]
        body = client.put(
            f"/docs/{doc_id}/complete",
            json={"signatures": [{"page": 1, "x": 10, "y": 10, "signature": "ok"}]},
            headers=auth("alice"),
        ).json()
        return doc_id, body["signedFilePath"].split("/", 1)[1]

    def test_owner_downloads(self, client):
        _, name = self._signed(client)
        resp = client.get(f"/docs/file/{name}", headers=auth("alice"))
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.headers["content-disposition"].startswith("inline")
        assert resp.content.startswith(b"%PDF")

    def test_other_user_forbidden(self, client):
        _, name = self._signed(client)
        resp = client.get(f"/docs/file/{name}", headers=auth("bob"))
        assert resp.status_code == 403

    def test_unknown_file(self, client):
        resp = client.get("/docs/file/signed_0_abc_x.pdf", headers=auth("alice"))
        assert resp.status_code == 404


class TestDelete:

    def test_delete_removes_record_and_files(self, client, blobs):
        doc = upload(client).json()["doc"]
        client.put(f"/docs/{doc['id']}/complete", json={"signatures": []}, headers=auth("alice"))
        signed = client.get(f"/docs/{doc['id']}", headers=auth("alice")).json()["doc"]["signedFilePath"]

        resp = client.delete(f"/docs/{doc['id']}", headers=auth("alice"))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Document deleted successfully"}
        assert not blobs.exists(doc["filePath"])
        assert not blobs.exists(signed)
        assert client.get(f"/docs/{doc['id']}", headers=auth("alice")).status_code == 404

    def test_delete_other_owner(self, client, blobs):
        doc = upload(client).json()["doc"]
        resp = client.delete(f"/docs/{doc['id']}", headers=auth("bob"))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Unauthorized to delete this document"
        assert blobs.exists(doc["filePath"])

    def test_delete_with_missing_blob(self, client, blobs):
        """Record goes even if the file is already gone."""
        doc = upload(client).json()["doc"]
        blobs.delete(doc["filePath"])
        resp = client.delete(f"/docs/{doc['id']}", headers=auth("alice"))
        assert resp.status_code == 200
