from __future__ import annotations

from uuid import uuid4

from src.shipyard_report.shipyard_report.core.constants import PERMIT_BUCKET
from src.shipyard_report.shipyard_report.core.enums import Role
from src.shipyard_report.shipyard_report.storage.document_store import LocalDocumentStore
from tests.fakes import sign_in, web_app


def _signed_in(monkeypatch, tmp_path):
    app = web_app(monkeypatch, tmp_path)
    client = app.test_client()
    sign_in(client, Role.PPIC)
    store = app.extensions["shipyard_report"].store
    path = f"wo-1/{uuid4().hex}.pdf"
    store.upload(PERMIT_BUCKET, path, b"%PDF-1.4 permit")
    return app, store, client, path


def test_valid_link_serves_the_document(monkeypatch, tmp_path):
    _, store, client, path = _signed_in(monkeypatch, tmp_path)

    resp = client.get(f"/files/{store.create_signed_token(PERMIT_BUCKET, path, 300)}?download=1")

    assert resp.status_code == 200
    assert resp.data == b"%PDF-1.4 permit"
    assert "attachment" in resp.headers["Content-Disposition"]


def test_tampered_link_is_forbidden(monkeypatch, tmp_path):
    _, store, client, path = _signed_in(monkeypatch, tmp_path)
    token = store.create_signed_token(PERMIT_BUCKET, path, 300)
    tampered = ("A" if token[0] != "A" else "B") + token[1:]

    assert client.get("/files/not-a-token").status_code == 403
    assert client.get(f"/files/{tampered}").status_code == 403


def test_expired_link_is_forbidden(monkeypatch, tmp_path):
    app, _, client, path = _signed_in(monkeypatch, tmp_path)
    issued_long_ago = LocalDocumentStore(
        tmp_path, secret_key=app.secret_key, buckets=(PERMIT_BUCKET,), clock=lambda: 1000.0
    )
    token = issued_long_ago.create_signed_token(PERMIT_BUCKET, path, 300)

    assert client.get(f"/files/{token}").status_code == 403


def test_link_to_removed_file_is_not_found(monkeypatch, tmp_path):
    _, store, client, path = _signed_in(monkeypatch, tmp_path)
    token = store.create_signed_token(PERMIT_BUCKET, path, 300)
    store.remove(PERMIT_BUCKET, path)

    assert client.get(f"/files/{token}").status_code == 404
