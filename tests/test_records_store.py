"""
tests/test_records_store.py -- Unit tests for RecordsStore and FileStorage.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from records.files import FileStorage, classify_upload
from records.models import Client, Document, DocumentStatus, LegalDocument
from records.store import RecordsStore


@pytest.fixture
def records(tmp_path):
    store = RecordsStore(f"sqlite:///{tmp_path / 'records.db'}")
    yield store
    store.close()


def _client(tax_id: str = "123.456.789-00", name: str = "Maria Silva") -> Client:
    return Client(kind="pf", name=name, tax_id=tax_id, city="Campinas", state="SP")


def _document(client_id: int, path: str = "/tmp/x.pdf", **overrides) -> Document:
    values = dict(
        client_id=client_id,
        name="RG",
        file_name="x.pdf",
        file_type="pdf",
        size_bytes=10,
        file_path=path,
    )
    values.update(overrides)
    return Document(**values)


class TestClients:
    def test_create_and_get(self, records: RecordsStore) -> None:
        cid = records.create_client(_client(), created_by_id=1)
        client = records.get_client(cid)
        assert client.name == "Maria Silva"
        assert client.created_by_id == 1
        assert client.created_at and client.updated_at

    def test_tax_id_unique(self, records: RecordsStore) -> None:
        records.create_client(_client())
        with pytest.raises(IntegrityError):
            records.create_client(_client(name="Someone Else"))

    def test_update_bumps_updated_at(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        before = records.get_client(cid)
        assert records.update_client(cid, city="Santos") is True
        after = records.get_client(cid)
        assert after.city == "Santos"
        assert after.updated_at >= before.updated_at

    def test_update_rejects_unknown_fields(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        with pytest.raises(ValueError):
            records.update_client(cid, created_by_id=5)

    def test_update_missing_client(self, records: RecordsStore) -> None:
        assert records.update_client(999, city="Santos") is False

    def test_delete_cascades_documents_and_detaches_legal_documents(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        other = records.create_client(_client(tax_id="987.654.321-00", name="Other"))
        records.create_document(_document(cid, path="/u/a.pdf"))
        records.create_document(_document(cid, path="/u/b.pdf"))
        kept = records.create_document(_document(other, path="/u/c.pdf"))
        legal = records.create_legal_document(LegalDocument(title="Procuração", content="...", client_id=cid))

        paths = records.delete_client(cid)

        assert sorted(paths) == ["/u/a.pdf", "/u/b.pdf"]
        assert records.get_client(cid) is None
        assert [d.id for d in records.list_documents()] == [kept]
        assert records.get_legal_document(legal).client_id is None

    def test_counts(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        records.create_document(_document(cid))
        records.create_legal_document(LegalDocument(title="T", content=""))
        assert records.count_clients() == 1
        assert records.count_documents() == 1
        assert records.count_legal_documents() == 1


class TestDocuments:
    def test_default_status(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        doc = records.get_document(records.create_document(_document(cid)))
        assert doc.status == "em_analise"
        assert doc.status_updated_at

    def test_filter_by_client(self, records: RecordsStore) -> None:
        a = records.create_client(_client())
        b = records.create_client(_client(tax_id="987.654.321-00"))
        records.create_document(_document(a))
        records.create_document(_document(b))
        assert [d.client_id for d in records.list_documents(client_id=a)] == [a]
        assert len(records.list_documents()) == 2

    def test_status_change_stamps_time(self, records: RecordsStore) -> None:
        cid = records.create_client(_client())
        did = records.create_document(_document(cid))
        before = records.get_document(did).status_updated_at
        records.update_document(did, status="arquivado")
        after = records.get_document(did)
        assert after.status == "arquivado"
        assert after.status_updated_at >= before

    def test_unknown_client_rejected(self, records: RecordsStore) -> None:
        with pytest.raises(IntegrityError):
            records.create_document(_document(424242))


class TestStatusCatalog:
    def test_list_active_in_order(self, records: RecordsStore) -> None:
        records.create_status(DocumentStatus(name="pendente", color="#FF0000", order=2))
        records.create_status(DocumentStatus(name="assinado", color="#00FF00", order=1))
        records.create_status(DocumentStatus(name="antigo", color="#000000", order=0, is_active=False))
        assert [s.name for s in records.list_statuses()] == ["assinado", "pendente"]
        assert len(records.list_statuses(include_inactive=True)) == 3

    def test_name_unique(self, records: RecordsStore) -> None:
        records.create_status(DocumentStatus(name="pendente", color="#FF0000"))
        with pytest.raises(IntegrityError):
            records.create_status(DocumentStatus(name="pendente", color="#00FF00"))

    def test_valid_document_status(self, records: RecordsStore) -> None:
        sid = records.create_status(DocumentStatus(name="assinado", color="#00FF00"))
        assert records.is_valid_document_status("em_uso")
        assert records.is_valid_document_status("assinado")
        assert not records.is_valid_document_status("inexistente")
        records.update_status(sid, is_active=False)
        assert not records.is_valid_document_status("assinado")

    def test_update_order(self, records: RecordsStore) -> None:
        sid = records.create_status(DocumentStatus(name="pendente", color="#FF0000"))
        records.update_status(sid, order=7, color="#123456")
        status = records.get_status(sid)
        assert status.order == 7
        assert status.color == "#123456"


class TestFileStorage:
    def test_save_and_delete(self, tmp_path) -> None:
        storage = FileStorage(tmp_path / "uploads")
        name, path = storage.save(b"%PDF-1.4", ".pdf")
        assert name.endswith(".pdf")
        assert storage.exists(path)
        assert storage.delete(path) is True
        assert not storage.exists(path)
        assert storage.delete(path) is False

    def test_refuses_paths_outside_root(self, tmp_path) -> None:
        storage = FileStorage(tmp_path / "uploads")
        outside = tmp_path / "keep.txt"
        outside.write_text("keep")
        assert storage.delete(str(outside)) is False
        assert outside.exists()

    @pytest.mark.parametrize(
        "content_type, expected",
        [
            ("application/pdf", ("pdf", ".pdf")),
            ("image/jpeg", ("jpeg", ".jpg")),
            ("image/PNG", ("png", ".png")),
            ("text/plain", None),
            (None, None),
        ],
    )
    def test_classify_upload(self, content_type, expected) -> None:
        assert classify_upload(content_type) == expected
