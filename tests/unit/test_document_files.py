"""Unit tests for DocumentFileStore (kept PDFs and extracted images)."""

from __future__ import annotations

from pathlib import Path

import pytest

from kb_pipeline.models.document import FileType
from kb_pipeline.services.document_files import DocumentFileStore
from kb_pipeline.utils.errors import NotFoundError


@pytest.fixture
def store(tmp_path: Path) -> DocumentFileStore:
    return DocumentFileStore(tmp_path / "documents", tmp_path / "images")


class TestStoredPdfs:
    def test_keep_pdf_copies_under_doc_id(self, store: DocumentFileStore, tmp_path: Path) -> None:
        upload = tmp_path / "upload-123.pdf"
        upload.write_bytes(b"%PDF-1.4 fake")

        target = store.keep_pdf(upload, "doc_1")

        assert target == store.documents_dir / "doc_1.pdf"
        assert target.read_bytes() == b"%PDF-1.4 fake"
        assert upload.exists()
        assert store.has_stored_pdf("doc_1")
        assert store.get_stored_pdf_path("doc_1") == target

    def test_keep_pdf_replaces_previous_copy(self, store: DocumentFileStore, tmp_path: Path) -> None:
        first = tmp_path / "a.pdf"
        first.write_bytes(b"v1")
        second = tmp_path / "b.pdf"
        second.write_bytes(b"v2")

        store.keep_pdf(first, "doc_1")
        store.keep_pdf(second, "doc_1")

        assert store.get_stored_pdf_path("doc_1").read_bytes() == b"v2"

    def test_missing_pdf(self, store: DocumentFileStore) -> None:
        assert store.has_stored_pdf("doc_x") is False
        with pytest.raises(NotFoundError, match="doc_x"):
            store.get_stored_pdf_path("doc_x")
        assert store.delete_stored_pdf("doc_x") is False

    def test_delete_stored_pdf(self, store: DocumentFileStore, tmp_path: Path) -> None:
        upload = tmp_path / "u.pdf"
        upload.write_bytes(b"x")
        store.keep_pdf(upload, "doc_1")

        assert store.delete_stored_pdf("doc_1") is True
        assert store.has_stored_pdf("doc_1") is False


class TestImages:
    def test_save_and_list(self, store: DocumentFileStore) -> None:
        store.save_document_image("doc_1", 3, b"p3")
        store.save_document_image("doc_1", 1, b"p1")
        store.save_document_image("doc_2", 1, b"other")

        names = [p.name for p in store.get_document_images("doc_1")]
        assert names == ["doc_1_p1_i0.png", "doc_1_p3_i0.png"]

    def test_no_images_dir_yet(self, store: DocumentFileStore) -> None:
        assert store.get_document_images("doc_1") == []
        assert store.delete_document_images("doc_1") == 0

    def test_delete_document_images(self, store: DocumentFileStore) -> None:
        store.save_document_image("doc_1", 1, b"a")
        store.save_document_image("doc_1", 2, b"b")
        store.save_document_image("doc_2", 1, b"c")

        assert store.delete_document_images("doc_1") == 2
        assert [p.name for p in store.get_document_images("doc_2")] == ["doc_2_p1_i0.png"]


def test_delete_file(tmp_path: Path) -> None:
    path = tmp_path / "upload.tmp"
    path.write_bytes(b"x")

    assert DocumentFileStore.delete_file(path) is True
    assert DocumentFileStore.delete_file(path) is False


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("guide.pdf", FileType.PDF),
        ("GUIDE.PDF", FileType.PDF),
        ("notes.md", FileType.MARKDOWN),
        ("notes.markdown", FileType.MARKDOWN),
        ("report.docx", None),
        ("no_extension", None),
    ],
)
def test_file_type_from_filename(filename: str, expected: FileType | None) -> None:
    assert FileType.from_filename(filename) is expected
