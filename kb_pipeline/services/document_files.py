"""On-disk files that belong to an ingested document.

Two directories are managed here:

    documents_dir/{doc_id}.pdf        -- the kept copy of an uploaded PDF,
                                          used later to render page images
    images_dir/{doc_id}_*             -- images extracted from the document

All methods are synchronous file-system calls; async callers run them
through ``asyncio.to_thread``.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import structlog

from kb_pipeline.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)


class DocumentFileStore:
    """Keeps uploaded PDFs and extracted images addressable by ``doc_id``."""

    def __init__(self, documents_dir: str | Path, images_dir: str | Path) -> None:
        self._documents_dir = Path(documents_dir)
        self._images_dir = Path(images_dir)

    @property
    def documents_dir(self) -> Path:
        return self._documents_dir

    @property
    def images_dir(self) -> Path:
        return self._images_dir

    # ------------------------------------------------------------------
    # Stored PDFs
    # ------------------------------------------------------------------

    def _pdf_path(self, doc_id: str) -> Path:
        return self._documents_dir / f"{doc_id}.pdf"

    def keep_pdf(self, source: str | Path, doc_id: str) -> Path:
        """Copy *source* to ``{documents_dir}/{doc_id}.pdf``, replacing any earlier copy."""
        self._documents_dir.mkdir(parents=True, exist_ok=True)
        target = self._pdf_path(doc_id)
        shutil.copyfile(source, target)
        logger.info("pdf_kept", doc_id=doc_id, path=str(target))
        return target

    def has_stored_pdf(self, doc_id: str) -> bool:
        return self._pdf_path(doc_id).is_file()

    def get_stored_pdf_path(self, doc_id: str) -> Path:
        """Return the stored PDF path for *doc_id*.

        Raises
        ------
        NotFoundError
            If no PDF was kept for the document.
        """
        path = self._pdf_path(doc_id)
        if not path.is_file():
            raise NotFoundError(message=f"No stored PDF for document {doc_id}")
        return path

    def delete_stored_pdf(self, doc_id: str) -> bool:
        """Remove the stored PDF; returns ``False`` when there was none."""
        path = self._pdf_path(doc_id)
        if not path.is_file():
            return False
        path.unlink()
        logger.info("pdf_deleted", doc_id=doc_id)
        return True

    # ------------------------------------------------------------------
    # Extracted images
    # ------------------------------------------------------------------

    def save_document_image(self, doc_id: str, page_number: int, data: bytes) -> Path:
        """Write a page image as ``{doc_id}_p{page}_i0.png`` and return its path."""
        self._images_dir.mkdir(parents=True, exist_ok=True)
        target = self._images_dir / f"{doc_id}_p{page_number}_i0.png"
        target.write_bytes(data)
        return target

    def get_document_images(self, doc_id: str) -> list[Path]:
        """Return the image files of *doc_id*, sorted by name."""
        if not self._images_dir.is_dir():
            return []
        return sorted(p for p in self._images_dir.glob(f"{doc_id}_*") if p.is_file())

    def delete_document_images(self, doc_id: str) -> int:
        """Delete every ``{doc_id}_*`` image; returns the number removed."""
        images = self.get_document_images(doc_id)
        for image in images:
            image.unlink(missing_ok=True)
        if images:
            logger.info("document_images_deleted", doc_id=doc_id, count=len(images))
        return len(images)

    @staticmethod
    def delete_file(path: str | Path) -> bool:
        """Remove an arbitrary file (e.g. a temporary upload) if it exists."""
        target = Path(path)
        if not target.is_file():
            return False
        target.unlink()
        logger.debug("file_deleted", path=str(target))
        return True
