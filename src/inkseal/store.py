"""Filesystem-backed document and signature store for InkSeal.

Everything lives on disk as JSON under ``~/.inkseal/``. No database
required. Each entity is one file, rewritten atomically (temp file +
``os.replace``), and every check-and-set happens under a lock shared by
all stores opened on the same directory within the process.

Directory layout::

    ~/.inkseal/
    ├── documents/
    │   └── <doc-id>/
    │       ├── document.json
    │       └── signatures/
    │           └── <signature-id>.json
    ├── tokens/             # sha256(token) -> signature location
    └── audit/              # Append-only audit logs (JSONL)

Signing tokens are never used as file names directly; the index is keyed
by their SHA-256 digest so arbitrary user input cannot escape the store.
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional, Protocol

from .config import DEFAULT_INKSEAL_DIR
from .errors import DocumentNotFound, SignatureNotFound
from .models import (
    AuditEntry,
    Document,
    DocumentStatus,
    Signature,
    SignatureStatus,
)

logger = logging.getLogger("inkseal.store")

_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(base: Path) -> threading.RLock:
    key = base.resolve()
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.RLock()
        return _locks[key]


def _token_key(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _atomic_write(path: Path, text: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class SignatureRepository(Protocol):
    """What the signing core needs from persistence.

    Implementations must make ``update_signature_if`` and
    ``update_document_if`` atomic: the status comparison and the write
    happen as one step, so a concurrent caller sees either the state
    before or after, never a lost update.
    """

    def load_document(self, document_id: str) -> Document: ...

    def save_document(self, document: Document) -> Path: ...

    def add_signature(self, signature: Signature) -> None: ...

    def remove_signature(self, token: str) -> None: ...

    def load_signature(self, token: str) -> Signature: ...

    def list_signatures(self, document_id: str) -> list[Signature]: ...

    def update_signature_if(
        self, token: str, expected: SignatureStatus, **changes: Any
    ) -> Optional[Signature]: ...

    def update_document_if(
        self,
        document_id: str,
        allowed: Iterable[DocumentStatus],
        guard: Optional[Callable[[list[Signature]], bool]] = None,
        **changes: Any,
    ) -> Optional[Document]: ...

    def append_audit(self, entry: AuditEntry) -> None: ...


class SignatureStore:
    """Filesystem-backed persistence for documents, signatures and audit logs.

    Args:
        base_dir: Root directory for all inkseal data.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base = Path(base_dir) if base_dir else DEFAULT_INKSEAL_DIR
        self._documents_dir = self.base / "documents"
        self._tokens_dir = self.base / "tokens"
        self._audit_dir = self.base / "audit"

        for d in (self._documents_dir, self._tokens_dir, self._audit_dir):
            d.mkdir(parents=True, exist_ok=True)

        self._lock = _lock_for(self.base)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _document_path(self, document_id: str) -> Path:
        return self._documents_dir / document_id / "document.json"

    def save_document(self, document: Document) -> Path:
        """Save a document to disk.

        Args:
            document: Document to persist.

        Returns:
            Path to the document directory.
        """
        doc_dir = self._documents_dir / document.document_id
        (doc_dir / "signatures").mkdir(parents=True, exist_ok=True)
        with self._lock:
            _atomic_write(doc_dir / "document.json", document.model_dump_json(indent=2))
        logger.info("Saved document %s (%s)", document.title, document.document_id[:8])
        return doc_dir

    def load_document(self, document_id: str) -> Document:
        """Load a document by ID.

        Raises:
            DocumentNotFound: If the document doesn't exist.
        """
        path = self._document_path(document_id)
        if not path.is_file():
            raise DocumentNotFound(document_id)
        return Document.model_validate_json(path.read_text(encoding="utf-8"))

    def list_documents(
        self,
        status: Optional[DocumentStatus] = None,
    ) -> list[Document]:
        """List documents, optionally filtered by status.

        Returns:
            Documents sorted by creation date (newest first).
        """
        documents = []
        for doc_dir in self._documents_dir.iterdir():
            json_path = doc_dir / "document.json"
            if not json_path.exists():
                continue
            try:
                doc = Document.model_validate_json(json_path.read_text(encoding="utf-8"))
            except Exception as exc:
                logger.warning("Skipping invalid document %s: %s", doc_dir.name, exc)
                continue
            if status is None or doc.status == status:
                documents.append(doc)
        documents.sort(key=lambda d: d.created_at, reverse=True)
        return documents

    def update_document_if(
        self,
        document_id: str,
        allowed: Iterable[DocumentStatus],
        guard: Optional[Callable[[list[Signature]], bool]] = None,
        **changes: Any,
    ) -> Optional[Document]:
        """Apply ``changes`` only if the document is in one of ``allowed``.

        Args:
            document_id: Document to update.
            allowed: Statuses the document may currently be in.
            guard: Extra condition evaluated against the document's
                signatures, read under the same lock.
            **changes: Field values to set.

        Returns:
            The updated Document, or None if a condition failed.

        Raises:
            DocumentNotFound: If the document doesn't exist.
        """
        allowed = set(allowed)
        with self._lock:
            document = self.load_document(document_id)
            if document.status not in allowed:
                return None
            if guard is not None and not guard(self.list_signatures(document_id)):
                return None
            updated = document.model_copy(update=changes)
            _atomic_write(self._document_path(document_id), updated.model_dump_json(indent=2))
        return updated

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def _signature_path(self, document_id: str, signature_id: str) -> Path:
        return self._documents_dir / document_id / "signatures" / f"{signature_id}.json"

    def _resolve_token(self, token: str) -> Path:
        index = self._tokens_dir / f"{_token_key(token)}.json"
        if not index.is_file():
            raise SignatureNotFound()
        ref = json.loads(index.read_text(encoding="utf-8"))
        path = self._signature_path(ref["document_id"], ref["signature_id"])
        if not path.is_file():
            raise SignatureNotFound()
        return path

    def add_signature(self, signature: Signature) -> None:
        """Persist a new signature and index its token.

        Raises:
            DocumentNotFound: If the owning document doesn't exist.
        """
        if not self._document_path(signature.document_id).is_file():
            raise DocumentNotFound(signature.document_id)

        path = self._signature_path(signature.document_id, signature.signature_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        ref = {
            "document_id": signature.document_id,
            "signature_id": signature.signature_id,
        }
        with self._lock:
            _atomic_write(path, signature.model_dump_json(indent=2))
            _atomic_write(
                self._tokens_dir / f"{_token_key(signature.token)}.json",
                json.dumps(ref),
            )

    def remove_signature(self, token: str) -> None:
        """Delete a signature and its token index entry.

        Only used to discard signatures of a send that did not complete.
        Missing entries are ignored.
        """
        index = self._tokens_dir / f"{_token_key(token)}.json"
        with self._lock:
            if not index.is_file():
                return
            ref = json.loads(index.read_text(encoding="utf-8"))
            self._signature_path(ref["document_id"], ref["signature_id"]).unlink(missing_ok=True)
            index.unlink()
        logger.info("Removed signature %s", ref["signature_id"][:8])

    def load_signature(self, token: str) -> Signature:
        """Load a signature by its token.

        Raises:
            SignatureNotFound: If no signature carries this token.
        """
        path = self._resolve_token(token)
        return Signature.model_validate_json(path.read_text(encoding="utf-8"))

    def list_signatures(self, document_id: str) -> list[Signature]:
        """All signatures of a document, oldest first.

        Unlike the listing helpers, an unreadable signature file is an
        error here: completion must never be decided on a partial view.
        """
        sig_dir = self._documents_dir / document_id / "signatures"
        if not sig_dir.is_dir():
            return []
        signatures = [
            Signature.model_validate_json(f.read_text(encoding="utf-8"))
            for f in sig_dir.glob("*.json")
        ]
        signatures.sort(key=lambda s: (s.created_at, s.signature_id))
        return signatures

    def update_signature_if(
        self,
        token: str,
        expected: SignatureStatus,
        **changes: Any,
    ) -> Optional[Signature]:
        """Apply ``changes`` only if the signature's status is ``expected``.

        Returns:
            The updated Signature, or None if the status had moved on.

        Raises:
            SignatureNotFound: If no signature carries this token.
        """
        with self._lock:
            path = self._resolve_token(token)
            signature = Signature.model_validate_json(path.read_text(encoding="utf-8"))
            if signature.status != expected:
                return None
            updated = signature.model_copy(update=changes)
            _atomic_write(path, updated.model_dump_json(indent=2))
        return updated

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def append_audit(self, entry: AuditEntry) -> None:
        """Append an audit entry to the log (JSONL format)."""
        log_path = self._audit_dir / f"{entry.document_id}.jsonl"
        with self._lock, open(log_path, "a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")

    def get_audit_trail(self, document_id: str) -> list[AuditEntry]:
        """Load the full audit trail for a document, in chronological order."""
        log_path = self._audit_dir / f"{document_id}.jsonl"
        if not log_path.exists():
            return []

        entries = []
        for line in log_path.read_text(encoding="utf-8").strip().splitlines():
            try:
                entries.append(AuditEntry.model_validate_json(line))
            except Exception as exc:
                logger.warning("Skipping corrupt audit line for %s: %s", document_id[:8], exc)
        return sorted(entries, key=lambda e: e.timestamp)
