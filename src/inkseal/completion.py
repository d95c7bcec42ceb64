"""Completion aggregation for multi-signer documents.

A document is completed only when every one of its signatures is
SIGNED. A single DECLINED or EXPIRED signature disqualifies it for good:
there is no partial completion and no majority rule, and nothing here
cancels the document. That decision belongs to the surrounding system.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Optional

from .models import (
    AuditAction,
    AuditEntry,
    CompletionResult,
    DocumentStatus,
    Signature,
    SignatureStatus,
    utcnow,
)
from .store import SignatureRepository

logger = logging.getLogger("inkseal.completion")

# A cancelled document is never revived.
_COMPLETABLE = (DocumentStatus.DRAFT, DocumentStatus.SENT)


def all_signed(signatures: Sequence[Signature]) -> bool:
    """True if there is at least one signature and all are SIGNED."""
    return bool(signatures) and all(
        s.status == SignatureStatus.SIGNED for s in signatures
    )


class CompletionAggregator:
    """Promotes documents to COMPLETED once every signer has signed.

    Safe to run concurrently for the same document: the transition is
    a conditional update, so exactly one caller sees ``transitioned``.
    """

    def __init__(
        self,
        store: SignatureRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or utcnow

    def recompute(self, document_id: str) -> CompletionResult:
        """Re-evaluate a document and complete it if eligible.

        Args:
            document_id: Document to evaluate.

        Returns:
            CompletionResult. Invoking this on an already completed
            document is a no-op that reports ``completed=True``.

        Raises:
            DocumentNotFound: If the document doesn't exist.
        """
        document = self.store.load_document(document_id)
        if document.status == DocumentStatus.COMPLETED:
            return CompletionResult(document_id=document_id, completed=True)

        signatures = self.store.list_signatures(document_id)
        if not all_signed(signatures):
            return CompletionResult(document_id=document_id, completed=False)

        now = self._clock()
        updated = self.store.update_document_if(
            document_id,
            _COMPLETABLE,
            guard=all_signed,
            status=DocumentStatus.COMPLETED,
            completed_at=now,
        )

        if updated is None:
            # Someone else got there first, or the document was cancelled.
            current = self.store.load_document(document_id)
            return CompletionResult(
                document_id=document_id,
                completed=current.status == DocumentStatus.COMPLETED,
            )

        self.store.append_audit(
            AuditEntry(
                document_id=document_id,
                action=AuditAction.COMPLETED,
                timestamp=now,
                details=f"All {len(signatures)} signers have signed.",
            )
        )
        logger.info("Document %s completed (%d signatures)", document_id[:8], len(signatures))
        return CompletionResult(document_id=document_id, completed=True, transitioned=True)
