"""InkSeal signing engine — signature request lifecycle.

Owns the per-signature state machine::

    PENDING --sign-->    SIGNED
    PENDING --decline--> DECLINED
    PENDING --expiry-->  EXPIRED

All three targets are terminal. Every transition is a conditional
update on the store ("only if still PENDING"), so concurrent callers on
the same token resolve to exactly one winner.

Expiry is lazy: there is no background sweeper. Whenever a pending
signature is read, the owning document's deadline is checked and the
signature is expired on the spot if it has passed.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from .completion import CompletionAggregator
from .errors import (
    AlreadyProcessed,
    InvalidTransition,
    SignatureExpired,
    SignatureValidationError,
)
from .geometry import DEFAULT_TOLERANCE, simplify_strokes
from .models import (
    AuditAction,
    AuditEntry,
    DeclineOutcome,
    Document,
    DocumentStatus,
    Recipient,
    SignatureData,
    Signature,
    SignatureStatus,
    SignOutcome,
    Transition,
    utcnow,
)
from .store import SignatureRepository
from .svgpath import synthesize

logger = logging.getLogger("inkseal.engine")


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_past_deadline(expires_at: Optional[datetime], now: datetime) -> bool:
    """True if a deadline is set and ``now`` is strictly after it."""
    return expires_at is not None and _as_utc(now) > _as_utc(expires_at)


class SignatureEngine:
    """Signature request lifecycle: lookup, lazy expiry, sign, decline.

    Args:
        store: Persistence with atomic conditional updates.
        tolerance: Stroke simplification tolerance (normalized units).
        clock: Returns the current time; injectable for tests.
        aggregator: Completion aggregator. Built on ``store`` if omitted.
    """

    def __init__(
        self,
        store: SignatureRepository,
        tolerance: float = DEFAULT_TOLERANCE,
        clock: Optional[Callable[[], datetime]] = None,
        aggregator: Optional[CompletionAggregator] = None,
    ) -> None:
        if not tolerance >= 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance!r}")
        self.store = store
        self.tolerance = tolerance
        self._clock = clock or utcnow
        self.aggregator = aggregator or CompletionAggregator(store, clock=self._clock)

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    @staticmethod
    def validate(signature_data: Any) -> SignatureData:
        """Check submitted data before any geometry work is done.

        Accepts a SignatureData, its dict form, or a bare list of strokes.

        Raises:
            SignatureValidationError: If the data is malformed.
        """
        if isinstance(signature_data, list):
            signature_data = {"strokes": signature_data}
        try:
            return SignatureData.model_validate(signature_data)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}"
                for err in exc.errors()[:3]
            )
            raise SignatureValidationError(
                f"Invalid signature data: {details}", errors=exc.errors()
            ) from exc

    @staticmethod
    def render_path(
        signature_data: SignatureData,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> str:
        """Simplify every stroke and synthesize the canonical SVG path."""
        return synthesize(simplify_strokes(signature_data.strokes, tolerance))

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_document(
        self,
        document_id: str,
        recipients: Iterable[Recipient],
    ) -> list[Signature]:
        """Create one pending signature per recipient and mark the document SENT.

        Args:
            document_id: A DRAFT document.
            recipients: Who must sign.

        Returns:
            The new signatures; their tokens go into the invitations.

        Raises:
            DocumentNotFound: If the document doesn't exist.
            InvalidTransition: If there are no recipients or the document
                is not a draft.
        """
        recipients = list(recipients)
        if not recipients:
            raise InvalidTransition("A document needs at least one recipient")

        document = self.store.load_document(document_id)
        if document.status != DocumentStatus.DRAFT:
            raise InvalidTransition(
                f"Cannot send a document in status {document.status.value}"
            )

        # Signers are written before the document leaves DRAFT. On failure
        # they are discarded and the document stays a draft.
        now = self._clock()
        signatures: list[Signature] = []
        try:
            for recipient in recipients:
                signature = Signature(
                    document_id=document_id,
                    signer_name=recipient.name,
                    signer_email=recipient.email,
                    created_at=now,
                )
                self.store.add_signature(signature)
                signatures.append(signature)

            sent = self.store.update_document_if(
                document_id,
                (DocumentStatus.DRAFT,),
                status=DocumentStatus.SENT,
                sent_at=now,
            )
            if sent is None:
                current = self.store.load_document(document_id)
                raise InvalidTransition(
                    f"Cannot send a document in status {current.status.value}"
                )
        except Exception:
            logger.warning(
                "Sending document %s failed, discarding %d signatures",
                document_id[:8],
                len(signatures),
            )
            for signature in signatures:
                self.store.remove_signature(signature.token)
            raise

        self.store.append_audit(
            AuditEntry(
                document_id=document_id,
                action=AuditAction.SENT,
                timestamp=now,
                details="Sent to " + ", ".join(r.email for r in recipients),
            )
        )
        logger.info("Sent document %s to %d signers", document_id[:8], len(signatures))
        return signatures

    # ------------------------------------------------------------------
    # Lookup and expiry
    # ------------------------------------------------------------------

    def lookup(self, token: str, now: Optional[datetime] = None) -> Signature:
        """Find a signature by token, applying lazy expiry.

        Raises:
            SignatureNotFound: If no signature carries this token.
        """
        signature = self.store.load_signature(token)
        if not signature.is_pending:
            return signature
        document = self.store.load_document(signature.document_id)
        return self.evaluate_expiry(signature, document.expires_at, now)

    def evaluate_expiry(
        self,
        signature: Signature,
        document_expires_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> Signature:
        """Expire a pending signature whose document deadline has passed.

        The write is conditional on the signature still being PENDING,
        so it never overwrites a concurrent sign or decline.

        Returns:
            The signature as it now stands in the store.
        """
        now = now or self._clock()
        if not signature.is_pending or not is_past_deadline(document_expires_at, now):
            return signature

        updated = self.store.update_signature_if(
            signature.token,
            SignatureStatus.PENDING,
            status=SignatureStatus.EXPIRED,
            expired_at=now,
        )
        if updated is None:
            logger.warning(
                "Signature %s changed state while being expired",
                signature.signature_id[:8],
            )
            return self.store.load_signature(signature.token)

        self.store.append_audit(
            AuditEntry(
                document_id=signature.document_id,
                action=AuditAction.EXPIRED,
                signature_id=signature.signature_id,
                actor_name=signature.signer_name,
                timestamp=now,
                details=f"Deadline {_as_utc(document_expires_at).isoformat()} passed.",
            )
        )
        logger.info(
            "Signature %s on document %s expired",
            signature.signature_id[:8],
            signature.document_id[:8],
        )
        return updated

    @staticmethod
    def _require_pending(signature: Signature) -> None:
        if signature.status == SignatureStatus.EXPIRED:
            raise SignatureExpired()
        if signature.status != SignatureStatus.PENDING:
            raise AlreadyProcessed(status=signature.status)

    def open_for_signing(self, token: str) -> tuple[Signature, Document]:
        """Load a signature that can still be acted on, with its document.

        Raises:
            SignatureNotFound: Unknown token.
            SignatureExpired: The deadline passed.
            AlreadyProcessed: Already signed or declined.
        """
        signature = self.lookup(token)
        self._require_pending(signature)
        return signature, self.store.load_document(signature.document_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _lost_race(self, token: str) -> AlreadyProcessed:
        current = self.store.load_signature(token)
        logger.warning(
            "Signature %s was processed concurrently (now %s)",
            current.signature_id[:8],
            current.status.value,
        )
        if current.status == SignatureStatus.EXPIRED:
            return SignatureExpired()
        return AlreadyProcessed(status=current.status)

    def sign(
        self,
        token: str,
        signature_data: Any,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignOutcome:
        """Sign a pending signature request.

        Simplifies the strokes, synthesizes the SVG path, records it with
        the raw data and provenance, then re-evaluates the document.

        Args:
            token: Signing token.
            signature_data: Normalized strokes (see :meth:`validate`).
            ip_address: Origin address, stored verbatim.
            user_agent: Client user agent, stored verbatim.

        Returns:
            SignOutcome with ``all_signed`` and the transitions that occurred.

        Raises:
            SignatureValidationError: Malformed signature data.
            SignatureNotFound: Unknown token.
            SignatureExpired: The deadline passed.
            AlreadyProcessed: Not PENDING, including losing a race.
        """
        data = self.validate(signature_data)
        now = self._clock()
        signature = self.lookup(token, now)
        self._require_pending(signature)

        svg_path = self.render_path(data, self.tolerance)

        updated = self.store.update_signature_if(
            token,
            SignatureStatus.PENDING,
            status=SignatureStatus.SIGNED,
            signed_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
            signature_data=data,
            svg_path=svg_path,
        )
        if updated is None:
            raise self._lost_race(token)

        self.store.append_audit(
            AuditEntry(
                document_id=updated.document_id,
                action=AuditAction.SIGNED,
                signature_id=updated.signature_id,
                actor_name=updated.signer_name,
                timestamp=now,
                details=f"Signed with {len(data.strokes)} strokes.",
                ip_address=ip_address,
            )
        )
        logger.info(
            "Signer %s signed document %s",
            updated.signer_name,
            updated.document_id[:8],
        )

        completion = self.aggregator.recompute(updated.document_id)
        transitions = [Transition.SIGNED]
        if completion.transitioned:
            transitions.append(Transition.COMPLETED)

        return SignOutcome(
            signature=updated,
            all_signed=completion.completed,
            transitions=transitions,
        )

    def decline(self, token: str) -> DeclineOutcome:
        """Decline a pending signature request.

        The owning document stays SENT; it can no longer complete.

        Raises:
            SignatureNotFound: Unknown token.
            SignatureExpired: The deadline passed.
            AlreadyProcessed: Not PENDING, including losing a race.
        """
        now = self._clock()
        signature = self.lookup(token, now)
        self._require_pending(signature)

        updated = self.store.update_signature_if(
            token,
            SignatureStatus.PENDING,
            status=SignatureStatus.DECLINED,
            declined_at=now,
        )
        if updated is None:
            raise self._lost_race(token)

        self.store.append_audit(
            AuditEntry(
                document_id=updated.document_id,
                action=AuditAction.DECLINED,
                signature_id=updated.signature_id,
                actor_name=updated.signer_name,
                timestamp=now,
            )
        )
        logger.info(
            "Signer %s declined document %s",
            updated.signer_name,
            updated.document_id[:8],
        )
        return DeclineOutcome(signature=updated, transitions=[Transition.DECLINED])
