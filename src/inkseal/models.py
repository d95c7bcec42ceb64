"""Core data models for InkSeal signature capture and completion.

Stroke coordinates use a normalized (0-1) scale for resolution
independence: whatever canvas captured the signature, the persisted
points are the same, and the synthesized path is scaled to one fixed
viewport at render time.

Documents and signatures are deliberately separate entities. A document
owns 1..N signatures; each signature is addressed by an opaque token so
that knowing a document's internal ID never grants signing capability.
"""

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


MAX_STROKES = 50
MIN_POINTS_PER_STROKE = 2
MAX_POINTS_PER_STROKE = 1000


def new_token() -> str:
    """Generate an unguessable, URL-safe signing token (32 random bytes)."""
    return secrets.token_urlsafe(32)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SignatureStatus(str, Enum):
    """Lifecycle states for an individual signature request.

    PENDING is the only non-terminal state.
    """

    PENDING = "pending"
    SIGNED = "signed"
    DECLINED = "declined"
    EXPIRED = "expired"


class DocumentStatus(str, Enum):
    """Lifecycle states for a document awaiting signatures."""

    DRAFT = "draft"
    SENT = "sent"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Transition(str, Enum):
    """State changes reported back to callers so they can notify."""

    SIGNED = "signed"
    DECLINED = "declined"
    COMPLETED = "completed"


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    CREATED = "created"
    SENT = "sent"
    SIGNED = "signed"
    DECLINED = "declined"
    EXPIRED = "expired"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Stroke geometry
# ---------------------------------------------------------------------------

class Point(BaseModel):
    """A sampled pointer position in normalized space.

    Attributes:
        x: Horizontal position (0.0 = left edge, 1.0 = right edge).
        y: Vertical position (0.0 = top edge, 1.0 = bottom edge).
    """

    x: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)
    y: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)

    model_config = {"frozen": True}


Stroke = Annotated[
    list[Point],
    Field(min_length=MIN_POINTS_PER_STROKE, max_length=MAX_POINTS_PER_STROKE),
]


class SignatureData(BaseModel):
    """The raw drawing a signer submitted.

    Strokes are kept in drawing order; the synthesized path renders
    them in exactly this order.
    """

    strokes: list[Stroke] = Field(min_length=1, max_length=MAX_STROKES)

    @property
    def point_count(self) -> int:
        return sum(len(s) for s in self.strokes)


def normalize_point(
    x: float,
    y: float,
    canvas_width: float,
    canvas_height: float,
) -> Point:
    """Convert canvas pixel coordinates to a normalized point.

    Each axis is clamped to [0, 1], so samples dragged past the canvas
    edge land on the border instead of failing validation.

    Raises:
        ValueError: If either canvas dimension is not positive.
    """
    if canvas_width <= 0 or canvas_height <= 0:
        raise ValueError(
            f"Canvas dimensions must be positive, got {canvas_width}x{canvas_height}"
        )
    return Point(
        x=max(0.0, min(1.0, x / canvas_width)),
        y=max(0.0, min(1.0, y / canvas_height)),
    )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Recipient(BaseModel):
    """Someone a document is sent to for signing."""

    name: str
    email: str


class Signature(BaseModel):
    """One signer's obligation on one document.

    Created PENDING when the document is sent, then mutated exactly
    once into SIGNED, DECLINED or EXPIRED.

    Attributes:
        signature_id: Internal identifier. Never handed to signers.
        token: Opaque capability presented by the signer.
        document_id: Owning document.
        signer_name: Display name of the signer.
        signer_email: Contact email of the signer.
        status: Current lifecycle state.
        created_at: When the request was created.
        signed_at: Set only on the transition into SIGNED.
        declined_at: Set only on the transition into DECLINED.
        expired_at: Set only when expiry was detected.
        ip_address: Origin address at signing time (verbatim).
        user_agent: Client user agent at signing time (verbatim).
        svg_path: Synthesized path in the canonical 600x200 viewport.
        signature_data: The raw strokes that produced ``svg_path``.
    """

    signature_id: str = Field(default_factory=lambda: str(uuid4()))
    token: str = Field(default_factory=new_token)
    document_id: str
    signer_name: str
    signer_email: str
    status: SignatureStatus = SignatureStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    signed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    svg_path: Optional[str] = None
    signature_data: Optional[SignatureData] = None

    @property
    def is_pending(self) -> bool:
        return self.status == SignatureStatus.PENDING


class Document(BaseModel):
    """A document awaiting signatures.

    Only ``status`` (and the timestamps that go with it) is managed by
    the signing core; everything else belongs to the surrounding system.
    """

    document_id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    description: str = ""
    status: DocumentStatus = DocumentStatus.DRAFT
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class CompletionResult(BaseModel):
    """Result of re-evaluating a document after a signature transition.

    ``transitioned`` is True only for the single call that actually moved
    the document into COMPLETED.
    """

    document_id: str
    completed: bool
    transitioned: bool = False


class SignOutcome(BaseModel):
    signature: Signature
    all_signed: bool
    transitions: list[Transition] = Field(default_factory=list)


class DeclineOutcome(BaseModel):
    signature: Signature
    transitions: list[Transition] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

class AuditEntry(BaseModel):
    """Immutable audit log entry for legal provenance.

    Attributes:
        entry_id: Unique identifier.
        document_id: Related document.
        action: What happened.
        signature_id: Signature involved, if any.
        actor_name: Human-readable name of whoever acted.
        timestamp: When it happened.
        details: Free-form details about the action.
        ip_address: Origin address at the time of the action.
    """

    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    document_id: str
    action: AuditAction
    signature_id: Optional[str] = None
    actor_name: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    details: str = ""
    ip_address: Optional[str] = None
