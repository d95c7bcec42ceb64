"""Shared fixtures for InkSeal tests."""

from datetime import datetime, timedelta, timezone

import pytest

from inkseal.engine import SignatureEngine
from inkseal.models import Document, Recipient
from inkseal.store import SignatureStore


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def tmp_store(tmp_path):
    """Create a temporary SignatureStore."""
    return SignatureStore(base_dir=tmp_path)


@pytest.fixture
def engine(tmp_store, clock):
    return SignatureEngine(tmp_store, clock=clock)


@pytest.fixture
def signature_data() -> dict:
    """A simple two-stroke signature in normalized space."""
    return {
        "strokes": [
            [{"x": 0.0, "y": 0.0}, {"x": 1.0, "y": 1.0}],
            [
                {"x": 0.1, "y": 0.5},
                {"x": 0.2, "y": 0.4},
                {"x": 0.3, "y": 0.6},
                {"x": 0.4, "y": 0.5},
            ],
        ]
    }


@pytest.fixture
def send_document(tmp_store, engine):
    """Factory: create a document and send it to ``n`` signers.

    Returns (document_id, [tokens]).
    """

    def _send(n: int = 2, expires_at=None):
        doc = Document(title="Service Agreement", expires_at=expires_at)
        tmp_store.save_document(doc)
        recipients = [
            Recipient(name=f"Signer {i}", email=f"signer{i}@example.com")
            for i in range(n)
        ]
        signatures = engine.send_document(doc.document_id, recipients)
        return doc.document_id, [s.token for s in signatures]

    return _send
