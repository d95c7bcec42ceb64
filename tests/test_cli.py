"""Tests for the inkseal command line."""

import json

import pytest
from click.testing import CliRunner

from inkseal.cli import main
from inkseal.models import DocumentStatus, SignatureStatus
from inkseal.store import SignatureStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path, monkeypatch):
    """Run the CLI against a data directory under tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("INKSEAL_HOME", raising=False)
    data_dir = tmp_path / "data"

    def _invoke(*args, **kwargs):
        return runner.invoke(main, ["--data-dir", str(data_dir), *args], **kwargs)

    _invoke.store = lambda: SignatureStore(data_dir)
    return _invoke


@pytest.fixture
def strokes_file(tmp_path, signature_data):
    path = tmp_path / "strokes.json"
    path.write_text(json.dumps(signature_data), encoding="utf-8")
    return path


@pytest.fixture
def sent(invoke):
    """A document sent to one signer. Returns (document_id, token)."""
    result = invoke("create", "Service Agreement", "--expires-in-days", "14")
    assert result.exit_code == 0, result.output
    doc_id = result.output.strip()

    result = invoke("send", doc_id, "--signer", "Ada Lovelace <ada@example.com>")
    assert result.exit_code == 0, result.output

    (signature,) = invoke.store().list_signatures(doc_id)
    return doc_id, signature.token


class TestDocuments:

    def test_create_prints_id(self, invoke):
        result = invoke("create", "NDA", "--description", "Mutual NDA")
        assert result.exit_code == 0
        doc = invoke.store().load_document(result.output.strip())
        assert doc.title == "NDA"
        assert doc.status == DocumentStatus.DRAFT

    def test_send_moves_to_sent(self, invoke, sent):
        doc_id, _ = sent
        assert invoke.store().load_document(doc_id).status == DocumentStatus.SENT

    def test_send_twice_fails(self, invoke, sent):
        doc_id, _ = sent
        result = invoke("send", doc_id, "--signer", "Grace <grace@example.com>")
        assert result.exit_code == 1
        assert "Cannot send" in result.output

    def test_send_rejects_bad_signer(self, invoke):
        doc_id = invoke("create", "NDA").output.strip()
        result = invoke("send", doc_id, "--signer", "no address here")
        assert result.exit_code == 2

    def test_list(self, invoke, sent):
        result = invoke("list", "--status", "sent")
        assert result.exit_code == 0
        assert "Service Agreement" in result.output

    def test_list_empty(self, invoke):
        result = invoke("list")
        assert "No documents found" in result.output


class TestSigning:

    def test_show(self, invoke, sent):
        _, token = sent
        result = invoke("show", token)
        assert result.exit_code == 0
        assert "Ada Lovelace" in result.output

    def test_show_unknown_token(self, invoke, sent):
        result = invoke("show", "bogus-token")
        assert result.exit_code == 1
        assert "Signature not found" in result.output

    def test_sign_completes_document(self, invoke, sent, strokes_file):
        doc_id, token = sent
        result = invoke("sign", token, str(strokes_file), "--ip", "203.0.113.7")
        assert result.exit_code == 0, result.output
        assert "Signed!" in result.output

        store = invoke.store()
        signature = store.load_signature(token)
        assert signature.status == SignatureStatus.SIGNED
        assert signature.ip_address == "203.0.113.7"
        assert store.load_document(doc_id).status == DocumentStatus.COMPLETED

    def test_sign_invalid_strokes(self, invoke, sent, tmp_path):
        _, token = sent
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"strokes": [[{"x": 0.5, "y": 0.5}]]}), encoding="utf-8")

        result = invoke("sign", token, str(bad))
        assert result.exit_code == 1
        assert "Invalid signature data" in result.output
        assert invoke.store().load_signature(token).status == SignatureStatus.PENDING

    def test_decline_after_sign(self, invoke, sent, strokes_file):
        _, token = sent
        invoke("sign", token, str(strokes_file))

        result = invoke("decline", token)
        assert result.exit_code == 1
        assert "already been processed" in result.output

    def test_decline(self, invoke, sent):
        _, token = sent
        result = invoke("decline", token)
        assert result.exit_code == 0
        assert "Declined" in result.output
        assert invoke.store().load_signature(token).status == SignatureStatus.DECLINED


class TestReporting:

    def test_status(self, invoke, sent):
        doc_id, _ = sent
        result = invoke("status", doc_id)
        assert result.exit_code == 0
        assert "Ada Lovelace" in result.output
        assert "pending" in result.output

    def test_status_unknown_document(self, invoke):
        result = invoke("status", "missing")
        assert result.exit_code == 1
        assert "Document not found" in result.output

    def test_render_to_file(self, invoke, sent, strokes_file, tmp_path):
        _, token = sent
        invoke("sign", token, str(strokes_file))
        out = tmp_path / "sig.svg"

        result = invoke("render", token, "-o", str(out))
        assert result.exit_code == 0
        svg = out.read_text(encoding="utf-8")
        assert 'viewBox="0 0 600 200"' in svg
        assert "M 0.0 0.0 L 600.0 200.0" in svg

    def test_render_pending(self, invoke, sent):
        _, token = sent
        result = invoke("render", token)
        assert result.exit_code == 1
        assert "nothing to render" in result.output

    def test_audit(self, invoke, sent, strokes_file):
        doc_id, token = sent
        invoke("sign", token, str(strokes_file))

        result = invoke("audit", doc_id)
        assert result.exit_code == 0
        for action in ("created", "sent", "signed", "completed"):
            assert action in result.output
