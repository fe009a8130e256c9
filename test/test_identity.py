"""Tests for local request signing."""

import pytest

from blockfund.identity import LocalKeySigner, Signer
from blockfund.ledger.models import LedgerRequest, Operation, compute_tx_hash


def _request() -> LedgerRequest:
    return LedgerRequest(
        request_id="req-1",
        sender="placeholder",
        operation=Operation.CONTRIBUTE,
        campaign_id=1,
        value=5,
    )


class TestLocalKeySigner:
    def test_address_is_stable_and_distinct(self) -> None:
        first = LocalKeySigner("secret-a")

        assert first.address == LocalKeySigner("secret-a").address
        assert first.address != LocalKeySigner("secret-b").address
        assert first.address.startswith("0x")
        assert len(first.address) == 42

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            LocalKeySigner("")

    def test_sign_sets_sender_and_signature(self) -> None:
        signer = LocalKeySigner("secret-a")
        signed = signer.sign(_request())

        assert signed.sender == signer.address
        assert len(signed.signature) == 64
        assert signer.verify(signed)
        assert not LocalKeySigner("secret-b").verify(signed)

    def test_tampering_breaks_signature(self) -> None:
        signer = LocalKeySigner("secret-a")
        signed = signer.sign(_request())
        tampered = signed.model_copy(update={"value": 500})

        assert not signer.verify(tampered)

    def test_tx_hash_ignores_signature(self) -> None:
        signer = LocalKeySigner("secret-a")
        signed = signer.sign(_request())

        assert compute_tx_hash(signed) == compute_tx_hash(signed.model_copy(update={"signature": ""}))

    def test_satisfies_protocol(self) -> None:
        assert isinstance(LocalKeySigner("secret-a"), Signer)
