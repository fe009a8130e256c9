"""
Signing identities.

The orchestrator only needs an address and the ability to sign a request.
Key custody and wallet UX live outside this package.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, runtime_checkable

from blockfund.ledger.models import LedgerRequest


@runtime_checkable
class Signer(Protocol):
    """Identity provider used by the orchestrator."""

    @property
    def address(self) -> str: ...

    def sign(self, request: LedgerRequest) -> LedgerRequest:
        """Return a copy of ``request`` with sender and signature set."""
        ...


class LocalKeySigner:
    """Signer backed by a local secret.

    The address is derived from the secret, the signature is an HMAC over
    the canonical request payload.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Signer secret must not be empty")
        self._secret = secret.encode("utf-8")
        self._address = "0x" + hashlib.sha256(self._secret).hexdigest()[-40:]

    @property
    def address(self) -> str:
        return self._address

    def sign(self, request: LedgerRequest) -> LedgerRequest:
        unsigned = request.model_copy(update={"sender": self._address, "signature": ""})
        digest = hmac.new(self._secret, unsigned.signing_payload(), hashlib.sha256).hexdigest()
        return unsigned.model_copy(update={"signature": digest})

    def verify(self, request: LedgerRequest) -> bool:
        expected = self.sign(request).signature
        return hmac.compare_digest(expected, request.signature)

    def __repr__(self) -> str:
        return f"LocalKeySigner(address={self._address!r})"
