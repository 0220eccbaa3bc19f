"""Authenticator: Capability check gating admin operations.

The oracle asks an :class:`Authenticator` whether a caller proved its
identity for an operation, then compares that identity with the
configured admin.

- :class:`TrustedAuthenticator` accepts the caller identity as given; use
  it when the host environment has already authenticated the caller.
- :class:`SignatureAuthenticator` requires :class:`Credentials` carrying
  an Ethereum signed message that recovers to the claimed address.

With a ``domain``, signed messages have the form
``<domain>:<operation>:<timestamp_ms>``. They are accepted only for the
named operation, within ``max_age`` of the clock, and only once.

.. code-block:: python

    account = Account.create()
    creds = Credentials.for_operation(account, b"rwa-oracle:admin", "add_assets", now_ms())
    SignatureAuthenticator(domain=b"rwa-oracle:admin").verify(creds, "add_assets")  # True
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .clock import Clock, now_ms

logger = logging.getLogger(__name__)


def request_message(domain: bytes, operation: str, timestamp: int) -> bytes:
    """Build the message signed for one admin request."""
    return b"%s:%s:%d" % (domain, operation.encode(), timestamp)


@dataclass(frozen=True)
class Credentials:
    """A caller identity with an optional signature proving it.

    :ivar address: Claimed caller address.
    :ivar message: Signed message.
    :ivar signature: 65-byte signature over ``message``.
    """

    address: str
    message: bytes = b""
    signature: bytes | None = None

    @classmethod
    def sign(cls, account: LocalAccount, message: bytes) -> Credentials:
        """Create credentials signed by ``account``.

        :param account: Local signing account.
        :param message: Message to sign.
        :returns: Credentials for the account address.
        """
        signed = account.sign_message(encode_defunct(primitive=message))
        return cls(address=account.address, message=message, signature=bytes(signed.signature))

    @classmethod
    def for_operation(
        cls, account: LocalAccount, domain: bytes, operation: str, timestamp: int
    ) -> Credentials:
        """Sign a single admin request.

        :param account: Local signing account.
        :param domain: Message prefix expected by the verifier.
        :param operation: Operation being authorized.
        :param timestamp: Request time in milliseconds.
        """
        return cls.sign(account, request_message(domain, operation, timestamp))


Caller = Union[str, Credentials]


def caller_address(caller: Caller) -> str:
    """Return the identity claimed by ``caller``."""
    return caller.address if isinstance(caller, Credentials) else caller


def same_identity(a: str, b: str) -> bool:
    """Compare identities; hex addresses compare case-insensitively."""
    if Web3.is_address(a.lower()) and Web3.is_address(b.lower()):
        return a.lower() == b.lower()
    return a == b


class Authenticator(ABC):
    """Abstract base class for caller verification."""

    @abstractmethod
    def verify(self, caller: Caller, operation: str | None = None) -> bool:
        """Check that ``caller`` proved the identity it claims.

        :param caller: Caller identity or credentials.
        :param operation: Operation the caller asks to perform.
        :returns: True if verified.
        """
        pass


class TrustedAuthenticator(Authenticator):
    """Accepts any caller; identity is established by the host."""

    def verify(self, caller: Caller, operation: str | None = None) -> bool:
        return bool(caller_address(caller))


class SignatureAuthenticator(Authenticator):
    """Verifies Ethereum signed-message credentials.

    :ivar expected_message: If set, the only message accepted.
    :ivar domain: If set, messages must be requests in this domain.
    :ivar max_age: Largest accepted request age in milliseconds.
    :ivar clock: Millisecond clock for the age check.
    """

    def __init__(
        self,
        expected_message: bytes | None = None,
        domain: bytes | None = None,
        max_age: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.expected_message = expected_message
        self.domain = domain
        self.max_age = max_age
        self.clock = clock
        # Accepted request signatures mapped to their timestamps.
        self._used: dict[bytes, int] = {}

    def verify(self, caller: Caller, operation: str | None = None) -> bool:
        if not isinstance(caller, Credentials) or not caller.signature:
            return False
        if self.expected_message is not None and caller.message != self.expected_message:
            return False

        timestamp = None
        if self.domain is not None:
            timestamp = self._check_request(caller.message, operation)
            if timestamp is None:
                return False

        try:
            recovered = Account.recover_message(
                encode_defunct(primitive=caller.message), signature=caller.signature
            )
        except Exception as exc:  # eth-keys raises its own error types for bad signatures
            logger.warning(f"Signature recovery failed for {caller.address}: {exc}")
            return False
        if not same_identity(recovered, caller.address):
            return False

        if timestamp is not None:
            if caller.signature in self._used:
                logger.warning(f"Replayed admin request from {caller.address}")
                return False
            self._forget_expired()
            self._used[caller.signature] = timestamp
        return True

    def _check_request(self, message: bytes, operation: str | None) -> int | None:
        """Return the request timestamp, or None if the request is not acceptable."""
        parts = message.rsplit(b":", 2)
        if len(parts) != 3 or parts[0] != self.domain:
            return None
        if operation is not None and parts[1] != operation.encode():
            return None
        try:
            timestamp = int(parts[2])
        except ValueError:
            return None
        if self.max_age is not None and abs(self.clock() - timestamp) > self.max_age:
            logger.warning(f"Admin request for {parts[1]!r} expired at {timestamp}")
            return None
        return timestamp

    def _forget_expired(self) -> None:
        if self.max_age is None:
            return
        cutoff = self.clock() - self.max_age
        self._used = {sig: ts for sig, ts in self._used.items() if ts >= cutoff}
