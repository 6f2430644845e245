"""Credential records and the per-snapshot credential registry.

The registry is a pure query over the credential set of one snapshot:
it never mutates, and authorization needs no locks.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from caaspay.errors import ConfigError, ConfigErrorKind
from caaspay.security.secrets import ARGON2_PREFIX, SCRYPT_PREFIX, hash_secret, verify_secret


class CredentialStatus(StrEnum):
    """Revocation is a status, never a deletion, so audit trails survive reloads."""

    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """One caller from ``credentials.yaml``."""

    id: str
    secret_hash: bytes
    capabilities: frozenset[str] = frozenset()
    status: CredentialStatus = CredentialStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(id={self.id!r}, capabilities={sorted(self.capabilities)!r}, "
            f"status={self.status.value!r})"
        )


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """The opaque caller identity handed to route handlers."""

    id: str
    capabilities: frozenset[str] = frozenset()
    authenticated: bool = True

    def has(self, capability: str) -> bool:
        return capability in self.capabilities


ANONYMOUS = CallerIdentity(id="", authenticated=False)


class DenyReason(StrEnum):
    UNKNOWN_CALLER = "unknown_caller"
    BAD_SECRET = "bad_secret"
    REVOKED = "revoked"
    INSUFFICIENT_CAPABILITY = "insufficient_capability"


@dataclass(frozen=True, slots=True)
class Authorized:
    caller: CallerIdentity


@dataclass(frozen=True, slots=True)
class Denied:
    reason: DenyReason
    caller_id: str
    missing: frozenset[str] = frozenset()

    @property
    def status(self) -> int:
        """401 for authentication failures, 403 for missing capabilities."""
        if self.reason is DenyReason.INSUFFICIENT_CAPABILITY:
            return 403
        return 401


AuthorizationResult: TypeAlias = Authorized | Denied

# Slowest first
_SCHEMES = ((ARGON2_PREFIX, "argon2"), (SCRYPT_PREFIX, "scrypt"))


@functools.cache
def dummy_hash(scheme: str) -> bytes:
    """A throwaway hash unknown callers are verified against."""
    return hash_secret("caaspay-unknown-caller", scheme=scheme).encode("ascii")


def _slowest_scheme(records: Iterable[CredentialRecord]) -> str:
    hashes = [record.secret_hash for record in records]
    for prefix, scheme in _SCHEMES:
        if any(h.startswith(prefix.encode("ascii")) for h in hashes):
            return scheme
    return "sha256"


class CredentialRegistry:
    """Credential records indexed by caller id.

    Usage::

        registry = CredentialRegistry([record_a, record_b])
        result = registry.authorize("svc-a", "secret", frozenset({"read:accounts"}))
        if isinstance(result, Denied):
            ...
    """

    __slots__ = ("_dummy_scheme", "_records")

    def __init__(self, records: Iterable[CredentialRecord] = ()) -> None:
        index: dict[str, CredentialRecord] = {}
        for position, record in enumerate(records):
            if not record.id:
                raise ConfigError(
                    ConfigErrorKind.MISSING_FIELD,
                    "credential id must be non-empty",
                    source="credentials.yaml",
                    index=position,
                )
            if record.id in index:
                raise ConfigError(
                    ConfigErrorKind.DUPLICATE_CREDENTIAL,
                    f"credential id {record.id!r} defined more than once",
                    source="credentials.yaml",
                    index=position,
                )
            index[record.id] = record
        self._records = index
        # Unknown callers pay the cost of the slowest scheme in use, so the
        # response time does not reveal which ids exist
        self._dummy_scheme = _slowest_scheme(index.values())

    def authorize(
        self,
        caller_id: str,
        presented_secret: str,
        required_capabilities: frozenset[str],
    ) -> AuthorizationResult:
        """Decide whether *caller_id* may call a route requiring *required_capabilities*.

        The secret is verified before revocation or capabilities are looked
        at, so an unauthenticated caller learns nothing beyond "401".
        """
        record = self._records.get(caller_id)
        if record is None:
            verify_secret(presented_secret or "-", dummy_hash(self._dummy_scheme))
            return Denied(DenyReason.UNKNOWN_CALLER, caller_id)

        if not verify_secret(presented_secret, record.secret_hash):
            return Denied(DenyReason.BAD_SECRET, caller_id)

        if record.status is CredentialStatus.REVOKED:
            return Denied(DenyReason.REVOKED, caller_id)

        missing = required_capabilities - record.capabilities
        if missing:
            return Denied(DenyReason.INSUFFICIENT_CAPABILITY, caller_id, frozenset(missing))

        return Authorized(CallerIdentity(id=record.id, capabilities=record.capabilities))

    def get(self, caller_id: str) -> CredentialRecord | None:
        return self._records.get(caller_id)

    @property
    def records(self) -> tuple[CredentialRecord, ...]:
        return tuple(self._records.values())

    def __contains__(self, caller_id: object) -> bool:
        return caller_id in self._records

    def __iter__(self) -> Iterator[CredentialRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        active = sum(1 for r in self._records.values() if r.status is CredentialStatus.ACTIVE)
        return f"<CredentialRegistry records={len(self._records)} active={active}>"
