"""Security — caller credentials, secret hashing, and audit events.

Authorization against a snapshot's registry::

    result = snapshot.credentials.authorize("svc-a", secret, {"accounts:read"})
    if isinstance(result, Authorized):
        result.caller.id

Secret hashing for ``credentials.yaml``::

    from caaspay.security import hash_secret, verify_secret

    encoded = hash_secret("my-secret", scheme="argon2")
    ok = verify_secret("my-secret", encoded)
"""

from caaspay.security.audit import SecurityEvent, emit_security_event, set_security_event_sink
from caaspay.security.credentials import (
    ANONYMOUS,
    Authorized,
    CallerIdentity,
    CredentialRecord,
    CredentialRegistry,
    CredentialStatus,
    Denied,
    DenyReason,
)
from caaspay.security.secrets import InvalidSecretHash, hash_secret, verify_secret

__all__ = [
    "ANONYMOUS",
    "Authorized",
    "CallerIdentity",
    "CredentialRecord",
    "CredentialRegistry",
    "CredentialStatus",
    "Denied",
    "DenyReason",
    "InvalidSecretHash",
    "SecurityEvent",
    "emit_security_event",
    "hash_secret",
    "set_security_event_sink",
    "verify_secret",
]
