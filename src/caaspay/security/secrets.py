"""Caller secret hashing and verification.

``credentials.yaml`` stores a hash of every caller secret, never the secret
itself. Three encodings are accepted:

1. ``sha256:<64 hex chars>`` — for high-entropy machine secrets (API keys)
2. ``$argon2id$...`` — PHC string via ``argon2-cffi``
3. ``$scrypt$n=N,r=R,p=P$salt$dk`` — PHC-style string via stdlib ``hashlib``

Every comparison of derived bytes goes through ``hmac.compare_digest``.

Usage::

    from caaspay.security.secrets import hash_secret, verify_secret

    encoded = hash_secret("s3cr3t-key")            # sha256:...
    ok = verify_secret("s3cr3t-key", encoded)
"""

import base64
import binascii
import hashlib
import hmac
import os

from argon2 import PasswordHasher, extract_parameters
from argon2.exceptions import InvalidHashError, VerificationError

SHA256_PREFIX = "sha256:"
ARGON2_PREFIX = "$argon2"
SCRYPT_PREFIX = "$scrypt$"

# Scrypt parameters (balanced for security and compatibility)
_SCRYPT_N = 2**14  # CPU/memory cost
_SCRYPT_R = 8  # Block size
_SCRYPT_P = 1  # Parallelism
_SCRYPT_DKLEN = 64  # Derived key length
_SALT_LENGTH = 16  # Salt length in bytes

# Bounds accepted from stored scrypt hashes
_SCRYPT_KEYS = frozenset({"n", "r", "p"})
_SCRYPT_MAX_R = 32
_SCRYPT_MAX_P = 16
_SCRYPT_MAXMEM = 64 * 1024 * 1024

_hasher = PasswordHasher()


class InvalidSecretHash(ValueError):  # noqa: N818
    """The stored hash is not in a recognized encoding."""


# ---------------------------------------------------------------------------
# SHA-256
# ---------------------------------------------------------------------------


def _hash_sha256(secret: str) -> str:
    return SHA256_PREFIX + hashlib.sha256(secret.encode("utf-8")).hexdigest()


def _verify_sha256(secret: str, encoded: str) -> bool:
    expected = bytes.fromhex(encoded[len(SHA256_PREFIX) :])
    actual = hashlib.sha256(secret.encode("utf-8")).digest()
    return hmac.compare_digest(actual, expected)


# ---------------------------------------------------------------------------
# Scrypt
# ---------------------------------------------------------------------------


def _hash_scrypt(secret: str) -> str:
    """Hash with scrypt, returning a PHC-style string."""
    salt = os.urandom(_SALT_LENGTH)
    dk = hashlib.scrypt(
        secret.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_SCRYPT_DKLEN,
    )
    salt_b64 = base64.b64encode(salt).decode("ascii")
    dk_b64 = base64.b64encode(dk).decode("ascii")
    return f"$scrypt$n={_SCRYPT_N},r={_SCRYPT_R},p={_SCRYPT_P}${salt_b64}${dk_b64}"


def _parse_scrypt(encoded: str) -> tuple[dict[str, int], bytes, bytes]:
    # parts: ['', 'scrypt', 'n=...,r=...,p=...', 'salt_b64', 'dk_b64']
    parts = encoded.split("$")
    if len(parts) != 5 or parts[1] != "scrypt":
        raise InvalidSecretHash("scrypt hash must be $scrypt$n=N,r=R,p=P$salt$dk")
    try:
        params = {}
        for param in parts[2].split(","):
            key, _, value = param.partition("=")
            params[key] = int(value)
        salt = base64.b64decode(parts[3], validate=True)
        dk = base64.b64decode(parts[4], validate=True)
    except (ValueError, binascii.Error) as exc:
        raise InvalidSecretHash(f"scrypt hash is not decodable: {exc}") from None
    if set(params) != _SCRYPT_KEYS:
        raise InvalidSecretHash("scrypt hash must set exactly n, r and p")
    n, r, p = params["n"], params["r"], params["p"]
    if n < 2 or n & (n - 1):
        raise InvalidSecretHash("scrypt n must be a power of two greater than 1")
    if not 1 <= r <= _SCRYPT_MAX_R or not 1 <= p <= _SCRYPT_MAX_P:
        raise InvalidSecretHash("scrypt r or p is out of range")
    # OpenSSL needs 128 * r * (n + p + 2) bytes
    if 128 * r * (n + p + 2) > _SCRYPT_MAXMEM:
        raise InvalidSecretHash("scrypt parameters need too much memory")
    if not salt:
        raise InvalidSecretHash("scrypt hash has an empty salt")
    if not dk:
        raise InvalidSecretHash("scrypt hash has an empty derived key")
    return params, salt, dk


def _verify_scrypt(secret: str, encoded: str) -> bool:
    params, salt, expected_dk = _parse_scrypt(encoded)
    dk = hashlib.scrypt(
        secret.encode("utf-8"),
        salt=salt,
        n=params["n"],
        r=params["r"],
        p=params["p"],
        maxmem=_SCRYPT_MAXMEM,
        dklen=len(expected_dk),
    )
    return hmac.compare_digest(dk, expected_dk)


# ---------------------------------------------------------------------------
# Argon2
# ---------------------------------------------------------------------------


def _b64_part(part: str) -> bytes:
    # PHC strings use unpadded base64
    return base64.b64decode(part + "=" * (-len(part) % 4), validate=True)


def _check_argon2(encoded: str) -> None:
    try:
        params = extract_parameters(encoded)
    except InvalidHashError:
        raise InvalidSecretHash("argon2 hash is not a PHC string") from None
    if min(params.memory_cost, params.time_cost, params.parallelism) < 1:
        raise InvalidSecretHash("argon2 parameters must be positive")
    salt_b64, hash_b64 = encoded.rsplit("$", 2)[1:]
    try:
        salt, digest = _b64_part(salt_b64), _b64_part(hash_b64)
    except (ValueError, binascii.Error):
        raise InvalidSecretHash("argon2 salt or hash is not base64") from None
    if not salt or not digest:
        raise InvalidSecretHash("argon2 hash has an empty salt or digest")


def _verify_argon2(secret: str, encoded: str) -> bool:
    try:
        return _hasher.verify(encoded, secret)
    except VerificationError:
        return False
    except InvalidHashError:
        raise InvalidSecretHash("argon2 hash is not decodable") from None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_secret_hash(encoded: str) -> bytes:
    """Check that *encoded* is a recognized hash encoding.

    Returns the encoding as ASCII bytes, the form ``CredentialRecord`` keeps.
    Raises ``InvalidSecretHash`` otherwise.
    """
    if not isinstance(encoded, str) or not encoded:
        raise InvalidSecretHash("secret hash must be a non-empty string")

    if encoded.startswith(SHA256_PREFIX):
        digest = encoded[len(SHA256_PREFIX) :]
        if len(digest) != 64:
            raise InvalidSecretHash("sha256 hash must have 64 hex characters")
        try:
            bytes.fromhex(digest)
        except ValueError:
            raise InvalidSecretHash("sha256 hash is not hexadecimal") from None
    elif encoded.startswith(ARGON2_PREFIX):
        _check_argon2(encoded)
    elif encoded.startswith(SCRYPT_PREFIX):
        _parse_scrypt(encoded)
    else:
        raise InvalidSecretHash(f"unknown hash format: {encoded[:12]}...")

    try:
        return encoded.encode("ascii")
    except UnicodeEncodeError:
        raise InvalidSecretHash("secret hash must be ASCII") from None


def hash_secret(secret: str, scheme: str = "sha256") -> str:
    """Hash a secret with *scheme* (``sha256``, ``argon2`` or ``scrypt``)."""
    if not secret:
        msg = "Secret must not be empty."
        raise ValueError(msg)
    if scheme == "sha256":
        return _hash_sha256(secret)
    if scheme == "argon2":
        return _hasher.hash(secret)
    if scheme == "scrypt":
        return _hash_scrypt(secret)
    msg = f"Unknown hash scheme: {scheme!r}"
    raise ValueError(msg)


def verify_secret(secret: str, encoded: str | bytes) -> bool:
    """Verify a presented secret against a stored hash.

    The algorithm is picked from the hash prefix. Returns ``False`` for an
    empty secret; raises ``InvalidSecretHash`` for an unrecognized hash.
    """
    if isinstance(encoded, bytes):
        encoded = encoded.decode("ascii")
    if not secret:
        return False

    if encoded.startswith(SHA256_PREFIX):
        return _verify_sha256(secret, encoded)
    if encoded.startswith(ARGON2_PREFIX):
        return _verify_argon2(secret, encoded)
    if encoded.startswith(SCRYPT_PREFIX):
        return _verify_scrypt(secret, encoded)

    raise InvalidSecretHash(f"unknown hash format: {encoded[:12]}...")
