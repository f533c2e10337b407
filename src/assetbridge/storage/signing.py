"""Request signing for the object-storage backends.

Everything here is a pure function of its arguments: no clock reads, no I/O.
Callers pass the timestamp in, which keeps signatures reproducible in tests.

Scheme A is the bucket-domain HMAC-SHA1 scheme used by Aliyun OSS.
Schemes B and C are AWS Signature Version 4; C differs from B only in
the host and region the caller supplies (Cloudflare R2 signs for region
``auto`` against an account-scoped host).
"""

import base64
import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime
from urllib.parse import quote

OSS_AUTH_SCHEME = "OSS"

AWS4_ALGORITHM = "AWS4-HMAC-SHA256"
AWS4_KEY_PREFIX = "AWS4"
AWS4_TERMINATOR = "aws4_request"
S3_SERVICE = "s3"

EMPTY_PAYLOAD_SHA256 = hashlib.sha256(b"").hexdigest()


def http_date(when: datetime) -> str:
    """RFC 7231 date, e.g. ``Mon, 15 Jan 2024 08:30:00 GMT``."""
    return format_datetime(when.astimezone(UTC), usegmt=True)


def amz_date(when: datetime) -> str:
    """ISO 8601 basic format timestamp, e.g. ``20240115T083000Z``."""
    return when.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def content_md5(body: bytes) -> str:
    """Base64 of the binary MD5 digest."""
    return base64.b64encode(hashlib.md5(body).digest()).decode("ascii")


def payload_sha256(body: bytes) -> str:
    return hashlib.sha256(body).hexdigest()


def encode_path(path: str) -> str:
    """URI-encode a path, keeping ``/`` and the RFC 3986 unreserved characters."""
    return quote(path, safe="/-_.~")


# Scheme A


def oss_string_to_sign(
    method: str,
    resource: str,
    date: str,
    content_md5: str = "",
    content_type: str = "",
) -> str:
    """Build ``METHOD\\nContent-MD5\\nContent-Type\\nDate\\n/bucket/path``."""
    return f"{method}\n{content_md5}\n{content_type}\n{date}\n{resource}"


def oss_signature(secret: str, string_to_sign: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1)
    return base64.b64encode(digest.digest()).decode("ascii")


def oss_authorization(
    access_key: str,
    secret: str,
    method: str,
    resource: str,
    date: str,
    content_md5: str = "",
    content_type: str = "",
) -> str:
    """Return the ``Authorization`` header value for an OSS request.

    Args:
        access_key: Access key ID
        secret: Access key secret
        method: HTTP method
        resource: Canonical resource, ``/<bucket>/<object key>``
        date: Value of the ``Date`` header
        content_md5: Value of the ``Content-MD5`` header, if sent
        content_type: Value of the ``Content-Type`` header, if sent

    Returns:
        ``OSS <access_key>:<signature>``
    """
    string_to_sign = oss_string_to_sign(method, resource, date, content_md5, content_type)
    return f"{OSS_AUTH_SCHEME} {access_key}:{oss_signature(secret, string_to_sign)}"


# Schemes B and C


@dataclass(frozen=True)
class SigV4Credentials:
    """Credentials and scope for AWS Signature Version 4."""

    access_key: str
    secret_key: str
    region: str
    service: str = S3_SERVICE


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Chain HMAC-SHA256 over date, region, service and the terminator."""
    k_date = _hmac_sha256(f"{AWS4_KEY_PREFIX}{secret_key}".encode(), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, AWS4_TERMINATOR)


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/{AWS4_TERMINATOR}"


def signed_header_names(headers: Mapping[str, str]) -> str:
    return ";".join(sorted(name.lower() for name in headers))


def canonical_request(
    method: str,
    path: str,
    headers: Mapping[str, str],
    payload_hash: str,
    query: str = "",
) -> str:
    """Build the canonical request.

    ``headers`` holds the headers to sign. They are lowercased and sorted, so
    the default set ``host``, ``x-amz-content-sha256``, ``x-amz-date`` always
    lands in that order.
    """
    canonical_headers = "".join(
        f"{name}:{value.strip()}\n"
        for name, value in sorted((k.lower(), v) for k, v in headers.items())
    )
    return "\n".join(
        [
            method,
            path,
            query,
            canonical_headers,
            signed_header_names(headers),
            payload_hash,
        ]
    )


def string_to_sign_v4(timestamp: str, scope: str, canonical: str) -> str:
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{AWS4_ALGORITHM}\n{timestamp}\n{scope}\n{digest}"


def sigv4_signature(
    credentials: SigV4Credentials,
    method: str,
    path: str,
    headers: Mapping[str, str],
    payload_hash: str,
    timestamp: str,
) -> str:
    """Hex-encoded SigV4 signature for the given request parts."""
    date_stamp = timestamp[:8]
    scope = credential_scope(date_stamp, credentials.region, credentials.service)
    canonical = canonical_request(method, path, headers, payload_hash)
    signing_key = derive_signing_key(
        credentials.secret_key, date_stamp, credentials.region, credentials.service
    )
    to_sign = string_to_sign_v4(timestamp, scope, canonical)
    return hmac.new(signing_key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def sigv4_headers(
    credentials: SigV4Credentials,
    method: str,
    host: str,
    path: str,
    payload_hash: str,
    timestamp: str,
) -> dict[str, str]:
    """Return ``Host``, ``x-amz-date``, ``x-amz-content-sha256`` and ``Authorization``.

    Args:
        credentials: Access key, secret and scope
        method: HTTP method
        host: Value of the ``Host`` header
        path: Absolute, already URI-encoded request path
        payload_hash: Hex SHA-256 of the request body
        timestamp: ``x-amz-date`` value (see ``amz_date``)

    Returns:
        Header mapping ready to send
    """
    signed = {
        "host": host,
        "x-amz-content-sha256": payload_hash,
        "x-amz-date": timestamp,
    }
    signature = sigv4_signature(credentials, method, path, signed, payload_hash, timestamp)
    scope = credential_scope(timestamp[:8], credentials.region, credentials.service)
    authorization = (
        f"{AWS4_ALGORITHM} Credential={credentials.access_key}/{scope}, "
        f"SignedHeaders={signed_header_names(signed)}, Signature={signature}"
    )
    return {
        "Host": host,
        "x-amz-date": timestamp,
        "x-amz-content-sha256": payload_hash,
        "Authorization": authorization,
    }
