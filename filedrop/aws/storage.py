from typing import Optional
import logging

from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import MAX_EXPIRY_SECONDS, Configuration
from ..core.errors import RemoteError, UsageError
from ..core.models import Direction, PresignedUrl
from .clients import s3 as s3_client_factory

"""Object key resolution and presigned URL generation.
"""

logger = logging.getLogger(__name__)


def object_key(prefix: str, relative_path: str) -> str:
    """Join the configured prefix and a path relative to it."""
    return f"{prefix}/{relative_path}" if prefix else relative_path


def resolve_expiry(config: Configuration, expires: Optional[int] = None) -> int:
    """Use `expires` when given, else the configured default."""
    value = config.expires_default if expires is None else int(expires)
    if not 1 <= value <= MAX_EXPIRY_SECONDS:
        raise UsageError(f"expiry must be between 1 and {MAX_EXPIRY_SECONDS} seconds, got {value}")
    return value


def presign(
    config: Configuration,
    direction: Direction,
    relative_path: str,
    expires: Optional[int] = None,
    s3=None,
) -> PresignedUrl:
    """Mint a time-limited GET or PUT URL for `relative_path` under the prefix.

    Signing happens locally with whatever credentials boto3 resolves; no
    request is sent to S3.
    """
    if not relative_path:
        raise UsageError("relative path is required")

    key = object_key(config.prefix, relative_path)
    expires_in = resolve_expiry(config, expires)
    s3 = s3 or s3_client_factory(config)

    params = {
        "ClientMethod": direction.client_method,
        "Params": {"Bucket": config.bucket, "Key": key},
        "ExpiresIn": expires_in,
    }
    if direction is Direction.PUT:
        params["HttpMethod"] = "PUT"

    try:
        url = s3.generate_presigned_url(**params)
    except (BotoCoreError, ClientError) as e:
        raise RemoteError(f"presign failed for s3://{config.bucket}/{key}: {e}") from e

    logger.debug("presigned %s s3://%s/%s for %ss", direction.value, config.bucket, key, expires_in)
    return PresignedUrl(url=url, key=key, method=direction, expires_in=expires_in)
