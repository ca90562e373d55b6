from pathlib import Path
from typing import Any, Dict, Tuple
import logging
import os

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Configuration
from ..core.errors import RemoteError
from ..core.models import SyncReport
from ..logs import SYNC_LOGGER, sync_log
from .clients import s3 as s3_client_factory, sts as sts_client_factory
from .storage import object_key

logger = logging.getLogger(__name__)
log = logging.getLogger(SYNC_LOGGER)


def credentials_available(config: Configuration) -> bool:
    """Return True when boto3 resolves credentials that STS accepts."""
    try:
        identity = sts_client_factory(config).get_caller_identity()
    except (BotoCoreError, ClientError) as e:
        logger.debug("credential probe failed: %s", e)
        return False
    logger.debug("running as %s", identity.get("Arn"))
    return True


def _local_files(root: Path) -> Dict[str, Tuple[Path, int, int]]:
    """Map posix relative path -> (path, size, mtime in whole seconds)."""
    files = {}
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        st = path.stat()
        files[path.relative_to(root).as_posix()] = (path, st.st_size, int(st.st_mtime))
    return files


def _remote_objects(s3, bucket: str, prefix: str) -> Dict[str, Dict[str, Any]]:
    """Map relative path -> list_objects_v2 entry for every object under prefix."""
    list_prefix = f"{prefix}/" if prefix else ""
    objects = {}
    paginator = s3.get_paginator("list_objects_v2")
    for page in paginator.paginate(Bucket=bucket, Prefix=list_prefix):
        for obj in page.get("Contents", []):
            key = obj["Key"]
            if key.endswith("/"):
                continue
            objects[key[len(list_prefix):]] = obj
    return objects


def _needs_upload(local: Tuple[Path, int, int], remote: Dict[str, Any]) -> bool:
    _, size, mtime = local
    if size != remote["Size"]:
        return True
    return mtime > remote["LastModified"].timestamp()


def mirror(config: Configuration, s3=None) -> SyncReport:
    """Make bucket/prefix match the upload directory, deletions included."""
    root = Path(config.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    s3 = s3 or s3_client_factory(config)
    report = SyncReport()

    try:
        remote = _remote_objects(s3, config.bucket, config.prefix)
        local = _local_files(root)

        for rel, entry in local.items():
            if rel in remote and not _needs_upload(entry, remote[rel]):
                continue
            key = object_key(config.prefix, rel)
            s3.upload_file(str(entry[0]), config.bucket, key)
            log.info("upload: %s to s3://%s/%s", entry[0], config.bucket, key)
            report.uploaded.append(key)

        for rel in sorted(set(remote) - set(local)):
            key = remote[rel]["Key"]
            s3.delete_object(Bucket=config.bucket, Key=key)
            log.info("delete: s3://%s/%s", config.bucket, key)
            report.deleted.append(key)
    except (BotoCoreError, ClientError, S3UploadFailedError) as e:
        raise RemoteError(str(e)) from e

    return report


def run_sync(config: Configuration) -> int:
    """One sync pass as run by the timer; returns the process exit code."""
    with sync_log(config.sync_log) as slog:
        if not credentials_available(config):
            slog.info("no-credentials: instance role not available; skipping sync")
            return 0

        slog.info("syncing %s -> %s", os.path.abspath(config.upload_dir), config.destination)
        try:
            report = mirror(config)
        except (RemoteError, OSError) as e:
            slog.error("error: %s", e)
            slog.error("sync failed")
            return 1

        slog.info("sync complete (%d uploaded, %d deleted)", len(report.uploaded), len(report.deleted))
        return 0
