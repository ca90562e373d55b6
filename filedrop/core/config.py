import logging
import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONF_PATH = "/etc/filedrop.conf"
CONF_ENV_VAR = "FILEDROP_CONF"

# SigV4 presigned URLs cannot outlive seven days.
MAX_EXPIRY_SECONDS = 7 * 24 * 3600

# File key -> Configuration field
CONF_KEYS = {
    "BUCKET": "bucket",
    "REGION": "region",
    "PREFIX": "prefix",
    "EXPIRES_DEFAULT": "expires_default",
    "UPLOAD_DIR": "upload_dir",
    "SYNC_LOG": "sync_log",
    "ENDPOINT_URL": "endpoint_url",
}


class Configuration(BaseModel):
    """Values read from the filedrop conf file.

    Loaded once per invocation and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    bucket: str
    region: str
    prefix: str = ""
    expires_default: int = 3600
    upload_dir: str = "/opt/filedrop/uploads"
    sync_log: str = "/var/log/filedrop/sync.log"
    endpoint_url: Optional[str] = None

    @field_validator("prefix")
    @classmethod
    def _strip_slashes(cls, v: str) -> str:
        return v.strip().strip("/")

    @field_validator("expires_default")
    @classmethod
    def _presignable(cls, v: int) -> int:
        if not 1 <= v <= MAX_EXPIRY_SECONDS:
            raise ValueError(f"must be between 1 and {MAX_EXPIRY_SECONDS} seconds")
        return v

    @field_validator("endpoint_url")
    @classmethod
    def _empty_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def destination(self) -> str:
        """The s3:// URI the upload directory mirrors to."""
        dest = f"s3://{self.bucket}"
        if self.prefix:
            dest = f"{dest}/{self.prefix}"
        return dest


def parse_conf(text: str) -> Dict[str, str]:
    """Parse `KEY="value"` lines; comments, blanks and junk lines are skipped."""
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key.strip()] = value
    return values


def conf_path(path: Optional[str] = None) -> str:
    return path or os.getenv(CONF_ENV_VAR) or DEFAULT_CONF_PATH


def load_config(path: Optional[str] = None) -> Configuration:
    """Read and validate the conf file.

    A missing file counts as empty, so it fails on BUCKET like an empty one.
    """
    path = conf_path(path)
    try:
        with open(path, encoding="utf-8") as fh:
            raw = parse_conf(fh.read())
    except FileNotFoundError:
        logger.warning("config file %s not found", path)
        raw = {}

    if not raw.get("BUCKET", "").strip():
        raise ConfigError(f"Error: BUCKET is not set in {path}", exit_code=2)
    if not raw.get("REGION", "").strip():
        raise ConfigError(f"Error: REGION is not set in {path} (e.g., us-east-2)", exit_code=3)

    fields = {CONF_KEYS[k]: v.strip() for k, v in raw.items() if k in CONF_KEYS}
    try:
        return Configuration(**fields)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Error: invalid configuration in {path}: {problems}") from e
