import boto3
from botocore.config import Config

from ..core.config import Configuration


def s3_endpoint(config: Configuration) -> str:
    return config.endpoint_url or f"https://s3.{config.region}.amazonaws.com"


def s3(config: Configuration):
    """Create an S3 client pinned to the configured region.

    Presigned URLs are SigV4 and virtual-host style against the regional
    endpoint, so they stay valid for buckets outside us-east-1. A custom
    endpoint (LocalStack and the like) gets path-style addressing.
    """
    addressing_style = "path" if config.endpoint_url else "virtual"
    return boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=s3_endpoint(config),
        config=Config(signature_version="s3v4", s3={"addressing_style": addressing_style}),
    )


def sts(config: Configuration):
    """Return an STS client used only to probe for ambient credentials."""
    return boto3.client(
        "sts",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
    )
