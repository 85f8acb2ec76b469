from __future__ import annotations

from functools import lru_cache

import boto3
from botocore.config import Config

from ..settings import get_settings


@lru_cache(maxsize=1)
def botocore_config() -> Config:
    s = get_settings()
    # Retries happen in retry.sdb_call, not in botocore.
    return Config(
        retries={"max_attempts": 0, "mode": "standard"},
        connect_timeout=s.sdb_connect_timeout_s,
        read_timeout=s.sdb_read_timeout_s,
    )


@lru_cache(maxsize=1)
def sdb_client():
    s = get_settings()
    kwargs = {"region_name": s.aws_region, "config": botocore_config()}
    if s.sdb_endpoint_url:
        kwargs["endpoint_url"] = s.sdb_endpoint_url
    return boto3.client("sdb", **kwargs)
