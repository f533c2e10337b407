"""Storage backend adapter implementations."""

from .github import GitHubJsDelivrAdapter
from .imgur import ImgurAdapter
from .oss import AliyunOSSAdapter
from .r2 import R2Adapter
from .s3 import S3Adapter, SigV4Adapter

__all__ = [
    "AliyunOSSAdapter",
    "S3Adapter",
    "SigV4Adapter",
    "R2Adapter",
    "GitHubJsDelivrAdapter",
    "ImgurAdapter",
]
