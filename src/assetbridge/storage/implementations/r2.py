"""Cloudflare R2 adapter: S3-compatible API on an account-scoped endpoint."""

from ..base import BackendKind
from .s3 import SigV4Adapter

R2_REGION = "auto"


class R2Adapter(SigV4Adapter):
    """Cloudflare R2 with path-style addressing, ``/<bucket>/<key>``."""

    kind = BackendKind.CLOUDFLARE_R2
    display_name = "Cloudflare R2"
    required_fields = ("account_id", "access_key", "access_secret", "bucket")
    primary_credential = "access_key"

    @property
    def host(self) -> str:
        return f"{self.config['account_id']}.r2.cloudflarestorage.com"

    @property
    def region(self) -> str:
        return R2_REGION

    def _object_path(self, key: str) -> str:
        return f"/{self.config['bucket']}/{key}"

    def _connection_path(self) -> str:
        return f"/{self.config['bucket']}"
