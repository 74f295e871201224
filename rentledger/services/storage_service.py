"""
Tenant document uploads.

Files land under ``tenants/{building_id}/{unit_id}/{document_type}-{millis}.{ext}``
below the configured upload root. The returned URL is opaque to the ledger;
it is stored on the Tenant record as-is.
"""
import logging
import time
from pathlib import Path
from typing import Optional

from rentledger.core.config import settings
from rentledger.core.exceptions import SyncError, ValidationError

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = ("idProof", "policeVerification", "otherDocuments")


class StorageService:
    def __init__(self, root: Optional[str] = None, public_url: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.public_url = (public_url or settings.PUBLIC_FILES_URL).rstrip("/")

    def upload_binary(
        self,
        filename: str,
        content: bytes,
        building_id: str,
        unit_id: str,
        document_type: str,
    ) -> str:
        """Store ``content`` and return its public URL."""
        if not content:
            raise ValidationError("No file provided")
        if document_type not in DOCUMENT_TYPES:
            raise ValidationError(f"Unknown document type '{document_type}'")

        extension = Path(filename or "").suffix.lstrip(".") or "bin"
        relative = Path("tenants") / building_id / unit_id / f"{document_type}-{int(time.time() * 1000)}.{extension}"
        target = self.root / relative

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error(f"[STORAGE] Upload of {relative} failed: {exc}")
            raise SyncError("Failed to upload document") from exc

        url = f"{self.public_url}/{relative.as_posix()}"
        logger.info(f"[STORAGE] Uploaded {document_type} to {url}")
        return url
