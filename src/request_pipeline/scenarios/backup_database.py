"""
backup_database.py — backup flow combining the chain with payload decorators.

Collect (compressed, then encrypted) -> Upload -> Verify (timed)

Compression and encryption are payload transforms applied by
PayloadTransformDecorator before the collection stage; the upload stage
then ships whichever size the flags say is current.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Optional

from request_pipeline.chain import Chain
from request_pipeline.decorators import PayloadTransformDecorator, TimingDecorator, decorate
from request_pipeline.handler import Handler
from request_pipeline.request import HandlerResult, Request
from request_pipeline.scenarios.delays import NO_DELAY, SimulatedDelay

__all__ = [
    "BackupDatabaseRequest",
    "DatabaseCollectionHandler",
    "CloudUploadHandler",
    "VerificationHandler",
    "compress",
    "encrypt",
    "build_backup_chain",
]

logger = logging.getLogger(__name__)

COMPRESSION_RATIO = 0.6
MB = 1024 * 1024


@dataclass
class BackupDatabaseRequest:
    """
    :ivar source_path: Database location to back up.
    :ivar original_size: Bytes collected.
    :ivar compressed_size: Bytes after compression (0 until compressed).
    :ivar uploaded_size: Bytes shipped by the upload stage.
    """
    source_path: str
    original_size: int = 10 * MB
    compressed_size: int = 0
    uploaded_size: int = 0
    is_compressed: bool = False
    is_encrypted: bool = False
    encryption_key_hint: str = ""
    checksum: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: Optional[datetime] = None
    verified: bool = False


def compress(data: BackupDatabaseRequest) -> None:
    """Marks the backup as compressed; a no-op if it already is."""
    if data.is_compressed:
        return
    data.compressed_size = int(data.original_size * COMPRESSION_RATIO)
    data.is_compressed = True


def encrypt(data: BackupDatabaseRequest, key: str = "AES256Key") -> None:
    """Marks the backup as encrypted, keeping only a masked key hint."""
    data.is_encrypted = True
    data.encryption_key_hint = f"{key[:8]}***"


class DatabaseCollectionHandler(Handler[BackupDatabaseRequest]):
    def __init__(self, delay: SimulatedDelay = NO_DELAY) -> None:
        super().__init__()
        self._delay = delay

    def process(self, request: Request[BackupDatabaseRequest]) -> HandlerResult:
        data = request.payload
        logger.info("[%s] Collecting data from %s", self.name, data.source_path)
        self._delay.wait()
        data.timestamp = datetime.now()
        logger.info("[%s] Collected %d MB", self.name, data.original_size // MB)
        return HandlerResult.CONTINUE


class CloudUploadHandler(Handler[BackupDatabaseRequest]):
    def __init__(self, delay: SimulatedDelay = NO_DELAY) -> None:
        super().__init__()
        self._delay = delay

    def process(self, request: Request[BackupDatabaseRequest]) -> HandlerResult:
        data = request.payload
        self._delay.wait()
        data.uploaded_size = data.compressed_size if data.is_compressed else data.original_size
        logger.info("[%s] Uploaded %d MB", self.name, data.uploaded_size // MB)
        return HandlerResult.CONTINUE


class VerificationHandler(Handler[BackupDatabaseRequest]):
    """Terminal stage: checks the backup carries a checksum."""

    def process(self, request: Request[BackupDatabaseRequest]) -> HandlerResult:
        data = request.payload
        data.verified = bool(data.checksum)
        logger.info("[%s] Checksum: %s", self.name, data.checksum)
        return HandlerResult.HANDLED


def build_backup_chain(delay: SimulatedDelay = NO_DELAY, encryption_key: str = "AES256Key") -> Chain[BackupDatabaseRequest]:
    """
    :param delay: Simulated delay for collection and upload.
    :param encryption_key: Key passed to `encrypt`.
    :return: Ready-to-execute chain.
    """
    collect = decorate(
        DatabaseCollectionHandler(delay),
        partial(PayloadTransformDecorator, transform=compress, label="Compression"),
        partial(PayloadTransformDecorator, transform=partial(encrypt, key=encryption_key), label="Encryption"),
    )
    return Chain[BackupDatabaseRequest]().add_handlers(
        collect,
        CloudUploadHandler(delay),
        TimingDecorator(VerificationHandler()),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    backup = BackupDatabaseRequest(source_path="/var/lib/postgresql/data/db_prod")
    build_backup_chain(delay=SimulatedDelay(0.3)).execute(Request(backup))
    print(backup)
