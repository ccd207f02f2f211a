import pytest
from request_pipeline.request import HandlerResult, Request
from request_pipeline.scenarios.backup_database import (
    MB, BackupDatabaseRequest, CloudUploadHandler, build_backup_chain, compress, encrypt,
)


@pytest.mark.unit
def test_backup_chain_uploads_compressed_encrypted_data():
    backup = BackupDatabaseRequest(source_path="/var/lib/db")
    result = build_backup_chain().execute(Request(backup))
    assert result is HandlerResult.HANDLED
    assert backup.is_compressed and backup.is_encrypted
    assert backup.encryption_key_hint == "AES256Ke***"
    assert backup.uploaded_size == int(10 * MB * 0.6)
    assert backup.timestamp is not None
    assert backup.verified is True


@pytest.mark.unit
def test_upload_without_compression_ships_original_size():
    backup = BackupDatabaseRequest(source_path="/var/lib/db", original_size=4 * MB)
    CloudUploadHandler().handle(Request(backup))
    assert backup.uploaded_size == 4 * MB


@pytest.mark.unit
def test_compress_is_applied_once():
    backup = BackupDatabaseRequest(source_path="x", original_size=100)
    compress(backup)
    backup.original_size = 1000
    compress(backup)
    assert backup.compressed_size == 60


@pytest.mark.unit
def test_encrypt_masks_key():
    backup = BackupDatabaseRequest(source_path="x")
    encrypt(backup, key="0123456789abcdef")
    assert backup.encryption_key_hint == "01234567***"
