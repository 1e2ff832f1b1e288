"""
Pack and unpack operations for snapshot archives.

Provides compression (zip) and optional AES-256-GCM encryption so a
snapshot can be copied off the machine as a single file.
"""

import hashlib
import json
import logging
import os
import tempfile
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.exceptions import SnapshotFormatError, SnapshotNotFoundError
from .manifest import MANIFEST_FILE_NAME

logger = logging.getLogger(__name__)

PACK_META_NAME = "_pack_meta.json"
ENCRYPTED_SUFFIX = ".enc"
NONCE_SIZE = 12


def _normalize_key(key: bytes) -> bytes:
    """AES-256 needs 32 bytes; any other length is hashed to 32."""
    if len(key) != 32:
        return hashlib.sha256(key).digest()
    return key


class SnapshotPacker:
    """
    Packs a snapshot directory into a compressed archive.

    Supports:
    - ZIP compression
    - Optional encryption (nonce + AES-GCM ciphertext, ``.zip.enc``)
    """

    def __init__(
        self,
        snapshot_dir: Path,
        encrypt: bool = False,
        encryption_key: Optional[bytes] = None,
    ):
        """
        Initialize the packer.

        Args:
            snapshot_dir: Path to the snapshot directory
            encrypt: Whether to encrypt the archive
            encryption_key: Encryption key (required if encrypt=True)
        """
        self.snapshot_dir = Path(snapshot_dir)
        self.encrypt = encrypt
        self.encryption_key = encryption_key

        if not self.snapshot_dir.is_dir():
            raise SnapshotNotFoundError(
                f"Backup folder not found: {self.snapshot_dir}", path=self.snapshot_dir
            )
        if encrypt and not encryption_key:
            raise ValueError("Encryption key is required for encryption")

    def default_output_path(self) -> Path:
        """``<backups_dir>/<snapshot-name>.zip`` next to the snapshot directory."""
        return self.snapshot_dir.with_name(f"{self.snapshot_dir.name}.zip")

    def pack(self, output_path: Optional[Path] = None) -> Path:
        """
        Pack the snapshot into a zip archive.

        Files are stored under a top-level folder named after the
        snapshot, so unpacking recreates the snapshot directory.

        Args:
            output_path: Path for the output archive (default: next to the snapshot)

        Returns:
            Path to the created archive
        """
        output_path = Path(output_path) if output_path else self.default_output_path()

        if output_path.suffix == ENCRYPTED_SUFFIX:
            output_path = output_path.with_suffix("")
        if output_path.suffix != ".zip":
            output_path = output_path.with_suffix(".zip")

        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Packing snapshot {self.snapshot_dir.name} to {output_path}")

        root = self.snapshot_dir.name
        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for file_path in sorted(self.snapshot_dir.rglob("*")):
                if file_path.is_file():
                    arcname = Path(root) / file_path.relative_to(self.snapshot_dir)
                    zf.write(file_path, arcname.as_posix())
                    logger.debug(f"  Added: {arcname}")

            pack_meta = {
                "packed_at": datetime.now(timezone.utc).isoformat(),
                "snapshot_name": root,
                "encrypted": self.encrypt,
            }
            zf.writestr(f"{root}/{PACK_META_NAME}", json.dumps(pack_meta, indent=2))

        logger.info(f"Created archive: {output_path} ({output_path.stat().st_size} bytes)")

        if self.encrypt:
            output_path = self._encrypt_archive(output_path)

        return output_path

    def _encrypt_archive(self, archive_path: Path) -> Path:
        """
        Encrypt an archive using AES-256-GCM.

        Returns:
            Path to the encrypted archive (the plain zip is removed)
        """
        key = _normalize_key(self.encryption_key)
        data = archive_path.read_bytes()

        nonce = os.urandom(NONCE_SIZE)
        encrypted = AESGCM(key).encrypt(nonce, data, None)

        encrypted_path = archive_path.with_name(archive_path.name + ENCRYPTED_SUFFIX)
        encrypted_path.write_bytes(nonce + encrypted)

        archive_path.unlink()

        logger.info(f"Encrypted archive: {encrypted_path}")
        return encrypted_path


class SnapshotUnpacker:
    """
    Unpacks a snapshot archive into a backups root.
    """

    def __init__(
        self,
        archive_path: Path,
        decryption_key: Optional[bytes] = None,
    ):
        """
        Initialize the unpacker.

        Args:
            archive_path: Path to the archive file
            decryption_key: Decryption key (required if archive is encrypted)
        """
        self.archive_path = Path(archive_path)
        self.decryption_key = decryption_key

        if not self.archive_path.exists():
            raise SnapshotNotFoundError(
                f"Archive not found: {self.archive_path}", path=self.archive_path
            )

        self.is_encrypted = self.archive_path.suffix == ENCRYPTED_SUFFIX

    def unpack(self, output_dir: Path) -> Path:
        """
        Unpack the archive into ``output_dir``.

        Returns:
            Path to the extracted snapshot directory
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        archive_to_extract = self.archive_path
        if self.is_encrypted:
            archive_to_extract = self._decrypt_archive()

        logger.info(f"Unpacking {self.archive_path} to {output_dir}")

        try:
            with zipfile.ZipFile(archive_to_extract, "r") as zf:
                self._check_members(zf, output_dir)
                root = self._snapshot_root(zf)
                zf.extractall(output_dir)
        except zipfile.BadZipFile as e:
            raise SnapshotFormatError(
                f"Not a valid snapshot archive: {self.archive_path}", path=self.archive_path
            ) from e
        finally:
            if archive_to_extract != self.archive_path:
                archive_to_extract.unlink()

        if root is not None:
            snapshot_dir = output_dir / root
            logger.info(f"Unpacked snapshot: {snapshot_dir}")
            return snapshot_dir

        # Archives from the Node exporter have the files at the root
        if (output_dir / MANIFEST_FILE_NAME).exists():
            return output_dir

        logger.warning(f"Could not find {MANIFEST_FILE_NAME} in unpacked archive")
        return output_dir

    @staticmethod
    def _snapshot_root(zf: zipfile.ZipFile) -> Optional[str]:
        """Top-level folder recorded by SnapshotPacker, if any."""
        for member in zf.namelist():
            parts = member.split("/")
            if len(parts) == 2 and parts[1] == PACK_META_NAME:
                return parts[0]
        return None

    @staticmethod
    def _check_members(zf: zipfile.ZipFile, output_dir: Path) -> None:
        root = output_dir.resolve()
        for member in zf.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise SnapshotFormatError(f"Archive member escapes target directory: {member}")

    def _decrypt_archive(self) -> Path:
        """
        Decrypt an encrypted archive.

        Returns:
            Path to a temporary decrypted zip archive
        """
        if not self.decryption_key:
            raise ValueError("Decryption key is required")

        key = _normalize_key(self.decryption_key)
        data = self.archive_path.read_bytes()

        nonce = data[:NONCE_SIZE]
        ciphertext = data[NONCE_SIZE:]
        try:
            decrypted = AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise SnapshotFormatError(
                f"Could not decrypt {self.archive_path}: wrong key or corrupted archive",
                path=self.archive_path,
            ) from e

        fd, temp_path = tempfile.mkstemp(suffix=".zip")
        with os.fdopen(fd, "wb") as f:
            f.write(decrypted)

        logger.debug(f"Decrypted archive to: {temp_path}")
        return Path(temp_path)


def get_encryption_key(
    environ: Mapping[str, str],
    key_env_var: str = "BACKUP_ENCRYPTION_KEY",
    key_file_path: Optional[str] = None,
) -> Optional[bytes]:
    """
    Get the archive encryption key.

    Args:
        environ: Environment mapping
        key_env_var: Environment variable name
        key_file_path: Key file used when the variable is unset

    Returns:
        Encryption key as bytes, or None if not available
    """
    key_str = environ.get(key_env_var)
    if key_str:
        return key_str.encode("utf-8")

    if key_file_path:
        key_path = Path(key_file_path)
        if key_path.exists():
            return key_path.read_bytes().strip()

    return None
