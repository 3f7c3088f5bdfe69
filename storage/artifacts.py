"""
On-disk storage for generated CSR artifacts.

Layout under the output directory, one basename per run:
  csr-<YYYYmmddTHHMMSSffffffZ>.key   private key, PKCS#8 PEM (mode 0o600)
  csr-<YYYYmmddTHHMMSSffffffZ>.pub   public key, SPKI PEM
  csr-<YYYYmmddTHHMMSSffffffZ>.csr   certificate request, PKCS#10 PEM
  csr-<YYYYmmddTHHMMSSffffffZ>.json  subject, timing and MIME metadata

Files are written atomically (temp file in the same directory, fsync, rename).
A run never replaces another run's files: if the basename is taken,
FileExistsError is raised before anything is written.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from csr.pipeline import CsrArtifacts
from csr.request import SubjectInfo

logger = logging.getLogger(__name__)

PRIVATE_KEY_MODE = 0o600
PUBLIC_FILE_MODE = 0o644

SUFFIXES = (".key", ".pub", ".csr", ".json")

MIME_TYPES = {
    "private_key": "application/pkcs8",
    "public_key": "application/x-pem-file",
    "csr": "application/pkcs10",
}


def artifact_basename(now: Optional[datetime] = None) -> str:
    """Timestamp-based basename with microseconds, e.g. ``csr-20261019T063000123456Z``."""
    now = now or datetime.now(tz=timezone.utc)
    return "csr-" + now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


def write_artifacts(
    output_dir: str,
    artifacts: CsrArtifacts,
    subject: SubjectInfo,
    now: Optional[datetime] = None,
) -> dict:
    """
    Write the key, public key, CSR and metadata files to *output_dir*.

    Returns the metadata dict, including the path written for each artifact.
    Raises FileExistsError if any file for this basename already exists.
    """
    now = now or datetime.now(tz=timezone.utc)
    base = Path(output_dir) / artifact_basename(now)

    taken = [str(base.with_suffix(s)) for s in SUFFIXES if base.with_suffix(s).exists()]
    if taken:
        raise FileExistsError(f"refusing to overwrite existing artifacts: {', '.join(taken)}")

    key_path = base.with_suffix(".key")
    pub_path = base.with_suffix(".pub")
    csr_path = base.with_suffix(".csr")
    write_pem_file(key_path, artifacts.private_key_pem, mode=PRIVATE_KEY_MODE)
    write_pem_file(pub_path, artifacts.public_key_pem)
    write_pem_file(csr_path, artifacts.csr_pem)

    metadata = {
        "created_at": now.isoformat(),
        "common_name": subject.common_name,
        "email": subject.email,
        "elapsed_keygen_ms": round(artifacts.elapsed_keygen_ms, 1),
        "files": {
            "private_key": str(key_path),
            "public_key": str(pub_path),
            "csr": str(csr_path),
        },
        "mime_types": MIME_TYPES,
    }
    write_pem_file(base.with_suffix(".json"), json.dumps(metadata, indent=2) + "\n")
    logger.info("Artifacts written to %s.{key,pub,csr,json}", base)
    return metadata


def write_pem_file(path: Path, text: str, mode: int = PUBLIC_FILE_MODE) -> None:
    """
    Atomically place *text* at *path* with permission bits *mode*.

    The temp file gets *mode* before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="ascii") as f:
            os.fchmod(f.fileno(), mode)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s (mode %o, %d chars)", path, mode, len(text))
