from __future__ import annotations

import gzip
import logging
import lzma
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Callable, Optional

logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"
_XZ_MAGIC = b"\xfd7zXZ\x00"

_COMPRESSED_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".wsl", ".gz", ".xz")


def sniff_compression(path: str) -> Optional[str]:
    """Return "gzip", "xz" or None (uncompressed) from the file's magic bytes.

    Packed .wsl images are gzip tarballs under another name, so the suffix
    alone is not trusted.
    """

    with open(path, "rb") as f:
        head = f.read(6)
    if head.startswith(_GZIP_MAGIC):
        return "gzip"
    if head.startswith(_XZ_MAGIC):
        return "xz"
    return None


def tar_path_for(archive_path: str) -> str:
    p = Path(archive_path)
    name = p.name
    for suffix in _COMPRESSED_SUFFIXES:
        if name.lower().endswith(suffix):
            return str(p.with_name(name[: -len(suffix)] + ".tar"))
    if name.lower().endswith(".tar"):
        return str(p)
    return str(p.with_name(name + ".tar"))


def decompress_to_tar(archive_path: str, *, dry_run: bool = False) -> str:
    """Decompress archive_path into a single .tar next to it.

    Idempotent: an existing .tar is reused; an uncompressed input is returned
    unchanged.
    """

    out = tar_path_for(archive_path)
    if Path(out).exists():
        logger.info("Using already decompressed %s", out)
        return out

    if dry_run:
        logger.info("Would decompress %s -> %s", archive_path, out)
        return out

    kind = sniff_compression(archive_path)
    if kind is None:
        if out != archive_path:
            shutil.copyfile(archive_path, out)
        return out

    opener: Callable[..., BinaryIO] = gzip.open if kind == "gzip" else lzma.open
    partial = out + ".part"
    logger.info("Decompressing %s (%s) -> %s", archive_path, kind, out)
    with opener(archive_path, "rb") as src, open(partial, "wb") as dst:
        shutil.copyfileobj(src, dst, length=1024 * 1024)
    os.replace(partial, out)
    return out
