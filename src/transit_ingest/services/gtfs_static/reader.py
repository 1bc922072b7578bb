"""Zip archive extraction for static GTFS snapshots."""

from __future__ import annotations

import io
import zipfile

from transit_ingest.logging import get_logger

logger = get_logger(__name__)


class ArchiveError(Exception):
    """Raised when archive bytes cannot be read as a zip file."""


def unzip(data: bytes, *names: str) -> dict[str, str]:
    """Decompress members of a zip archive into text.

    Directory entries and hidden paths (leading ``.``) are skipped. When
    ``names`` is empty every member is extracted, otherwise only the named
    ones. A requested member that is absent simply has no entry in the
    result.

    Members that are not valid UTF-8 are decoded with replacement characters.

    Raises:
        ArchiveError: If the archive is corrupt.
    """
    wanted = set(names)
    result: dict[str, str] = {}

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for info in archive.infolist():
                if info.is_dir() or info.filename.startswith("."):
                    continue
                if wanted and info.filename not in wanted:
                    continue
                result[info.filename] = _decode(info.filename, archive.read(info))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as exc:
        msg = f"Could not read zip archive: {exc}"
        raise ArchiveError(msg) from exc

    missing = wanted - result.keys()
    logger.info(
        "Zip archive extracted",
        extracted=sorted(result),
        missing=sorted(missing) if missing else None,
        size_bytes=len(data),
    )
    return result


def _decode(name: str, raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        logger.warning("Zip member is not UTF-8", member=name, position=exc.start)
        return raw.decode("utf-8-sig", errors="replace")
