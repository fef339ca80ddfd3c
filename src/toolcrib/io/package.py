"""
Packaging of compiled libraries into Fusion 360 ``.tools`` files.

A ``.tools`` file is a ZIP archive with a single ``tools.json`` member.
Archives are reproducible: the member timestamp, permissions and
compression level are fixed, and JSON key order comes from the document
model, so equal documents give byte-identical files.
"""

import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from ..calculator.constants import (
    TOOLS_FILE_SUFFIX,
    TOOLS_JSON_NAME,
    ZIP_COMPRESSLEVEL,
    ZIP_TIMESTAMP,
)
from .schema import FusionLibrary

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with ``_``."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def tools_filename(library_name: str) -> str:
    """Download filename for a library: ``<sanitized name>.tools``."""
    return sanitize_filename(library_name) + TOOLS_FILE_SUFFIX


def to_tools_json(document: Union[FusionLibrary, Dict[str, Any]], indent: int = 2) -> str:
    """Serialize a document to the ``tools.json`` text Fusion reads."""
    data = document.to_dict() if isinstance(document, FusionLibrary) else document
    return json.dumps(data, indent=indent, ensure_ascii=False)


@dataclass
class PackageFiles:
    """A packaged library ready to hand to the caller."""
    content: bytes
    filename: str
    tools_json: str


def create_tools_zip(document: Union[FusionLibrary, Dict[str, Any]]) -> bytes:
    """
    Create the ``.tools`` ZIP archive for a document.

    Args:
        document: FusionLibrary (or its dict form)

    Returns:
        ZIP file contents as bytes
    """
    payload = to_tools_json(document).encode("utf-8")

    info = zipfile.ZipInfo(TOOLS_JSON_NAME, date_time=ZIP_TIMESTAMP)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = 0
    info.external_attr = 0o644 << 16

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED, compresslevel=ZIP_COMPRESSLEVEL) as zf:
        zf.writestr(info, payload, compress_type=zipfile.ZIP_DEFLATED,
                    compresslevel=ZIP_COMPRESSLEVEL)

    data = buf.getvalue()
    logger.debug("Packaged %s: %.1f KB (%d bytes JSON)", TOOLS_JSON_NAME, len(data) / 1024, len(payload))
    return data


def package_library(document: FusionLibrary, library_name: str) -> PackageFiles:
    """Package a document under the library's sanitized filename."""
    return PackageFiles(
        content=create_tools_zip(document),
        filename=tools_filename(library_name),
        tools_json=to_tools_json(document),
    )


def read_tools_zip(data: bytes) -> Dict[str, Any]:
    """
    Read ``tools.json`` back out of a ``.tools`` archive.

    Raises:
        ValueError: Archive has no tools.json member
    """
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        if TOOLS_JSON_NAME not in zf.namelist():
            raise ValueError(f"Archive has no {TOOLS_JSON_NAME}")
        return json.loads(zf.read(TOOLS_JSON_NAME).decode("utf-8"))


def save_package(files: PackageFiles, output_dir: Path, include_json: bool = False) -> list[Path]:
    """
    Write a packaged library into a directory.

    Args:
        files: PackageFiles from package_library()
        output_dir: Directory to write into (created if needed)
        include_json: Also write the raw tools.json next to the archive

    Returns:
        List of Paths written
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    path = output_dir / files.filename
    path.write_bytes(files.content)
    written.append(path)

    if include_json:
        json_path = output_dir / (Path(files.filename).stem + ".json")
        json_path.write_text(files.tools_json, encoding="utf-8")
        written.append(json_path)

    return written
