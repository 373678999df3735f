"""Archive service - forest to a downloadable zip."""

import io
import re
import zipfile

from src.domain.entities.file_tree import Forest

EMPTY_README = "# Empty project\n\nNo files have been generated yet.\n"


def build_archive(forest: Forest) -> bytes:
    """Zip every file under its full path. Empty forest → archive with a README.md placeholder."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        files = forest.files()
        if not files:
            zf.writestr("README.md", EMPTY_README)
        for node in files:
            zf.writestr(node.path, node.content or "")
    buffer.seek(0)
    return buffer.getvalue()


def archive_filename(title: str) -> str:
    """Download name derived from the session title."""
    slug = re.sub(r"[^A-Za-z0-9]+", "-", title).strip("-").lower()
    return f"{slug or 'project'}.zip"
