"""Asset staging: copy the bundled web app into a servable directory.

The bundle is described by a manifest (``web_app_manifest.txt``) listing
every relative path to copy. Staging tolerates missing individual files
but fails when the entry file does not land.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)

MANIFEST_NAME = "web_app_manifest.txt"
ENTRY_FILE = "index.html"

# Used when the manifest cannot be read: entry file plus core runtime assets.
FALLBACK_FILES = [
    "index.html",
    "main.dart.js",
    "flutter.js",
    "flutter_bootstrap.js",
    "flutter_service_worker.js",
    "manifest.json",
    "version.json",
    "favicon.png",
]


class AssetNotFound(FileNotFoundError):
    """Raised by a bundle when it has no entry for a relative path."""


class DirectoryBundle:
    """Asset bundle backed by a directory on disk."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def read_bytes(self, relpath: str) -> bytes:
        path = self.root / relpath
        if not path.is_file():
            raise AssetNotFound(relpath)
        return path.read_bytes()

    def read_text(self, relpath: str) -> str:
        return self.read_bytes(relpath).decode("utf-8")

    def __repr__(self):
        return f"DirectoryBundle({str(self.root)!r})"


class ZipBundle:
    """Asset bundle backed by a zip archive. Entries are keyed by relative path."""

    def __init__(self, archive: Path | str):
        self.archive = Path(archive)

    def read_bytes(self, relpath: str) -> bytes:
        with zipfile.ZipFile(self.archive) as zf:
            try:
                return zf.read(relpath)
            except KeyError:
                raise AssetNotFound(relpath) from None

    def read_text(self, relpath: str) -> str:
        return self.read_bytes(relpath).decode("utf-8")

    def __repr__(self):
        return f"ZipBundle({str(self.archive)!r})"


def open_bundle(location: Path | str):
    """Pick the bundle type for a path: ``.zip`` files are archives, anything else a directory."""
    location = Path(location)
    if location.suffix.lower() == ".zip":
        return ZipBundle(location)
    return DirectoryBundle(location)


def default_scratch_dir() -> Path:
    """Process-scoped staging location under the system temp directory."""
    return Path(tempfile.gettempdir()) / f"lanmirror-{os.getpid()}" / "web_app_server"


def parse_manifest(text: str) -> list[str]:
    files = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line == MANIFEST_NAME:
            continue
        files.append(line)
    return files


def _is_safe_relpath(relpath: str) -> bool:
    p = PurePosixPath(relpath.replace("\\", "/"))
    if p.is_absolute() or relpath.startswith(("/", "\\")):
        return False
    if p.parts and p.parts[0].endswith(":"):
        return False
    return ".." not in p.parts


class AssetStager:
    """Copies manifest-listed files from a bundle into a fresh scratch directory."""

    def __init__(self, bundle, scratch_dir: Path | str | None = None, entry_file: str = ENTRY_FILE):
        self.bundle = bundle
        self.scratch_dir = Path(scratch_dir) if scratch_dir else default_scratch_dir()
        self.entry_file = entry_file
        self._staged_path: Optional[Path] = None

    @property
    def staged_path(self) -> Optional[Path]:
        return self._staged_path

    def load_manifest(self) -> list[str]:
        try:
            files = parse_manifest(self.bundle.read_text(MANIFEST_NAME))
            logger.info("Loaded manifest with %d files", len(files))
            return files
        except Exception as e:
            logger.warning("Could not load manifest, using fallback list: %s", e)
            return list(FALLBACK_FILES)

    def prepare(self) -> Optional[Path]:
        """Stage the bundle and return the directory, or None when it cannot be served."""
        if self._staged_path is not None and (self._staged_path / self.entry_file).is_file():
            return self._staged_path

        try:
            target = self.scratch_dir
            if target.exists():
                shutil.rmtree(target)
            target.mkdir(parents=True)

            files = self.load_manifest()
            if not files:
                logger.error("No web app files found")
                return None

            extracted = 0
            for relpath in files:
                if not _is_safe_relpath(relpath):
                    logger.warning("Skipping unsafe manifest entry: %s", relpath)
                    continue
                try:
                    dest = target / relpath
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    dest.write_bytes(self.bundle.read_bytes(relpath))
                    extracted += 1
                except Exception as e:
                    # not every build ships every listed file
                    logger.warning("Could not extract: %s - %s", relpath, e)

            logger.info("Extracted %d/%d web app files", extracted, len(files))

            if not (target / self.entry_file).is_file():
                logger.error("%s not found after extraction", self.entry_file)
                return None

            self._staged_path = target
            logger.info("Web app extracted to: %s", target)
            return target
        except Exception:
            logger.exception("Failed to prepare web app files")
            return None


def write_manifest(directory: Path | str) -> Path:
    """Write ``web_app_manifest.txt`` listing every file under a built web directory."""
    directory = Path(directory)
    entries = sorted(
        p.relative_to(directory).as_posix()
        for p in directory.rglob("*")
        if p.is_file() and p.name != MANIFEST_NAME
    )
    manifest = directory / MANIFEST_NAME
    manifest.write_text("\n".join(entries) + "\n", encoding="utf-8")
    logger.info("Wrote manifest with %d files to %s", len(entries), manifest)
    return manifest
