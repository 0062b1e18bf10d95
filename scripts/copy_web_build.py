"""Copy a built web app into the bundle directory and write its manifest.

Usage:
    python scripts/copy_web_build.py <path-to-build-web> [<bundle-dir>]

The bundle directory defaults to ``web_app/`` at the project root.
"""
import logging
import shutil
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from staging import write_manifest

logger = logging.getLogger("copy_web_build")


def clear_folder(p: Path):
    for child in p.iterdir():
        try:
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        except OSError as e:
            logger.warning("Could not remove %s: %s", child, e)


def copy_build(src_dir: Path, dest_dir: Path):
    dest_dir.mkdir(parents=True, exist_ok=True)
    clear_folder(dest_dir)

    copied = []
    for src in sorted(src_dir.rglob("*")):
        if not src.is_file():
            continue
        rel = src.relative_to(src_dir)
        dest = dest_dir / rel
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dest)
            copied.append(rel.as_posix())
        except OSError as e:
            logger.warning("Failed to copy %s -> %s: %s", src, dest, e)
    write_manifest(dest_dir)
    return copied


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if len(sys.argv) < 2:
        print("Usage: python copy_web_build.py <path-to-build-web> [<bundle-dir>]")
        sys.exit(1)

    src = Path(sys.argv[1])
    dest = Path(sys.argv[2]) if len(sys.argv) > 2 else Path(__file__).parent.parent / 'web_app'
    if not (src / 'index.html').is_file():
        print(f"No index.html in {src}; is this a web build output?")
        sys.exit(1)
    copied = copy_build(src, dest)
    print(f"Copied {len(copied)} files into {dest}")
