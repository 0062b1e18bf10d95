"""Shared pytest fixtures: throwaway bundles and a fixed address resolver."""
from pathlib import Path

import pytest

from staging import MANIFEST_NAME, AssetStager, DirectoryBundle

INDEX_HTML = b"<!DOCTYPE html><html><body>entry</body></html>"
STYLE_CSS = b"body { color: red; }"


class FixedResolver:
    """Stands in for AddressResolver; counts calls."""

    def __init__(self, address="127.0.0.1"):
        self.address = address
        self.calls = 0

    def resolve(self):
        self.calls += 1
        return self.address


def make_bundle(root: Path, files: dict, manifest=None) -> DirectoryBundle:
    root.mkdir(parents=True, exist_ok=True)
    for rel, data in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    if manifest is not None:
        (root / MANIFEST_NAME).write_text("\n".join(manifest) + "\n", encoding="utf-8")
    return DirectoryBundle(root)


@pytest.fixture
def bundle(tmp_path):
    """index.html + style.css; the manifest also lists app.js, which is missing."""
    return make_bundle(
        tmp_path / "bundle",
        {"index.html": INDEX_HTML, "style.css": STYLE_CSS},
        manifest=["index.html", "app.js", "style.css"],
    )


@pytest.fixture
def stager(bundle, tmp_path):
    return AssetStager(bundle, scratch_dir=tmp_path / "staged")
