"""
Artifact installer adapter — put a manifest artifact into a staging dir.

For one resolved dependency:
    1. reuse the archive already in the cache slot, if its sha256 matches
    2. else copy it from the offline buildpack bundle, if present
    3. else download it (``curl``) into the cache slot
    4. verify sha256, then extract into the staging location

Action params:
    name (str), version (str): the resolved dependency.
    cache_slot (str): directory reserved in the app cache for this version.
    target (str): staging location to extract into.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
import tarfile
import time
import zipfile
from pathlib import Path

from kibana_buildpack.adapters.base import Adapter, ExecutionContext
from kibana_buildpack.core.models.action import Receipt, elapsed_ms
from kibana_buildpack.core.models.manifest import ManifestDependency
from kibana_buildpack.core.services.manifest import BuildpackManifest

logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar.gz", ".tgz")
_ZIP_SUFFIXES = (".zip",)
_REQUIRED_PARAMS = ("name", "version", "cache_slot", "target")


class ArtifactInstallerAdapter(Adapter):
    """Download-or-reuse, verify and extract manifest artifacts."""

    def __init__(self, manifest: BuildpackManifest, download_timeout: int = 600):
        self._manifest = manifest
        self._download_timeout = download_timeout

    @property
    def name(self) -> str:
        return "artifact"

    def is_available(self) -> bool:
        return self._manifest.is_cached or shutil.which("curl") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        missing = [p for p in _REQUIRED_PARAMS if not context.params.get(p)]
        if missing:
            return False, f"Missing required param(s): {', '.join(missing)}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.params
        name, version = params["name"], params["version"]
        cache_slot = Path(params["cache_slot"])
        target = Path(params["target"])
        start = time.monotonic()

        entry = self._manifest.find(name, version)
        if entry is None:
            return self._fail(context, f"{name} {version} is not in the manifest")
        if not entry.file_name:
            return self._fail(context, f"{name} {version} has no download URI")

        archive = cache_slot / entry.file_name
        source = "cache"
        try:
            if not (archive.is_file() and _checksum_ok(archive, entry.sha256)):
                cache_slot.mkdir(parents=True, exist_ok=True)
                source = self._fetch(entry, archive)

            if not _checksum_ok(archive, entry.sha256):
                archive.unlink(missing_ok=True)
                return self._fail(
                    context, f"Checksum mismatch for {entry.file_name} (expected {entry.sha256})"
                )

            target.mkdir(parents=True, exist_ok=True)
            _extract(archive, target)
        except (OSError, tarfile.TarError, zipfile.BadZipFile, _DownloadError) as e:
            return self._fail(context, str(e))

        logger.info("----> Installed %s %s (%s)", name, version, source)
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=str(target),
            duration_ms=elapsed_ms(start),
            metadata={"source": source, "archive": str(archive)},
        )

    def _fetch(self, entry: ManifestDependency, dest: Path) -> str:
        bundled = self._manifest.cached_artifact(entry)
        if bundled is not None:
            shutil.copyfile(bundled, dest)
            return "buildpack"
        if entry.uri.startswith("file://"):
            shutil.copyfile(entry.uri.removeprefix("file://"), dest)
            return "local"
        logger.info("----> Downloading %s %s from %s", entry.name, entry.version, entry.uri)
        _download(entry.uri, dest, self._download_timeout)
        return "download"

    def _fail(self, context: ExecutionContext, error: str) -> Receipt:
        return Receipt.failure(adapter=self.name, action_id=context.action.id, error=error)


# ── Private helpers ───────────────────────────────────────


class _DownloadError(Exception):
    pass


def _download(url: str, dest: Path, timeout: int) -> None:
    """Download a URL to a local file with curl."""
    try:
        result = subprocess.run(
            ["curl", "-fsSL", "--max-time", str(timeout), "-o", str(dest), url],
            capture_output=True,
            text=True,
            timeout=timeout + 10,
        )
    except subprocess.TimeoutExpired as e:
        raise _DownloadError(f"Download timed out: {url}") from e
    if result.returncode != 0:
        dest.unlink(missing_ok=True)
        raise _DownloadError(f"curl failed for {url}: {result.stderr[:200]}")


def _checksum_ok(path: Path, expected: str) -> bool:
    if not expected:
        return True
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest() == expected.removeprefix("sha256:").lower()


def _extract(archive: Path, target: Path) -> None:
    name = archive.name
    if name.endswith(_TAR_SUFFIXES):
        with tarfile.open(archive, "r:gz") as tf:
            tf.extractall(target, filter="data")
    elif name.endswith(_ZIP_SUFFIXES):
        with zipfile.ZipFile(archive, "r") as zf:
            zf.extractall(target)
    else:
        # Plain binary
        dest = target / name
        shutil.copy2(archive, dest)
        dest.chmod(0o755)
