"""Naming and writing of downloaded widget images."""

from __future__ import annotations

import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from cwimages.errors import ImageWriteError

IMAGE_EXTENSION = ".png"
SEPARATOR = "-"


@dataclass(frozen=True)
class SavedImageDescriptor:
    namespace: str
    title: str
    region: str
    start: str
    unix_timestamp: int


def build_image_name(descriptor: SavedImageDescriptor) -> str:
    """`{namespace}-{title}-{region}-{start}-{unix}.png`."""
    stem = SEPARATOR.join(
        [
            descriptor.namespace,
            descriptor.title,
            descriptor.region,
            descriptor.start,
            str(descriptor.unix_timestamp),
        ]
    )
    return stem + IMAGE_EXTENSION


def _bumped(descriptor: SavedImageDescriptor) -> SavedImageDescriptor:
    return SavedImageDescriptor(
        namespace=descriptor.namespace,
        title=descriptor.title,
        region=descriptor.region,
        start=descriptor.start,
        unix_timestamp=descriptor.unix_timestamp + 1,
    )


def _claim_path(tmp_name: str, output_dir: Path, descriptor: SavedImageDescriptor) -> Path:
    # os.link fails if the name is taken, so concurrent writers never share a
    # path; a taken name (same second, same parts) bumps the timestamp.
    while True:
        path = output_dir / build_image_name(descriptor)
        try:
            os.link(tmp_name, path)
        except FileExistsError:
            descriptor = _bumped(descriptor)
            continue
        return path


def save_image(
    data: bytes,
    *,
    namespace: str,
    title: str,
    region: str,
    start: str,
    output_dir: str | Path = ".",
    now: float | None = None,
) -> Path:
    """Write `data` under a collision-free name and return the path.

    The bytes go to a temp file first and are hard-linked into place, so no
    image file appears unless the whole write succeeded.
    """
    descriptor = SavedImageDescriptor(
        namespace=namespace,
        title=title,
        region=region,
        start=start,
        unix_timestamp=int(time.time() if now is None else now),
    )
    out_dir = Path(output_dir)
    tmp_name: str | None = None
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=out_dir, prefix=".cwimages-", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        path = _claim_path(tmp_name, out_dir, descriptor)
    except OSError as e:
        raise ImageWriteError(f"Unable to write image for {namespace} ({region}) to {out_dir}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return path.resolve()
