"""
pdfeditor - Save Targets

Destinations for the bytes produced by the reconstruction pipeline.
A save target returns the path it wrote, or None when the user cancelled.
"""

import os
from collections.abc import Callable
from typing import Protocol

from pdfeditor.utils.exceptions import SaveTargetError
from pdfeditor.utils.logger import logger


class SaveTarget(Protocol):
    def save(self, data: bytes, suggested_name: str) -> str | None: ...


def _write_file(path: str, data: bytes) -> None:
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise SaveTargetError(path, e.strerror or str(e)) from e


def unique_path(directory: str, filename: str) -> str:
    """Build a path in directory that does not exist yet.

    "edited.pdf" becomes "edited (1).pdf", "edited (2).pdf", ... on clashes.
    """
    candidate = os.path.join(directory, filename)
    stem, ext = os.path.splitext(filename)
    counter = 1
    while os.path.exists(candidate):
        candidate = os.path.join(directory, f"{stem} ({counter}){ext}")
        counter += 1
    return candidate


class DirectorySaveTarget:
    """Saves into a folder under the suggested name, never overwriting."""

    def __init__(self, directory: str) -> None:
        self.directory = directory

    def save(self, data: bytes, suggested_name: str) -> str | None:
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            raise SaveTargetError(self.directory, e.strerror or str(e)) from e

        path = unique_path(self.directory, os.path.basename(suggested_name))
        _write_file(path, data)
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path


class PathSaveTarget:
    """Saves to one fixed path, replacing any existing file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def save(self, data: bytes, suggested_name: str) -> str | None:
        _write_file(self.path, data)
        logger.info(f"Saved {len(data)} bytes to {self.path}")
        return self.path


class CallbackSaveTarget:
    """Adapts a chooser function (e.g. a file dialog) to a save target.

    The chooser receives the suggested name and returns a path, or None
    when the user cancels.
    """

    def __init__(self, choose_path: Callable[[str], str | None]) -> None:
        self._choose_path = choose_path

    def save(self, data: bytes, suggested_name: str) -> str | None:
        path = self._choose_path(suggested_name)
        if not path:
            logger.info("Save cancelled by user")
            return None
        _write_file(path, data)
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path
