"""
File helpers used when unpacking the companion extension
"""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def create_dir(path: PathLike) -> Path:
    """
    Create a directory (and parents) if it does not exist.

    Args:
        path: Directory to create

    Returns:
        Path: The directory path
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_current_dir() -> Path:
    """Return the current working directory."""
    return Path.cwd()


def write_to_file(path: PathLike, content: str) -> Path:
    """
    Write text content to a file, replacing any previous content.

    Args:
        path: Target file path
        content: Text to write (UTF-8)

    Returns:
        Path: The file path
    """
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
    return path
