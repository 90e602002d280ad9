"""Blob path conventions for raw uploads and converted artifacts."""
import posixpath

FIT_EXTENSION = ".fit"
ARTIFACT_EXTENSION = ".json.gz"


def is_fit_file(path: str, extension: str = FIT_EXTENSION) -> bool:
    return posixpath.basename(path).lower().endswith(extension.lower())


def activity_id_from_path(path: str) -> str:
    """Activity id is the base filename with its extension stripped."""
    base, _ = posixpath.splitext(posixpath.basename(path))
    return base


def artifact_path(path: str) -> str:
    """Path of the converted artifact for a raw upload.

    `dir/abc123.fit` becomes `dir/abc123.json.gz`, `abc123.fit` becomes
    `abc123.json.gz`.
    """
    directory = posixpath.dirname(path)
    name = activity_id_from_path(path) + ARTIFACT_EXTENSION
    if not directory:
        return name
    return posixpath.normpath(posixpath.join(directory, name))
