import hashlib
import os
import uuid


class StorageError(Exception):
    pass


class LocalStorage:
    """
    Keeps uploaded bytes on the local filesystem under a single root folder.
    Paths handed out are relative to that root (e.g. 'ab12....pdf') and are
    resolved back through `absolute_path`, which refuses anything that would
    escape the root.
    """

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    @staticmethod
    def checksum(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def _unique_name(filename: str) -> str:
        """Generate a filesystem-safe, unique name using a UUID."""
        ext = os.path.splitext(filename)[1].lower()
        if not ext[1:].isalnum() or not ext[1:].isascii():
            ext = ""
        return f"{uuid.uuid4().hex}{ext}"

    def absolute_path(self, path: str) -> str:
        resolved = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, resolved]) != self.root:
            raise StorageError(f"Path escapes storage root: {path}")
        return resolved

    def store(self, data: bytes, filename: str) -> str:
        name = self._unique_name(filename)
        os.makedirs(self.root, exist_ok=True)
        with open(self.absolute_path(name), "wb") as fh:
            fh.write(data)
        return name

    def read(self, path: str) -> bytes:
        with open(self.absolute_path(path), "rb") as fh:
            return fh.read()

    def exists(self, path: str) -> bool:
        try:
            return os.path.isfile(self.absolute_path(path))
        except StorageError:
            return False

    def delete(self, path: str) -> bool:
        """Remove a stored file. Returns False when there was nothing to remove."""
        try:
            os.remove(self.absolute_path(path))
        except FileNotFoundError:
            return False
        return True
