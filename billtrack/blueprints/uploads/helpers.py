import os

from flask import abort, current_app, send_from_directory

from ...storage import StorageError


def serve_stored_file(file_path: str, download_name: str = None):
    """
    Serves a stored upload after the caller has verified ownership of the
    row pointing at it. Paths that would escape the storage root are refused
    with 403, missing files with 404.
    """
    storage = current_app.extensions["billtrack.storage"]
    try:
        resolved_path = storage.absolute_path(file_path)
    except StorageError:
        current_app.logger.warning("Refused to serve path outside storage: %s", file_path)
        return abort(403)

    if not os.path.isfile(resolved_path):
        return abort(404)

    return send_from_directory(
        os.path.dirname(resolved_path),
        os.path.basename(resolved_path),
        download_name=download_name,
    )
