import os

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.utils import secure_filename

from ..models import IncomingFile, OcrAttempt, FileStatus, OcrAttemptStatus, DocumentKind
from ..ocr import OcrResult
from ..storage import StorageError
from .base import BaseService, utcnow
from .conversion import ConversionService
from .payloads import InvalidInput, parse_kind
from .results import Outcome, Failure

OCR_FIELDS_CLEARED = {
    "ocr_raw_json": None,
    "extracted_amount": None,
    "extracted_date": None,
    "extracted_provider": None,
    "extracted_currency": None,
    "ocr_processed_at": None,
}

REVIEWABLE = (FileStatus.NEW, FileStatus.PROCESSING, FileStatus.DONE, FileStatus.FAILED)


class IncomingFileService(BaseService):
    """
    Lifecycle of an uploaded file until it becomes a Bill or a Receipt.

    `dispatch_ocr` receives a file id and queues the OCR run, returning a task
    id. Without one the run happens inline, which is what the CLI and tests
    use.
    """

    def __init__(
        self,
        session,
        storage,
        gateway,
        dispatch_ocr=None,
        allowed_extensions=frozenset({"pdf", "jpg", "jpeg", "png", "gif", "bmp", "tiff"}),
        max_upload_size=20 * 1024 * 1024,
        conversion=None,
    ) -> None:
        super().__init__(session)
        self.storage = storage
        self.gateway = gateway
        self.dispatch_ocr = dispatch_ocr or self._run_inline
        self.allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)
        self.max_upload_size = max_upload_size
        self.conversion = conversion or ConversionService(session)

    def _active(self, file_id, user_id, lock=False):
        # Converted files are hidden from every per-file operation
        f = self.owned(IncomingFile, file_id, user_id, lock=lock)
        if f is None or f.is_converted:
            return None
        return f

    # ---------- upload ----------

    def upload(self, user_id, filename, data) -> Outcome:
        if not filename:
            return Outcome.fail(Failure.INVALID_FILE, "No file selected")
        ext = os.path.splitext(filename)[1].lower().lstrip(".")
        if ext not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            return Outcome.fail(Failure.INVALID_FILE, f"Unsupported file type (use {allowed})")
        name = secure_filename(filename)
        # secure_filename drops non-ASCII names ("счёт.pdf" becomes "pdf")
        if os.path.splitext(name)[1].lower() != f".{ext}":
            name = f"upload.{ext}"
        if not data:
            return Outcome.fail(Failure.INVALID_FILE, "File is empty")
        if len(data) > self.max_upload_size:
            return Outcome.fail(Failure.INVALID_FILE, "File is too large")

        checksum = self.storage.checksum(data)
        if self._is_duplicate(user_id, checksum):
            return Outcome.fail(Failure.DUPLICATE_UPLOAD, "This file has already been uploaded")

        path = self.storage.store(data, name)
        f = IncomingFile(
            user_id=user_id,
            filename=name,
            file_path=path,
            checksum=checksum,
            upload_date=utcnow(),
            status=FileStatus.NEW,
        )
        self.session.add(f)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost the race against a concurrent upload of the same bytes
            self.session.rollback()
            self.storage.delete(path)
            return Outcome.fail(Failure.DUPLICATE_UPLOAD, "This file has already been uploaded")
        except SQLAlchemyError:
            self.session.rollback()
            self.storage.delete(path)
            raise
        return Outcome.success(f)

    def _is_duplicate(self, user_id, checksum):
        return (
            self.session.query(IncomingFile.id)
            .filter_by(user_id=user_id, checksum=checksum)
            .first()
            is not None
        )

    def find(self, file_id, user_id) -> Outcome:
        f = self._active(file_id, user_id)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(f)

    # ---------- OCR ----------

    def trigger_ocr(self, file_id, user_id) -> Outcome:
        return self._start_ocr(file_id, user_id, (FileStatus.NEW, FileStatus.FAILED), clear=False)

    def retry_ocr(self, file_id, user_id) -> Outcome:
        return self._start_ocr(file_id, user_id, (FileStatus.FAILED,), clear=True)

    def _start_ocr(self, file_id, user_id, from_statuses, clear):
        f = self._active(file_id, user_id)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if not self.gateway.is_available():
            return Outcome.fail(Failure.OCR_UNAVAILABLE, "No OCR engine is available")

        values = {"status": FileStatus.PROCESSING, "failure_reason": None, "task_id": None}
        if clear:
            values.update(OCR_FIELDS_CLEARED)
        if not self.compare_and_set(IncomingFile, file_id, from_statuses, values, user_id=user_id):
            self.session.rollback()
            return Outcome.fail(
                Failure.INVALID_STATE, f"OCR cannot start while the file is {f.status.value}"
            )
        self.commit()

        try:
            task_id = self.dispatch_ocr(file_id)
        except Exception as e:
            self.session.rollback()
            self.compare_and_set(
                IncomingFile,
                file_id,
                [FileStatus.PROCESSING],
                {"status": FileStatus.FAILED, "failure_reason": f"Could not queue OCR: {e}"},
            )
            self.commit()
            raise

        if task_id:
            f.task_id = task_id
            self.commit()
        return Outcome.success(f)

    def _run_inline(self, file_id):
        self.run_ocr(file_id)
        return None

    def run_ocr(self, file_id) -> Outcome:
        """Worker side of an OCR run. Engine problems end up on the file, never raised."""
        f = self.session.get(IncomingFile, file_id)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if f.status != FileStatus.PROCESSING:
            return Outcome.fail(Failure.INVALID_STATE, f"File is {f.status.value}, not PROCESSING")

        engines = self.gateway.available_engines()
        attempt = OcrAttempt(
            incoming_file_id=f.id,
            user_id=f.user_id,
            engine=engines[0] if engines else "none",
            status=OcrAttemptStatus.IN_PROGRESS,
            started_at=utcnow(),
        )
        self.session.add(attempt)
        self.commit()

        try:
            result = self.gateway.extract(self.storage.absolute_path(f.file_path))
        except StorageError as e:
            result = OcrResult.failed(str(e))
        except Exception as e:
            result = OcrResult.failed(f"OCR engine error: {e}")
        return self.complete_ocr(file_id, result)

    def complete_ocr(self, file_id, result, engine=None) -> Outcome:
        """Record the outcome of an OCR run; only a PROCESSING file accepts it."""
        engine = engine or result.engine
        now = utcnow()
        if result.success:
            values = {
                "status": FileStatus.DONE,
                "failure_reason": None,
                "extracted_amount": result.amount,
                "extracted_date": result.date,
                "extracted_provider": result.provider,
                "extracted_currency": result.currency,
                "ocr_raw_json": result.raw_json,
                "ocr_processed_at": now,
            }
        else:
            values = {"status": FileStatus.FAILED, "failure_reason": result.error or "OCR failed"}

        applied = self.compare_and_set(IncomingFile, file_id, [FileStatus.PROCESSING], values)
        f = self.session.get(IncomingFile, file_id)
        if f is not None:
            self._finish_attempt(f, result, engine, now, record_new=applied)
        self.commit()
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if not applied:
            return Outcome.fail(Failure.INVALID_STATE, f"File is {f.status.value}, not PROCESSING")
        return Outcome.success(f)

    def _finish_attempt(self, f, result, engine, now, record_new=True):
        attempt = (
            self.session.query(OcrAttempt)
            .filter_by(incoming_file_id=f.id, status=OcrAttemptStatus.IN_PROGRESS)
            .order_by(OcrAttempt.started_at.desc(), OcrAttempt.id.desc())
            .first()
        )
        if attempt is None:
            if not record_new:
                return
            attempt = OcrAttempt(incoming_file_id=f.id, user_id=f.user_id, started_at=now)
            self.session.add(attempt)
        attempt.engine = engine or attempt.engine or "none"
        attempt.status = OcrAttemptStatus.SUCCESS if result.success else OcrAttemptStatus.FAILED
        attempt.finished_at = now
        attempt.error_message = None if result.success else result.error
        attempt.raw_result = result.raw_json

    # ---------- review ----------

    def approve(self, file_id, user_id) -> Outcome:
        return self._review(file_id, user_id, FileStatus.APPROVED)

    def reject(self, file_id, user_id) -> Outcome:
        return self._review(file_id, user_id, FileStatus.REJECTED)

    def _review(self, file_id, user_id, status):
        f = self._active(file_id, user_id)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if not self.compare_and_set(IncomingFile, file_id, REVIEWABLE, {"status": status}, user_id=user_id):
            self.session.rollback()
            return Outcome.fail(
                Failure.INVALID_STATE, f"Cannot mark a {f.status.value} file as {status.value}"
            )
        self.commit()
        return Outcome.success(f)

    def dispatch(self, file_id, user_id, target) -> Outcome:
        """Convert an approved file into the chosen document kind."""
        try:
            kind = parse_kind(target)
        except InvalidInput as e:
            return Outcome.fail(Failure.INVALID_INPUT, str(e))
        f = self._active(file_id, user_id)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if f.status != FileStatus.APPROVED:
            return Outcome.fail(Failure.INVALID_STATE, "Only approved files can be dispatched")
        if kind == DocumentKind.BILL:
            return self.conversion.convert_to_bill(file_id, user_id)
        return self.conversion.convert_to_receipt(file_id, user_id)

    def update_fields(self, file_id, user_id, edits) -> Outcome:
        f = self._active(file_id, user_id, lock=True)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if edits.amount is not None:
            f.extracted_amount = edits.amount
        if edits.date is not None:
            f.extracted_date = edits.date
        if edits.provider is not None:
            f.extracted_provider = edits.provider
        if edits.currency is not None:
            f.extracted_currency = edits.currency
        self.commit()
        return Outcome.success(f)

    def delete(self, file_id, user_id) -> Outcome:
        f = self._active(file_id, user_id, lock=True)
        if f is None:
            return Outcome.fail(Failure.NOT_FOUND)
        path = f.file_path
        self.session.delete(f)
        self.commit()
        # Bytes go only once the row is gone for good
        self.storage.delete(path)
        return Outcome.success(file_id)
