import logging

from .extensions import celery_app, db
from .services import get_services

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tasks.process_ocr", max_retries=1)
def process_ocr(self, file_id: int):
    """
    Celery task running OCR for one uploaded file. Engine failures are stored
    on the file by the service; anything escaping it is a database or
    infrastructure error and is re-raised so Celery records it.
    """
    logger.info("Starting OCR for incoming file %s", file_id)
    self.update_state(state="PROGRESS", meta={"status": "Extracting text..."})
    try:
        outcome = get_services().files.run_ocr(file_id)
    except Exception:
        logger.exception("OCR task failed for incoming file %s", file_id)
        db.session.rollback()
        raise

    if not outcome:
        logger.warning("OCR result for incoming file %s discarded: %s", file_id, outcome.detail)
        return {"status": "Discarded", "reason": outcome.detail}

    f = outcome.value
    logger.info("OCR finished for incoming file %s with status %s", f.id, f.status.value)
    return {"status": f.status.value, "failure_reason": f.failure_reason}
