from datetime import datetime
from ..extensions import db
from .fields import iso
from .status import OcrAttemptStatus


class OcrAttempt(db.Model):
    __tablename__ = "ocr_attempt"

    id = db.Column(db.Integer, primary_key=True)
    incoming_file_id = db.Column(
        db.Integer, db.ForeignKey("incoming_file.id"), nullable=False, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    engine = db.Column(db.String(50), nullable=False)
    status = db.Column(
        db.Enum(OcrAttemptStatus, name="ocr_attempt_status"),
        default=OcrAttemptStatus.IN_PROGRESS,
        nullable=False,
    )
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    finished_at = db.Column(db.DateTime)
    error_message = db.Column(db.Text)
    raw_result = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "engine": self.engine,
            "status": self.status.value,
            "started_at": iso(self.started_at),
            "finished_at": iso(self.finished_at),
            "error_message": self.error_message,
        }
