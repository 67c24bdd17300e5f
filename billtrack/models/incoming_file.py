from datetime import datetime
from ..extensions import db
from .fields import OcrFieldsMixin, iso
from .status import FileStatus, DocumentKind


class IncomingFile(OcrFieldsMixin, db.Model):
    __tablename__ = "incoming_file"
    __table_args__ = (
        db.UniqueConstraint("user_id", "checksum", name="uq_incoming_file_user_checksum"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    checksum = db.Column(db.String(64), nullable=False)
    upload_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    status = db.Column(
        db.Enum(FileStatus, name="file_status"),
        default=FileStatus.NEW,
        nullable=False,
        index=True,
    )
    failure_reason = db.Column(db.Text)
    task_id = db.Column(db.String(36))  # Celery task of the last OCR run

    converted_to = db.Column(db.Enum(DocumentKind, name="document_kind"))
    converted_at = db.Column(db.DateTime)

    ocr_attempts = db.relationship(
        "OcrAttempt",
        backref="incoming_file",
        cascade="all, delete-orphan",
        order_by="OcrAttempt.started_at",
    )

    @property
    def is_converted(self):
        return self.status == FileStatus.CONVERTED

    def to_dict(self):
        data = {
            "id": self.id,
            "filename": self.filename,
            "file_path": self.file_path,
            "checksum": self.checksum,
            "upload_date": iso(self.upload_date),
            "status": self.status.value,
            "failure_reason": self.failure_reason,
        }
        data.update(self.ocr_dict())
        return data
