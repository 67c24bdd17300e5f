from ..extensions import db
from .status import PaymentMethodType


class ServiceProvider(db.Model):
    __tablename__ = "service_provider"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    category = db.Column(db.String(64))
    comment = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "comment": self.comment,
            "is_active": self.is_active,
        }


class PaymentMethod(db.Model):
    __tablename__ = "payment_method"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    type = db.Column(
        db.Enum(PaymentMethodType, name="payment_method_type"),
        default=PaymentMethodType.OTHER,
        nullable=False,
    )
    comment = db.Column(db.Text)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "type": self.type.value, "comment": self.comment}
