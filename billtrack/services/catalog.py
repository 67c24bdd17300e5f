from sqlalchemy.exc import IntegrityError

from ..models import ServiceProvider, PaymentMethod, PaymentMethodType
from .base import BaseService
from .payloads import parse_text
from .results import Outcome, Failure


class CatalogService(BaseService):
    """Service providers and payment methods shared by every user's payments."""

    def list_providers(self, active_only=False):
        query = self.session.query(ServiceProvider)
        if active_only:
            query = query.filter(ServiceProvider.is_active.is_(True))
        return query.order_by(ServiceProvider.name).all()

    def find_provider(self, provider_id) -> Outcome:
        provider = self.session.get(ServiceProvider, provider_id)
        if provider is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(provider)

    def create_provider(self, name, category=None, comment=None) -> Outcome:
        name = parse_text(name)
        if not name:
            return Outcome.fail(Failure.INVALID_INPUT, "Name is required")
        provider = ServiceProvider(name=name, category=parse_text(category), comment=parse_text(comment))
        return self._insert(provider, f"Service provider '{name}' already exists")

    def list_methods(self):
        return self.session.query(PaymentMethod).order_by(PaymentMethod.name).all()

    def find_method(self, method_id) -> Outcome:
        method = self.session.get(PaymentMethod, method_id)
        if method is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(method)

    def create_method(self, name, type=None, comment=None) -> Outcome:
        name = parse_text(name)
        if not name:
            return Outcome.fail(Failure.INVALID_INPUT, "Name is required")
        try:
            method_type = PaymentMethodType(str(type).upper()) if type else PaymentMethodType.OTHER
        except ValueError:
            return Outcome.fail(Failure.INVALID_INPUT, f"Unknown payment method type: {type}")
        method = PaymentMethod(name=name, type=method_type, comment=parse_text(comment))
        return self._insert(method, f"Payment method '{name}' already exists")

    def _insert(self, row, duplicate_message):
        self.session.add(row)
        try:
            self.commit()
        except IntegrityError:
            return Outcome.fail(Failure.INVALID_INPUT, duplicate_message)
        return Outcome.success(row)
