from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError


def utcnow():
    return datetime.utcnow()


class BaseService:
    """Holds the SQLAlchemy session and the small query helpers every service shares."""

    def __init__(self, session) -> None:
        self.session = session

    def owned(self, model, entity_id, user_id, lock=False):
        """
        Fetch a row by id for its owner. Returns None both when it does not
        exist and when somebody else owns it.
        """
        query = self.session.query(model).filter(model.id == entity_id, model.user_id == user_id)
        if lock:
            # Rendered as SELECT ... FOR UPDATE where the backend supports it
            query = query.with_for_update()
        return query.one_or_none()

    def compare_and_set(self, model, entity_id, from_statuses, values, user_id=None):
        """
        Move a row to a new state only if it is still in one of `from_statuses`.
        The affected row count decides which of two racing requests wins.
        """
        query = self.session.query(model).filter(
            model.id == entity_id, model.status.in_(list(from_statuses))
        )
        if user_id is not None:
            query = query.filter(model.user_id == user_id)
        return query.update(values, synchronize_session="fetch") == 1

    def commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
