import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)

def write_log(db: Session, *, actor_id, actor_type=None, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(actor_id=actor_id, actor_type=actor_type, action=action, resource=resource,
                status=status, ip=ip, meta=meta or {})
    db.add(entry)
    try:
        db.commit()
    except SQLAlchemyError:
        # The audited action itself already succeeded or failed on its own
        db.rollback()
        logger.exception("Failed to write audit log %s/%s", resource, action)
