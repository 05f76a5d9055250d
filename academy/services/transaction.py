# services/transaction.py
"""
Unit-of-work helper shared by the services.

Every public service operation runs inside ``transaction(...)``: the session is
committed when the block exits cleanly and rolled back on any error. Domain
errors propagate unchanged; storage uniqueness violations are translated into
the domain error the caller supplies.
"""

from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError

from academy.errors import AcademyError
from academy.extensions import db


@contextmanager
def transaction(logger, action, integrity_error=None):
    """
    Run a block as one transaction.

    Args:
        logger: Service logger used for failure reporting
        action: Short description of the operation, used in log lines
        integrity_error: Callable returning the domain error that replaces an
            IntegrityError raised at flush/commit time

    Raises:
        AcademyError: Business-rule violations, re-raised after rollback
    """
    try:
        yield db.session
        db.session.commit()
    except AcademyError:
        db.session.rollback()
        raise
    except IntegrityError as e:
        db.session.rollback()
        if integrity_error is None:
            logger.error(f"Integrity error while trying to {action}: {str(e)}", exc_info=True)
            raise
        logger.warning(f"Uniqueness violation while trying to {action}: {str(e.orig)}")
        raise integrity_error() from e
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to {action}: {str(e)}", exc_info=True)
        raise
