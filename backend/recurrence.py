"""
Recurring task generation.

Materializing tasks from recurring templates is done by the database
function ``generate_recurring_tasks``. This module only calls it and reports
the outcome; it never retries, that is up to the scheduler.
"""

import logging
from typing import Any, Callable, List, Dict

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db

logger = logging.getLogger(__name__)

GENERATE_RECURRING_TASKS_SQL = text("SELECT * FROM generate_recurring_tasks()")

RecurrenceGenerator = Callable[[], Any]


class RecurrenceGenerationError(Exception):
    """The database function reported an error."""


def generate_recurring_tasks(db: Session) -> List[Dict[str, Any]]:
    """
    Run the database-side recurring task generator.

    Args:
        db: Database session

    Returns:
        Rows returned by the function, as plain dicts

    Raises:
        RecurrenceGenerationError: if the call failed; the session is rolled back
    """
    logger.debug("Calling generate_recurring_tasks()")
    try:
        result = db.execute(GENERATE_RECURRING_TASKS_SQL)
        rows = [dict(row._mapping) for row in result]
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        message = str(getattr(e, "orig", None) or e)
        logger.error(f"Error generating recurring tasks: {message}")
        raise RecurrenceGenerationError(message) from e

    logger.info(f"Recurring task generation returned {len(rows)} rows")
    return rows


def get_recurrence_generator(db: Session = Depends(get_db)) -> RecurrenceGenerator:
    """Dependency returning a zero-argument callable that runs the generator."""
    return lambda: generate_recurring_tasks(db)
