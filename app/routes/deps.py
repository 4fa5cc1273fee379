import logging

from fastapi import HTTPException

from ..errors import DatabaseResult

logger = logging.getLogger(__name__)


def result_or_raise(result: DatabaseResult):
    """Return the result's data, or turn its failure into an HTTP error."""
    if result.error is not None:
        logger.info(f"Request failed with {type(result.error).__name__}: {result.error.message}")
        raise HTTPException(status_code=result.error.status_code, detail=result.error.message)
    return result.data
