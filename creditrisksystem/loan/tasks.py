from celery import shared_task
import logging

from creditrisksystem.rng import make_rng, LOAN_STREAM, DEFAULT_STREAM
from .extract import extract_loans, extract_defaults, LoanExtractError

logger = logging.getLogger(__name__)


@shared_task
def extract_loan_data(seed=None, link_mode=None):
    """
    Step 3: Build the loans table from staging (ids, customer link, dates, term, payment)
    """
    try:
        count = extract_loans(make_rng(seed, LOAN_STREAM), link_mode=link_mode)
        return {
            "status": "success",
            "count": count,
            "message": f"Successfully built {count} loans"
        }

    except LoanExtractError as e:
        logger.error(f"Loan extraction failed: {str(e)}")
        return {"status": "error", "message": str(e)}
    except Exception as e:
        logger.exception(f"Error building loans: {str(e)}")
        return {"status": "error", "message": str(e)}


@shared_task
def extract_default_data(seed=None):
    """
    Step 4: Build default events for every defaulted loan
    """
    try:
        count = extract_defaults(make_rng(seed, DEFAULT_STREAM))
        return {
            "status": "success",
            "count": count,
            "message": f"Successfully built {count} default events"
        }

    except Exception as e:
        logger.exception(f"Error building default events: {str(e)}")
        return {"status": "error", "message": str(e)}
