from celery import shared_task
import logging

from creditrisksystem.rng import make_rng, CUSTOMER_STREAM
from .extract import extract_customers

logger = logging.getLogger(__name__)


@shared_task
def extract_customer_data(seed=None):
    """
    Step 2: Build the customers table from staging (ids, emp length default, region)
    """
    try:
        count = extract_customers(make_rng(seed, CUSTOMER_STREAM))
        return {
            "status": "success",
            "count": count,
            "message": f"Successfully built {count} customers"
        }

    except Exception as e:
        logger.exception(f"Error building customers: {str(e)}")
        return {"status": "error", "message": str(e)}
