from celery import shared_task
import logging
from django.conf import settings

from .loader import load_staging, StagingLoadError

logger = logging.getLogger(__name__)


@shared_task
def load_staging_data(csv_path=None):
    """
    Step 1: Load the raw credit risk CSV into the staging table (replacing it)
    """
    file_path = csv_path or str(settings.CREDIT_RISK_CSV_PATH)
    try:
        count = load_staging(file_path)
        return {
            "status": "success",
            "count": count,
            "message": f"Successfully loaded {count} staging rows from {file_path}"
        }

    except StagingLoadError as e:
        logger.error(f"Staging load failed: {str(e)}")
        return {"status": "error", "message": str(e)}
    except Exception as e:
        logger.exception(f"Error loading staging data: {str(e)}")
        return {"status": "error", "message": str(e)}
