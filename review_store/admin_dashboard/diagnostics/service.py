import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from review_store.admin_dashboard.reviews.service import connect
from review_store.db.repository import ReviewRepository

logger = logging.getLogger(__name__)


async def run_storage_diagnostic(
    repository: ReviewRepository,
    timeout: Optional[float] = None
) -> Tuple[bool, Dict[str, Any]]:
    """
    Exercise init, put, get and delete against the store with a throwaway key.

    Returns a success flag and the response body. On failure the body carries
    the number of stages that completed and their results so far. The
    repository is always closed afterwards.
    """
    test_key = f"test_{int(time.time() * 1000)}"
    test_value = {
        "message": "Storage diagnostic",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    results: Dict[str, Any] = {}

    try:
        logger.info(f"Storage diagnostic starting for {repository.connection_key}")
        await connect(repository, timeout)
        results["init"] = "SUCCESS"

        await repository.put(test_key, test_value)
        results["put"] = "SUCCESS"

        results["retrieved"] = await repository.get(test_key)
        results["get"] = "SUCCESS"

        await repository.delete(test_key)
        results["delete"] = "SUCCESS"

        return True, {"status": "Database is operational", "results": results}

    except Exception as e:
        logger.error(f"Storage diagnostic failed: {type(e).__name__}: {str(e)}")
        return False, {
            "message": str(e),
            "error_code": "diagnostic_failed",
            "stage": len(results),
            "results": results
        }

    finally:
        try:
            await repository.close()
        except Exception as e:
            logger.error(f"Close error: {str(e)}")
