from util.mongodb_utils import get_mongo_collection
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)


def _log_collections_summary(since: datetime = None):
    """
    Log the size of each collection, and how many documents were created
    since *since* (defaults to the last 24 hours).
    """
    since = since or datetime.now() - timedelta(days=1)
    summary = {}
    for collection_name in ("posts", "comments", "users"):
        collection = get_mongo_collection(collection_name=collection_name)
        summary[collection_name] = {
            "total": collection.count_documents({}),
            "new": collection.count_documents({"createdAt": {"$gte": since}}),
        }

    logger.info("----- Collections Summary -----")
    for collection_name, counts in summary.items():
        logger.info("%s: %d total, %d new", collection_name.capitalize(), counts["total"], counts["new"])
    logger.info("-------------------------------")
    return summary
