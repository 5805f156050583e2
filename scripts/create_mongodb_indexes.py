#!/usr/bin/env python
"""
MongoDB Index Creation Script for the news database

This script creates the indexes the application relies on: the unique index on
user emails, plus the listing indexes for posts and comments. It is idempotent
and also runs at application startup.
"""

import logging
import time
import os
import sys
from pymongo.errors import OperationFailure
from dotenv import load_dotenv

# Add the project root to the path to import the utility module
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from util.mongodb_utils import get_database

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def create_index_safely(collection, index_spec, index_name=None, unique=False):
    """
    Create an index on a collection in a safe manner.

    Args:
        collection: MongoDB collection
        index_spec: Index specification
        index_name: Optional name for the index
        unique: Whether the index should enforce uniqueness

    Returns:
        str: Name of the created index or None if creation failed
    """
    start_time = time.time()
    options = {}

    if index_name:
        options["name"] = index_name

    if unique:
        options["unique"] = True

    try:
        result = collection.create_index(index_spec, **options)
        end_time = time.time()
        logger.info(
            f"Created index '{result}' on {collection.name} "
            f"with spec {index_spec} in {end_time - start_time:.2f}s"
        )
        return result
    except OperationFailure as e:
        logger.error(f"Failed to create index on {collection.name}: {str(e)}")
        return None


def create_all_indexes():
    """Create all indexes for the posts, comments and users collections."""
    db = get_database()

    created = [
        # Email uniqueness is enforced here, not only in the signup flow
        create_index_safely(db["users"], [("email", 1)], "idx_users_email", unique=True),
        create_index_safely(db["posts"], [("createdAt", -1)], "idx_posts_created_at"),
        create_index_safely(db["posts"], [("category", 1), ("createdAt", -1)], "idx_posts_category_created_at"),
        create_index_safely(db["comments"], [("postId", 1), ("createdAt", -1)], "idx_comments_post_created_at"),
        create_index_safely(db["comments"], [("userId", 1)], "idx_comments_user_id"),
    ]

    failed = created.count(None)
    if failed:
        logger.warning(f"{failed} index(es) could not be created")
    else:
        logger.info("All index creation completed successfully")
    return created


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Starting index creation for the news database")
    create_all_indexes()
