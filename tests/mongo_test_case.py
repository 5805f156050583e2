"""
Shared base class for tests that need a database.

The MongoDB client is replaced by an in-memory mongomock client, so the
services run their real queries without a server.
"""

import os
import sys
import unittest
from datetime import datetime
from unittest.mock import patch

import mongomock
from bson import ObjectId

# Add the parent directory to the path to import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from scripts.create_mongodb_indexes import create_all_indexes
from util.mongodb_utils import get_database


class MongoTestCase(unittest.TestCase):
    """Runs each test against a fresh in-memory database."""

    def setUp(self):
        self.client = mongomock.MongoClient()
        self.client_patcher = patch('util.mongodb_utils.get_mongo_client', return_value=self.client)
        self.client_patcher.start()
        self.db = get_database()
        create_all_indexes()

    def tearDown(self):
        self.client_patcher.stop()
        self.client.close()

    def insert_post(self, title="Sample title", content="Sample content", category="tech", **fields):
        """Insert a post document directly and return its id."""
        document = {
            "title": title,
            "content": content,
            "category": category,
            "imageUrl": None,
            "author": ObjectId(),
            "likes": 0,
            "views": 0,
            "createdAt": datetime.now(),
            "updatedAt": datetime.now(),
        }
        document.update(fields)
        return self.db["posts"].insert_one(document).inserted_id
