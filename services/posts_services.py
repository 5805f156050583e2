import re
import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument

import env
from models.posts import Post
from util.cloudinary_utils import ImageUploadError, has_upload, upload_image
from util.models_utils import parse_object_id, to_document
from util.mongodb_utils import get_mongo_collection

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


class PostValidationError(ValueError):
    pass


class InvalidObjectIdError(ValueError):
    def __init__(self, message="Invalid post ID format"):
        super().__init__(message)


class PostNotFoundError(LookupError):
    def __init__(self, message="Post not found"):
        super().__init__(message)


def _require_object_id(post_id) -> ObjectId:
    oid = parse_object_id(post_id)
    if oid is None:
        raise InvalidObjectIdError()
    return oid


def validate_post_fields(title, content, category):
    """
    Check the fields shared by create and update.

    Returns:
        tuple: (title, content, category) with the title trimmed

    Raises:
        PostValidationError: if a field is missing or the category is unknown
    """
    title = (title or "").strip()
    if not title or not content or not category:
        raise PostValidationError("Title, content, and category are required")
    if category not in env.CATEGORIES:
        raise PostValidationError(f"Invalid category: {category}")
    return title, content, category


def _resolve_image(image) -> Optional[str]:
    """
    Upload *image* when one was submitted.

    A failed upload aborts the save when IMAGE_UPLOAD_REQUIRED is set;
    otherwise the post is saved without the new image.
    """
    if not has_upload(image):
        return None
    try:
        return upload_image(image)
    except ImageUploadError:
        if env.IMAGE_UPLOAD_REQUIRED:
            raise
        logger.warning(f"Saving post without image after failed upload of '{image.filename}'")
        return None


def build_posts_query(category=None, search=None, exclude=None) -> dict:
    """
    Build the MongoDB filter for a posts listing.

    Args:
        category: Only posts in this category
        search: Case-insensitive substring matched against title or content
        exclude: Post id to leave out (related-posts listings)
    """
    query = {}
    if category:
        if category not in env.CATEGORIES:
            raise PostValidationError(f"Invalid category: {category}")
        query["category"] = category
    if search and search.strip():
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"content": pattern}]
    if exclude:
        query["_id"] = {"$ne": _require_object_id(exclude)}
    return query


def list_posts(category=None, search=None, limit=DEFAULT_PAGE_SIZE, skip=0, exclude=None) -> dict:
    """
    Return one page of posts, newest first.

    Returns:
        dict: {"posts": [...], "total": int, "hasMore": bool}
    """
    query = build_posts_query(category=category, search=search, exclude=exclude)
    limit = max(1, min(int(limit or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE))
    skip = max(0, int(skip or 0))

    posts_coll = get_mongo_collection(collection_name="posts")
    total = posts_coll.count_documents(query)
    posts = list(posts_coll.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit))

    logger.debug(f"Listed {len(posts)}/{total} posts for query {query}")
    return {"posts": posts, "total": total, "hasMore": skip + len(posts) < total}


def get_post(post_id) -> dict:
    oid = _require_object_id(post_id)
    post = get_mongo_collection(collection_name="posts").find_one({"_id": oid})
    if not post:
        raise PostNotFoundError()
    return post


def create_post(title, content, category, image=None, author_id=None) -> dict:
    """
    Validate, upload the optional image, then persist a new post.

    The author is the session user when its id is an ObjectId; sessions
    without a stored account (admin bypass) get a generated reference.
    """
    title, content, category = validate_post_fields(title, content, category)
    image_url = _resolve_image(image)

    author = parse_object_id(author_id) or ObjectId()
    post = Post(
        title=title,
        content=content,
        category=category,
        imageUrl=image_url,
        author=author,
    )
    document = to_document(post)
    result = get_mongo_collection(collection_name="posts").insert_one(document)
    document["_id"] = result.inserted_id

    logger.info(f"Created post {result.inserted_id} in '{category}'")
    return document


def update_post(post_id, title, content, category, image=None) -> dict:
    """Overwrite a post's fields in place; the image is replaced only when a new one is sent."""
    oid = _require_object_id(post_id)
    title, content, category = validate_post_fields(title, content, category)

    posts_coll = get_mongo_collection(collection_name="posts")
    if not posts_coll.find_one({"_id": oid}, {"_id": 1}):
        raise PostNotFoundError()

    changes = {
        "title": title,
        "content": content,
        "category": category,
        "updatedAt": datetime.now(),
    }
    image_url = _resolve_image(image)
    if image_url:
        changes["imageUrl"] = image_url

    post = posts_coll.find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        return_document=ReturnDocument.AFTER
    )
    if not post:
        raise PostNotFoundError()

    logger.info(f"Updated post {oid}")
    return post


def delete_post(post_id) -> None:
    """Delete a post together with its comments."""
    oid = _require_object_id(post_id)
    result = get_mongo_collection(collection_name="posts").delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise PostNotFoundError()

    removed = get_mongo_collection(collection_name="comments").delete_many({"postId": oid}).deleted_count
    logger.info(f"Deleted post {oid} and {removed} comments")


def increment_views(post_id) -> None:
    oid = parse_object_id(post_id)
    if oid is None:
        return
    get_mongo_collection(collection_name="posts").update_one({"_id": oid}, {"$inc": {"views": 1}})
