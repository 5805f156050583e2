import logging
from typing import Optional

from models.comments import Comment
from models.users import Session
from services.posts_services import InvalidObjectIdError, PostNotFoundError
from util.models_utils import parse_object_id, to_document
from util.mongodb_utils import get_mongo_collection

logger = logging.getLogger(__name__)


class CommentValidationError(ValueError):
    pass


def list_comments(post_id) -> list:
    """Comments of a post, newest first."""
    if not post_id:
        raise CommentValidationError("Post ID is required")
    oid = parse_object_id(post_id)
    if oid is None:
        raise InvalidObjectIdError()
    comments_coll = get_mongo_collection(collection_name="comments")
    return list(comments_coll.find({"postId": oid}).sort([("createdAt", -1), ("_id", -1)]))


def add_comment(post_id, user_name, content, session: Optional[Session] = None) -> dict:
    """
    Store a comment on an existing post.

    A logged-in commenter's session name is used when no userName is given,
    and the session id is kept so the user's dashboard can list the comment.
    """
    if session is not None and not (user_name and user_name.strip()):
        user_name = session.name
    user_name = (user_name or "").strip()
    content = (content or "").strip()
    if not post_id or not user_name or not content:
        raise CommentValidationError("Missing required fields")

    oid = parse_object_id(post_id)
    if oid is None:
        raise InvalidObjectIdError()
    if not get_mongo_collection(collection_name="posts").find_one({"_id": oid}, {"_id": 1}):
        raise PostNotFoundError()

    comment = Comment(
        postId=oid,
        userName=user_name,
        content=content,
        userId=session.id if session else None,
    )
    document = to_document(comment)
    result = get_mongo_collection(collection_name="comments").insert_one(document)
    document["_id"] = result.inserted_id

    logger.info(f"Added comment {result.inserted_id} to post {oid} by '{user_name}'")
    return document


def list_user_comments(session: Session, limit: int = 50) -> list:
    """
    Comments written by *session*'s user, newest first, each with the title
    of the post it belongs to under "postTitle".
    """
    comments = list(
        get_mongo_collection(collection_name="comments")
        .find({"userId": session.id})
        .sort([("createdAt", -1), ("_id", -1)])
        .limit(limit)
    )
    post_ids = list({c["postId"] for c in comments})
    titles = {
        p["_id"]: p["title"]
        for p in get_mongo_collection(collection_name="posts").find({"_id": {"$in": post_ids}}, {"title": 1})
    }
    for comment in comments:
        comment["postTitle"] = titles.get(comment["postId"], "")
    return comments
