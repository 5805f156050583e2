from datetime import datetime
from bson import ObjectId
from pydantic import BaseModel


def to_document(model: BaseModel) -> dict:
    """
    Dumps a Pydantic model into a MongoDB-ready dict, keeping ObjectId and
    datetime values as native BSON types.
    """
    return model.model_dump(mode='python', by_alias=True)


def serialize_document(obj):
    """
    Recursively encodes MongoDB documents into JSON-safe values:
    ObjectId becomes its hex string and datetime its ISO-8601 form.
    The "_id" key is exposed as "id" as well.
    """
    if isinstance(obj, BaseModel):
        return serialize_document(to_document(obj))
    elif isinstance(obj, dict):
        encoded = {k: serialize_document(v) for k, v in obj.items()}
        if "_id" in encoded:
            encoded["id"] = encoded["_id"]
        return encoded
    elif isinstance(obj, (list, tuple, set)):
        return [serialize_document(v) for v in obj]
    elif isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    else:
        return obj


def parse_object_id(value):
    """Returns an ObjectId for *value*, or None when it is not well formed."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)
