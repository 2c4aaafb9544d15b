"""
MongoDB access for the Basket Grocery API.

Each collection is named after the lowercase model name (Product -> "product").
Handlers go through the helpers below rather than holding their own client, so
``db`` can be swapped out in one place.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson.objectid import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection

import settings
from errors import DatabaseUnavailableException

logger = logging.getLogger(__name__)

client = None
db = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[settings.DATABASE_NAME]


def collection(collection_name: str) -> Collection:
    if db is None:
        raise DatabaseUnavailableException()
    return db[collection_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value) -> Optional[ObjectId]:
    """Parse an id string; returns None for anything that is not an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_str_id(doc: dict):
    if not doc:
        return doc
    d = doc.copy()
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    data_dict.setdefault("createdAt", utcnow())
    result = collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    cursor = collection(collection_name).find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, document_id, projection=None) -> Optional[dict]:
    oid = to_object_id(document_id)
    if oid is None:
        return None
    return collection(collection_name).find_one({"_id": oid}, projection)


def find_document(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[dict]:
    return collection(collection_name).find_one(filter_dict)


def update_document(collection_name: str, document_id, changes: Dict[str, Any], projection=None) -> Optional[dict]:
    """Apply ``$set`` changes and return the updated document, or None if absent."""
    oid = to_object_id(document_id)
    if oid is None:
        return None
    return collection(collection_name).find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        projection=projection,
        return_document=ReturnDocument.AFTER,
    )


def delete_document(collection_name: str, document_id) -> Optional[dict]:
    oid = to_object_id(document_id)
    if oid is None:
        return None
    return collection(collection_name).find_one_and_delete({"_id": oid})


def count_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> int:
    return collection(collection_name).count_documents(filter_dict or {})


def ensure_indexes():
    """Unique keys backing the email and category-name uniqueness rules."""
    if db is None:
        return
    db["user"].create_index("email", unique=True)
    db["admin"].create_index("email", unique=True)
    db["category"].create_index("name", unique=True)
    db["product"].create_index("category")
    db["order"].create_index([("userId", 1), ("orderDate", -1)])
    logger.info("Database indexes ensured")
