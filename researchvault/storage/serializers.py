"""Model serialization for backup archives."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, inspect

from researchvault.models.asset import Asset
from researchvault.models.document import Document
from researchvault.models.infobox import InfoboxField
from researchvault.models.tag import Tag


def serialize_model(obj: Any, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    """
    Serialize the column attributes of a SQLAlchemy model to a dictionary.

    Args:
        obj: SQLAlchemy model instance
        exclude: Attribute names to leave out

    Returns:
        Dictionary representation of the model with datetimes in ISO format
    """
    result = {}
    for attr in inspect(obj).mapper.column_attrs:
        if attr.key in exclude:
            continue
        value = getattr(obj, attr.key)
        if hasattr(value, "isoformat"):  # datetime
            value = value.isoformat()
        result[attr.key] = value
    return result


def serialize_tag(tag: Tag) -> dict[str, Any]:
    return serialize_model(tag)


def serialize_document(document: Document) -> dict[str, Any]:
    """Serialize a document with its tag references, assets and infobox."""
    result = serialize_model(document)
    result["tag_ids"] = sorted(tag.id for tag in document.tags)
    result["assets"] = [
        serialize_model(asset, exclude=("document_id",)) for asset in document.ordered_assets
    ]
    result["infobox"] = [
        serialize_model(field, exclude=("document_id",)) for field in document.infobox
    ]
    return result


def _parse_datetimes(model: type, data: dict[str, Any]) -> dict[str, Any]:
    """Convert ISO strings back to datetimes for DateTime columns."""
    parsed = dict(data)
    for column in inspect(model).columns:
        value = parsed.get(column.key)
        if isinstance(column.type, DateTime) and isinstance(value, str):
            parsed[column.key] = datetime.fromisoformat(value)
    return parsed


def _column_values(model: type, data: dict[str, Any]) -> dict[str, Any]:
    keys = {attr.key for attr in inspect(model).column_attrs}
    return {key: value for key, value in _parse_datetimes(model, data).items() if key in keys}


def deserialize_tag(data: dict[str, Any]) -> Tag:
    return Tag(**_column_values(Tag, data))


def deserialize_document(data: dict[str, Any], tags_by_id: dict[str, Tag]) -> Document:
    """
    Rebuild a document from its serialized form.

    Field values, the stored fingerprint included, are restored verbatim.

    Args:
        data: Output of serialize_document
        tags_by_id: Already rebuilt tags keyed by ID

    Returns:
        Transient Document with assets, infobox and tags attached
    """
    document = Document(**_column_values(Document, data))
    document.tags = [tags_by_id[tag_id] for tag_id in data.get("tag_ids", []) if tag_id in tags_by_id]
    document.assets = [Asset(**_column_values(Asset, item)) for item in data.get("assets", [])]
    document.infobox = [
        InfoboxField(**_column_values(InfoboxField, item)) for item in data.get("infobox", [])
    ]
    return document
