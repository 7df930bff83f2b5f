"""Database models for Research Vault."""

from researchvault.models.base import Base
from researchvault.models.asset import Asset
from researchvault.models.document import Document
from researchvault.models.infobox import InfoboxField
from researchvault.models.tag import Tag, document_tags

__all__ = ["Base", "Document", "Asset", "Tag", "InfoboxField", "document_tags"]
