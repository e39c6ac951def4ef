"""Content node store for ReachGraph."""

import uuid
from datetime import datetime

from reachgraph.database.models import ContentNode, ContentType
from reachgraph.database.queries import (
    find_content_node_by_external_id,
    get_content_node,
    insert_content_node,
    list_content_nodes,
    update_content_metadata,
)
from reachgraph.exceptions import DuplicateContentError, InvalidReferenceError
from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)


class NodeStore:
    """Canonical records of content items and their platform identities."""

    def create_node(
        self,
        creator_id: str,
        platform: str,
        external_id: str,
        content_type: ContentType | str,
        published_at: datetime | str,
        title: str = "",
        description: str | None = None,
    ) -> ContentNode:
        """
        Create a content node.

        Raises:
            DuplicateContentError: If the creator already has this
                (platform, external_id).
        """
        node = ContentNode(
            id=str(uuid.uuid4()),
            creator_id=creator_id,
            platform=platform,
            external_id=external_id,
            content_type=content_type,
            published_at=published_at,
            title=title,
            description=description,
        )

        if find_content_node_by_external_id(creator_id, node.platform, external_id):
            raise DuplicateContentError(creator_id, node.platform, external_id)

        insert_content_node(node)
        logger.info(f"Created content {node.id} ({node.platform}:{external_id}) for {creator_id}")
        return node

    def get_node(self, content_id: str) -> ContentNode:
        """
        Get a node by ID.

        Raises:
            InvalidReferenceError: If the node does not exist.
        """
        node = get_content_node(content_id)
        if node is None:
            raise InvalidReferenceError(f"Content {content_id} does not exist", content_id)
        return node

    def find_node(self, content_id: str) -> ContentNode | None:
        """Get a node by ID, or None."""
        return get_content_node(content_id)

    def find_by_external_id(
        self, creator_id: str, platform: str, external_id: str
    ) -> ContentNode | None:
        """Look up a node by its platform identity."""
        return find_content_node_by_external_id(creator_id, platform, external_id)

    def list_nodes_by_creator(self, creator_id: str, platform: str | None = None) -> list[ContentNode]:
        """List a creator's nodes, oldest first."""
        return list_content_nodes(creator_id=creator_id, platform=platform)

    def update_metadata(
        self,
        content_id: str,
        title: str | None = None,
        description: str | None = None,
    ) -> ContentNode:
        """
        Update the mutable metadata of a node. Identity fields never change.

        Raises:
            InvalidReferenceError: If the node does not exist.
        """
        if not update_content_metadata(content_id, title=title, description=description):
            raise InvalidReferenceError(f"Content {content_id} does not exist", content_id)
        return self.get_node(content_id)


_default_store: NodeStore | None = None


def get_node_store() -> NodeStore:
    """Get the default node store instance."""
    global _default_store
    if _default_store is None:
        _default_store = NodeStore()
    return _default_store
