"""Custom exceptions for ReachGraph."""


class ReachGraphError(Exception):
    """Base exception for ReachGraph."""

    pass


class ConfigurationError(ReachGraphError):
    """Raised when there's a configuration issue."""

    pass


class DatabaseError(ReachGraphError):
    """Raised when there's a database issue."""

    pass


class ReportError(ReachGraphError):
    """Raised when there's an issue generating a report."""

    pass


class GraphError(ReachGraphError):
    """Raised when a relationship graph operation is rejected."""

    pass


class InvalidReferenceError(GraphError):
    """Raised when a content item or edge does not exist or crosses creators."""

    def __init__(self, message: str, content_id: str | None = None) -> None:
        self.content_id = content_id
        super().__init__(message)


class DuplicateContentError(GraphError):
    """Raised when a creator already has content with the same platform identity."""

    def __init__(self, creator_id: str, platform: str, external_id: str) -> None:
        self.creator_id = creator_id
        self.platform = platform
        self.external_id = external_id
        super().__init__(
            f"Content {platform}:{external_id} already exists for creator {creator_id}"
        )


class MultipleParentsError(GraphError):
    """Raised when an edge would give a content item a second parent."""

    def __init__(self, target_id: str, existing_parent_id: str) -> None:
        self.target_id = target_id
        self.existing_parent_id = existing_parent_id
        super().__init__(
            f"Content {target_id} already has parent {existing_parent_id}"
        )


class CycleError(GraphError):
    """Raised when an edge would close a cycle in a content family."""

    def __init__(self, source_id: str, target_id: str) -> None:
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(
            f"Linking {source_id} -> {target_id} would create a cycle"
        )


class FamilyTooDeepError(GraphError):
    """Raised when a content family exceeds the maximum traversal depth."""

    def __init__(self, root_id: str, max_depth: int) -> None:
        self.root_id = root_id
        self.max_depth = max_depth
        super().__init__(
            f"Content family rooted at {root_id} is deeper than {max_depth} levels"
        )


class MetricsError(ReachGraphError):
    """Raised when there's an issue with metric data."""

    pass


class UnknownPlatformError(MetricsError):
    """Raised when no standardization profile is registered for a platform."""

    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"No standardization profile registered for platform '{platform}'")


class LowConfidenceError(ReachGraphError):
    """Raised when a relationship score falls below the suggestion threshold."""

    def __init__(self, confidence: float, threshold: float) -> None:
        self.confidence = confidence
        self.threshold = threshold
        super().__init__(f"Confidence {confidence:.2f} is below threshold {threshold:.2f}")
