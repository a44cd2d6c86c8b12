"""
Map plan document fields to span attributes.

Attribute values are either strings or signed integers. Strings may be
truncated to a configured maximum length; numeric document fields are
truncated toward zero into integers.
"""

from ..plans.plan_parser import PlanDocument, PlanNode

AttributeValue = str | int

# Document-level attribute keys on the query span.
ATTR_QUERY = "query"
ATTR_USERNAME = "username"
ATTR_SESSION_USERNAME = "session_username"
ATTR_CONNECTION_ID = "connection_id"
ATTR_DATABASE_NAME = "database_name"

# Node-level attribute keys on operator spans.
ATTR_ROWS_FETCHED = "Rows Fetched"
ATTR_OPERATION = "Operation"
ATTR_TABLE_NAME = "Table Name"


class AttributeExtractor:
    """Build attribute maps for the query span and for operator spans."""

    def __init__(self, max_length: int | None = None):
        self.max_length = max_length

    def string_value(self, value: str) -> str:
        """Apply the configured truncation limit to a string value."""
        if self.max_length is not None and len(value) > self.max_length:
            return value[: self.max_length]
        return value

    @staticmethod
    def int_value(value: float) -> int:
        return int(value)

    def document_attributes(self, document: PlanDocument) -> dict[str, AttributeValue]:
        return {
            ATTR_QUERY: self.string_value(document.query_text),
            ATTR_USERNAME: self.string_value(document.username),
            ATTR_SESSION_USERNAME: self.string_value(document.session_username),
            ATTR_CONNECTION_ID: self.int_value(document.connection_id),
            ATTR_DATABASE_NAME: self.string_value(document.database_name),
        }

    def node_attributes(self, node: PlanNode) -> dict[str, AttributeValue]:
        """Rows Fetched always; Operation and Table Name only when the node has them."""
        attrs: dict[str, AttributeValue] = {
            ATTR_ROWS_FETCHED: self.int_value(node.actual_rows),
        }
        if node.operation is not None:
            attrs[ATTR_OPERATION] = self.string_value(node.operation)
        if node.relation_name is not None:
            attrs[ATTR_TABLE_NAME] = self.string_value(node.relation_name)
        return attrs
