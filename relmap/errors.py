"""
Exceptions raised by the mapping engine.

Storage failures (constraint violations, I/O errors) are not wrapped:
they surface as the SQLAlchemy exceptions raised by the row store.
"""


class MappingError(Exception):
    """Base exception for mapping errors."""

    def __init__(self, message: str, record_type: type | None = None, operation: str = ""):
        self.record_type = record_type
        self.operation = operation
        super().__init__(message)

    @property
    def type_name(self) -> str:
        return self.record_type.__name__ if self.record_type is not None else ""


class SchemaError(MappingError):
    """Raised when a type cannot be described as a record schema."""

    pass


class ConstructionError(MappingError):
    """Raised when a default instance cannot be built or a field cannot be set."""

    pass


class EncodingError(MappingError):
    """Raised when a field value cannot be coerced to its declared kind."""

    def __init__(
        self,
        message: str,
        record_type: type | None = None,
        operation: str = "",
        field_name: str = "",
        kind: object = None,
    ):
        self.field_name = field_name
        self.kind = kind
        super().__init__(message, record_type, operation)


class RelationshipError(MappingError):
    """Raised when relationship declarations conflict."""

    pass
