"""
Catalog Errors

Exceptions raised by the catalog services. The HTTP layer maps each one to
a status code and a dismissible message.
"""


class CatalogError(Exception):
    """Base class for catalog failures shown to the user."""
    status_code = 400


class DuplicateNameError(CatalogError):
    """Raised when a name collides with another record of the same type."""
    status_code = 409

    def __init__(self, kind, name):
        self.kind = kind
        self.name = name
        super().__init__(f'{kind} with the same name exists: "{name}"')


class InvalidRecordError(CatalogError):
    """Raised when a field value is blank, out of range or malformed."""
    status_code = 400


class RecordNotFoundError(CatalogError):
    """Raised when an operation targets an id that does not exist."""
    status_code = 404

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f'{kind} {record_id} not found')


class PersistenceError(CatalogError):
    """Raised when the durable commit fails. Nothing from the action is kept."""
    status_code = 500
