"""
Domain exceptions raised by the storage services.

Route handlers translate these into HTTP responses; services never
build HTTP errors themselves.
"""


class CollectionWriteError(Exception):
    """
    A write to one profile collection failed.

    Carries the collection name so the API layer can report
    "Failed to save <collection>", plus the underlying driver message.
    """

    def __init__(self, collection: str, message: str = ""):
        self.collection = collection
        self.message = message
        super().__init__(f"Failed to save {collection}: {message}")


class CodecError(KeyError):
    """An unknown codec domain was requested (programming error)."""
