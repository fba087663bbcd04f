from datetime import datetime
from typing import Any

from pydantic import BaseModel


class DocumentSnapshot(BaseModel):
    """A document as read from a document store, with its fields already decoded to Python values.

    Attributes:
        id:          Document identifier within its collection.
        path:        Fully qualified backend reference, used to address the document in batched writes.
        data:        Decoded document fields.
        update_time: Last write time reported by the backend, if any.
    """

    id: str
    path: str
    data: dict[str, Any] = {}
    update_time: datetime | None = None
