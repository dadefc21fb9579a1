"""Uploaded file handle passed from the HTTP layer to services."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UploadedFile:
    """A file received with a request and spooled to local disk."""

    path: str  # Local path of the spooled file
    filename: Optional[str] = None  # Name sent by the client
    content_type: Optional[str] = None
