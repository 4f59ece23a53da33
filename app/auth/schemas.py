from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated actor as seen by routers and the role policy."""

    id: UUID
    school_id: Optional[UUID] = None
    role: str
    full_name: Optional[str] = None
    admission: Optional[str] = None
