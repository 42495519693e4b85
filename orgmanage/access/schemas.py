"""Access schemas."""

import uuid
from typing import List

from pydantic import BaseModel


class NavigationResponse(BaseModel):
    user_id: uuid.UUID
    roles: List[str]
    targets: List[str]
    actions: List[str]
