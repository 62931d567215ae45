from typing import Dict
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller for RBAC checks.
    Identity and permissions are issued by the auth service and carried in the access token.
    """

    id: UUID
    role: str
    permissions: Dict[str, Dict[str, bool]]
