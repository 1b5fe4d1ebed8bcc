from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class CurrentUser(BaseModel):
    """Authenticated caller, built from bearer token claims"""
    id: int
    username: Optional[str] = None
    roles: List[str] = []
    permissions: List[Dict[str, Any]] = []

    def has_role(self, *roles: str) -> bool:
        wanted = {role.upper() for role in roles}
        return any(role.upper() in wanted for role in self.roles)
