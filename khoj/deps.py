# khoj/deps.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel

from khoj.db.dynamo import DynamoStore, get_store
from khoj.services.connections import ConnectionRegistry


class CurrentUser(BaseModel):
    user_id: str
    user_type: Literal["citizen", "police"] = "citizen"


def store_dep() -> DynamoStore:
    return get_store()


def registry_dep(request: Request) -> ConnectionRegistry:
    return request.app.state.connections


def optional_user(
    x_user_id: Optional[str] = Header(None),
    x_user_type: Optional[str] = Header(None),
) -> Optional[CurrentUser]:
    """
    Identity forwarded by the session layer in front of the API.
    Missing header -> anonymous.
    """
    if not x_user_id:
        return None
    user_type = "police" if (x_user_type or "").lower() == "police" else "citizen"
    return CurrentUser(user_id=x_user_id, user_type=user_type)


def require_user(user: Optional[CurrentUser] = Depends(optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user
