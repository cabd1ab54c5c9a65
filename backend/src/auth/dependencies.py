"""FastAPI dependencies for authentication and authorization.

This module provides dependency injection functions for:
- Extracting and validating the bearer token into an actor id
- Enforcing a role for endpoints that are role-gated as a whole

Workflow operations repeat their own authorization checks against the role
store; require_role only guards endpoints that have no workflow operation
behind them (audit queries, retention trigger).

Usage:
    @router.get("/me")
    def get_mine(actor_id: UUID = Depends(get_current_actor)):
        ...

    @router.get("/audit")
    def audit(actor_id: UUID = Depends(require_role(UserRole.ADMIN))):
        ...
"""

from typing import Annotated, Callable
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from infrastructure.authorization.role_store import SqlAlchemyRoleStore
from .jwt import actor_id_from_token
from .roles import UserRole


security = HTTPBearer()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UUID:
    """Return the user id carried by the bearer token.

    Raises:
        HTTPException 401: If the token is missing, invalid or expired
    """
    try:
        return actor_id_from_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(required_role: UserRole) -> Callable:
    """Create a dependency that admits only actors holding required_role.

    Raises:
        HTTPException 403: If the actor holds a different role or none
    """

    def role_dependency(
        actor_id: UUID = Depends(get_current_actor),
        db: Session = Depends(get_db),
    ) -> UUID:
        if not SqlAlchemyRoleStore(db).has_role(actor_id, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {required_role.value}",
            )
        return actor_id

    return role_dependency


CurrentActor = Annotated[UUID, Depends(get_current_actor)]
