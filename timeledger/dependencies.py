"""Request-scoped dependencies shared by the routers."""
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from timeledger.database import get_db
from timeledger.services.access_scope import Actor, resolve_actor


def get_actor(
    actor_user_id: str = Query(..., description="ID of the authenticated user performing the request"),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the caller's company scope once per request."""
    return resolve_actor(db, actor_user_id)
