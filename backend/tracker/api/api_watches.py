from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_watch
from ..database import get_db
from ..schemas.watch import WatchCreate, WatchRead, WatchUpdate
from ..utils.errors import error_response
from .dependencies import get_current_user

router = APIRouter(tags=["watches"])


def _get_owned_watch(db: Session, user: models.User, watch_id: int) -> models.Watch:
    watch = crud_watch.get_watch(db, user.id, watch_id)
    if watch is None:
        raise error_response("Watch not found", {"watch_id": "not_found"}, status.HTTP_404_NOT_FOUND)
    return watch


@router.get("/", response_model=List[WatchRead])
def list_watches(
    q: Optional[str] = None,
    status_filter: Optional[models.WatchStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud_watch.list_watches(db, current_user.id, q=q, status=status_filter, skip=skip, limit=limit)


@router.post("/", response_model=WatchRead, status_code=status.HTTP_201_CREATED)
def create_watch(
    data: WatchCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud_watch.create_watch(db, current_user.id, data)


@router.get("/{watch_id}", response_model=WatchRead)
def read_watch(
    watch_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _get_owned_watch(db, current_user, watch_id)


@router.put("/{watch_id}", response_model=WatchRead)
def update_watch(
    watch_id: int,
    data: WatchUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    watch = _get_owned_watch(db, current_user, watch_id)
    return crud_watch.update_watch(db, watch, data)


@router.delete("/{watch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_watch(
    watch_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    watch = _get_owned_watch(db, current_user, watch_id)
    crud_watch.delete_watch(db, watch)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
