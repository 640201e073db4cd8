from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas


def get_watch(db: Session, user_id: int, watch_id: int) -> Optional[models.Watch]:
    return (
        db.query(models.Watch)
        .filter(models.Watch.id == watch_id, models.Watch.user_id == user_id)
        .first()
    )


def list_watches(
    db: Session,
    user_id: int,
    q: Optional[str] = None,
    status: Optional[models.WatchStatus] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Watch]:
    query = db.query(models.Watch).filter(models.Watch.user_id == user_id)
    if status:
        query = query.filter(models.Watch.status == status)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(
                models.Watch.brand.ilike(like),
                models.Watch.model.ilike(like),
                models.Watch.reference_number.ilike(like),
                models.Watch.serial_number.ilike(like),
            )
        )
    return query.order_by(models.Watch.created_at.desc(), models.Watch.id.desc()).offset(skip).limit(limit).all()


def create_watch(db: Session, user_id: int, data: schemas.WatchCreate) -> models.Watch:
    watch = models.Watch(user_id=user_id, **data.model_dump())
    db.add(watch)
    db.commit()
    db.refresh(watch)
    return watch


def update_watch(db: Session, watch: models.Watch, data: schemas.WatchUpdate) -> models.Watch:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(watch, field, value)
    db.add(watch)
    db.commit()
    db.refresh(watch)
    return watch


def delete_watch(db: Session, watch: models.Watch) -> None:
    db.delete(watch)
    db.commit()
