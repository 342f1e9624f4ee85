"""FastAPI dependencies shared by the routers."""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.trainer import Trainer


def get_current_trainer(
    x_trainer_id: int | None = Header(default=None, alias="X-Trainer-Id"),
    db: Session = Depends(get_db),
) -> Trainer:
    """Resolve the trainer making the request.

    Raises:
        HTTPException: 401 if the header is missing or names no trainer
    """
    if x_trainer_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    trainer = db.query(Trainer).filter(Trainer.id == x_trainer_id).first()
    if not trainer:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return trainer
