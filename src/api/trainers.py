"""Trainer API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.trainer import Trainer as TrainerModel
from src.schemas.trainer import Trainer, TrainerCreate

router = APIRouter(prefix="/api/trainers", tags=["trainers"])


@router.post("/", response_model=Trainer, status_code=201)
def create_trainer(trainer: TrainerCreate, db: Session = Depends(get_db)) -> TrainerModel:
    """Create a new trainer."""
    existing = db.query(TrainerModel).filter(TrainerModel.email == trainer.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Trainer with this email already exists")

    db_trainer = TrainerModel(**trainer.model_dump())
    db.add(db_trainer)
    db.commit()
    db.refresh(db_trainer)
    return db_trainer


@router.get("/{trainer_id}", response_model=Trainer)
def get_trainer(trainer_id: int, db: Session = Depends(get_db)) -> TrainerModel:
    """Get a trainer by ID."""
    trainer = db.query(TrainerModel).filter(TrainerModel.id == trainer_id).first()
    if not trainer:
        raise HTTPException(status_code=404, detail="Trainer not found")
    return trainer
