"""Student roster API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_trainer
from src.database import get_db
from src.models.student import Student as StudentModel
from src.models.trainer import Trainer
from src.schemas.student import Student, StudentCreate

router = APIRouter(prefix="/api/students", tags=["students"])


@router.post("", response_model=Student, status_code=201)
def create_student(
    student: StudentCreate,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> StudentModel:
    """Add a student to the trainer's roster."""
    db_student = StudentModel(trainer_id=trainer.id, **student.model_dump())
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return db_student


@router.get("", response_model=list[Student])
def list_students(
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> list[StudentModel]:
    """List the trainer's students."""
    return (
        db.query(StudentModel)
        .filter(StudentModel.trainer_id == trainer.id)
        .filter(StudentModel.deleted_at.is_(None))
        .order_by(StudentModel.name.asc())
        .all()
    )


@router.get("/{student_id}", response_model=Student)
def get_student(
    student_id: int,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> StudentModel:
    """Get one of the trainer's students."""
    student = (
        db.query(StudentModel)
        .filter(StudentModel.id == student_id, StudentModel.trainer_id == trainer.id)
        .filter(StudentModel.deleted_at.is_(None))
        .first()
    )
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student
