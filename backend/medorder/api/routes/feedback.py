from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from medorder.api.deps import get_db, require_admin
from medorder.models.feedback import Feedback
from medorder.schemas.accounts import FeedbackResponse

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[FeedbackResponse])
def list_feedback(db: Session = Depends(get_db)):
    return db.query(Feedback).order_by(Feedback.id.desc()).all()
