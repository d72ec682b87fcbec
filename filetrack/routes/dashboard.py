from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.files import Department
from ..services import stats


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats")
def dashboard_stats(department: Optional[Department] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.dashboard_stats(db, department.value if department else None)}


@router.get("/departments")
def department_breakdown(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.department_breakdown(db)}


@router.get("/recent-activities")
def recent_activities(limit: int = 10, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = stats.recent_activities(db, limit=max(1, min(limit, 100)))
    return {"success": True, "count": len(rows), "data": rows}


@router.get("/status-distribution")
def status_distribution(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.status_distribution(db)}


@router.get("/priority-distribution")
def priority_distribution(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.priority_distribution(db)}


@router.get("/forwarding-stats")
def forwarding_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.forwarding_stats(db)}


@router.get("/user-stats")
def user_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": stats.user_stats(db)}


@router.get("/timeline")
def timeline(days: int = 7, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = stats.timeline(db, days=max(1, min(days, 365)))
    return {"success": True, "count": len(rows), "data": rows}
