"""
Entity statistics endpoints for dashboards.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from assessment.core.db_error_handling import handle_db_error
from assessment.core.entity_stats import get_entity_stats
from assessment.models import get_db
from assessment.schemas.stats import EntityStatsResponse

router = APIRouter()


@router.get("/entities", response_model=EntityStatsResponse)
def get_entity_statistics(db: Session = Depends(get_db)):
    """
    Summary counts, averages and breakdowns over competencies, behavioral
    indicators and assessment questions.
    """
    with handle_db_error(db, "compute entity statistics"):
        stats = get_entity_stats(db)
        return EntityStatsResponse.model_validate(stats)
