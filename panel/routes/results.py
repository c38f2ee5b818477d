"""
Route handlers for the latest results: JSON snapshot and CSV export.
"""
import logging
import re

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from finder.export import deals_to_csv
from finder.utils import now_iso

from ..coordinator import RunCoordinator
from ..deps import get_coordinator
from ..models import ResultsOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["results"])


def csv_filename(ts) -> str:
    """marketplace-results-2024-05-01-12-30-00.csv"""
    stamp = re.sub(r"\..*$", "", re.sub(r"[:T]", "-", ts or now_iso()))
    stamp = re.sub(r"\+.*$", "", stamp)
    return f"marketplace-results-{stamp}.csv"


@router.get("/results", response_model=ResultsOut)
async def get_results(coordinator: RunCoordinator = Depends(get_coordinator)):
    """Latest run snapshot, including an error annotation for failed runs."""
    return ResultsOut(**coordinator.store.last_result.to_dict())


@router.get("/csv")
async def export_results_csv(coordinator: RunCoordinator = Depends(get_coordinator)):
    """Export the latest deals as CSV."""
    try:
        last = coordinator.store.last_result
        csv_content = deals_to_csv(last.deals).encode("utf-8")
    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{csv_filename(last.ts)}"'},
    )
