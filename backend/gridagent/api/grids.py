"""Grid API endpoints: create grids, add columns and watch cells hydrate."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from gridagent.api.dependencies import get_github_client, get_orchestrator
from gridagent.models.grid import Cell, Column, Grid, GridSummary, NewColumn
from gridagent.services.ai.client import AIClientError
from gridagent.services.grid.orchestrator import (
    ColumnNotFoundError,
    DuplicateColumnError,
    GridNotFoundError,
    GridOrchestrator,
    UnsupportedColumnError,
)
from gridagent.services.tools.github_client import GitHubClient, GitHubClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grids", tags=["grids"])


class CreateGridRequest(BaseModel):
    """Request model for bootstrapping a grid from a free-text query."""
    query: str = Field(..., min_length=1, description="What the grid should list, e.g. 'open bugs in acme/widgets'")


class GroupByRequest(BaseModel):
    column_title: Optional[str] = Field(None, description="Column to group by; null clears grouping")


class FilterByRequest(BaseModel):
    column_title: Optional[str] = Field(None, description="Column to filter on; null clears the filter")
    value: Optional[str] = None


class GistResponse(BaseModel):
    url: str


def _get_grid_or_404(orchestrator: GridOrchestrator, grid_id: str) -> Grid:
    try:
        return orchestrator.get_grid(grid_id)
    except GridNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=Grid, status_code=status.HTTP_201_CREATED)
async def create_grid(
    request: CreateGridRequest,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    """Create a grid whose primary column is produced by one model-chosen tool call."""
    try:
        result = await orchestrator.create_grid(request.query)
    except AIClientError as e:
        logger.error(f"Model call failed while creating grid: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Model call failed: {e}")

    if not result.success:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=result.message)
    return result.grid


@router.get("", response_model=List[GridSummary])
async def list_grids(orchestrator: GridOrchestrator = Depends(get_orchestrator)):
    return orchestrator.list_grids()


@router.get("/{grid_id}", response_model=Grid)
async def get_grid(grid_id: str, orchestrator: GridOrchestrator = Depends(get_orchestrator)):
    return _get_grid_or_404(orchestrator, grid_id)


@router.delete("/{grid_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grid(grid_id: str, orchestrator: GridOrchestrator = Depends(get_orchestrator)):
    _get_grid_or_404(orchestrator, grid_id)
    orchestrator.delete_grid(grid_id)


@router.post("/{grid_id}/columns", response_model=Column, status_code=status.HTTP_202_ACCEPTED)
async def add_column(
    grid_id: str,
    new_column: NewColumn,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    """Add a column and start hydrating its cells.

    Returns the committed column immediately; poll the grid to observe cells
    moving from `generating` to `done` or `error`.
    """
    try:
        return orchestrator.add_column(grid_id, new_column)
    except GridNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateColumnError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except UnsupportedColumnError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.delete("/{grid_id}/columns/{column_index}", response_model=Grid)
async def delete_column(
    grid_id: str,
    column_index: int,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    try:
        orchestrator.delete_column(grid_id, column_index)
    except (GridNotFoundError, ColumnNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return orchestrator.get_grid(grid_id)


@router.post(
    "/{grid_id}/columns/{column_index}/cells/{row_index}/rehydrate",
    response_model=Cell,
    status_code=status.HTTP_202_ACCEPTED
)
async def rehydrate_cell(
    grid_id: str,
    column_index: int,
    row_index: int,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    try:
        return orchestrator.rehydrate_cell(grid_id, column_index, row_index)
    except (GridNotFoundError, ColumnNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{grid_id}/group-by", response_model=Grid)
async def set_group_by(
    grid_id: str,
    request: GroupByRequest,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    try:
        return orchestrator.set_group_by(grid_id, request.column_title)
    except (GridNotFoundError, ColumnNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{grid_id}/filter-by", response_model=Grid)
async def set_filter_by(
    grid_id: str,
    request: FilterByRequest,
    orchestrator: GridOrchestrator = Depends(get_orchestrator)
):
    try:
        return orchestrator.set_filter_by(grid_id, request.column_title, request.value)
    except (GridNotFoundError, ColumnNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{grid_id}/export", response_class=PlainTextResponse)
async def export_grid(grid_id: str, orchestrator: GridOrchestrator = Depends(get_orchestrator)):
    """Export the grid as a markdown table."""
    try:
        table = orchestrator.export_markdown(grid_id)
    except GridNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PlainTextResponse(table, media_type="text/markdown")


@router.post("/{grid_id}/gist", response_model=GistResponse, status_code=status.HTTP_201_CREATED)
async def save_grid_as_gist(
    grid_id: str,
    orchestrator: GridOrchestrator = Depends(get_orchestrator),
    github: GitHubClient = Depends(get_github_client)
):
    """Publish the markdown export as a secret gist."""
    grid = _get_grid_or_404(orchestrator, grid_id)
    table = orchestrator.export_markdown(grid_id)
    try:
        url = await github.create_gist(
            filename="grid.md",
            content=f"# {grid.title}\n\n{table}\n",
            description=grid.title,
        )
    except GitHubClientError as e:
        logger.error(f"Failed to create gist for grid {grid_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to create gist: {e}")
    return GistResponse(url=url)
