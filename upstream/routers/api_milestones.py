from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..crud.milestones import (
    create_milestone,
    get_milestone,
    list_project_milestones,
    update_milestone,
)
from ..deps.auth import AuthContext, require_api_or_jwt
from ..entities.milestone import Milestone
from ..schemas.milestone import MilestoneCreate, MilestoneOut, MilestoneUpdate
from ..services import dates
from ..services.container import Services, get_services

router = APIRouter(prefix="/api/v1", tags=["milestones"], dependencies=[Depends(require_api_or_jwt)])


def _milestone_to_schema(milestone: Milestone) -> MilestoneOut:
    return MilestoneOut(
        id=milestone.id,
        project_id=milestone.get_project_id(),
        name=milestone.get_name(),
        notes=milestone.get_notes(),
        assigned_to=milestone.get_assigned_to(),
        start_date=milestone.get_start_date(),
        end_date=milestone.get_end_date(),
        start_date_display=milestone.get_start_date(dates.FORMAT_UPSTREAM),
        end_date_display=milestone.get_end_date(dates.FORMAT_UPSTREAM),
        order=milestone.get_order(),
        progress=milestone.get_progress(),
        color=milestone.get_color(),
        category_ids=milestone.get_category_ids(),
        created_by=milestone.get_created_by(),
        created_on=milestone.get_created_on(),
        legacy_id=milestone.get_legacy_id(),
        legacy_milestone_code=milestone.get_legacy_milestone_code(),
        task_count=milestone.get_task_count(),
        task_open=milestone.get_task_open(),
        state=milestone.state.value,
    )


@router.get("/projects/{project_id}/milestones", response_model=list[MilestoneOut])
def api_list_milestones(project_id: int, services: Services = Depends(get_services)):
    return [_milestone_to_schema(milestone) for milestone in list_project_milestones(services, project_id)]


@router.post("/projects/{project_id}/milestones", response_model=MilestoneOut, status_code=201)
def api_create_milestone(project_id: int, payload: MilestoneCreate, services: Services = Depends(get_services)):
    milestone = create_milestone(services, project_id, payload.model_dump(exclude_unset=True))
    return _milestone_to_schema(milestone)


@router.get("/milestones/legacy/{legacy_id}", response_model=MilestoneOut)
def api_get_milestone_by_legacy_id(legacy_id: str, services: Services = Depends(get_services)):
    return _milestone_to_schema(Milestone.by_legacy_id(services, legacy_id))


@router.get("/milestones/{milestone_id}", response_model=MilestoneOut)
def api_get_milestone(milestone_id: int, services: Services = Depends(get_services)):
    return _milestone_to_schema(get_milestone(services, milestone_id))


@router.patch("/milestones/{milestone_id}", response_model=MilestoneOut)
def api_update_milestone(milestone_id: int, payload: MilestoneUpdate, services: Services = Depends(get_services)):
    milestone = get_milestone(services, milestone_id)
    updated = update_milestone(services, milestone, payload.model_dump(exclude_unset=True))
    return _milestone_to_schema(updated)


@router.get("/milestones/{milestone_id}/legacy")
def api_get_legacy_rowset(milestone_id: int, services: Services = Depends(get_services)) -> dict[str, Any]:
    return get_milestone(services, milestone_id).convert_to_legacy_rowset()


@router.delete("/milestones/{milestone_id}")
def api_delete_milestone(
    milestone_id: int,
    services: Services = Depends(get_services),
    auth: AuthContext = Depends(require_api_or_jwt),
):
    milestone = get_milestone(services, milestone_id)
    milestone.delete(user_id=auth.user_id)
    return {"status": "deleted"}
