"""Teams and business units share one set of routes over different tables."""

from typing import List, Type

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import services
from ..auth import AuthContext, get_current_user, get_db, require_admin
from ..models import BusinessUnit, Team
from ..schemas import (
    MemberAdd,
    MessageResponse,
    OrgUnitCreate,
    OrgUnitOut,
    OrgUnitUpdate,
    PathId,
)


def build_org_unit_router(model: Type[services.OrgUnit], prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=List[OrgUnitOut])
    def list_units(
        ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
    ):
        return [services.org_unit_to_out(u) for u in services.list_org_units(db, model)]

    @router.get("/{unit_id}", response_model=OrgUnitOut)
    def get_unit(
        unit_id: PathId,
        ctx: AuthContext = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        return services.org_unit_to_out(services.get_org_unit(db, model, unit_id))

    @router.post("", response_model=OrgUnitOut, status_code=201)
    def create_unit(
        payload: OrgUnitCreate,
        ctx: AuthContext = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        return services.org_unit_to_out(services.create_org_unit(db, model, payload))

    @router.put("/{unit_id}", response_model=OrgUnitOut)
    def update_unit(
        unit_id: PathId,
        payload: OrgUnitUpdate,
        ctx: AuthContext = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        unit = services.get_org_unit(db, model, unit_id)
        return services.org_unit_to_out(services.update_org_unit(db, unit, payload))

    @router.delete("/{unit_id}", response_model=MessageResponse)
    def delete_unit(
        unit_id: PathId,
        ctx: AuthContext = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        services.delete_org_unit(db, services.get_org_unit(db, model, unit_id))
        return MessageResponse(message="Deleted successfully")

    @router.post("/{unit_id}/members", response_model=OrgUnitOut)
    def add_member(
        unit_id: PathId,
        payload: MemberAdd,
        ctx: AuthContext = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        unit = services.get_org_unit(db, model, unit_id)
        return services.org_unit_to_out(services.add_member(db, unit, payload.user_id))

    @router.delete("/{unit_id}/members/{user_id}", response_model=OrgUnitOut)
    def remove_member(
        unit_id: PathId,
        user_id: PathId,
        ctx: AuthContext = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        unit = services.get_org_unit(db, model, unit_id)
        return services.org_unit_to_out(services.remove_member(db, unit, user_id))

    return router


teams_router = build_org_unit_router(Team, "/api/teams", "teams")
business_units_router = build_org_unit_router(
    BusinessUnit, "/api/business-units", "business-units"
)
