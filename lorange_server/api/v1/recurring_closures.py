"""
周期休息规则路由模块（后台）
weekday 约定：周一 = 0 … 周日 = 6
"""

from typing import List
from fastapi import APIRouter, Depends, Response

from ...core.database import DatabaseManager, get_db
from ...core.security import require_admin
from ...models.user import User
from ...schemas.closure import (
    RecurringClosureCreateRequest,
    RecurringClosureResponse,
    RecurringClosureUpdateRequest,
)
from ...services.closure_service import ClosureService

admin_router = APIRouter()


@admin_router.get("", response_model=List[RecurringClosureResponse])
def list_rules(
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """全部规则，按星期几、时段排序"""
    return [RecurringClosureResponse(**r.model_dump()) for r in ClosureService(db).list_rules()]


@admin_router.post("", response_model=RecurringClosureResponse, status_code=201)
def create_rule(
    req: RecurringClosureCreateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    rule = ClosureService(db).create_rule(req, admin.id)
    return RecurringClosureResponse(**rule.model_dump())


@admin_router.patch("/{rule_id}", response_model=RecurringClosureResponse)
def update_rule(
    rule_id: str,
    req: RecurringClosureUpdateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    rule = ClosureService(db).update_rule(rule_id, req, admin.id)
    return RecurringClosureResponse(**rule.model_dump())


@admin_router.delete("/{rule_id}", status_code=204)
def delete_rule(
    rule_id: str,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    ClosureService(db).delete_rule(rule_id, admin.id)
    return Response(status_code=204)
