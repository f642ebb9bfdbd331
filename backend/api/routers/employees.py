"""Employees router."""
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from escalalib.models import ShiftWindow, Weekday
from ..dependencies import get_db, _to_http, _logger
from .events import broadcast

router = APIRouter()


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmployeeCreate(_Body):
    name: str
    work_days: List[Weekday] = Field(default_factory=list)
    shift_start: str
    shift_end: str
    custom_schedule: Dict[Weekday, ShiftWindow] = Field(default_factory=dict)
    weekend_rotation: bool = False
    active: bool = True


class EmployeeUpdate(_Body):
    name: Optional[str] = None
    work_days: Optional[List[Weekday]] = None
    shift_start: Optional[str] = None
    shift_end: Optional[str] = None
    custom_schedule: Optional[Dict[Weekday, ShiftWindow]] = None
    weekend_rotation: Optional[bool] = None
    active: Optional[bool] = None


@router.get("/api/employees", tags=["Employees"], summary="List employees", description="Return active employees. Set include_inactive=true to include soft-deleted ones.")
def get_employees(include_inactive: bool = False):
    return [e.to_json() for e in get_db().get_employees(include_inactive=include_inactive)]


@router.get("/api/employees/{emp_id}", tags=["Employees"], summary="Get employee by ID")
def get_employee(emp_id: int):
    e = get_db().get_employee(emp_id)
    if e is None:
        raise HTTPException(status_code=404, detail=f"Employee {emp_id} not found")
    return e.to_json()


@router.post("/api/employees", tags=["Employees"], summary="Create employee", status_code=201)
def create_employee(body: EmployeeCreate):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Field 'name' must not be empty")
    try:
        emp = get_db().create_employee(body.model_dump(mode='json', by_alias=True))
    except Exception as e:
        raise _to_http(e, 'create_employee')
    broadcast("employee_changed", {"id": emp.id, "action": "created"})
    return emp.to_json()


@router.put("/api/employees/{emp_id}", tags=["Employees"], summary="Update employee", description="Partial update: omitted fields keep their value.")
def update_employee(emp_id: int, body: EmployeeUpdate):
    data = {k: v for k, v in body.model_dump(mode='json', by_alias=True).items() if v is not None}
    try:
        emp = get_db().update_employee(emp_id, data)
    except Exception as e:
        raise _to_http(e, f'update_employee/{emp_id}')
    broadcast("employee_changed", {"id": emp_id, "action": "updated"})
    return emp.to_json()


@router.delete("/api/employees/{emp_id}", tags=["Employees"], summary="Deactivate employee", description="Soft delete: the employee leaves generation and listings but stays in stored schedules.", status_code=204)
def delete_employee(emp_id: int):
    try:
        count = get_db().delete_employee(emp_id)
    except Exception as e:
        raise _to_http(e, f'delete_employee/{emp_id}')
    if count == 0:
        raise HTTPException(status_code=404, detail=f"Employee {emp_id} not found")
    _logger.info("Employee %s deactivated", emp_id)
    broadcast("employee_changed", {"id": emp_id, "action": "deactivated"})
