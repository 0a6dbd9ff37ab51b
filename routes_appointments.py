from fastapi import APIRouter, BackgroundTasks, Depends, Request, status

from schemas import AppointmentCreate, AppointmentUpdate
from security import AdminOnly, CurrentIdentity
from services import AppointmentService

router = APIRouter(prefix="/appointments", tags=["appointments"])


def get_appointment_service(request: Request) -> AppointmentService:
    return request.app.state.appointment_service


@router.get("")
def list_appointments(request: Request, identity: AdminOnly,
                      service: AppointmentService = Depends(get_appointment_service)):
    return service.list(request.query_params)


# Declared before /{appointment_id} so "counselor" is not read as an id
@router.get("/counselor/{counselor_id}")
def list_counselor_appointments(counselor_id: str, identity: AdminOnly,
                                service: AppointmentService = Depends(get_appointment_service)):
    return service.list_for_counselor(counselor_id)


@router.get("/{appointment_id}")
def get_appointment(appointment_id: str, identity: CurrentIdentity,
                    service: AppointmentService = Depends(get_appointment_service)):
    return {"success": True, "data": service.get(identity, appointment_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(body: AppointmentCreate, identity: CurrentIdentity, background_tasks: BackgroundTasks,
                       service: AppointmentService = Depends(get_appointment_service)):
    return {"success": True, "data": service.create(identity, body, background_tasks)}


@router.put("/{appointment_id}")
def update_appointment(appointment_id: str, body: AppointmentUpdate, identity: CurrentIdentity,
                       service: AppointmentService = Depends(get_appointment_service)):
    return {"success": True, "data": service.update(identity, appointment_id, body)}


@router.delete("/{appointment_id}")
def delete_appointment(appointment_id: str, identity: CurrentIdentity,
                       service: AppointmentService = Depends(get_appointment_service)):
    return {"success": True, "data": service.delete(identity, appointment_id)}
