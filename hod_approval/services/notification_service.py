# hod_approval/services/notification_service.py

from typing import Any, Dict, Optional

from fastapi import BackgroundTasks
from loguru import logger

from hod_approval.domain.exit_pass import CAPACITY_LABELS, format_display_date, time_display
from hod_approval.domain.lifecycle import Notification, TransitionResult
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.enums import AuditAction
from hod_approval.models.user import User
from hod_approval.services.audit_service import log_activity
from hod_approval.services.email_service import (
    send_new_request_email,
    send_request_approved_email,
    send_request_rejected_email,
)


# ===================================================================
# AUDIT
# ===================================================================
def schedule_audit(
    background_tasks: BackgroundTasks,
    action: AuditAction,
    actor: User,
    target_id=None,
    details: Optional[Dict[str, Any]] = None,
):
    background_tasks.add_task(
        log_activity,
        action=action.value,
        actor_id=actor.id,
        actor_role=actor.role.value,
        actor_name=actor.full_name,
        target_id=target_id,
        details=details or {},
    )


# ===================================================================
# EMAIL PAYLOADS (pre-formatted display strings)
# ===================================================================
def new_request_email_data(request: EarlyDepartureRequest, owner: User, approver: User) -> dict:
    return {
        "approver_email": approver.email,
        "approver_name": approver.full_name,
        "faculty_name": owner.full_name,
        "faculty_email": owner.email,
        "department": owner.department,
        "departure_date": format_display_date(request.departure_date),
        "departure_time": time_display(request),
        "urgency_level": request.urgency_level.value,
        "reason": request.reason,
    }


def approved_email_data(request: EarlyDepartureRequest, owner: User, actor: User) -> dict:
    return {
        "email": owner.email,
        "faculty_name": owner.full_name,
        "exit_pass_number": request.exit_pass_number,
        "departure_date": format_display_date(request.departure_date),
        "departure_time": time_display(request),
        "approved_by": actor.full_name,
        "approved_by_role": CAPACITY_LABELS[request.approved_by_role],
        "hod_comments": request.hod_comments,
        "qr_code": request.qr_code,
    }


def rejected_email_data(request: EarlyDepartureRequest, owner: User, actor: User) -> dict:
    return {
        "email": owner.email,
        "faculty_name": owner.full_name,
        "departure_date": format_display_date(request.departure_date),
        "rejection_reason": request.rejection_reason,
        "rejected_by": actor.full_name,
        "hod_comments": request.hod_comments,
    }


# ===================================================================
# DISPATCH
# ===================================================================
def schedule_new_request_effects(
    background_tasks: BackgroundTasks,
    request: EarlyDepartureRequest,
    owner: User,
    approver: Optional[User],
):
    schedule_audit(
        background_tasks,
        AuditAction.CREATED,
        owner,
        target_id=request.id,
        details={
            "departure_date": request.departure_date.isoformat(),
            "leave_type": request.leave_type.value,
            "urgency_level": request.urgency_level.value,
        },
    )

    if approver is None:
        logger.bind(tag="notification").warning(
            f"No active approver for request {request.id} ({owner.role.value}, {owner.department}); "
            "new request email not sent"
        )
        return

    background_tasks.add_task(send_new_request_email, new_request_email_data(request, owner, approver))


def schedule_transition_effects(
    background_tasks: BackgroundTasks,
    request: EarlyDepartureRequest,
    owner: User,
    actor: User,
    result: TransitionResult,
):
    details = {
        "from_status": result.from_status.value,
        "to_status": result.to_status.value,
        **result.audit_details,
    }
    schedule_audit(background_tasks, result.audit_action, actor, target_id=request.id, details=details)

    if result.notify == Notification.APPROVED:
        background_tasks.add_task(send_request_approved_email, approved_email_data(request, owner, actor))
    elif result.notify == Notification.REJECTED:
        background_tasks.add_task(send_request_rejected_email, rejected_email_data(request, owner, actor))
