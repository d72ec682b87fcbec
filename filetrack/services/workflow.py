"""
Forwarding workflow engine.

Forward states::

    Pending Admin Review -> Distributed to Employee -> Received -> Completed
    Pending Admin Review -> Rejected

Each transition authorizes the actor, checks the current state, then
writes File + Forward in one transaction. Forward rows are claimed with a
compare-and-swap on ``status`` so two concurrent requests cannot both
move the same forward. Ledger entries, notifications and emails are
queued on a ``SideEffects`` outbox and dispatched after commit.
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db, transaction, utcnow
from ..models.models import File, Forward, User
from ..schemas.files import FileCreate, FileUpdate, URGENT_PRIORITIES
from ..schemas.forwards import ForwardCreate, ForwardStatus, ForwardUpdate
from . import audit, email, notifications
from .directory import AdminResolver, FirstAdminResolver, find_by_name
from .errors import NotFoundError, StateConflictError, ValidationError
from .file_service import generate_file_code, get_file_by_code
from .outbox import SideEffects
from .permissions import PolicyAction, ensure_allowed


log = structlog.get_logger(__name__)

MAX_CODE_ATTEMPTS = 5

STATUS_ICONS = {"Received": "📥", "Released": "📤", "Complete": "✅"}


def is_urgent_priority(priority: Optional[str]) -> bool:
    return priority in URGENT_PRIORITIES


class ForwardingWorkflow:
    def __init__(self, db: Session, admin_resolver: Optional[AdminResolver] = None):
        self.db = db
        self.admin_resolver = admin_resolver or FirstAdminResolver()
        self.last_dispatch_failures = 0

    # ---- helpers -------------------------------------------------------

    def _claim(self, forward: Forward, expected: str, values: Dict[str, Any]) -> None:
        """Guarded UPDATE: only applies while the row is still in ``expected``."""
        updated = (
            self.db.query(Forward)
            .filter(Forward.id == forward.id, Forward.status == expected)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            current = self.db.query(Forward.status).filter(Forward.id == forward.id).scalar()
            raise StateConflictError(
                "Forward was modified by another request",
                current_status=current,
                expected_status=expected,
            )

    def _require_status(self, forward: Forward, expected: str, message: str) -> None:
        if forward.status != expected:
            raise StateConflictError(message, current_status=forward.status, expected_status=expected)

    def _dispatch(self, effects: SideEffects) -> None:
        self.last_dispatch_failures = effects.dispatch(self.db)

    def _notify_later(
        self,
        effects: SideEffects,
        recipient: Optional[User],
        title: str,
        message: str,
        forward: Forward,
        icon: str,
        type: str = "forward_status",
    ) -> None:
        if recipient is None:
            return
        recipient_id = recipient.id
        forward_id = forward.id
        file_code = forward.file_code
        urgent = forward.is_urgent
        priority = notifications.notification_priority(forward.priority)

        def _send(db: Session):
            user = db.get(User, recipient_id)
            if user is None:
                return None
            return notifications.notify(
                db,
                user,
                title=title,
                message=message,
                type=type,
                file_code=file_code,
                forward_id=forward_id,
                is_urgent=urgent,
                priority=priority,
                icon=icon,
            )

        effects.add(f"notify:{recipient.name}", _send)

    # ---- files ---------------------------------------------------------

    def create_file(self, actor: User, data: FileCreate) -> File:
        ensure_allowed(actor, None, PolicyAction.CREATE_FILE)
        db = self.db

        file = None
        for attempt in range(MAX_CODE_ATTEMPTS):
            code = generate_file_code(db)
            file = File(
                code=code,
                title=data.title,
                department=data.department.value,
                status="Created",
                priority=data.priority.value,
                type=data.type.value,
                requisitioner=data.requisitioner or actor.name,
                remarks=data.remarks,
                current_holder=actor.name,
                created_by=actor.name,
                created_at=utcnow(),
            )
            try:
                with transaction(db):
                    db.add(file)
            except IntegrityError:
                log.warning("file_code_collision", code=code, attempt=attempt + 1)
                continue
            break
        else:
            raise StateConflictError("Could not allocate a unique file code")

        db.refresh(file)
        effects = SideEffects(file.code)
        remarks = data.remarks or "File created"
        effects.add("movement:created", lambda s: audit.record_movement(
            s, file.code, actor.name, audit.ACTION_CREATED, remarks=remarks, icon="📄",
        ))
        self._dispatch(effects)
        log.info("file_created", code=file.code, department=file.department, by=actor.name)
        return file

    def update_file(self, actor: User, file: File, data: FileUpdate) -> File:
        ensure_allowed(actor, file, PolicyAction.UPDATE_FILE)
        db = self.db
        changes = data.model_dump(exclude_unset=True)
        prev_status = file.status
        # Status edits bypass the forward/release paths; department admins only
        if changes.get("status") is not None:
            ensure_allowed(actor, file, PolicyAction.SET_FILE_STATUS)

        with transaction(db):
            for key, value in changes.items():
                if value is None and key in ("title", "priority", "status", "type"):
                    continue
                setattr(file, key, value.value if hasattr(value, "value") else value)
            file.updated_at = utcnow()

        db.refresh(file)
        effects = SideEffects(file.code)
        if file.status != prev_status:
            new_status = file.status
            remarks = changes.get("remarks") or f"Status changed to {new_status}"
            effects.add("movement:status", lambda s: audit.record_movement(
                s, file.code, actor.name, new_status, remarks=remarks,
                icon=STATUS_ICONS.get(new_status, "🕒"),
            ))
        self._dispatch(effects)
        log.info("file_updated", code=file.code, fields=sorted(changes), by=actor.name)
        return file

    def delete_file(self, actor: User, file: File) -> None:
        ensure_allowed(actor, file, PolicyAction.DELETE_FILE)
        code = file.code
        with transaction(self.db):
            self.db.delete(file)
        log.info("file_deleted", code=code, by=actor.name)

    def release_file(self, actor: User, file: File, assigned_to: str, remarks: Optional[str] = None) -> File:
        """Direct release: hand the file to a named user of its department, no forward involved."""
        ensure_allowed(actor, file, PolicyAction.RELEASE_FILE)
        db = self.db

        assignee = find_by_name(db, assigned_to)
        if assignee is None:
            raise NotFoundError(f"User {assigned_to} not found")
        if assignee.department != file.department:
            raise ValidationError(
                f"{assigned_to} is not a member of the {file.department} department",
                errors=[{"field": "assigned_to", "message": "Assignee must belong to the file's department"}],
            )

        with transaction(db):
            file.status = "Released"
            file.current_holder = assigned_to
            file.assigned_to = assigned_to
            file.updated_at = utcnow()

        db.refresh(file)
        effects = SideEffects(file.code)
        effects.add("movement:released", lambda s: audit.record_movement(
            s, file.code, actor.name, audit.ACTION_RELEASED,
            remarks=remarks or f"File released to {assigned_to}",
            sent_by=actor.name, sent_through="Direct Release", recipient_name=assigned_to,
        ))
        assignee_email = assignee.email
        effects.add("email:released", lambda s: email.send_file_released(
            assignee_email, file, actor.name, remarks or f"Released to {assigned_to}",
        ))
        self._dispatch(effects)
        log.info("file_released", code=file.code, assigned_to=assigned_to, by=actor.name)
        return file

    # ---- forwards ------------------------------------------------------

    def create_forward(self, actor: User, data: ForwardCreate) -> Forward:
        db = self.db
        file = get_file_by_code(db, data.file_code)
        ensure_allowed(actor, file, PolicyAction.FORWARD_FILE)

        department = data.recipient_department.value
        admin = self.admin_resolver.resolve(db, department)
        if admin is None:
            raise NotFoundError(f"No admin found for department: {department}")

        priority = data.priority.value
        forward = Forward(
            file_code=file.code,
            recipient_department=department,
            recipient_name=admin.name,
            original_recipient_name=data.recipient_name,
            original_recipient_department=department,
            sent_by=actor.name,
            sent_through=data.sent_through,
            priority=priority,
            is_urgent=is_urgent_priority(priority),
            status=ForwardStatus.pending_admin_review.value,
            remarks=data.remarks,
            sent_at=utcnow(),
        )
        with transaction(db):
            db.add(forward)

        db.refresh(forward)
        effects = SideEffects(file.code)
        effects.add("movement:forwarded", lambda s: audit.record_movement(
            s, file.code, actor.name, audit.ACTION_FORWARDED,
            remarks=data.remarks or f"Forwarded to {department} Admin for review",
            icon="📤", sent_by=actor.name, sent_through=data.sent_through, recipient_name=admin.name,
        ))
        self._notify_later(
            effects, admin, "New Forward Request",
            f"You have a new forward request from {actor.name} for file {file.code}.",
            forward, icon="📨", type="file_forwarded",
        )
        admin_email = admin.email
        effects.add("email:forwarded", lambda s: email.send_file_forwarded(admin_email, forward, file))
        self._dispatch(effects)
        log.info("forward_created", forward_id=str(forward.id), code=file.code, department=department, admin=admin.name)
        return forward

    def approve(self, actor: User, forward: Forward, distributed_to: str, admin_remarks: Optional[str] = None) -> Forward:
        db = self.db
        ensure_allowed(actor, forward, PolicyAction.APPROVE_FORWARD)
        expected = ForwardStatus.pending_admin_review.value
        self._require_status(forward, expected, "Forward is not pending admin review")

        employee = (
            db.query(User)
            .filter(User.name == distributed_to, User.department == forward.recipient_department, User.is_active == True)
            .first()
        )
        if employee is None:
            raise NotFoundError(f"Employee {distributed_to} not found in {forward.recipient_department}")
        file = get_file_by_code(db, forward.file_code)

        now = utcnow()
        with transaction(db):
            self._claim(forward, expected, {
                Forward.status: ForwardStatus.distributed_to_employee.value,
                Forward.admin_approved_by: actor.name,
                Forward.admin_approval_date: now,
                Forward.admin_remarks: admin_remarks,
                Forward.distributed_to: distributed_to,
                Forward.distribution_date: now,
            })
            file.current_holder = distributed_to
            file.status = "Released"
            file.department = forward.recipient_department
            file.updated_at = now

        db.refresh(forward)
        db.refresh(file)
        effects = SideEffects(file.code)
        effects.add("movement:approved", lambda s: audit.record_movement(
            s, file.code, actor.name, audit.ACTION_APPROVED,
            remarks=f"Admin {actor.name} approved and distributed to {distributed_to}",
            sent_by=actor.name, sent_through="Admin Distribution", recipient_name=distributed_to,
        ))
        self._notify_later(
            effects, employee, "File Distributed to You",
            f"Admin {actor.name} has distributed file {file.code} to you.",
            forward, icon="📋",
        )
        self._notify_later(
            effects, find_by_name(db, forward.sent_by), "Forward Approved & Distributed",
            f"Your forward request for file {file.code} has been approved and distributed to {distributed_to}.",
            forward, icon="✅",
        )
        employee_email = employee.email
        effects.add("email:distributed", lambda s: email.send_file_released(
            employee_email, file, actor.name, admin_remarks or f"Approved and distributed to {distributed_to}",
        ))
        self._dispatch(effects)
        log.info("forward_approved", forward_id=str(forward.id), code=file.code, distributed_to=distributed_to, by=actor.name)
        return forward

    def reject(self, actor: User, forward: Forward, reason: str) -> Forward:
        db = self.db
        ensure_allowed(actor, forward, PolicyAction.REJECT_FORWARD)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                "Rejection reason is required",
                errors=[{"field": "rejection_reason", "message": "Rejection reason is required"}],
            )
        expected = ForwardStatus.pending_admin_review.value
        self._require_status(forward, expected, "Forward is not pending admin review")

        with transaction(db):
            self._claim(forward, expected, {
                Forward.status: ForwardStatus.rejected.value,
                Forward.admin_approved_by: actor.name,
                Forward.admin_approval_date: utcnow(),
                Forward.admin_remarks: f"Rejected: {reason}",
            })

        db.refresh(forward)
        code = forward.file_code
        sender = forward.sent_by
        effects = SideEffects(code)
        effects.add("movement:rejected", lambda s: audit.record_movement(
            s, code, actor.name, audit.ACTION_REJECTED,
            remarks=f"Admin {actor.name} rejected: {reason}",
            sent_by=actor.name, sent_through="Admin Review", recipient_name=sender,
        ))
        self._notify_later(
            effects, find_by_name(db, sender), "Forward Rejected",
            f"Your forward request for file {code} has been rejected by {actor.name}. Reason: {reason}",
            forward, icon="❌",
        )
        self._dispatch(effects)
        log.info("forward_rejected", forward_id=str(forward.id), code=code, by=actor.name)
        return forward

    def receive(self, actor: User, forward: Forward) -> Forward:
        db = self.db
        ensure_allowed(actor, forward, PolicyAction.RECEIVE_FORWARD)
        expected = ForwardStatus.distributed_to_employee.value
        self._require_status(forward, expected, "File is not ready to be received")
        file = get_file_by_code(db, forward.file_code)

        now = utcnow()
        with transaction(db):
            self._claim(forward, expected, {
                Forward.status: ForwardStatus.received.value,
                Forward.received_at: now,
            })
            file.status = "Received"
            file.current_holder = actor.name
            file.assigned_to = actor.name
            file.updated_at = now

        db.refresh(forward)
        db.refresh(file)
        effects = SideEffects(file.code)
        effects.add("movement:received", lambda s: audit.record_movement(
            s, file.code, actor.name, audit.ACTION_RECEIVED,
            remarks=f"File received by {actor.name}",
            sent_by="System", sent_through="Direct", recipient_name=actor.name,
        ))
        approver = find_by_name(db, forward.admin_approved_by) if forward.admin_approved_by else None
        self._notify_later(
            effects, approver, "File Received by Employee",
            f"File {file.code} has been received by {actor.name}.",
            forward, icon="📥", type="file_received",
        )
        if approver is not None:
            approver_email = approver.email
            effects.add("email:received", lambda s: email.send_file_received(approver_email, forward, file))
        self._dispatch(effects)
        log.info("forward_received", forward_id=str(forward.id), code=file.code, by=actor.name)
        return forward

    def complete(self, actor: User, forward: Forward, completion_remarks: Optional[str] = None) -> Forward:
        """Close the forward. The File keeps its Received status."""
        db = self.db
        ensure_allowed(actor, forward, PolicyAction.COMPLETE_FORWARD)
        expected = ForwardStatus.received.value
        self._require_status(forward, expected, "File must be received before it can be completed")

        with transaction(db):
            self._claim(forward, expected, {
                Forward.status: ForwardStatus.completed.value,
                Forward.completed_at: utcnow(),
                Forward.completion_remarks: completion_remarks,
            })

        db.refresh(forward)
        code = forward.file_code
        effects = SideEffects(code)
        effects.add("movement:completed", lambda s: audit.record_movement(
            s, code, actor.name, audit.ACTION_COMPLETED,
            remarks=completion_remarks or f"File completed by {actor.name}",
            icon="✅", sent_by=actor.name, sent_through="Direct", recipient_name=actor.name,
        ))
        approver = find_by_name(db, forward.admin_approved_by) if forward.admin_approved_by else None
        self._notify_later(
            effects, approver, "File Completed by Employee",
            f"File {code} has been completed by {actor.name}.",
            forward, icon="✅", type="file_completed",
        )
        self._notify_later(
            effects, find_by_name(db, forward.sent_by), "Forward Completed",
            f"Your forward request for file {code} has been completed by {actor.name}.",
            forward, icon="✅", type="file_completed",
        )
        self._dispatch(effects)
        log.info("forward_completed", forward_id=str(forward.id), code=code, by=actor.name)
        return forward

    def update_forward(self, actor: User, forward: Forward, data: ForwardUpdate) -> Forward:
        ensure_allowed(actor, forward, PolicyAction.UPDATE_FORWARD)
        changes = data.model_dump(exclude_unset=True)
        with transaction(self.db):
            if changes.get("priority") is not None:
                forward.priority = data.priority.value
            if "sent_through" in changes:
                forward.sent_through = data.sent_through
            if "remarks" in changes:
                forward.remarks = data.remarks
            forward.is_urgent = is_urgent_priority(forward.priority)
        self.db.refresh(forward)
        log.info("forward_updated", forward_id=str(forward.id), fields=sorted(changes), by=actor.name)
        return forward

    def delete_forward(self, actor: User, forward: Forward) -> None:
        ensure_allowed(actor, forward, PolicyAction.DELETE_FORWARD)
        forward_id = str(forward.id)
        with transaction(self.db):
            self.db.delete(forward)
        log.info("forward_deleted", forward_id=forward_id, by=actor.name)


def get_workflow(db: Session = Depends(get_db)) -> ForwardingWorkflow:
    return ForwardingWorkflow(db, admin_resolver=FirstAdminResolver())
