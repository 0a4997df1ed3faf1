"""
Admin audit logging.

Every administrative mutation is written twice: as one JSON line on the
``storefront.audit`` logger (shipped by the log pipeline) and as an
``AdminAuditLog`` row (queryable from the admin). A failure to persist the row
is logged but never fails the request that triggered it.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from storefront.audit.models import AdminAuditLog
from storefront.infra.observability.metrics import audit_entries_total

audit_logger = logging.getLogger("storefront.audit")
logger = logging.getLogger(__name__)


@dataclass
class AuditContext:
    """Who performed an action and from where."""

    admin: Any = None
    ip_address: Optional[str] = None
    user_agent: str = ""
    session_id: str = ""
    request_id: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request) -> "AuditContext":
        forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR", "")
        ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else request.META.get("REMOTE_ADDR")
        session = getattr(request, "session", None)
        user = getattr(request, "user", None)
        return cls(
            admin=user if getattr(user, "is_authenticated", False) else None,
            ip_address=ip_address or None,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            session_id=(getattr(session, "session_key", None) or "") if session is not None else "",
            request_id=getattr(request, "correlation_id", "") or "",
            extra={"method": request.method, "url": request.get_full_path()},
        )

    @classmethod
    def system(cls) -> "AuditContext":
        return cls(extra={"actor": "system"})


class AdminAuditLogger:
    """Structured audit trail for admin actions."""

    def log_admin_activity(
        self,
        context: AuditContext,
        action_type: str,
        resource_type: str,
        resource_id=None,
        changes: Optional[Dict[str, Any]] = None,
        status: str = "success",
        error_message: str = "",
        level: int = logging.INFO,
    ) -> Optional[AdminAuditLog]:
        admin = context.admin
        entry = {
            "timestamp": timezone.now().isoformat(),
            "admin_id": str(admin.pk) if admin is not None else "unknown",
            "admin_username": getattr(admin, "username", None) or "unknown",
            "admin_role": getattr(admin, "role", None) or "unknown",
            "ip_address": context.ip_address or "unknown",
            "user_agent": context.user_agent or "unknown",
            "action_type": action_type,
            "resource_type": resource_type,
            "resource_id": str(resource_id) if resource_id is not None else None,
            "changes": changes,
            "status": status,
            "error_message": error_message or None,
            "request_id": context.request_id or None,
            "session_id": context.session_id or None,
            **context.extra,
        }
        audit_logger.log(level, json.dumps(entry, cls=DjangoJSONEncoder))
        audit_entries_total.labels(resource_type=resource_type, status=status).inc()

        try:
            return AdminAuditLog.objects.create(
                admin=admin,
                action_type=action_type,
                resource_type=resource_type,
                resource_id=entry["resource_id"] or "",
                changes=json.loads(json.dumps(changes or {}, cls=DjangoJSONEncoder)),
                status=status,
                error_message=error_message,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                session_id=context.session_id,
                request_id=context.request_id,
            )
        except Exception as e:
            logger.error(
                f"Failed to persist audit entry {action_type} {resource_type}:{resource_id}: {e}", exc_info=True
            )
            return None

    def log_resource_creation(self, context: AuditContext, resource_type: str, resource_id, resource_data: Dict):
        return self.log_admin_activity(
            context,
            action_type=f"{resource_type.lower()}_created",
            resource_type=resource_type,
            resource_id=resource_id,
            changes={"created": resource_data},
        )

    def log_resource_update(
        self, context: AuditContext, resource_type: str, resource_id, old_data: Dict, new_data: Dict, extra=None
    ):
        changes = {
            key: {"old_value": old_data.get(key), "new_value": value}
            for key, value in new_data.items()
            if old_data.get(key) != value
        }
        if extra:
            changes.update(extra)
        return self.log_admin_activity(
            context,
            action_type=f"{resource_type.lower()}_updated",
            resource_type=resource_type,
            resource_id=resource_id,
            changes=changes,
        )

    def log_resource_deletion(self, context: AuditContext, resource_type: str, resource_id, deleted_data: Dict):
        return self.log_admin_activity(
            context,
            action_type=f"{resource_type.lower()}_deleted",
            resource_type=resource_type,
            resource_id=resource_id,
            changes={"deleted": deleted_data},
        )

    def log_failed_action(
        self, context: AuditContext, action_type: str, resource_type: str, resource_id, error_message: str
    ):
        return self.log_admin_activity(
            context,
            action_type=action_type,
            resource_type=resource_type,
            resource_id=resource_id,
            status="failure",
            error_message=error_message,
            level=logging.WARNING,
        )
