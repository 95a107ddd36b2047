"""GMB audit views."""

from localrank.modules.gmb_audit.reporter import audit_view, submission_view

__all__ = ["audit_view", "submission_view"]
