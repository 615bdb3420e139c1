"""Admin access control"""

from ironlog.security.simple_admin import AdminAuthError, SimpleAdminAuth

__all__ = ["AdminAuthError", "SimpleAdminAuth"]
