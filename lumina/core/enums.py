"""Enumerations shared by the authentication and search kernels."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class LockoutState(str, Enum):
    OPEN = "open"
    WARNING = "warning"
    LOCKED = "locked"


class LoginStatus(str, Enum):
    SUCCESS = "success"
    DENIED = "denied"
    LOCKED = "locked"


class SecurityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContentType(str, Enum):
    ARTICLE = "article"
    VIDEO = "video"
    PRODUCT = "product"
    SERVICE = "service"
    DOCUMENT = "document"
