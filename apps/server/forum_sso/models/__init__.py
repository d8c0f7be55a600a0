"""ORM model exports."""

from .authentication_provider import AuthenticationProvider
from .sso_stash_entry import SsoStashEntry
from .user import User
from .user_activity_log import UserActivityLog
from .user_authentication import UserAuthentication

__all__ = [
	"AuthenticationProvider",
	"SsoStashEntry",
	"User",
	"UserActivityLog",
	"UserAuthentication",
]
