"""Service layer package for encapsulating business logic."""

from .lending import LendingService, LendingResult  # noqa: F401
from .accounts import AccountService  # noqa: F401
from .auth import jwt, issue_token, login_required, get_current_user  # noqa: F401
from .mail import mailer  # noqa: F401
from .errors import ServiceError  # noqa: F401
