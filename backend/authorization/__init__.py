"""Authorization results, handler base classes and current-user access."""
from authorization.results import (
    AuthorizationResult,
    AuthorizationResultWithoutDb,
    compose,
)
from authorization.handlers import (
    ReadAuthorizationHandlerBase,
    CrudAuthorizationHandlerBase,
    BasicAuthorizationHandlerBase,
    UserIsAuthorizedReadHandler,
    UserIsAuthorizedCrudHandler,
    UserIsAuthorizedBasicHandler,
)
from authorization.user import (
    User,
    ANONYMOUS,
    UserAccessor,
    ContextVarUserAccessor,
    current_user_var,
    is_authenticated,
    user_name,
)

__all__ = [
    "AuthorizationResult",
    "AuthorizationResultWithoutDb",
    "compose",
    "ReadAuthorizationHandlerBase",
    "CrudAuthorizationHandlerBase",
    "BasicAuthorizationHandlerBase",
    "UserIsAuthorizedReadHandler",
    "UserIsAuthorizedCrudHandler",
    "UserIsAuthorizedBasicHandler",
    "User",
    "ANONYMOUS",
    "UserAccessor",
    "ContextVarUserAccessor",
    "current_user_var",
    "is_authenticated",
    "user_name",
]
