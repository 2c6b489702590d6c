# Core module exports
from core.config import settings, get_settings
from core.database import Base, SessionFactory, create_engine, create_session_factory, create_all
from core.logging import (
    configure_logging,
    get_logger,
    bind_context,
    unbind_context,
    service_logger,
    db_logger,
    auth_logger,
)
