from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from marketplace.core.config import Settings, get_settings


def build_engine(settings: Settings):
    """Create the engine with bounded connect and statement time."""
    connect_args = {}
    if settings.is_sqlite:
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = settings.db_connect_timeout
    else:
        connect_args["connect_timeout"] = settings.db_connect_timeout
        connect_args["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"

    return create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(get_settings())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
