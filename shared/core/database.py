from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from shared.core.config import AUTH_DATABASE_URL, CLM_DATABASE_URL

# Separate bases
AuthBase = declarative_base()
Base = declarative_base()

POOL_SIZE = 2
MAX_OVERFLOW = 2


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": POOL_SIZE,          # max idle connections
        "max_overflow": MAX_OVERFLOW,    # max temporary extra connections
        "pool_timeout": 30,              # wait time before failing
    }


# Auth DB (users, orgs, roles, policies)
auth_engine = create_engine(AUTH_DATABASE_URL, **_engine_options(AUTH_DATABASE_URL))
AuthSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=auth_engine)

# CLM DB (contracts, approvals, audit logs)
clm_engine = create_engine(CLM_DATABASE_URL, **_engine_options(CLM_DATABASE_URL))
ClmSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=clm_engine)


# Dependency


def get_auth_db():
    db = AuthSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clm_db():
    db = ClmSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def clm_session_scope(session_factory=None):
    """Session for work outside a request (scheduler jobs, audit writes)."""
    db = (session_factory or ClmSessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
