# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from dotenv import load_dotenv

from config import settings

load_dotenv()

# 1. Database URL from settings (environment / .env), SQLite by default
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. SQLAlchemy requires postgresql:// instead of the legacy postgres:// scheme
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

# 3. Dialect specific connection arguments
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False} # SQLite only
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register all models on the metadata before creating tables
    import models.shop  # noqa: F401
    import models.customer  # noqa: F401
    import models.product  # noqa: F401
    import models.order  # noqa: F401
    import models.log  # noqa: F401
    Base.metadata.create_all(bind=engine)


class UnitOfWork:
    """
    Explicit transaction scope handed to repositories.

    Anything not committed by the time the block exits is rolled back,
    and the session is always closed.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.session: Session = None

    def __enter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            self.rollback()
        finally:
            self.session.close()
            self.session = None
        return False

    def commit(self):
        self.session.commit()

    def rollback(self):
        if self.session is not None:
            self.session.rollback()
