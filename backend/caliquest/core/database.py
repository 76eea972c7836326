"""
Database configuration and session management for CaliQuest.

Sets up SQLAlchemy engine, session factory, base model, and the translation
of driver failures into domain errors.
"""

from contextlib import contextmanager
from typing import Generator, Iterator, Optional
from sqlalchemy import create_engine, event, inspect, text, MetaData
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from .config import settings
from .exceptions import ConstraintViolation, PersistenceError


# Configure logging
logger = logging.getLogger(__name__)


# SQLAlchemy metadata conventions for better constraint naming
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)

REQUIRED_TABLES = ("users", "profiles", "maps", "levels", "exercises", "user_progress")


# Create engine based on environment
if settings.TESTING:
    # Use in-memory SQLite for testing
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
elif settings.is_sqlite:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG,
    )
else:
    # Use PostgreSQL for development/production
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,        # Number of connections to maintain
        max_overflow=20,     # Maximum overflow connections
        echo=settings.DEBUG, # Log SQL statements if in debug mode
    )


if settings.is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


# Base class for models
Base = declarative_base(metadata=metadata)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def translate_db_errors(db: Optional[Session], operation: str) -> Iterator[None]:
    """
    Turn SQLAlchemy failures raised inside the block into domain errors.

    The session is rolled back before re-raising so no partial state survives.
    Unique-constraint violations become ``ConstraintViolation``; everything
    else becomes ``PersistenceError``.

    Args:
        db: Session to roll back on failure (may be None for read-only checks)
        operation: Short description used in logs and error details
    """
    try:
        yield
    except IntegrityError as exc:
        if db is not None:
            db.rollback()
        logger.info(f"Constraint violation during {operation}: {exc.orig}")
        raise ConstraintViolation(
            f"Conflicting data during {operation}",
            details={"operation": operation},
        ) from exc
    except SQLAlchemyError as exc:
        if db is not None:
            db.rollback()
        error = PersistenceError.from_exception(exc, operation)
        logger.error(f"Persistence failure during {operation}: {error}")
        raise error from exc


def init_db(db: Session) -> None:
    """
    Initialize database with required data.

    Creates the first admin account (user + onboarded admin profile) from
    settings. This is the out-of-band path that sets ``is_admin``.

    Args:
        db: Database session
    """
    from caliquest.models.user import User, Profile
    from caliquest.core.security import get_password_hash

    # Check if admin user exists
    admin_user = db.query(User).filter(
        User.email == settings.FIRST_ADMIN_EMAIL
    ).first()

    if not admin_user:
        admin_user = User(
            email=settings.FIRST_ADMIN_EMAIL,
            hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            is_active=True,
        )
        db.add(admin_user)
        db.flush()
        db.add(Profile(
            id=admin_user.id,
            username=settings.FIRST_ADMIN_USERNAME,
            avatar_url=settings.avatar_url_for(settings.FIRST_ADMIN_USERNAME),
            is_admin=True,
            onboarding_completed=True,
        ))
        db.commit()
        logger.info(f"Admin user created: {settings.FIRST_ADMIN_EMAIL}")


def check_database_connection() -> bool:
    """
    Check if database is accessible.

    Returns:
        bool: True if database is accessible, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def missing_tables() -> list:
    """
    List required tables that are not present in the database.

    Returns:
        list: Names of missing tables (empty when the schema is provisioned)
    """
    present = set(inspect(engine).get_table_names())
    return [name for name in REQUIRED_TABLES if name not in present]


class DatabaseManager:
    """
    Database manager for handling database operations.
    """

    @staticmethod
    def create_all_tables():
        """Create all database tables."""
        import caliquest.models  # noqa: F401  register models
        Base.metadata.create_all(bind=engine)
        logger.info("All database tables created successfully")

    @staticmethod
    def drop_all_tables():
        """Drop all database tables. USE WITH CAUTION!"""
        import caliquest.models  # noqa: F401
        Base.metadata.drop_all(bind=engine)
        logger.warning("All database tables dropped")

    @staticmethod
    def grant_admin(email: str) -> bool:
        """
        Promote an existing, onboarded user to admin.

        Args:
            email: Email of the account to promote

        Returns:
            bool: True if the profile was promoted, False if it does not exist
        """
        from caliquest.models.user import User, Profile

        db = SessionLocal()
        try:
            profile = db.query(Profile).join(User, User.id == Profile.id).filter(
                User.email == email
            ).first()
            if not profile:
                logger.warning(f"Cannot grant admin, no profile for {email}")
                return False
            profile.is_admin = True
            db.commit()
            logger.info(f"Admin granted to {email}")
            return True
        finally:
            db.close()

    @staticmethod
    def get_table_stats(db: Optional[Session] = None) -> dict:
        """
        Get statistics about database tables.

        Args:
            db: Session to query with; a private session is opened when omitted

        Returns:
            dict: Statistics about each table
        """
        stats = {}
        owns_session = db is None
        if owns_session:
            db = SessionLocal()
        try:
            from caliquest.models import User, Profile, Map, Level, Exercise, CompletionRecord

            models = [User, Profile, Map, Level, Exercise, CompletionRecord]

            for model in models:
                count = db.query(model).count()
                stats[model.__tablename__] = {
                    "count": count,
                    "model": model.__name__
                }

            return stats
        finally:
            if owns_session:
                db.close()
