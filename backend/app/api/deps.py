from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session, sessionmaker

from app.db.session import SessionLocal
from app.services.roster import RosterProvider, SqlRosterProvider, SqlStudentDirectory, StudentDirectory


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_roster_provider(db: Session = Depends(get_db)) -> RosterProvider:
    # Roster lookups may run on a worker thread with their own sessions.
    return SqlRosterProvider(sessionmaker(bind=db.get_bind(), autoflush=False, autocommit=False))


def get_student_directory(db: Session = Depends(get_db)) -> StudentDirectory:
    return SqlStudentDirectory(db)
