from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session

from sortinghall.database import engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """Context manager to provide a SQLModel `Session` bound to the global engine.

    Used outside of request handling, e.g. for seeding the hall on startup:

        with session_scope() as session:
            seed_hall(session, config["hall"])
    """
    with Session(engine) as session:
        yield session
