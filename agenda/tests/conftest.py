from __future__ import annotations

import pytest
from sqlalchemy.orm import sessionmaker

from agenda import models
from agenda.config import Settings
from agenda.database import init_db, make_engine
from agenda.repository import SqlAlchemyRepository, SqlNotificationSink
from agenda.services.appointments import AppointmentService
from agenda.services.notifications import Notifier


class FakeMailer:
    """Guarda los correos en memoria. Nunca toca la red."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    def send_mail(self, to_name: str, to_email: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append({"to_name": to_name, "to_email": to_email, "subject": subject, "body": body})


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, TIMEZONE="UTC", NOTIFICATION_LOCALE="pt", DRY_RUN=True)


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db) -> dict[str, models.User]:
    avatar = models.File(name="alice.png", path="abc123.png")
    db.add(avatar)
    db.flush()
    out = {
        "alice": models.User(name="Alice", email="alice@example.com", provider=True, avatar_id=avatar.id),
        "bob": models.User(name="Bob", email="bob@example.com", provider=False),
        "carol": models.User(name="Carol", email="carol@example.com", provider=False),
        "dave": models.User(name="Dave", email="dave@example.com", provider=True),
    }
    db.add_all(out.values())
    db.commit()
    return out


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def repo(db) -> SqlAlchemyRepository:
    return SqlAlchemyRepository(db)


@pytest.fixture
def service(db, repo, mailer, settings) -> AppointmentService:
    notifier = Notifier(SqlNotificationSink(db), mailer, locale="pt", tz_name="UTC")
    return AppointmentService(repo, notifier, settings)
