from __future__ import annotations

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from orgdb.database import Base
from orgdb.apps.accounts import models as account_models
from orgdb.apps.work import models as work_models
from orgdb.apps.work import services as work_services
from orgdb.apps.work.models import WeeklyTaskStatusEnum
from orgdb.apps.zones import models as zone_models


@pytest.fixture()
def session_factory(tmp_path):
    # Two sessions need two real connections, so use a file database here.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'pick.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()


def _seed(factory):
    with factory() as db:
        zone = zone_models.Zone(zone_name="Bora", email_address="bora@example.com")
        db.add(zone)
        db.flush()
        sector = zone_models.Sector(name="HR", zone_id=zone.id)
        db.add(sector)
        db.flush()

        users = []
        for email in ("first@example.com", "second@example.com"):
            user = account_models.User(
                email=email,
                hashed_password="test-hash",
                zone_id=zone.id,
                sector_id=sector.id,
            )
            db.add(user)
            users.append(user)

        work = work_models.Work(description="Paint fence")
        db.add(work)
        db.flush()
        task = work_models.WeeklyTask(
            description="Paint fence",
            work_id=work.id,
            sector_id=sector.id,
            week_number=4,
        )
        db.add(task)
        db.commit()
        return task.id, [u.id for u in users]


def test_only_one_of_two_racing_picks_wins(session_factory):
    task_id, (first_id, second_id) = _seed(session_factory)

    winner_db = session_factory()
    loser_db = session_factory()
    try:
        # Both requests load the unclaimed task before either writes.
        winner = winner_db.get(account_models.User, first_id)
        loser = loser_db.get(account_models.User, second_id)
        assert winner_db.get(work_models.WeeklyTask, task_id).picked_by is None
        assert loser_db.get(work_models.WeeklyTask, task_id).picked_by is None

        work_services.pick_weekly_task(winner_db, weekly_task_id=task_id, actor=winner)
        winner_db.commit()

        with pytest.raises(HTTPException) as exc:
            work_services.pick_weekly_task(loser_db, weekly_task_id=task_id, actor=loser)
        assert exc.value.status_code == 409
        loser_db.rollback()
    finally:
        winner_db.close()
        loser_db.close()

    with session_factory() as db:
        task = db.get(work_models.WeeklyTask, task_id)
        assert task.picked_by == first_id
        assert task.status == WeeklyTaskStatusEnum.PICKED
        assert task.version == 2
