"""
Tests for the repository layer against a real SQLite database.
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from services.entities import Achievement, Activity, Milestone, User
from services.repositories import (
    AchievementRepository,
    ActivityRepository,
    MilestoneRepository,
    UserRepository,
)

STARTED = datetime(2024, 3, 25, 9, 30, tzinfo=timezone.utc)


def _activity(user_id, description="Walk to Bree", distance_km=0.0, steps=0):
    return Activity(
        id=0,
        description=description,
        duration=30.0,
        calories=120,
        started=STARTED,
        user_id=user_id,
        steps=steps,
        distance_km=distance_km,
    )


def _achievement(name, target_distance_km):
    return Achievement(
        id=0,
        name=name,
        description=f"Walk {target_distance_km} km",
        target_distance_km=target_distance_km,
        badge_path=f"/uploads/badges/{name}.png",
    )


class TestUserRepository:

    def test_save_assigns_id_and_find_by_id(self, db_session):
        repo = UserRepository(db_session)
        user_id = repo.save(User(id=0, name="Frodo", email="f@shire.me"))

        found = repo.find_by_id(user_id)
        assert found == User(id=user_id, name="Frodo", email="f@shire.me")

    def test_save_ignores_supplied_id(self, db_session):
        repo = UserRepository(db_session)
        user_id = repo.save(User(id=999, name="Sam", email="s@shire.me"))
        assert user_id != 999
        assert repo.find_by_id(999) is None

    def test_get_all_ordered_by_id(self, db_session):
        repo = UserRepository(db_session)
        first = repo.save(User(id=0, name="Frodo", email="f@shire.me"))
        second = repo.save(User(id=0, name="Sam", email="s@shire.me"))

        assert [u.id for u in repo.get_all()] == [first, second]

    def test_get_all_empty(self, db_session):
        assert UserRepository(db_session).get_all() == []

    def test_find_by_email(self, db_session):
        repo = UserRepository(db_session)
        user_id = repo.save(User(id=0, name="Frodo", email="f@shire.me"))

        assert repo.find_by_email("f@shire.me").id == user_id
        assert repo.find_by_email("nobody@shire.me") is None

    def test_update(self, db_session):
        repo = UserRepository(db_session)
        user_id = repo.save(User(id=0, name="Frodo", email="f@shire.me"))

        count = repo.update(user_id, User(id=user_id, name="Mr. Underhill", email="u@bree.me"))

        assert count == 1
        assert repo.find_by_id(user_id).name == "Mr. Underhill"

    def test_update_and_delete_absent_return_zero(self, db_session):
        repo = UserRepository(db_session)
        assert repo.update(42, User(id=42, name="Nobody", email="n@x.me")) == 0
        assert repo.delete(42) == 0
        # Repeating is harmless.
        assert repo.delete(42) == 0

    def test_delete_cascades_to_activities(self, db_session):
        users = UserRepository(db_session)
        activities = ActivityRepository(db_session)
        frodo = users.save(User(id=0, name="Frodo", email="f@shire.me"))
        sam = users.save(User(id=0, name="Sam", email="s@shire.me"))
        frodo_walks = [activities.save(_activity(frodo)) for _ in range(3)]
        sam_walk = activities.save(_activity(sam))

        assert users.delete(frodo) == 1

        assert users.find_by_id(frodo) is None
        for activity_id in frodo_walks:
            assert activities.find_by_id(activity_id) is None
        assert activities.find_by_id(sam_walk) is not None


class TestActivityRepository:

    def test_save_and_find(self, db_session, frodo):
        repo = ActivityRepository(db_session)
        activity_id = repo.save(_activity(frodo.id, steps=1312, distance_km=1.0))

        found = repo.find_by_activity_id(activity_id)
        assert found.id == activity_id
        assert found.user_id == frodo.id
        assert found.steps == 1312
        assert found.distance_km == 1.0
        assert found.description == "Walk to Bree"

    def test_find_by_user_id(self, db_session, frodo):
        users = UserRepository(db_session)
        sam = users.save(User(id=0, name="Sam", email="s@shire.me"))
        repo = ActivityRepository(db_session)
        mine = [repo.save(_activity(frodo.id)), repo.save(_activity(frodo.id))]
        repo.save(_activity(sam))

        assert [a.id for a in repo.find_by_user_id(frodo.id)] == mine
        assert repo.find_by_user_id(12345) == []

    def test_update_by_activity_id(self, db_session, frodo):
        repo = ActivityRepository(db_session)
        activity_id = repo.save(_activity(frodo.id))

        changed = _activity(frodo.id, description="Walk to Rivendell", distance_km=3.5)
        assert repo.update_by_activity_id(activity_id, changed) == 1

        found = repo.find_by_id(activity_id)
        assert found.description == "Walk to Rivendell"
        assert found.distance_km == 3.5

    def test_delete_by_activity_id(self, db_session, frodo):
        repo = ActivityRepository(db_session)
        activity_id = repo.save(_activity(frodo.id))

        assert repo.delete_by_activity_id(activity_id) == 1
        assert repo.delete_by_activity_id(activity_id) == 0
        assert repo.find_by_id(activity_id) is None

    def test_delete_by_user_id_returns_count(self, db_session, frodo):
        repo = ActivityRepository(db_session)
        repo.save(_activity(frodo.id))
        repo.save(_activity(frodo.id))

        assert repo.delete_by_user_id(frodo.id) == 2
        assert repo.delete_by_user_id(frodo.id) == 0
        assert UserRepository(db_session).find_by_id(frodo.id) is not None

    def test_total_distance(self, db_session, frodo):
        repo = ActivityRepository(db_session)
        assert repo.total_distance_km_by_user_id(frodo.id) == 0.0

        repo.save(_activity(frodo.id, distance_km=1.25))
        repo.save(_activity(frodo.id, distance_km=2.5))

        assert repo.total_distance_km_by_user_id(frodo.id) == pytest.approx(3.75)

    def test_save_for_missing_user_fails(self, db_session):
        repo = ActivityRepository(db_session)
        with pytest.raises(IntegrityError):
            repo.save(_activity(404))
        # The session is usable again after the rollback.
        assert repo.get_all() == []


class TestMilestoneRepository:

    def test_crud(self, db_session):
        repo = MilestoneRepository(db_session)
        milestone_id = repo.save(Milestone(id=0, name="Bree", description="The Prancing Pony", target_steps=50000))

        assert repo.find_by_id(milestone_id).target_steps == 50000
        assert repo.find_by_name("Bree").id == milestone_id
        assert repo.find_by_name("Mordor") is None

        assert repo.update(milestone_id, Milestone(id=0, name="Weathertop", description="Amon Sul", target_steps=80000)) == 1
        assert repo.find_by_id(milestone_id).name == "Weathertop"

        assert repo.delete(milestone_id) == 1
        assert repo.delete(milestone_id) == 0
        assert repo.get_all() == []


class TestAchievementRepository:

    def test_get_all_ordered_by_threshold(self, db_session):
        repo = AchievementRepository(db_session)
        repo.save(_achievement("ten", 10.0))
        repo.save(_achievement("one", 1.0))
        repo.save(_achievement("five", 5.0))

        assert [a.name for a in repo.get_all()] == ["one", "five", "ten"]

    def test_find_by_target_distance_includes_boundary(self, db_session):
        repo = AchievementRepository(db_session)
        repo.save(_achievement("one", 1.0))
        repo.save(_achievement("five", 5.0))
        repo.save(_achievement("ten", 10.0))

        assert [a.name for a in repo.find_by_target_distance(5.0)] == ["one", "five"]
        assert [a.name for a in repo.find_by_target_distance(4.99)] == ["one"]
        assert repo.find_by_target_distance(0.0) == []

    def test_update_and_delete(self, db_session):
        repo = AchievementRepository(db_session)
        achievement_id = repo.save(_achievement("one", 1.0))

        assert repo.update(achievement_id, _achievement("two", 2.0)) == 1
        assert repo.find_by_id(achievement_id).target_distance_km == 2.0

        assert repo.delete(achievement_id) == 1
        assert repo.update(achievement_id, _achievement("two", 2.0)) == 0
        assert repo.find_by_id(achievement_id) is None
