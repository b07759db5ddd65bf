import pytest
from sqlalchemy import func, select

import onboarding
from errors import PersistenceError
from models import Area, AreaChore, Chore, Household
from onboarding import delete_area, load_household, persist_onboarding
from schemas import OnboardingSubmission


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


def _submission(areas, chores=(), household_name="Barbie's Dream House"):
    return OnboardingSubmission.model_validate(
        {"householdName": household_name, "areas": areas, "chores": list(chores)}
    )


def test_persist_writes_rows_in_order(session):
    household_id = persist_onboarding(
        session,
        _submission(
            {"Kitchen": ["Dishes", "Mop floor"], "Bathroom": ["Dust"]},
            [{"name": "Dishes"}, {"name": "Mop floor"}, {"name": "Dust"}],
        ),
    )

    assert _count(session, Household) == 1
    assert _count(session, Area) == 2
    assert _count(session, Chore) == 3
    assert _count(session, AreaChore) == 3
    assert session.get(Household, household_id).name == "Barbie's Dream House"
    areas = session.scalars(select(Area)).all()
    assert {area.household_id for area in areas} == {household_id}


def test_shared_chore_creates_one_row(session):
    persist_onboarding(session, _submission({"Kitchen": ["Dust"], "Bathroom": ["Dust"]}))

    assert _count(session, Chore) == 1
    chore = session.scalars(select(Chore)).one()
    links = session.scalars(select(AreaChore).where(AreaChore.chore_id == chore.id)).all()
    assert len(links) == 2


def test_repeated_chore_in_one_area_links_once(session):
    persist_onboarding(session, _submission({"Kitchen": ["Dust", "Dust"]}))
    assert _count(session, AreaChore) == 1


def test_chore_details_are_stored(session):
    persist_onboarding(
        session,
        _submission(
            {"Laundry room": ["Laundry"]},
            [
                {
                    "name": "Laundry",
                    "description": "Separate colours",
                    "dueAt": "2026-10-20",
                    "frequency": "weekly",
                },
                {"name": "Laundry", "description": "ignored duplicate"},
                {"description": "no name, not stored"},
            ],
        ),
    )
    chore = session.scalars(select(Chore)).one()
    assert chore.description == "Separate colours"
    assert chore.due_at == "2026-10-20"
    assert chore.frequency == "weekly"


def test_chore_without_area_is_still_created(session):
    persist_onboarding(session, _submission({}, [{"name": "Water plants"}]))
    assert _count(session, Household) == 1
    assert _count(session, Area) == 0
    assert _count(session, Chore) == 1
    assert _count(session, AreaChore) == 0


def test_household_only(session):
    persist_onboarding(session, _submission({}))
    assert _count(session, Household) == 1
    assert _count(session, Chore) == 0


def test_uses_supplied_id_generator(session):
    counter = iter(range(100))
    household_id = persist_onboarding(
        session, _submission({"Kitchen": ["Dishes"]}), new_id=lambda: f"id{next(counter)}"
    )
    assert household_id.startswith("id")
    assert {area.id for area in session.scalars(select(Area))} == {"id0"}


@pytest.mark.parametrize(
    "failing_model, message",
    [
        (Household, "household creation failed"),
        (Area, "areas creation failed"),
        (Chore, "chores creation failed"),
        (AreaChore, "associations creation failed"),
    ],
)
def test_empty_insert_rolls_back_everything(session, monkeypatch, failing_model, message):
    real_insert_rows = onboarding._insert_rows

    def insert_rows(session, statement, rows):
        if statement.table.name == failing_model.__tablename__:
            return []
        return real_insert_rows(session, statement, rows)

    monkeypatch.setattr(onboarding, "_insert_rows", insert_rows)

    with pytest.raises(PersistenceError, match=message):
        persist_onboarding(session, _submission({"Kitchen": ["Dishes"]}, [{"name": "Dishes"}]))

    for model in (Household, Area, Chore, AreaChore):
        assert _count(session, model) == 0


def test_load_household_round_trip(session):
    household_id = persist_onboarding(
        session,
        _submission({"Kitchen": ["Mop floor", "Dishes"], "Bathroom": ["Dust"], "Garage": []}),
    )
    assert load_household(session, household_id) == {
        "id": household_id,
        "name": "Barbie's Dream House",
        "areas": {
            "Bathroom": ["Dust"],
            "Garage": [],
            "Kitchen": ["Dishes", "Mop floor"],
        },
    }


def test_load_unknown_household(session):
    assert load_household(session, "missing") is None


def test_delete_area_removes_associations(session):
    household_id = persist_onboarding(
        session, _submission({"Kitchen": ["Dust"], "Bathroom": ["Dust"]})
    )
    kitchen = session.scalars(select(Area).where(Area.name == "Kitchen")).one()

    assert delete_area(session, kitchen.id) is True

    assert _count(session, Area) == 1
    assert _count(session, AreaChore) == 1
    assert _count(session, Chore) == 1
    assert load_household(session, household_id)["areas"] == {"Bathroom": ["Dust"]}


def test_delete_unknown_area(session):
    assert delete_area(session, "missing") is False
