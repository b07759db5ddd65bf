"""
Persistence for onboarding submissions.

:func:`persist_onboarding` writes a validated submission in dependency
order::

    household -> areas -> chores -> area/chore associations

Every step is an ``INSERT .. RETURNING``. A step that returns no rows raises
``PersistenceError``. All steps run in the caller's session and are committed
together, and any failure rolls the whole submission back.

The session is passed in explicitly so callers (and tests) decide which
database the rows land in.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import delete, insert, select

import ids
from errors import PersistenceError
from models import Area, AreaChore, Chore, Household
from schemas import ChoreInput, OnboardingSubmission, validate_onboarding

logger = logging.getLogger(__name__)


def _insert_rows(session, statement, rows: Sequence[dict]) -> list:
    """Execute ``statement`` for ``rows`` and return the rows it produced."""
    return session.execute(statement, list(rows)).all()


def _chore_records(submission: OnboardingSubmission) -> Dict[str, Optional[ChoreInput]]:
    """Map each distinct chore name to the first record carrying it.

    Names that only appear in an area's chore list map to ``None``.
    """
    records: Dict[str, Optional[ChoreInput]] = {}
    for chore in submission.chores:
        if chore.name and chore.name not in records:
            records[chore.name] = chore
    for chore_names in submission.areas.values():
        for name in chore_names:
            records.setdefault(name, None)
    return records


def _area_chore_pairs(areas: Mapping[str, Sequence[str]]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    seen = set()
    for area_name, chore_names in areas.items():
        for chore_name in chore_names:
            if (area_name, chore_name) in seen:
                continue
            seen.add((area_name, chore_name))
            pairs.append((area_name, chore_name))
    return pairs


def _chore_row(chore_id: str, name: str, record: Optional[ChoreInput]) -> dict:
    # every row carries the same keys
    if record is None:
        record = ChoreInput(name=name)
    return {
        "id": chore_id,
        "name": name,
        "description": record.description or None,
        "due_at": record.due_at,
        "frequency": record.frequency,
        "custom_frequency": record.custom_frequency,
    }


def persist_onboarding(
    session,
    submission: OnboardingSubmission,
    new_id: Callable[[], str] = ids.new_id,
) -> str:
    """Write a validated submission and return the new household id.

    Raises
    ------
    errors.PersistenceError
        If an insert step returns no rows. Nothing from the submission is
        left in the database.
    """
    area_ids = {name: new_id() for name in submission.areas}
    records = _chore_records(submission)
    chore_ids = {name: new_id() for name in records}
    pairs = _area_chore_pairs(submission.areas)
    household_id = new_id()

    try:
        created = _insert_rows(
            session,
            insert(Household).returning(Household.id),
            [{"id": household_id, "name": submission.household_name}],
        )
        if not created:
            raise PersistenceError("household creation failed")
        logger.debug("created household %s", household_id)

        if area_ids:
            created = _insert_rows(
                session,
                insert(Area).returning(Area.id),
                [
                    {"id": area_id, "name": name, "household_id": household_id}
                    for name, area_id in area_ids.items()
                ],
            )
            if not created:
                raise PersistenceError("areas creation failed")
            logger.debug("created %d areas", len(created))

        if chore_ids:
            created = _insert_rows(
                session,
                insert(Chore).returning(Chore.id),
                [_chore_row(chore_ids[name], name, record) for name, record in records.items()],
            )
            if not created:
                raise PersistenceError("chores creation failed")
            logger.debug("created %d chores", len(created))

        if pairs:
            created = _insert_rows(
                session,
                insert(AreaChore).returning(AreaChore.area_id, AreaChore.chore_id),
                [
                    {"area_id": area_ids[area], "chore_id": chore_ids[chore]}
                    for area, chore in pairs
                ],
            )
            if not created:
                raise PersistenceError("associations creation failed")
            logger.debug("created %d area/chore associations", len(created))

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "onboarded household %s with %d areas and %d chores",
        household_id,
        len(area_ids),
        len(chore_ids),
    )
    return household_id


def submit_onboarding(session, fields: Mapping, new_id: Callable[[], str] = ids.new_id) -> str:
    """Validate raw onboarding form fields, then persist them."""
    submission = validate_onboarding(fields)
    return persist_onboarding(session, submission, new_id=new_id)


def load_household(session, household_id: str) -> Optional[dict]:
    """Rebuild a household's name, areas and per-area chore names.

    Returns ``None`` when the household does not exist. Areas and chore names
    are sorted by name.
    """
    household = session.get(Household, household_id)
    if household is None:
        return None

    areas: Dict[str, List[str]] = {}
    for area in session.scalars(
        select(Area).where(Area.household_id == household_id).order_by(Area.name)
    ):
        areas[area.name] = []

    rows = session.execute(
        select(Area.name, Chore.name)
        .select_from(Area)
        .join(AreaChore, AreaChore.area_id == Area.id)
        .join(Chore, Chore.id == AreaChore.chore_id)
        .where(Area.household_id == household_id)
        .order_by(Area.name, Chore.name)
    )
    for area_name, chore_name in rows:
        areas[area_name].append(chore_name)

    return {"id": household.id, "name": household.name, "areas": areas}


def delete_area(session, area_id: str) -> bool:
    """Delete an area and its chore associations.

    The association table declares no cascade, so its rows go first.
    Returns ``False`` if the area does not exist.
    """
    if session.get(Area, area_id) is None:
        return False
    try:
        session.execute(delete(AreaChore).where(AreaChore.area_id == area_id))
        session.execute(delete(Area).where(Area.id == area_id))
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("deleted area %s", area_id)
    return True
