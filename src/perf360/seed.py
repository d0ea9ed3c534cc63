"""Seed a development database with a small reporting tree."""

import logging

from sqlalchemy.orm import Session

from . import database, services
from .config import get_settings
from .logging_utils import configure_logging
from .models import BusinessUnit, BusinessUnitMember, Role, Team, TeamMember, User

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "Perf360!Seed"

SEED_USERS = [
    ("admin@perf360.dev", "Ada", "Admin", Role.ADMIN, "Administrator"),
    ("manager@perf360.dev", "Morgan", "Manager", Role.MANAGER, "Engineering Manager"),
    ("employee@perf360.dev", "Eli", "Employee", Role.EMPLOYEE, "Software Engineer"),
]


def _get_or_create_user(db: Session, email, first, last, role, position, rounds) -> User:
    user = services.get_user_by_email(db, email)
    if user is None:
        user = services.create_user(
            db,
            email=email,
            password=DEFAULT_PASSWORD,
            first_name=first,
            last_name=last,
            role=role,
            position=position,
            rounds=rounds,
        )
    return user


def seed_database(db: Session, rounds: int = 12) -> dict:
    """Insert the seed accounts, a team and a business unit. Safe to rerun."""
    users = {
        role: _get_or_create_user(db, email, first, last, role, position, rounds)
        for email, first, last, role, position in SEED_USERS
    }
    employee, manager = users[Role.EMPLOYEE], users[Role.MANAGER]
    if employee.manager_id != manager.id:
        services.assign_manager(db, employee, manager.id)

    team = db.query(Team).filter(Team.name == "Platform").first()
    if team is None:
        team = Team(name="Platform", description="Core platform team")
        team.memberships = [
            TeamMember(user_id=manager.id),
            TeamMember(user_id=employee.id),
        ]
        db.add(team)

    unit = db.query(BusinessUnit).filter(BusinessUnit.name == "Engineering").first()
    if unit is None:
        unit = BusinessUnit(name="Engineering", description="Product engineering")
        unit.memberships = [BusinessUnitMember(user_id=u.id) for u in users.values()]
        db.add(unit)

    db.commit()
    logger.info("seeded %d users", len(users))
    return {"users": users, "team": team, "business_unit": unit}


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    database.init_db(database.engine)
    db = database.SessionLocal()
    try:
        seed_database(db, rounds=settings.bcrypt_rounds)
    finally:
        db.close()


if __name__ == "__main__":
    main()
