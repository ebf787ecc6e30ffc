"""
Idempotent seed data for a fresh database.

Each ``seed_*`` function inserts only rows that are missing and returns the
number of rows created. Callers own the commit.
"""

import logging
from decimal import Decimal

from flask import current_app

from marketplace.models import db
from marketplace.models.catalog import PlatformFee, ServiceMaster
from marketplace.models.enums import FeeTier, Role, UserStatus
from marketplace.models.user import User
from marketplace.utils.crypto import hash_password

logger = logging.getLogger(__name__)


PLATFORM_FEE_TIERS = (
    (FeeTier.BASIC, Decimal("0"), Decimal("1000"), Decimal("10")),
    (FeeTier.STANDARD, Decimal("1000.01"), Decimal("5000"), Decimal("8.5")),
    (FeeTier.PREMIUM, Decimal("5000.01"), Decimal("20000"), Decimal("6")),
    (FeeTier.ENTERPRISE, Decimal("20000.01"), Decimal("100000"), Decimal("4")),
)

SERVICE_CATALOG = (
    ("Consultation", "One-on-one professional session to discuss your needs and get expert advice."),
    ("Workshop", "Interactive group sessions that teach a specific skill or knowledge area."),
    ("Coaching", "Personal coaching focused on individual development and performance."),
    ("Audit", "Assessment and evaluation of current systems, processes or performance."),
    ("Implementation", "Planning, execution and integration of a complete solution."),
    ("Support", "Ongoing technical support and maintenance."),
    ("Training", "Structured training programmes for teams or individuals."),
    ("Strategy Development", "Strategic plans and roadmaps for business objectives."),
    ("Digital Transformation", "Guidance on and delivery of digital transformation initiatives."),
    ("Market Research", "Market analysis and research to inform business decisions."),
    ("Brand Development", "Building brand identity, positioning and messaging."),
    ("Financial Planning", "Financial advice and planning for businesses and individuals."),
    ("Legal Consultation", "Professional legal advice."),
    ("Healthcare Services", "Specialised healthcare consultation and treatment."),
    ("Technology Consulting", "Advice on technology selection, implementation and optimisation."),
    ("Project Management", "Project management from initiation to completion."),
    ("Quality Assurance", "Testing and quality assurance for product excellence."),
    ("Content Creation", "Writing, design and multimedia content production."),
    ("Marketing Strategy", "Design and execution of marketing strategies."),
    ("HR Consulting", "Recruitment, HR policy and compliance consulting."),
)

DEMO_PASSWORD = "Password123!"


def seed_platform_fees() -> int:
    created = 0
    for tier, min_value, max_value, percentage in PLATFORM_FEE_TIERS:
        if PlatformFee.query.filter_by(tier_name=tier.value).first():
            continue
        db.session.add(PlatformFee(
            tier_name=tier.value,
            min_value=min_value,
            max_value=max_value,
            platform_fee_percentage=percentage,
        ))
        created += 1
    logger.info("Seeded %d platform fee tiers", created)
    return created


def seed_service_master() -> int:
    created = 0
    for title, description in SERVICE_CATALOG:
        if ServiceMaster.query.filter_by(title=title).first():
            continue
        db.session.add(ServiceMaster(title=title, description=description))
        created += 1
    logger.info("Seeded %d catalog services", created)
    return created


def _ensure_user(email, full_name, role, password) -> bool:
    if User.query.filter_by(email=email).first():
        return False
    db.session.add(User(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role.value,
        status=UserStatus.ACTIVE.value,
        is_email_verified=True,
    ))
    return True


def seed_users(include_demo=True) -> int:
    """Super-admin from config, plus one demo account per other role."""
    created = 0
    if _ensure_user(
        current_app.config["SEED_ADMIN_EMAIL"].lower(),
        "Super Admin",
        Role.SUPER_ADMIN,
        current_app.config["SEED_ADMIN_PASSWORD"],
    ):
        created += 1
    if include_demo:
        for role in Role:
            if role is Role.SUPER_ADMIN:
                continue
            email = f"{role.value.replace('_', '-')}@example.com"
            name = role.value.replace("_", " ").title()
            if _ensure_user(email, f"Demo {name}", role, DEMO_PASSWORD):
                created += 1
    logger.info("Seeded %d users", created)
    return created


def seed_all() -> dict:
    return {
        "platform_fees": seed_platform_fees(),
        "service_master": seed_service_master(),
        "users": seed_users(),
    }
