"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op

from lms.database.base import Base
import lms.database.models  # noqa: F401

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Users, courses, sessions, attendance, assignments, submissions,
    # reviews, quizzes, exams, evaluations, metrics, profiles, suggestions
    Base.metadata.create_all(bind=op.get_bind())


def downgrade():
    Base.metadata.drop_all(bind=op.get_bind())
