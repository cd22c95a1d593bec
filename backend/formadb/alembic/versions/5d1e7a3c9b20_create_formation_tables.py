"""create formation tables

Revision ID: 5d1e7a3c9b20
Revises:
Create Date: 2026-02-09 10:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5d1e7a3c9b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'TRAINER', 'MANAGER', 'STUDENT', name='user_role_enum'), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'ACTIVE', 'SUSPENDED', 'REJECTED', name='user_status_enum'), nullable=False),
        sa.Column('profile_image', sa.String(length=512), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)
    op.create_index(op.f('ix_users_status'), 'users', ['status'], unique=False)
    op.create_index('idx_users_role_status', 'users', ['role', 'status'], unique=False)

    op.create_table(
        'formations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('duration_hours', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('created_by_user_id', sa.String(length=36), nullable=True),
        sa.Column('default_trainer_id', sa.String(length=36), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('color', sa.String(length=16), nullable=False),
        sa.Column('pattern', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration_hours >= 1', name='ck_formations_duration_positive'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['default_trainer_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_formations_created_by_user_id'), 'formations', ['created_by_user_id'], unique=False)
    op.create_index('idx_formations_active', 'formations', ['is_active'], unique=False)

    op.create_table(
        'levels',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('formation_id', sa.String(length=36), nullable=False),
        sa.Column('level_order', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('level_order >= 1', name='ck_levels_order_positive'),
        sa.ForeignKeyConstraint(['formation_id'], ['formations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('formation_id', 'level_order', name='uq_levels_formation_order'),
    )
    op.create_index(op.f('ix_levels_formation_id'), 'levels', ['formation_id'], unique=False)

    op.create_table(
        'training_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('formation_id', sa.String(length=36), nullable=False),
        sa.Column('level_id', sa.String(length=36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=16), nullable=False),
        sa.Column('end_time', sa.String(length=16), nullable=False),
        sa.Column('trainer_id', sa.String(length=36), nullable=True),
        sa.Column('max_participants', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('max_participants >= 1', name='ck_training_sessions_capacity_positive'),
        sa.ForeignKeyConstraint(['formation_id'], ['formations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['level_id'], ['levels.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['trainer_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('formation_id', 'sequence', name='uq_training_sessions_formation_sequence'),
    )
    op.create_index(op.f('ix_training_sessions_formation_id'), 'training_sessions', ['formation_id'], unique=False)
    op.create_index(op.f('ix_training_sessions_trainer_id'), 'training_sessions', ['trainer_id'], unique=False)
    op.create_index('idx_training_sessions_formation_date', 'training_sessions', ['formation_id', 'date'], unique=False)
    op.create_index('idx_training_sessions_level', 'training_sessions', ['level_id'], unique=False)

    op.create_table(
        'session_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['training_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'user_id', name='uq_session_participants_session_user'),
    )
    op.create_index(op.f('ix_session_participants_session_id'), 'session_participants', ['session_id'], unique=False)
    op.create_index('idx_session_participants_user', 'session_participants', ['user_id'], unique=False)

    op.create_table(
        'attendances',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('participant_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.Enum('PRESENT', 'ABSENT', 'LATE', name='attendance_status_enum'), nullable=False),
        sa.Column('marked_by_user_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['training_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['participant_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['marked_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'participant_id', name='uq_attendances_session_participant'),
    )
    op.create_index(op.f('ix_attendances_session_id'), 'attendances', ['session_id'], unique=False)
    op.create_index('idx_attendances_participant_status', 'attendances', ['participant_id', 'status'], unique=False)

    op.create_table(
        'certificates',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('formation_id', sa.String(length=36), nullable=False),
        sa.Column('certificate_code', sa.String(length=64), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('issued_by_user_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['formation_id'], ['formations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['issued_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('certificate_code'),
        sa.UniqueConstraint('user_id', 'formation_id', name='uq_certificates_user_formation'),
    )
    op.create_index(op.f('ix_certificates_user_id'), 'certificates', ['user_id'], unique=False)
    op.create_index(op.f('ix_certificates_formation_id'), 'certificates', ['formation_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_certificates_formation_id'), table_name='certificates')
    op.drop_index(op.f('ix_certificates_user_id'), table_name='certificates')
    op.drop_table('certificates')
    op.drop_index('idx_attendances_participant_status', table_name='attendances')
    op.drop_index(op.f('ix_attendances_session_id'), table_name='attendances')
    op.drop_table('attendances')
    op.drop_index('idx_session_participants_user', table_name='session_participants')
    op.drop_index(op.f('ix_session_participants_session_id'), table_name='session_participants')
    op.drop_table('session_participants')
    op.drop_index('idx_training_sessions_level', table_name='training_sessions')
    op.drop_index('idx_training_sessions_formation_date', table_name='training_sessions')
    op.drop_index(op.f('ix_training_sessions_trainer_id'), table_name='training_sessions')
    op.drop_index(op.f('ix_training_sessions_formation_id'), table_name='training_sessions')
    op.drop_table('training_sessions')
    op.drop_index(op.f('ix_levels_formation_id'), table_name='levels')
    op.drop_table('levels')
    op.drop_index('idx_formations_active', table_name='formations')
    op.drop_index(op.f('ix_formations_created_by_user_id'), table_name='formations')
    op.drop_table('formations')
    op.drop_index('idx_users_role_status', table_name='users')
    op.drop_index(op.f('ix_users_status'), table_name='users')
    op.drop_index(op.f('ix_users_role'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
    sa.Enum(name='attendance_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_role_enum').drop(op.get_bind(), checkfirst=True)
