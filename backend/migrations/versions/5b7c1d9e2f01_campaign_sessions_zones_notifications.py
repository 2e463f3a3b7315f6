"""campaigns, play sessions, participants, session notes, character zones and notifications

Revision ID: 5b7c1d9e2f01
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7c1d9e2f01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'campaign',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'campaign_membership',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaign.id'), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.UniqueConstraint('user_id', 'campaign_id', name='uq_membership_user_campaign'),
    )
    op.create_index('ix_campaign_membership_user_id', 'campaign_membership', ['user_id'])
    op.create_index('ix_campaign_membership_campaign_id', 'campaign_membership', ['campaign_id'])

    op.create_table(
        'character',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaign.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('current_zone', sa.String(length=16), nullable=True),
        sa.Column('zone_metadata', sa.JSON(), nullable=True),
    )
    op.create_index('ix_character_campaign_id', 'character', ['campaign_id'])

    op.create_table(
        'play_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaign.id'), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('experience_awarded', sa.Integer(), nullable=True),
        sa.Column('gold_awarded', sa.Integer(), nullable=True),
        sa.Column('items_awarded', sa.Text(), nullable=True),
        sa.Column('summary_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
    )
    op.create_index('ix_play_session_campaign_id', 'play_session', ['campaign_id'])

    op.create_table(
        'session_participant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('play_session.id'), nullable=False),
        sa.Column('character_id', sa.Integer(), sa.ForeignKey('character.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('attendance_status', sa.String(length=16), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('left_at', sa.DateTime(), nullable=True),
        sa.Column('actions_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('messages_count', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('session_id', 'character_id', name='uq_participant_session_character'),
    )
    op.create_index('ix_session_participant_session_id', 'session_participant', ['session_id'])

    op.create_table(
        'session_note',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('play_session.id'), nullable=False),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('note_type', sa.String(length=32), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_session_note_session_id', 'session_note', ['session_id'])

    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaign.id'), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('dismissed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'])
    op.create_index('ix_notification_campaign_id', 'notification', ['campaign_id'])


def downgrade():
    op.drop_index('ix_notification_campaign_id', table_name='notification')
    op.drop_index('ix_notification_user_id', table_name='notification')
    op.drop_table('notification')
    op.drop_index('ix_session_note_session_id', table_name='session_note')
    op.drop_table('session_note')
    op.drop_index('ix_session_participant_session_id', table_name='session_participant')
    op.drop_table('session_participant')
    op.drop_index('ix_play_session_campaign_id', table_name='play_session')
    op.drop_table('play_session')
    op.drop_index('ix_character_campaign_id', table_name='character')
    op.drop_table('character')
    op.drop_index('ix_campaign_membership_campaign_id', table_name='campaign_membership')
    op.drop_index('ix_campaign_membership_user_id', table_name='campaign_membership')
    op.drop_table('campaign_membership')
    op.drop_table('campaign')

    # Base revision: the user table belongs to this schema even when upgrade found it already there
    insp = sa.inspect(op.get_bind())
    if 'user' in insp.get_table_names():
        op.drop_index('ix_user_username', table_name='user')
        op.drop_table('user')
