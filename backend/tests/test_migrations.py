import os
import runpy

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

VERSIONS_DIR = os.path.join(os.path.dirname(__file__), '..', 'migrations', 'versions')
INITIAL_REVISION = os.path.join(VERSIONS_DIR, '5b7c1d9e2f01_campaign_sessions_zones_notifications.py')


def _run(step, conn):
    revision = runpy.run_path(INITIAL_REVISION)
    with Operations.context(MigrationContext.configure(conn)):
        revision[step]()


def test_initial_revision_upgrades_and_fully_downgrades():
    engine = sa.create_engine('sqlite://')
    with engine.begin() as conn:
        _run('upgrade', conn)
        tables = set(sa.inspect(conn).get_table_names())
        assert {'user', 'campaign', 'campaign_membership', 'character', 'play_session',
                'session_participant', 'session_note', 'notification'} <= tables
        columns = {c['name'] for c in sa.inspect(conn).get_columns('session_participant')}
        assert {'attendance_status', 'joined_at', 'left_at', 'actions_count', 'messages_count'} <= columns

        _run('downgrade', conn)
        assert sa.inspect(conn).get_table_names() == []
