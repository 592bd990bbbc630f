"""dashboard tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'teams',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('project_key', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_teams_name', 'teams', ['name'])
    op.create_index('ix_teams_project_key', 'teams', ['project_key'])

    op.create_table(
        'developers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('team_id', sa.String(), sa.ForeignKey('teams.id'), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_developers_team_id', 'developers', ['team_id'])

    op.create_table(
        'sprints',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('project_key', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('state', sa.String(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('avg_lead_time', sa.Float(), nullable=True),
        sa.Column('avg_pr_size', sa.Float(), nullable=True),
        sa.Column('committed_points', sa.Float(), nullable=False),
        sa.Column('completed_points', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_sprints_project_key', 'sprints', ['project_key'])

    op.create_table(
        'issues',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('issue_key', sa.String(), nullable=False),
        sa.Column('sprint_id', sa.String(), sa.ForeignKey('sprints.id'), nullable=True),
        sa.Column('assignee_id', sa.String(), sa.ForeignKey('developers.id'), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('story_points', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_issues_issue_key', 'issues', ['issue_key'])
    op.create_index('ix_issues_sprint_id', 'issues', ['sprint_id'])

    op.create_table(
        'squad_capacity',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('team_id', sa.String(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('sprint_id', sa.String(), sa.ForeignKey('sprints.id'), nullable=False),
        sa.Column('capacity_hours', sa.Float(), nullable=False),
    )
    op.create_index('ix_squad_capacity_team_id', 'squad_capacity', ['team_id'])
    op.create_index('ix_squad_capacity_sprint_id', 'squad_capacity', ['sprint_id'])


def downgrade():
    op.drop_table('squad_capacity')
    op.drop_table('issues')
    op.drop_table('sprints')
    op.drop_table('developers')
    op.drop_table('teams')
