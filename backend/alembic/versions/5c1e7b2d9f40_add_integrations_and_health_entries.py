"""add_integrations_and_health_entries

Revision ID: 5c1e7b2d9f40
Revises:
Create Date: 2026-10-18 10:12:31.402117

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '5c1e7b2d9f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    provider_enum = sa.Enum('STRAVA', 'FITBIT', 'LOSE_IT', name='health_data_provider')
    status_enum = sa.Enum('ACTIVE', 'EXPIRED', 'REVOKED', 'ERROR', name='integration_status')

    # 第三方集成表（每个用户每个Provider一条）
    op.create_table('integrations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False, comment='用户ID'),
        sa.Column('provider', provider_enum, nullable=False, comment='数据源'),
        sa.Column('access_token', sa.Text(), nullable=False, comment='访问令牌'),
        sa.Column('refresh_token', sa.Text(), nullable=True, comment='刷新令牌'),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False, comment='令牌过期时间'),
        sa.Column('scope', sa.String(500), nullable=True, comment='授权范围'),
        sa.Column('token_type', sa.String(50), nullable=True),
        sa.Column('status', status_enum, nullable=False, comment='集成状态'),
        sa.Column('last_synced_at', sa.TIMESTAMP(timezone=True), nullable=True, comment='最后同步时间'),
        sa.Column('sync_error_message', sa.Text(), nullable=True, comment='最近一次同步错误'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'provider', name='uq_integrations_user_provider')
    )
    op.create_index('idx_integrations_user_status', 'integrations', ['user_id', 'status'], unique=False)

    # 每日健康数据表（每个用户每天一条）
    op.create_table('health_entries',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False, comment='用户ID'),
        sa.Column('date', sa.Date(), nullable=False, comment='日期'),
        sa.Column('steps', sa.Integer(), nullable=True, comment='步数'),
        sa.Column('weight', sa.Float(), nullable=True, comment='体重(kg)'),
        sa.Column('calories_burned', sa.Integer(), nullable=True, comment='消耗卡路里'),
        sa.Column('exercise_minutes', sa.Integer(), nullable=True, comment='运动时长(分钟)'),
        sa.Column('sleep_minutes', sa.Integer(), nullable=True, comment='睡眠时长(分钟)'),
        sa.Column('heart_rate', sa.Integer(), nullable=True, comment='心率(bpm)'),
        sa.Column('distance', sa.Float(), nullable=True, comment='距离(米)'),
        sa.Column('active_minutes', sa.Integer(), nullable=True, comment='活跃时长(分钟)'),
        sa.Column('resting_heart_rate', sa.Integer(), nullable=True, comment='静息心率(bpm)'),
        sa.Column('source', sa.String(20), nullable=False, comment='数据来源（Provider或MANUAL）'),
        sa.Column('raw_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='第三方原始数据'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_health_entries_user_date')
    )


def downgrade() -> None:
    op.drop_table('health_entries')
    op.drop_index('idx_integrations_user_status', table_name='integrations')
    op.drop_table('integrations')
    sa.Enum(name='integration_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='health_data_provider').drop(op.get_bind(), checkfirst=True)
