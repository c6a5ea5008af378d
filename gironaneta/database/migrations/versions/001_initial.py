"""
Initial migration - Create all tables

Revision ID: 001_initial
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    # Create reports table
    op.create_table(
        'reports',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime()),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending_review'),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lon', sa.Float(), nullable=False),
        sa.Column('distance_to_girona_m', sa.Integer(), nullable=False),
        sa.Column('inside_service_area', sa.Boolean(), nullable=False),
        sa.Column('address_label', sa.Text()),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('ip_hash', sa.String(64)),
        sa.Column('user_device_id', sa.String(100)),
        sa.Column('fcc_incident_id', sa.String(100)),
        sa.Column('sent_at', sa.DateTime()),
        sa.Column('last_error', sa.Text()),
        sa.Column('reply_text', sa.Text()),
        sa.Column('reply_from', sa.String(200)),
        sa.Column('replied_at', sa.DateTime()),
        sa.CheckConstraint('lat BETWEEN -90 AND 90', name='valid_lat'),
        sa.CheckConstraint('lon BETWEEN -180 AND 180', name='valid_lon'),
        sa.CheckConstraint("category IN ('waste', 'litter')", name='valid_category'),
        sa.CheckConstraint(
            "status IN ('pending_review', 'approved_sending', 'sent', 'replied', 'rejected', 'deleted')",
            name='valid_status',
        ),
    )

    op.create_index('idx_reports_status_created', 'reports', ['status', 'created_at'])
    op.create_index('idx_reports_ip_hash_created', 'reports', ['ip_hash', 'created_at'])
    op.create_index('idx_reports_replied_at', 'reports', ['replied_at'])

    # Create report_media table
    op.create_table(
        'report_media',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'report_id', sa.String(36),
            sa.ForeignKey('reports.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('mime_type', sa.String(50), nullable=False),
        sa.Column('compressed_bytes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('width', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('height', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('ix_report_media_report_id', 'report_media', ['report_id'])

    # Create geocode_cache table
    op.create_table(
        'geocode_cache',
        sa.Column('rounded_lat', sa.Float(), primary_key=True),
        sa.Column('rounded_lon', sa.Float(), primary_key=True),
        sa.Column('address_label', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('idx_geocode_cache_updated', 'geocode_cache', ['updated_at'])

    # Create admin_users table
    op.create_table(
        'admin_users',
        sa.Column('email', sa.String(255), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('admin_users')
    op.drop_table('geocode_cache')
    op.drop_table('report_media')
    op.drop_table('reports')
