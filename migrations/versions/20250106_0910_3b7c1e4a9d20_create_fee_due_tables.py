"""create fee due tables

Revision ID: 3b7c1e4a9d20
Revises:
Create Date: 2025-01-06 09:10:41.204311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3b7c1e4a9d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'students',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('institute_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('serial_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('parent_name', sa.String(length=128), nullable=True),
        sa.Column('parent_email', sa.String(length=255), nullable=True),
        sa.Column('parent_phone', sa.String(length=32), nullable=True),
        sa.Column('course', sa.String(length=64), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_index('ix_students_institute_id', 'students', ['institute_id'])

    op.create_table(
        'fee_structures',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('institute_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('course', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_fee_structures_amount_positive'),
    )
    op.create_index('ix_fee_structures_institute_id', 'fee_structures', ['institute_id'])

    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('receipt_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_mode', sa.String(length=16), nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('total_amount > 0', name='ck_payment_amount_positive'),
    )
    op.create_index('ix_payments_student_id', 'payments', ['student_id'])

    op.create_table(
        'fee_dues',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('student_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fee_structure_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('fee_structures.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payment_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('amount_paid', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('amount_remaining', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_period', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('grace_period_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('late_fee_applied', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('reminder_sent_7days', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_3days', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_1day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_overdue', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending','due','overdue','partially_paid','paid')",
            name='ck_fee_dues_status',
        ),
        sa.CheckConstraint('amount >= 0', name='ck_fee_dues_amount_positive'),
        sa.CheckConstraint('amount_paid >= 0', name='ck_fee_dues_amount_paid_positive'),
        sa.CheckConstraint('amount_remaining >= 0', name='ck_fee_dues_amount_remaining_positive'),
    )
    op.create_index('ix_fee_dues_student', 'fee_dues', ['student_id'])
    op.create_index('ix_fee_dues_status', 'fee_dues', ['status'])
    op.create_index('ix_fee_dues_due_date', 'fee_dues', ['due_date'])


def downgrade():
    op.drop_index('ix_fee_dues_due_date', table_name='fee_dues')
    op.drop_index('ix_fee_dues_status', table_name='fee_dues')
    op.drop_index('ix_fee_dues_student', table_name='fee_dues')
    op.drop_table('fee_dues')
    op.drop_index('ix_payments_student_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_fee_structures_institute_id', table_name='fee_structures')
    op.drop_table('fee_structures')
    op.drop_index('ix_students_institute_id', table_name='students')
    op.drop_table('students')
