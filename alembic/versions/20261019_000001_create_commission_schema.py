"""Create commission engine schema and distribution procedure.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

This migration creates:
1. promoters, customers, pin_transactions, pin_requests
2. commission_records (the ledger) and wallet_projections
3. distribute_affiliate_commission(customer_id, initiator_id, level_amounts)

The procedure receives the level schedule as a comma-separated list
("500,100,100,100") so amounts are configured only in application
settings. It runs the duplicate check, the hierarchy walk and every ledger
write in the caller's transaction, serialized per customer with an
advisory lock, and returns a JSON summary.
"""

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.DECIMAL(18, 8)


DISTRIBUTE_FUNCTION = """
CREATE OR REPLACE FUNCTION distribute_affiliate_commission(
    p_customer_id INTEGER,
    p_initiator_promoter_id INTEGER,
    p_level_amounts TEXT
) RETURNS JSON AS $$
DECLARE
    v_amounts NUMERIC[] := string_to_array(p_level_amounts, ',')::NUMERIC[];
    v_pool NUMERIC := 0;
    v_remaining NUMERIC;
    v_current_id INTEGER := p_initiator_promoter_id;
    v_parent_id INTEGER;
    v_visited INTEGER[] := ARRAY[]::INTEGER[];
    v_level INTEGER;
    v_amount NUMERIC;
    v_tx_id VARCHAR(64);
    v_prior_count INTEGER;
    v_prior_total NUMERIC;
    v_prior_levels INTEGER;
    v_prior_admin NUMERIC;
    v_levels INTEGER := 0;
    v_tx_ids TEXT[] := ARRAY[]::TEXT[];
    v_recipients INTEGER[] := ARRAY[]::INTEGER[];
    v_now TIMESTAMPTZ := NOW();
BEGIN
    -- One distribution at a time per customer; released at commit
    PERFORM pg_advisory_xact_lock(
        hashtext('commission_distribution:' || p_customer_id)
    );

    SELECT COUNT(*),
           COALESCE(SUM(amount), 0),
           COUNT(*) FILTER (WHERE level > 0),
           COALESCE(SUM(amount) FILTER (WHERE level = 0), 0)
      INTO v_prior_count, v_prior_total, v_prior_levels, v_prior_admin
      FROM commission_records
     WHERE customer_id = p_customer_id
       AND status = 'credited';

    IF v_prior_count > 0 THEN
        RETURN json_build_object(
            'success', true,
            'skipped', true,
            'customer_id', p_customer_id,
            'record_count', v_prior_count,
            'total_distributed', v_prior_total,
            'levels_distributed', v_prior_levels,
            'admin_fallback_amount', v_prior_admin,
            'recipient_ids', json_build_array(),
            'timestamp', v_now
        );
    END IF;

    BEGIN
        SELECT COALESCE(SUM(a), 0) INTO v_pool FROM unnest(v_amounts) AS a;
        v_remaining := v_pool;

        FOR v_level IN 1..COALESCE(array_length(v_amounts, 1), 0) LOOP
            EXIT WHEN v_current_id IS NULL;
            EXIT WHEN v_current_id = ANY(v_visited);

            SELECT parent_promoter_id INTO v_parent_id
              FROM promoters
             WHERE id = v_current_id;
            EXIT WHEN NOT FOUND;

            v_amount := v_amounts[v_level];
            v_tx_id := 'COMM-' || p_customer_id || '-L' || v_level || '-'
                || substr(replace(gen_random_uuid()::TEXT, '-', ''), 1, 16);

            INSERT INTO commission_records (
                customer_id, initiator_promoter_id, recipient_id,
                recipient_type, level, amount, status, transaction_id,
                note, created_at
            ) VALUES (
                p_customer_id, p_initiator_promoter_id, v_current_id,
                'promoter', v_level, v_amount, 'credited', v_tx_id,
                'Level ' || v_level || ' commission for customer '
                    || p_customer_id,
                v_now
            );

            INSERT INTO wallet_projections (
                wallet_key, recipient_id, balance, total_earned,
                commission_count, last_event_at, updated_at
            ) VALUES (
                'promoter:' || v_current_id, v_current_id, v_amount,
                v_amount, 1, v_now, v_now
            )
            ON CONFLICT (wallet_key) DO UPDATE SET
                balance = wallet_projections.balance + EXCLUDED.balance,
                total_earned = wallet_projections.total_earned
                    + EXCLUDED.total_earned,
                commission_count = wallet_projections.commission_count + 1,
                last_event_at = EXCLUDED.last_event_at,
                updated_at = EXCLUDED.updated_at;

            v_remaining := v_remaining - v_amount;
            v_levels := v_levels + 1;
            v_tx_ids := array_append(v_tx_ids, v_tx_id::TEXT);
            v_recipients := array_append(v_recipients, v_current_id);
            v_visited := array_append(v_visited, v_current_id);
            v_current_id := v_parent_id;
        END LOOP;

        IF v_remaining > 0 THEN
            v_tx_id := 'COMM-ADMIN-' || p_customer_id || '-'
                || substr(replace(gen_random_uuid()::TEXT, '-', ''), 1, 16);

            INSERT INTO commission_records (
                customer_id, initiator_promoter_id, recipient_id,
                recipient_type, level, amount, status, transaction_id,
                note, created_at
            ) VALUES (
                p_customer_id, p_initiator_promoter_id, NULL,
                'admin', 0, v_remaining, 'credited', v_tx_id,
                'Undistributed commission remainder for customer '
                    || p_customer_id,
                v_now
            );

            INSERT INTO wallet_projections (
                wallet_key, recipient_id, balance, total_earned,
                commission_count, last_event_at, updated_at
            ) VALUES (
                'admin', NULL, v_remaining, v_remaining, 1, v_now, v_now
            )
            ON CONFLICT (wallet_key) DO UPDATE SET
                balance = wallet_projections.balance + EXCLUDED.balance,
                total_earned = wallet_projections.total_earned
                    + EXCLUDED.total_earned,
                commission_count = wallet_projections.commission_count + 1,
                last_event_at = EXCLUDED.last_event_at,
                updated_at = EXCLUDED.updated_at;

            v_tx_ids := array_append(v_tx_ids, v_tx_id::TEXT);
            v_recipients := array_append(v_recipients, NULL::INTEGER);
        END IF;

        RETURN json_build_object(
            'success', true,
            'skipped', false,
            'customer_id', p_customer_id,
            'initiator_promoter_id', p_initiator_promoter_id,
            'total_distributed', v_pool,
            'levels_distributed', v_levels,
            'admin_fallback_amount', GREATEST(v_remaining, 0),
            'transaction_ids', to_json(v_tx_ids),
            'recipient_ids', to_json(v_recipients),
            'timestamp', v_now
        );
    EXCEPTION WHEN OTHERS THEN
        -- Every write of this call is rolled back with the block
        RETURN json_build_object(
            'success', false,
            'error', SQLERRM,
            'customer_id', p_customer_id,
            'timestamp', v_now
        );
    END;
END;
$$ LANGUAGE plpgsql;
"""


def upgrade() -> None:
    """Create tables and the distribution procedure."""
    op.create_table(
        'promoters',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column(
            'parent_promoter_id',
            sa.Integer(),
            sa.ForeignKey('promoters.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('pins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'status', sa.String(20), nullable=False, server_default='active'
        ),
        sa.Column(
            'is_admin', sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint('pins >= 0', name='check_promoter_pins_non_negative'),
        sa.CheckConstraint(
            'parent_promoter_id IS NULL OR parent_promoter_id <> id',
            name='check_promoter_not_own_parent',
        ),
    )
    op.create_index(
        'ix_promoters_parent_promoter_id', 'promoters', ['parent_promoter_id']
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('mobile', sa.String(20), nullable=True),
        sa.Column(
            'parent_promoter_id',
            sa.Integer(),
            sa.ForeignKey('promoters.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'status', sa.String(20), nullable=False, server_default='active'
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        'ix_customers_parent_promoter_id', 'customers', ['parent_promoter_id']
    )

    op.create_table(
        'commission_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'customer_id',
            sa.Integer(),
            sa.ForeignKey('customers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('initiator_promoter_id', sa.Integer(), nullable=True),
        sa.Column(
            'recipient_id',
            sa.Integer(),
            sa.ForeignKey('promoters.id', ondelete='RESTRICT'),
            nullable=True,
        ),
        sa.Column(
            'recipient_type',
            sa.String(20),
            nullable=False,
            server_default='promoter',
        ),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column(
            'status', sa.String(20), nullable=False, server_default='credited'
        ),
        sa.Column('transaction_id', sa.String(64), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            'transaction_id', name='uq_commission_records_transaction_id'
        ),
        sa.CheckConstraint('amount > 0', name='check_commission_amount_positive'),
        sa.CheckConstraint(
            'level >= 0', name='check_commission_level_non_negative'
        ),
        sa.CheckConstraint(
            "(recipient_type = 'admin' AND recipient_id IS NULL AND level = 0) "
            "OR (recipient_type = 'promoter' AND recipient_id IS NOT NULL "
            "AND level > 0)",
            name='check_commission_recipient_shape',
        ),
    )
    op.create_index(
        'ix_commission_records_customer_id',
        'commission_records',
        ['customer_id'],
    )
    op.create_index(
        'ix_commission_records_initiator_promoter_id',
        'commission_records',
        ['initiator_promoter_id'],
    )
    op.create_index(
        'ix_commission_records_created_at',
        'commission_records',
        ['created_at'],
    )
    op.create_index(
        'idx_commission_customer_status',
        'commission_records',
        ['customer_id', 'status'],
    )
    op.create_index(
        'idx_commission_recipient_status',
        'commission_records',
        ['recipient_id', 'status'],
    )

    op.create_table(
        'pin_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'promoter_id',
            sa.Integer(),
            sa.ForeignKey('promoters.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'customer_id',
            sa.Integer(),
            sa.ForeignKey('customers.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('action_type', sa.String(32), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        'ix_pin_transactions_customer_id', 'pin_transactions', ['customer_id']
    )
    op.create_index(
        'idx_pin_tx_promoter_created',
        'pin_transactions',
        ['promoter_id', 'created_at'],
    )

    op.create_table(
        'pin_requests',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'promoter_id',
            sa.Integer(),
            sa.ForeignKey('promoters.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column(
            'status', sa.String(20), nullable=False, server_default='pending'
        ),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            'quantity > 0', name='check_pin_request_quantity_positive'
        ),
    )
    op.create_index(
        'ix_pin_requests_promoter_id', 'pin_requests', ['promoter_id']
    )
    op.create_index('ix_pin_requests_status', 'pin_requests', ['status'])

    op.create_table(
        'wallet_projections',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('wallet_key', sa.String(64), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=True),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'commission_count', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column('last_event_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint('wallet_key', name='uq_wallet_projection_key'),
    )

    op.execute(DISTRIBUTE_FUNCTION)


def downgrade() -> None:
    """Drop the procedure and all commission tables."""
    op.execute(
        'DROP FUNCTION IF EXISTS '
        'distribute_affiliate_commission(INTEGER, INTEGER, TEXT)'
    )
    op.drop_table('wallet_projections')
    op.drop_table('pin_requests')
    op.drop_table('pin_transactions')
    op.drop_table('commission_records')
    op.drop_table('customers')
    op.drop_table('promoters')
