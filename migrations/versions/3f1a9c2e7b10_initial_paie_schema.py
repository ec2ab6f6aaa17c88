"""initial paie schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONTRACT_TYPES = ('CDI', 'CDD', 'CDDTI', 'INTERIM', 'STAGE')
RUN_STATUSES = ('draft', 'calculating', 'calculated', 'approved', 'paid', 'failed')
DEPARTURE_TYPES = ('FIN_CDD', 'DEMISSION_CDI', 'DEMISSION_CDD', 'LICENCIEMENT',
                   'RUPTURE_CONVENTIONNELLE', 'RETRAITE', 'DECES')
LICENCIEMENT_TYPES = ('normal', 'faute_grave', 'faute_lourde', 'inaptitude')

ENUM_NAMES = ('contract_type_enum', 'payroll_run_status_enum',
              'departure_type_enum', 'licenciement_type_enum')


def _money(name, **kw):
    return sa.Column(name, sa.Numeric(15, 2), **kw)


def _stamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # ---- tenancy / identity ----
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('country_code', sa.String(2), nullable=False, server_default='CI'),
        sa.Column('sector', sa.String(30), nullable=False, server_default='services'),
        sa.Column('cnps_number', sa.String(30)),
        sa.Column('address', sa.String(255)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='SET NULL')),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20)),
        sa.Column('last_login_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_company_id', 'users', ['company_id'])

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(120)),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(120), nullable=False, unique=True),
        sa.Column('name', sa.String(150)),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'),
                  primary_key=True),
    )

    # ---- employees ----
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), unique=True),
        sa.Column('code', sa.String(32), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80), nullable=False),
        sa.Column('birth_date', sa.Date()),
        sa.Column('cnps_number', sa.String(30)),
        sa.Column('job_title', sa.String(120)),
        sa.Column('department', sa.String(120)),
        sa.Column('is_cadre', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('hire_date', sa.Date(), nullable=False),
        sa.Column('termination_date', sa.Date()),
        sa.Column('fiscal_parts', sa.Numeric(3, 1), nullable=False, server_default='1.0'),
        sa.Column('has_family', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('weekly_hours_regime', sa.String(4), nullable=False, server_default='40h'),
        sa.Column('payment_frequency', sa.String(10), nullable=False, server_default='MONTHLY'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        *_stamps(),
        sa.UniqueConstraint('company_id', 'code', name='uq_employee_company_code'),
    )
    op.create_index('ix_emp_company_status', 'employees', ['company_id', 'status'])

    op.create_table(
        'employment_contracts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('contract_type', sa.Enum(*CONTRACT_TYPES, name='contract_type_enum'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date()),
        sa.Column('cdd_reason', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('renewal_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('replaces_contract_id', sa.Integer(), sa.ForeignKey('employment_contracts.id')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employment_contracts_company_id', 'employment_contracts', ['company_id'])
    op.create_index('ix_employment_contracts_employee_id', 'employment_contracts', ['employee_id'])

    op.create_table(
        'employee_salaries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        _money('base_salary', nullable=False),
        _money('categorical_salary'),
        _money('housing_allowance'),
        _money('transport_allowance'),
        _money('meal_allowance'),
        _money('daily_transport_rate'),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date()),
        sa.Column('change_reason', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employee_salaries_employee_id', 'employee_salaries', ['employee_id'])

    # ---- payroll runs ----
    op.create_table(
        'payroll_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('run_number', sa.String(40), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('description', sa.Text()),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('pay_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(30), nullable=False, server_default='bank_transfer'),
        sa.Column('payment_frequency', sa.String(10), nullable=False, server_default='MONTHLY'),
        sa.Column('status', sa.Enum(*RUN_STATUSES, name='payroll_run_status_enum'),
                  nullable=False, server_default='draft'),
        _money('total_gross'),
        _money('total_net'),
        _money('total_tax'),
        _money('total_employee_contributions'),
        _money('total_employer_contributions'),
        sa.Column('employee_count', sa.Integer()),
        sa.Column('error_message', sa.Text()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_stamps(),
        sa.Column('calculated_at', sa.DateTime()),
        sa.Column('approved_at', sa.DateTime()),
        sa.Column('paid_at', sa.DateTime()),
        sa.UniqueConstraint('company_id', 'run_number', name='uq_payroll_run_number'),
    )
    op.create_index('ix_payroll_runs_company_period', 'payroll_runs',
                    ['company_id', 'period_start', 'period_end'])
    op.create_index('ix_payroll_runs_status', 'payroll_runs', ['status'])

    op.create_table(
        'payroll_run_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('contract_type', sa.String(10)),
        sa.Column('days_worked', sa.Numeric(6, 2)),
        sa.Column('hours_worked', sa.Numeric(7, 2)),
        *[_money(c) for c in ('base_salary', 'gross', 'cnps_employee', 'cnps_employer',
                              'cmu_employee', 'cmu_employer', 'its', 'other_employer_taxes',
                              'total_deductions', 'net', 'employer_cost')],
        sa.Column('components', sa.JSON()),
        sa.Column('calc_meta', sa.JSON()),
        sa.UniqueConstraint('run_id', 'employee_id', name='uq_run_item_employee'),
    )
    op.create_index('ix_payroll_run_items_run_id', 'payroll_run_items', ['run_id'])
    op.create_index('ix_payroll_run_items_employee_id', 'payroll_run_items', ['employee_id'])

    # ---- departures / documents ----
    op.create_table(
        'employee_terminations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('termination_date', sa.Date(), nullable=False),
        sa.Column('termination_reason', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('departure_type', sa.Enum(*DEPARTURE_TYPES, name='departure_type_enum'),
                  nullable=False, server_default='LICENCIEMENT'),
        sa.Column('contract_type_at_termination', sa.String(20)),
        sa.Column('licenciement_type', sa.Enum(*LICENCIEMENT_TYPES, name='licenciement_type_enum')),
        sa.Column('notice_period_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notice_period_months', sa.Numeric(3, 1)),
        _money('notice_payment_amount'),
        sa.Column('notice_period_status', sa.String(20)),
        _money('severance_amount'),
        sa.Column('severance_rate', sa.Integer()),
        _money('vacation_payout_amount'),
        _money('gratification_amount'),
        _money('cdd_end_indemnity'),
        _money('funeral_expenses'),
        _money('rupture_negotiated_amount'),
        _money('average_salary_12m'),
        sa.Column('years_of_service', sa.Numeric(5, 2)),
        sa.Column('beneficiaries', sa.JSON()),
        sa.Column('stc_details', sa.JSON()),
        sa.Column('work_certificate_url', sa.Text()),
        sa.Column('work_certificate_generated_at', sa.DateTime()),
        sa.Column('cnps_attestation_url', sa.Text()),
        sa.Column('cnps_attestation_generated_at', sa.DateTime()),
        sa.Column('final_payslip_url', sa.Text()),
        sa.Column('final_payslip_generated_at', sa.DateTime()),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_stamps(),
    )
    op.create_index('ix_employee_terminations_company_id', 'employee_terminations', ['company_id'])
    op.create_index('ix_employee_terminations_employee_id', 'employee_terminations', ['employee_id'])

    op.create_table(
        'generated_documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE')),
        sa.Column('termination_id', sa.Integer(),
                  sa.ForeignKey('employee_terminations.id', ondelete='SET NULL')),
        sa.Column('kind', sa.String(40), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False, server_default='application/pdf'),
        sa.Column('content', sa.LargeBinary(), nullable=False),
        sa.Column('size_bytes', sa.Integer()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_generated_documents_company_id', 'generated_documents', ['company_id'])
    op.create_index('ix_generated_documents_employee_id', 'generated_documents', ['employee_id'])

    # ---- automation ----
    op.create_table(
        'workflow_definitions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('trigger_type', sa.String(60), nullable=False),
        sa.Column('trigger_config', sa.JSON(), nullable=False),
        sa.Column('conditions', sa.JSON(), nullable=False),
        sa.Column('actions', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('execution_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_executed_at', sa.DateTime()),
        sa.Column('is_template', sa.Boolean()),
        sa.Column('template_category', sa.String(60)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_stamps(),
    )
    op.create_index('ix_workflow_definitions_company_id', 'workflow_definitions', ['company_id'])
    op.create_index('ix_workflow_definitions_status', 'workflow_definitions', ['status'])

    op.create_table(
        'workflow_executions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workflow_id', sa.Integer(), sa.ForeignKey('workflow_definitions.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('duration_ms', sa.Integer()),
        sa.Column('actions_executed', sa.JSON(), nullable=False),
        sa.Column('error_message', sa.Text()),
        sa.Column('execution_log', sa.JSON(), nullable=False),
        sa.Column('workflow_snapshot', sa.JSON(), nullable=False),
        sa.Column('trigger_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_workflow_executions_workflow_id', 'workflow_executions', ['workflow_id'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(60), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='info'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('assignee_id', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        sa.Column('action_url', sa.Text()),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_alerts_company_id', 'alerts', ['company_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('channel', sa.String(20), nullable=False, server_default='in_app'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('read_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_company_id', 'notifications', ['company_id'])

    op.create_table(
        'payroll_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE')),
        sa.Column('event_type', sa.String(60), nullable=False),
        _money('amount'),
        sa.Column('event_date', sa.Date()),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payroll_events_company_id', 'payroll_events', ['company_id'])

    op.create_table(
        'batch_operations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('operation_type', sa.String(40), nullable=False),
        sa.Column('entity_type', sa.String(40), nullable=False, server_default='employee'),
        sa.Column('entity_ids', sa.JSON(), nullable=False),
        sa.Column('params', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('total_count', sa.Integer(), nullable=False),
        sa.Column('processed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.Column('result_data', sa.JSON(), nullable=False),
        sa.Column('started_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('started_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('estimated_completion_at', sa.DateTime()),
        *_stamps(),
    )
    op.create_index('ix_batch_operations_company_id', 'batch_operations', ['company_id'])
    op.create_index('ix_batch_operations_status', 'batch_operations', ['status'])
    op.create_index('ix_batch_operations_started_by', 'batch_operations', ['started_by'])

    # ---- talent ----
    op.create_table(
        'objectives',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE')),
        sa.Column('department', sa.String(120)),
        sa.Column('parent_objective_id', sa.Integer(), sa.ForeignKey('objectives.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('objective_type', sa.String(20), nullable=False, server_default='qualitative'),
        sa.Column('objective_level', sa.String(20), nullable=False, server_default='individual'),
        _money('target_value'),
        sa.Column('target_unit', sa.String(30)),
        _money('current_value'),
        sa.Column('weight', sa.Numeric(5, 2)),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('due_date', sa.Date()),
        sa.Column('achievement_score', sa.Numeric(5, 2)),
        sa.Column('achievement_notes', sa.Text()),
        sa.Column('proposed_at', sa.DateTime()),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('approved_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_stamps(),
    )
    op.create_index('ix_objectives_company_id', 'objectives', ['company_id'])
    op.create_index('ix_objectives_status', 'objectives', ['status'])

    op.create_table(
        'training_plans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('department', sa.String(120)),
        _money('total_budget'),
        sa.Column('currency', sa.String(3)),
        _money('allocated_budget'),
        _money('spent_budget'),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('approved_at', sa.DateTime()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        *_stamps(),
    )
    op.create_index('ix_training_plans_company_id', 'training_plans', ['company_id'])

    op.create_table(
        'training_plan_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('training_plans.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_name', sa.String(255), nullable=False),
        sa.Column('target_participant_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('target_employee_ids', sa.JSON()),
        _money('budget_allocated'),
        _money('budget_spent'),
        sa.Column('planned_quarter', sa.Integer()),
        sa.Column('planned_month', sa.Integer()),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=False, server_default='planned'),
        sa.Column('notes', sa.Text()),
        *_stamps(),
    )
    op.create_index('ix_training_plan_items_plan_id', 'training_plan_items', ['plan_id'])

    op.create_table(
        'public_holidays',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('country_code', sa.String(2), nullable=False),
        sa.Column('holiday_date', sa.Date(), nullable=False),
        sa.Column('name', sa.JSON(), nullable=False),
        sa.Column('description', sa.JSON()),
        sa.Column('is_recurring', sa.Boolean()),
        sa.Column('is_paid', sa.Boolean()),
        *_stamps(),
        sa.UniqueConstraint('country_code', 'holiday_date', name='uq_country_holiday_date'),
    )
    op.create_index('ix_public_holidays_country_code', 'public_holidays', ['country_code'])
    op.create_index('ix_public_holidays_holiday_date', 'public_holidays', ['holiday_date'])


def downgrade() -> None:
    for table in ('public_holidays', 'training_plan_items', 'training_plans', 'objectives',
                  'batch_operations', 'payroll_events', 'notifications', 'alerts',
                  'workflow_executions', 'workflow_definitions', 'generated_documents',
                  'employee_terminations', 'payroll_run_items', 'payroll_runs',
                  'employee_salaries', 'employment_contracts', 'employees',
                  'role_permissions', 'user_roles', 'permissions', 'roles', 'users', 'companies'):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for name in ENUM_NAMES:
            sa.Enum(name=name).drop(bind, checkfirst=True)
