"""
Shared fixtures for the funnel dashboard tests.

Uses an in-memory SQLite database; timestamps are stored as naive UTC,
the same way the datastore hands them back.
"""
import json
import pytest
from datetime import datetime
from sqlalchemy import text

from funnel_dashboard import create_app
from funnel_dashboard.extensions import db
from funnel_dashboard.models import (
    DiscountCode, ReferralCode, CodeOpen, CodeInputEvent,
    CodeAllFieldsFilled, FormSubmission
)


@pytest.fixture
def app():
    """Application with empty analytics tables."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def funnel_data(app):
    """
    A small funnel:
    - D1 (discount) opens twice, fills, submits
    - R1 (referral) opens, fills, never submits
    - SHARED exists in both code tables, never opens
    - X9 has no contact record, opens and submits with a malformed blob
    """
    db.session.add_all([
        DiscountCode(code='D1', name='Alice Doe', email='alice@example.com', phone='555-0101'),
        DiscountCode(code='SHARED', name='Dana Disc', email='dana@example.com', phone='555-0102'),
        ReferralCode(code='R1', name='Rob Ref', email='rob@example.com', phone='555-0201'),
        ReferralCode(code='SHARED', name='Sam Ref', email='sam@example.com', phone='555-0202'),
    ])

    db.session.add_all([
        CodeOpen(code='D1', opened_at=datetime(2024, 1, 1, 10, 0)),
        CodeOpen(code='D1', opened_at=datetime(2024, 1, 2, 9, 0)),
        CodeOpen(code='R1', opened_at=datetime(2024, 1, 2, 12, 0)),
        CodeOpen(code='X9', opened_at=datetime(2024, 1, 3, 8, 0)),
    ])

    db.session.add_all([
        CodeInputEvent(code='D1', field_name='name', input_value='Alice', changed_at=datetime(2024, 1, 2, 9, 1)),
        CodeInputEvent(code='D1', field_name='email', input_value='alice@example.com', changed_at=datetime(2024, 1, 2, 9, 2)),
        CodeInputEvent(code='D1', field_name='phone', input_value='555-0101', changed_at=datetime(2024, 1, 2, 9, 3)),
        CodeInputEvent(code='R1', field_name='name', input_value='Rob', changed_at=datetime(2024, 1, 2, 12, 5)),
        CodeInputEvent(code='R1', field_name='from_zip', input_value='10001', changed_at=datetime(2024, 1, 2, 12, 6)),
        CodeInputEvent(code='X9', field_name='name', input_value='Xavier', changed_at=datetime(2024, 1, 3, 8, 10)),
    ])

    db.session.add_all([
        CodeAllFieldsFilled(code='D1', filled_at=datetime(2024, 1, 2, 9, 5), field_snapshot={'name': 'Alice'}),
        CodeAllFieldsFilled(code='R1', filled_at=datetime(2024, 1, 2, 12, 10), field_snapshot={'name': 'Rob'}),
    ])

    db.session.add_all([
        FormSubmission(
            code='D1',
            submitted_at=datetime(2024, 1, 2, 9, 10),
            submission_snapshot=json.dumps({'notes': 'call after 5', 'move_size': 'studio'}),
            name='Alice D.', email='alice@example.com', phone='555-0101',
            from_zip='10001', to_zip='94105', move_date='2024-02-01', move_size='2BR',
            has_discount=True,
        ),
        FormSubmission(
            code='X9',
            submitted_at=datetime(2024, 1, 3, 8, 30),
            submission_snapshot='{not valid json',
            name='Xavier', email='x@example.com', phone='555-0909',
            from_zip='60601', to_zip='60614', move_size='1BR',
            has_discount=False,
        ),
    ])
    db.session.commit()
    return app


@pytest.fixture
def drop_table(app):
    """Simulate a datastore failure by dropping one table."""
    def _drop(name):
        db.session.execute(text(f'DROP TABLE {name}'))
        db.session.commit()
    return _drop
