"""
Funnel event models.

Each table is append-only and owned by the landing-page frontend. A code
may appear many times in any of them.
"""
from ..extensions import db


def _iso(value):
    return value.isoformat() if value else None


class CodeOpen(db.Model):
    """A view of a code's landing page."""
    __tablename__ = 'code_opens'

    # The table has no surrogate key; (code, opened_at) identifies a row
    code = db.Column(db.String(64), primary_key=True)
    opened_at = db.Column(db.DateTime(timezone=True), primary_key=True)

    def __repr__(self):
        return f'<CodeOpen {self.code} at {self.opened_at}>'

    def to_dict(self):
        return {
            'code': self.code,
            'opened_at': _iso(self.opened_at),
        }


class CodeInputEvent(db.Model):
    """A change to a single form field."""
    __tablename__ = 'code_input_events'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, index=True)
    field_name = db.Column(db.String(100))
    input_value = db.Column(db.Text)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f'<CodeInputEvent {self.code}.{self.field_name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'field_name': self.field_name,
            'input_value': self.input_value,
            'changed_at': _iso(self.changed_at),
        }


class CodeAllFieldsFilled(db.Model):
    """Snapshot taken once every required field holds a value."""
    __tablename__ = 'code_all_fields_filled'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, index=True)
    filled_at = db.Column(db.DateTime(timezone=True), nullable=False)
    field_snapshot = db.Column(db.JSON, default=dict)

    def __repr__(self):
        return f'<CodeAllFieldsFilled {self.code}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'filled_at': _iso(self.filled_at),
            'field_snapshot': self.field_snapshot or {},
        }


class FormSubmission(db.Model):
    """Completed form for a code."""
    __tablename__ = 'form_submissions'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, index=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Serialized JSON text in older rows, a json object in newer ones
    submission_snapshot = db.Column(db.Text)

    # Columns stored directly on the row
    name = db.Column(db.String(255))
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    from_zip = db.Column(db.String(20))
    to_zip = db.Column(db.String(20))
    move_date = db.Column(db.String(50))
    move_size = db.Column(db.String(50))
    has_discount = db.Column(db.Boolean)

    DIRECT_FIELDS = (
        'name', 'email', 'phone', 'from_zip', 'to_zip',
        'move_date', 'move_size', 'has_discount',
    )

    def __repr__(self):
        return f'<FormSubmission {self.id} code={self.code}>'

    def to_dict(self):
        data = {
            'id': self.id,
            'code': self.code,
            'submitted_at': _iso(self.submitted_at),
            'submission_snapshot': self.submission_snapshot,
        }
        for field in self.DIRECT_FIELDS:
            data[field] = getattr(self, field)
        return data
