"""
Discount and referral code models.
These are the source of truth for the contact behind each code.
"""
from ..extensions import db


class ContactCodeMixin:
    """Columns shared by the discount and referral code tables."""
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255))
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
        }


class DiscountCode(ContactCodeMixin, db.Model):
    """Discount code issued to a contact."""
    __tablename__ = 'discount'

    def __repr__(self):
        return f'<DiscountCode {self.code}>'


class ReferralCode(ContactCodeMixin, db.Model):
    """Referral code issued to a contact."""
    __tablename__ = 'referral'

    def __repr__(self):
        return f'<ReferralCode {self.code}>'
