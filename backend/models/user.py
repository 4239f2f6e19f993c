"""User model - an end user who links bank accounts and moves money."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class User(Base):
    """An application user and their payment-rail customer reference.

    Identity fields double as the customer profile submitted to Dwolla.
    Only the last four SSN digits are kept locally; the full number is
    forwarded once during customer creation.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    address1 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String(2), nullable=True)
    postal_code = Column(String, nullable=True)
    date_of_birth = Column(String, nullable=True)  # YYYY-MM-DD
    ssn_last4 = Column(String(4), nullable=True)
    dwolla_customer_id = Column(String, nullable=True)
    dwolla_customer_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    bank_links = relationship("BankLink", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
