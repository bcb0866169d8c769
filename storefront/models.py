import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID string primary key (matches Supabase uuid columns)"""
    return str(uuid.uuid4())


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), index=True, nullable=False)  # Supabase auth user id
    user_email = Column(String(255), index=True, nullable=True)
    sanity_id = Column(String(255), index=True, nullable=True)  # userSubscription document id
    subscription_id = Column(String(255), nullable=True)  # subscription (plan) document id
    variant_key = Column(String(100), nullable=True)
    plan_name = Column(String(255), nullable=True)
    billing_period = Column(String(50), nullable=True)  # monthly, three_month, six_month, annually, other
    billing_amount = Column(Float, nullable=True)
    status = Column(String(50), default="pending", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    stripe_session_id = Column(String(255), index=True, nullable=True)
    stripe_subscription_id = Column(String(255), index=True, nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    next_billing_date = Column(DateTime, nullable=True)
    cancellation_date = Column(DateTime, nullable=True)

    # Coupon applied at checkout
    coupon_code = Column(String(100), nullable=True)
    coupon_discount_type = Column(String(20), nullable=True)  # percentage, fixed
    coupon_discount_value = Column(Float, nullable=True)
    original_price = Column(Float, nullable=True)

    # Appointment entitlement
    has_appointment_access = Column(Boolean, default=False, nullable=False)
    appointments_used = Column(Integer, default=0, nullable=False)
    appointment_accessed_at = Column(DateTime, nullable=True)  # naive UTC, set on first access
    appointment_access_duration = Column(Integer, default=600, nullable=False)  # seconds
    appointment_access_expired = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class UserAppointment(Base):
    __tablename__ = "user_appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), index=True, nullable=True)
    user_email = Column(String(255), index=True, nullable=True)
    sanity_id = Column(String(255), index=True, nullable=True)
    subscription_id = Column(String(255), index=True, nullable=True)  # userSubscription sanity id
    is_from_subscription = Column(Boolean, default=False, nullable=False)
    treatment_name = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    appointment_type_id = Column(String(255), nullable=True)  # appointment document id in the CMS
    price = Column(Float, nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    status = Column(String(50), default="pending", nullable=False)  # pending, scheduled, confirmed, completed, deferred
    payment_status = Column(String(50), default="pending", nullable=True)
    payment_method = Column(String(50), nullable=True)

    stripe_session_id = Column(String(255), index=True, nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)

    scheduled_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    qualiphy_exam_id = Column(Integer, nullable=True)
    qualiphy_patient_exam_id = Column(Integer, index=True, nullable=True)
    qualiphy_exam_status = Column(String(50), nullable=True)  # N/A, Approved, Deferred
    qualiphy_provider_name = Column(String(255), nullable=True)
    prescription_id = Column(String(100), nullable=True)
    prescription_details = Column(JSON, nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class UserData(Base):
    """Intake data captured when a patient books a telehealth exam"""

    __tablename__ = "user_data"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    state = Column(String(100), nullable=True)
    dob = Column(String(20), nullable=True)
    submission_count = Column(Integer, default=0, nullable=False)
    meeting_url = Column(String(500), nullable=True)
    meeting_uuid = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), index=True, nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    shipping_address = Column(JSON, nullable=True)  # address, apartment, city, country, postalCode
    shipping_method = Column(String(50), nullable=True)
    items = Column(JSON, nullable=True)
    subtotal = Column(Float, nullable=True)
    shipping_cost = Column(Float, nullable=True)
    sanity_id = Column(String(255), index=True, nullable=True)
    status = Column(String(50), default="pending", nullable=False)  # pending, paid, processing, cancelled
    payment_status = Column(String(50), default="pending", nullable=False)  # pending, paid, failed
    payment_method = Column(String(50), nullable=True)
    total = Column(Float, nullable=True)
    stripe_session_id = Column(String(255), index=True, nullable=True)
    stripe_payment_intent_id = Column(String(255), index=True, nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
