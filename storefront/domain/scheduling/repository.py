"""Scheduling repository - intake user data and appointment lookups"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import UserAppointment, UserData


class SchedulingRepository:
    """Repository for exam booking and Qualiphy webhook writes"""

    @staticmethod
    def get_user_data_by_email(db: Session, email: str) -> Optional[UserData]:
        return db.query(UserData).filter(UserData.email == email).first()

    @staticmethod
    def create_user_data(db: Session, **fields) -> UserData:
        user_data = UserData(**fields)
        db.add(user_data)
        db.commit()
        db.refresh(user_data)
        return user_data

    @staticmethod
    def get_by_patient_exam_id(db: Session, patient_exam_id: int) -> Optional[UserAppointment]:
        return (
            db.query(UserAppointment)
            .filter(UserAppointment.qualiphy_patient_exam_id == patient_exam_id)
            .first()
        )

    @staticmethod
    def get_latest_by_email(db: Session, email: str, status: str, order_by_completed: bool = False) -> Optional[UserAppointment]:
        """Newest appointment for an email in the given status"""
        order_column = UserAppointment.completed_at if order_by_completed else UserAppointment.created_at
        return (
            db.query(UserAppointment)
            .filter(UserAppointment.user_email == email, UserAppointment.status == status)
            .order_by(order_column.desc())
            .first()
        )

    @staticmethod
    def update(db: Session, instance, **fields):
        for key, value in fields.items():
            setattr(instance, key, value)
        db.commit()
        db.refresh(instance)
        return instance
