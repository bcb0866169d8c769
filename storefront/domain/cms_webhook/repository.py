"""CMS webhook repository - soft deletes mirrored from CMS document deletions"""

from sqlalchemy.orm import Session

from ...models import Order, UserAppointment, UserSubscription

# CMS document type -> mirrored table
DOCUMENT_TYPE_MODELS = {
    "userSubscription": UserSubscription,
    "userAppointment": UserAppointment,
    "order": Order,
}


class CmsWebhookRepository:
    @staticmethod
    def mark_deleted(db: Session, model, sanity_id: str) -> int:
        updated = (
            db.query(model)
            .filter(model.sanity_id == sanity_id)
            .update({model.is_deleted: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def mark_subscription_appointments_deleted(db: Session, subscription_sanity_id: str) -> int:
        updated = (
            db.query(UserAppointment)
            .filter(
                UserAppointment.subscription_id == subscription_sanity_id,
                UserAppointment.is_from_subscription.is_(True),
            )
            .update({UserAppointment.is_deleted: True}, synchronize_session=False)
        )
        db.commit()
        return updated
