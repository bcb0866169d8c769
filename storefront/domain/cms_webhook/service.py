"""CMS webhook service - keeps the database and product cache in step with CMS edits"""

import logging

from sqlalchemy.orm import Session

from ...cache import invalidate_product_cache
from .repository import DOCUMENT_TYPE_MODELS, CmsWebhookRepository

logger = logging.getLogger(__name__)


class CmsWebhookService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CmsWebhookRepository()

    def handle(self, payload: dict) -> dict:
        if payload.get("operation") == "delete":
            return self.handle_deletion(payload.get("_id"), payload.get("_type"))

        evicted = invalidate_product_cache()
        logger.info(f"🔄 CMS {payload.get('_type')} changed, evicted {evicted} cached product lists")
        return {"success": True, "message": "Webhook received but no action taken"}

    def handle_deletion(self, document_id: str, document_type: str) -> dict:
        """Soft-delete the mirrored row; subscriptions take their bundled appointments with them"""
        logger.info(f"🗑️ Processing deletion for CMS {document_type} document {document_id}")

        model = DOCUMENT_TYPE_MODELS.get(document_type)
        if model is None:
            logger.info(f"⚠️ No mirrored table for CMS type {document_type}")
            return {"success": False, "message": f"No action taken for document type {document_type}"}

        updated = self.repo.mark_deleted(self.db, model, document_id)
        logger.info(f"✅ Marked {updated} {model.__tablename__} row(s) deleted for {document_id}")

        if document_type == "userSubscription":
            try:
                count = self.repo.mark_subscription_appointments_deleted(self.db, document_id)
                logger.info(f"✅ Marked {count} subscription appointment(s) deleted for {document_id}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"⚠️ Failed to mark subscription appointments deleted for {document_id}: {e}")

        return {"success": True, "message": f"Successfully marked {document_type} as deleted"}
