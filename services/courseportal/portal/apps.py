import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class PortalConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "portal"
    verbose_name = "Course Portal"

    def ready(self):
        db = settings.DATABASES.get("default", {})
        logger.info(
            "portal_config data_dir=%s db_engine=%s db_name=%s",
            settings.DATA_DIR,
            db.get("ENGINE", ""),
            db.get("NAME", ""),
        )
