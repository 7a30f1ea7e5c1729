from django.apps import AppConfig
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """
        Log the upstream service configuration once at startup so a
        misconfigured deployment is visible in the logs immediately.
        """
        upstream = getattr(settings, "UPSTREAM_SERVICES", {})
        for service, base_url in upstream.items():
            logger.debug(f"Upstream '{service}' service at {base_url}")
