import logging
import os

from .config import Config
from .constants import APP_NAME, DEFAULT_BRANCH
from .interfaces import AuthService
from .models import GitUserInfo, SupportedStorageServices

logger = logging.getLogger(APP_NAME)


class ConfigAuthService(AuthService):
    """Reads storage service credentials from `[auth.<service>]` config tables.

    Example:
        [auth.github]
        username = "alice"
        email = "alice@example.com"
        token_env = "GITHUB_TOKEN"
        branch = "main"
    """

    def __init__(self, config: Config):
        self.config = config

    async def get_storage_service_user_info(
        self, service: SupportedStorageServices
    ) -> GitUserInfo | None:
        if service == SupportedStorageServices.LOCAL:
            return None
        table = self.config.auth.get(service.value)
        if not table:
            return None

        token = table.get("token") or ""
        if not token and table.get("token_env"):
            token = os.environ.get(table["token_env"], "")
        username = table.get("username") or ""
        if not username or not token:
            logger.debug(f"Incomplete credentials for {service.value}")
            return None

        return GitUserInfo(
            username=username,
            email=table.get("email") or f"{username}@users.noreply.{service.value}.com",
            token=token,
            branch=table.get("branch") or DEFAULT_BRANCH,
        )
