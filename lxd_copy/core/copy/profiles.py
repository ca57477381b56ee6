"""Profile compatibility check between source state and destination."""

import structlog

from ..client.base import EndpointClient
from ..exceptions import ProfileMismatchError

logger = structlog.get_logger()


class ProfileCompatibilityChecker:
    """Verifies the destination defines every profile the copy will use."""

    def __init__(self):
        self.logger = logger.bind(component="profile_checker")

    async def check(self, profiles: list[str], dest: EndpointClient) -> None:
        """Raise ProfileMismatchError unless all ``profiles`` exist on ``dest``."""
        available = set(await dest.list_profiles())
        missing = [profile for profile in dict.fromkeys(profiles) if profile not in available]

        if missing:
            self.logger.error(
                "Destination is missing profiles", remote=dest.remote, missing=missing
            )
            raise ProfileMismatchError(missing)

        self.logger.debug("Destination profiles compatible", remote=dest.remote, profiles=profiles)
