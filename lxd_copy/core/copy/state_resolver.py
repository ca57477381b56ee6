"""Resolve the replicable state of a source container or snapshot."""

import structlog

from ...constants import BASE_IMAGE_KEY
from ...models.container import CopyOptions, ReplicableState
from ...utils import is_snapshot, strip_volatile
from ..client.base import EndpointClient

logger = structlog.get_logger()


class StateResolver:
    """Builds the state sent to the destination from source metadata and caller options."""

    def __init__(self):
        self.logger = logger.bind(component="state_resolver")

    async def resolve(
        self, client: EndpointClient, name: str, options: CopyOptions
    ) -> ReplicableState:
        """Fetch and merge the source's architecture, devices, config and profiles.

        Caller profiles are appended as-is (duplicates are left to the
        destination). Caller config overwrites fetched keys. The base image
        is recorded before volatile keys are stripped so it can still be
        forwarded.

        Args:
            client: Client for the source endpoint
            name: Container name or ``container/snapshot``
            options: Per-invocation copy options

        Returns:
            Merged state ready to send to the destination

        Raises:
            NotFoundError: If the source does not exist
            UpstreamError: On any other lookup failure
        """
        if is_snapshot(name):
            info = await client.get_snapshot(name)
        else:
            info = await client.get_container(name)

        profiles = list(info.profiles) + list(options.profiles)

        config = dict(info.config)
        config.update(options.config)

        base_image = config.get(BASE_IMAGE_KEY, "")

        if not options.keep_volatile:
            config = strip_volatile(config)

        self.logger.info(
            "Resolved source state",
            source=name,
            snapshot=is_snapshot(name),
            profiles=profiles,
            config_keys=len(config),
            base_image=base_image or None,
        )

        return ReplicableState(
            architecture=info.architecture,
            devices={device: dict(values) for device, values in info.devices.items()},
            config=config,
            profiles=profiles,
            base_image=base_image,
        )
